from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from ipaddress import IPv4Address, IPv6Address
from typing import List, Optional, Union

IPAddress = Union[IPv4Address, IPv6Address]


class Alignment(Enum):
    RELAXED = "r"
    STRICT = "s"


class Disposition(Enum):
    NONE = "none"
    QUARANTINE = "quarantine"
    REJECT = "reject"


class Result(Enum):
    """DMARC-aligned authentication result, ``pass`` is true, ``fail`` false."""

    PASS = True
    FAIL = False

    def __bool__(self) -> bool:
        return self.value


class PolicyOverride(Enum):
    """Reasons that may affect the DMARC disposition or its execution."""

    # Relayed via a known forwarder or likely forwarded by local heuristics.
    FORWARDED = "forwarded"
    # Exempted from policy by the "pct" setting of the DMARC record.
    SAMPLED_OUT = "sampled_out"
    # Failure anticipated through a local list of trusted forwarders.
    TRUSTED_FORWARDER = "trusted_forwarder"
    # Arrived via a mailing list according to local heuristics.
    MAILING_LIST = "mailing_list"
    # Exempted by the receiver's local policy.
    LOCAL_POLICY = "local_policy"
    # Anything else, details go into the comment of the reason.
    OTHER = "other"


class DKIMResult(Enum):
    """DKIM verification result (RFC 7001, section 2.6.1)."""

    NONE = "none"
    PASS = "pass"
    FAIL = "fail"
    POLICY = "policy"
    NEUTRAL = "neutral"
    TEMPERROR = "temperror"
    PERMERROR = "permerror"


class SPFDomainScope(Enum):
    HELO = "helo"
    MFROM = "mfrom"


class SPFResult(Enum):
    NONE = "none"
    NEUTRAL = "neutral"
    PASS = "pass"
    FAIL = "fail"
    SOFTFAIL = "softfail"
    TEMPERROR = "temperror"
    PERMERROR = "permerror"


# Entities are frozen, but their List fields are plain lists shared with
# whoever holds the entity. Callers must treat them as read-only.


@dataclass(frozen=True)
class DateRange:
    """Time range covered by a report in seconds since epoch (UTC)."""

    begin: int
    end: int


@dataclass(frozen=True)
class ReportMetadata:
    org_name: str
    email: str
    report_id: str
    date_range: DateRange
    extra_contact_info: Optional[str] = None
    error: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PolicyPublished:
    """The DMARC policy record that applied to the messages of a report."""

    domain: str
    p: Disposition
    sp: Disposition
    pct: int
    fo: str
    adkim: Optional[Alignment] = None
    aspf: Optional[Alignment] = None


@dataclass(frozen=True)
class PolicyOverrideReason:
    type: PolicyOverride
    comment: Optional[str] = None


@dataclass(frozen=True)
class PolicyEvaluated:
    disposition: Disposition
    dkim: Result
    spf: Result
    reason: List[PolicyOverrideReason] = field(default_factory=list)


@dataclass(frozen=True)
class Row:
    source_ip: IPAddress
    count: int
    policy_evaluated: PolicyEvaluated


@dataclass(frozen=True)
class Identifiers:
    envelope_from: str
    header_from: str
    envelope_to: Optional[str] = None


@dataclass(frozen=True)
class DKIMAuthResult:
    domain: str
    result: DKIMResult
    selector: Optional[str] = None
    human_result: Optional[str] = None


@dataclass(frozen=True)
class SPFAuthResult:
    domain: str
    scope: SPFDomainScope
    result: SPFResult


@dataclass(frozen=True)
class AuthResult:
    # There may be no DKIM signature at all.
    dkim: List[DKIMAuthResult] = field(default_factory=list)
    spf: List[SPFAuthResult] = field(default_factory=list)


@dataclass(frozen=True)
class Record:
    row: Row
    identifiers: Identifiers
    auth_results: AuthResult


@dataclass(frozen=True)
class Feedback:
    report_metadata: ReportMetadata
    policy_published: PolicyPublished
    record: List[Record] = field(default_factory=list)
    version: Optional[Decimal] = None
