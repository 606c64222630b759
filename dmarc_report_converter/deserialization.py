from collections import Counter
from dataclasses import fields, is_dataclass
from decimal import Decimal
from ipaddress import ip_address
from typing import (
    Any,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)
from xml.etree import ElementTree
from xml.etree.ElementTree import ParseError

from xsdata.exceptions import ParserError
from xsdata.formats.dataclass.context import XmlContext
from xsdata.formats.dataclass.parsers.config import ParserConfig
from xsdata.formats.dataclass.parsers.handlers import XmlEventHandler
from xsdata.formats.dataclass.parsers.xml import XmlParser

import dmarc_report_converter.model as m
from dmarc_report_converter.errors import (
    MalformedDocument,
    SchemaViolation,
    UnknownEnumToken,
)
from dmarc_report_converter.feedback import (
    Alignment,
    AuthResult,
    DateRange,
    Disposition,
    DKIMAuthResult,
    DKIMResult,
    Feedback,
    Identifiers,
    IPAddress,
    PolicyEvaluated,
    PolicyOverride,
    PolicyOverrideReason,
    PolicyPublished,
    Record,
    ReportMetadata,
    Result,
    Row,
    SPFAuthResult,
    SPFDomainScope,
    SPFResult,
)
from dmarc_report_converter.token_codec import codec_for

E = TypeVar("E")


def parse_report(document: Union[bytes, str]) -> Feedback:
    """Decode one aggregate report XML document into the report model.

    Elements are matched by local name, so reports declaring a default
    namespace (``http://dmarc.org/dmarc-xml/0.1``, the DMARCbis
    ``urn:ietf:params:xml:ns:dmarc-2.0`` or any other) decode the same as
    unqualified ones.

    Raises :class:`MalformedDocument` for input that is not well-formed XML,
    :class:`SchemaViolation` for missing, repeated or ill-typed elements and
    :class:`UnknownEnumToken` for enumerated values outside their vocabulary.
    """
    if isinstance(document, str):
        document = document.encode("utf-8")
    parser = XmlParser(
        context=XmlContext(),
        config=ParserConfig(fail_on_unknown_properties=False),
        handler=XmlEventHandler,
    )
    try:
        root = _strip_namespaces(ElementTree.fromstring(document))
        _check_single_elements(root, m.Feedback, "feedback")
        wire = parser.from_bytes(ElementTree.tostring(root), m.Feedback)
    except (ParseError, ParserError) as err:
        raise MalformedDocument(str(err)) from err
    return convert_feedback(wire)


def _strip_namespaces(root: ElementTree.Element) -> ElementTree.Element:
    for element in root.iter():
        # Comments and processing instructions have a callable as tag.
        if isinstance(element.tag, str) and element.tag.startswith("{"):
            element.tag = element.tag.split("}", 1)[1]
    return root


def _check_single_elements(
    element: ElementTree.Element, wire_cls: type, path: str
) -> None:
    """Reject repeated occurrences of elements the schema allows only once."""
    counts = Counter(child.tag for child in element)
    hints = get_type_hints(wire_cls)
    for name in (f.name for f in fields(wire_cls)):
        child_cls, repeated = _element_type(hints[name])
        if not repeated and counts[name] > 1:
            raise SchemaViolation(f"{path}.{name}", "element occurs more than once")
        if is_dataclass(child_cls):
            for i, child in enumerate(element.findall(name)):
                child_path = f"{path}.{name}[{i}]" if repeated else f"{path}.{name}"
                _check_single_elements(child, child_cls, child_path)


def _element_type(hint: Any) -> Tuple[Any, bool]:
    if get_origin(hint) is Union:
        hint = next(arg for arg in get_args(hint) if arg is not type(None))
    if get_origin(hint) is list:
        return get_args(hint)[0], True
    return hint, False


def convert_feedback(feedback: m.Feedback) -> Feedback:
    path = "feedback"
    return Feedback(
        version=_optional_decimal(feedback.version, f"{path}.version"),
        report_metadata=_convert_report_metadata(
            _required(feedback.report_metadata, f"{path}.report_metadata"),
            f"{path}.report_metadata",
        ),
        policy_published=_convert_policy_published(
            _required(feedback.policy_published, f"{path}.policy_published"),
            f"{path}.policy_published",
        ),
        record=[
            _convert_record(record, f"{path}.record[{i}]")
            for i, record in enumerate(feedback.record)
        ],
    )


def _convert_report_metadata(
    metadata: m.ReportMetadataType, path: str
) -> ReportMetadata:
    date_range = _required(metadata.date_range, f"{path}.date_range")
    return ReportMetadata(
        org_name=_required(metadata.org_name, f"{path}.org_name"),
        email=_required(metadata.email, f"{path}.email"),
        extra_contact_info=metadata.extra_contact_info,
        report_id=_required(metadata.report_id, f"{path}.report_id"),
        date_range=DateRange(
            begin=_integer(date_range.begin, f"{path}.date_range.begin"),
            end=_integer(date_range.end, f"{path}.date_range.end"),
        ),
        error=list(metadata.error),
    )


def _convert_policy_published(
    policy: m.PolicyPublishedType, path: str
) -> PolicyPublished:
    return PolicyPublished(
        domain=_required(policy.domain, f"{path}.domain"),
        adkim=_optional_token(Alignment, policy.adkim, f"{path}.adkim"),
        aspf=_optional_token(Alignment, policy.aspf, f"{path}.aspf"),
        p=_token(Disposition, policy.p, f"{path}.p"),
        sp=_token(Disposition, policy.sp, f"{path}.sp"),
        pct=_integer(policy.pct, f"{path}.pct"),
        fo=_required(policy.fo, f"{path}.fo"),
    )


def _convert_record(record: m.RecordType, path: str) -> Record:
    return Record(
        row=_convert_row(_required(record.row, f"{path}.row"), f"{path}.row"),
        identifiers=_convert_identifiers(
            _required(record.identifiers, f"{path}.identifiers"),
            f"{path}.identifiers",
        ),
        auth_results=_convert_auth_results(
            _required(record.auth_results, f"{path}.auth_results"),
            f"{path}.auth_results",
        ),
    )


def _convert_row(row: m.RowType, path: str) -> Row:
    policy_evaluated = _required(row.policy_evaluated, f"{path}.policy_evaluated")
    return Row(
        source_ip=_ip_address(row.source_ip, f"{path}.source_ip"),
        count=_integer(row.count, f"{path}.count"),
        policy_evaluated=_convert_policy_evaluated(
            policy_evaluated, f"{path}.policy_evaluated"
        ),
    )


def _convert_policy_evaluated(
    policy: m.PolicyEvaluatedType, path: str
) -> PolicyEvaluated:
    return PolicyEvaluated(
        disposition=_token(Disposition, policy.disposition, f"{path}.disposition"),
        dkim=_token(Result, policy.dkim, f"{path}.dkim"),
        spf=_token(Result, policy.spf, f"{path}.spf"),
        reason=[
            PolicyOverrideReason(
                type=_token(PolicyOverride, reason.type, f"{path}.reason[{i}].type"),
                comment=reason.comment,
            )
            for i, reason in enumerate(policy.reason)
        ],
    )


def _convert_identifiers(identifiers: m.IdentifierType, path: str) -> Identifiers:
    return Identifiers(
        envelope_to=identifiers.envelope_to,
        envelope_from=_required(identifiers.envelope_from, f"{path}.envelope_from"),
        header_from=_required(identifiers.header_from, f"{path}.header_from"),
    )


def _convert_auth_results(auth_results: m.AuthResultType, path: str) -> AuthResult:
    return AuthResult(
        dkim=[
            _convert_dkim(dkim, f"{path}.dkim[{i}]")
            for i, dkim in enumerate(auth_results.dkim)
        ],
        spf=[
            _convert_spf(spf, f"{path}.spf[{i}]")
            for i, spf in enumerate(auth_results.spf)
        ],
    )


def _convert_dkim(dkim: m.DkimauthResultType, path: str) -> DKIMAuthResult:
    return DKIMAuthResult(
        domain=_required(dkim.domain, f"{path}.domain"),
        selector=dkim.selector,
        result=_token(DKIMResult, dkim.result, f"{path}.result"),
        human_result=dkim.human_result,
    )


def _convert_spf(spf: m.SpfauthResultType, path: str) -> SPFAuthResult:
    return SPFAuthResult(
        domain=_required(spf.domain, f"{path}.domain"),
        scope=_token(SPFDomainScope, spf.scope, f"{path}.scope"),
        result=_token(SPFResult, spf.result, f"{path}.result"),
    )


def _required(value: Optional[E], path: str) -> E:
    if value is None:
        raise SchemaViolation(path, "required element is missing")
    return value


def _integer(value: Any, path: str) -> int:
    value = _required(value, path)
    if isinstance(value, bool) or not isinstance(value, int):
        raise SchemaViolation(path, f"expected an integer, got {value!r}")
    return value


def _optional_decimal(value: Any, path: str) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal) and value.is_finite():
        return value
    raise SchemaViolation(path, f"expected a decimal number, got {value!r}")


def _ip_address(value: Optional[str], path: str) -> IPAddress:
    try:
        return ip_address(_required(value, path))
    except ValueError as err:
        raise SchemaViolation(path, f"invalid IP address {value!r}") from err


def _token(enum_cls: Type[E], value: Optional[str], path: str) -> E:
    try:
        return codec_for(enum_cls).decode(_required(value, path))
    except UnknownEnumToken as err:
        raise err.at(path) from err


def _optional_token(
    enum_cls: Type[E], value: Optional[str], path: str
) -> Optional[E]:
    if value is None:
        return None
    return _token(enum_cls, value, path)
