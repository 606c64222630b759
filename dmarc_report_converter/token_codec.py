"""Conversion between wire tokens and the enumerations of the report model.

Every enumeration is described by one :class:`EnumCodec`: the canonical
output token of each member, additional input spellings and whether unknown
tokens are rejected or mapped to a default member. Decoding is
case-insensitive. Encoding never fails; values that are not a member of the
enumeration encode to :data:`UNKNOWN_TOKEN`.
"""

from enum import Enum
from typing import Any, Dict, Generic, Mapping, Optional, Type, TypeVar

from dmarc_report_converter.errors import UnknownEnumToken
from dmarc_report_converter.feedback import (
    Alignment,
    Disposition,
    DKIMResult,
    PolicyOverride,
    Result,
    SPFDomainScope,
    SPFResult,
)

UNKNOWN_TOKEN = "unknown"

E = TypeVar("E", bound=Enum)


class EnumCodec(Generic[E]):
    def __init__(
        self,
        enum_cls: Type[E],
        tokens: Mapping[E, str],
        *,
        aliases: Optional[Mapping[str, E]] = None,
        default: Optional[E] = None,
    ):
        self.enum_cls = enum_cls
        self.name = enum_cls.__name__
        self._tokens: Dict[E, str] = dict(tokens)
        self._vocabulary: Dict[str, E] = {
            token: member for member, token in self._tokens.items()
        }
        self._vocabulary.update(aliases or {})
        self._default = default

    def decode(self, token: str) -> E:
        if not isinstance(token, str):
            raise UnknownEnumToken(self.name, token)
        member = self._vocabulary.get(token.lower())
        if member is not None:
            return member
        if self._default is not None:
            return self._default
        raise UnknownEnumToken(self.name, token)

    def encode(self, value: Any) -> str:
        if not isinstance(value, self.enum_cls):
            try:
                value = self.enum_cls(value)
            except (ValueError, TypeError):
                return UNKNOWN_TOKEN
        return self._tokens.get(value, UNKNOWN_TOKEN)


ALIGNMENT = EnumCodec(
    Alignment,
    {Alignment.RELAXED: "relaxed", Alignment.STRICT: "strict"},
    aliases={"r": Alignment.RELAXED, "s": Alignment.STRICT},
)

DISPOSITION = EnumCodec(
    Disposition,
    {
        Disposition.NONE: "none",
        Disposition.QUARANTINE: "quarantine",
        Disposition.REJECT: "reject",
    },
)

# Deliberately lenient: anything but "pass" (or its encoded form "true") is a
# failed result.
RESULT = EnumCodec(
    Result,
    {Result.PASS: "true", Result.FAIL: "false"},
    aliases={"pass": Result.PASS},
    default=Result.FAIL,
)

POLICY_OVERRIDE = EnumCodec(
    PolicyOverride,
    {member: member.value for member in PolicyOverride},
)

DKIM_RESULT = EnumCodec(
    DKIMResult,
    {member: member.value for member in DKIMResult},
)

SPF_DOMAIN_SCOPE = EnumCodec(
    SPFDomainScope,
    {member: member.value for member in SPFDomainScope},
)

SPF_RESULT = EnumCodec(
    SPFResult,
    {member: member.value for member in SPFResult},
)

CODECS: Mapping[type, EnumCodec] = {
    codec.enum_cls: codec
    for codec in (
        ALIGNMENT,
        DISPOSITION,
        RESULT,
        POLICY_OVERRIDE,
        DKIM_RESULT,
        SPF_DOMAIN_SCOPE,
        SPF_RESULT,
    )
}


def codec_for(enum_cls: Type[E]) -> EnumCodec[E]:
    return CODECS[enum_cls]


def decode(enum_cls: Type[E], token: str) -> E:
    return codec_for(enum_cls).decode(token)


def encode(value: Any, enum_cls: Optional[type] = None) -> str:
    """Return the canonical token of an enumeration value.

    Without ``enum_cls`` the enumeration is derived from the type of
    ``value``. Unregistered types encode to :data:`UNKNOWN_TOKEN`.
    """
    codec = CODECS.get(enum_cls if enum_cls is not None else type(value))
    if codec is None:
        return UNKNOWN_TOKEN
    return codec.encode(value)
