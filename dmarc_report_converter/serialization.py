import json
from decimal import Decimal, InvalidOperation
from ipaddress import IPv4Address, IPv6Address
from typing import Any, Dict, Mapping, Union

from dataclasses_serialization.json import JSONSerializer
from dataclasses_serialization.serializer_base import DeserializationError

import dmarc_report_converter.model as m
from dmarc_report_converter.deserialization import convert_feedback
from dmarc_report_converter.errors import MalformedDocument, SchemaViolation
from dmarc_report_converter.feedback import Feedback
from dmarc_report_converter.token_codec import CODECS

# Repeated elements that are left out of the projection when empty.
OPTIONAL_REPEATED_FIELDS = frozenset(("error", "reason"))

for _enum_cls, _codec in CODECS.items():
    JSONSerializer.register_serializer(_enum_cls)(_codec.encode)


# false positive, pylint: disable=no-value-for-parameter
@JSONSerializer.register_serializer(IPv4Address)
def ipv4_address_serializer(address: IPv4Address) -> str:
    return str(address)


@JSONSerializer.register_serializer(IPv6Address)
def ipv6_address_serializer(address: IPv6Address) -> str:
    return str(address)


@JSONSerializer.register_serializer(Decimal)
def decimal_serializer(number: Decimal) -> float:
    return float(number)


def report_to_json(feedback: Feedback) -> Dict[str, Any]:
    """Project a report onto JSON compatible types.

    Field names are the snake_case element names of the XML schema.
    Enumerations become their canonical token. Absent optional fields are
    omitted instead of being emitted as ``null``.
    """
    return _omit_absent(JSONSerializer.serialize(feedback))


def report_from_json(obj: Mapping[str, Any]) -> Feedback:
    obj = dict(obj)
    version = _version_from_json(obj.pop("version", None))
    try:
        wire = JSONSerializer.deserialize(m.Feedback, obj)
    except (DeserializationError, TypeError, ValueError) as err:
        # The library's message embeds the whole input document.
        raise SchemaViolation(
            "feedback", "JSON document does not match the report schema"
        ) from err
    wire.version = version
    return convert_feedback(wire)


def parse_json_report(document: Union[bytes, str]) -> Feedback:
    try:
        obj = json.loads(document)
    except ValueError as err:
        raise MalformedDocument(str(err)) from err
    if not isinstance(obj, dict):
        raise SchemaViolation("feedback", "expected a JSON object")
    return report_from_json(obj)


def _omit_absent(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {
            key: _omit_absent(value)
            for key, value in obj.items()
            if value is not None
            and not (key in OPTIONAL_REPEATED_FIELDS and value == [])
        }
    if isinstance(obj, list):
        return [_omit_absent(item) for item in obj]
    return obj


def _version_from_json(value: Any) -> Any:
    # Numbers go through str so that 1.0 stays Decimal("1.0").
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if isinstance(value, str):
        try:
            return Decimal(value)
        except InvalidOperation as err:
            raise SchemaViolation(
                "feedback.version", f"expected a decimal number, got {value!r}"
            ) from err
    # Anything else is rejected by convert_feedback.
    return value
