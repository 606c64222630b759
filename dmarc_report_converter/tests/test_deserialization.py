from dataclasses import FrozenInstanceError
from ipaddress import IPv4Address

import pytest

from dmarc_report_converter.deserialization import parse_report
from dmarc_report_converter.errors import (
    MalformedDocument,
    ReportDecodeError,
    SchemaViolation,
    UnknownEnumToken,
)
from dmarc_report_converter.feedback import (
    DKIMResult,
    Disposition,
    Result,
    SPFDomainScope,
    SPFResult,
)
from dmarc_report_converter.model.tests.sample_data import (
    SAMPLE_FEEDBACK,
    create_minimal_xml,
    create_sample_xml,
)


def test_parses_report_from_string():
    assert parse_report(create_sample_xml()) == SAMPLE_FEEDBACK


def test_parses_report_from_bytes():
    assert parse_report(create_sample_xml().encode("utf-8")) == SAMPLE_FEEDBACK


def test_parses_minimal_report():
    feedback = parse_report(create_minimal_xml())

    assert feedback.version is None
    assert feedback.report_metadata.extra_contact_info is None
    assert feedback.report_metadata.error == []
    assert feedback.policy_published.adkim is None
    assert feedback.policy_published.fo == "1"
    assert len(feedback.record) == 1
    record = feedback.record[0]
    assert record.row.source_ip == IPv4Address("192.0.2.1")
    assert record.row.count == 3
    assert record.row.policy_evaluated.reason == []
    assert record.identifiers.envelope_from == "example.org"
    assert record.identifiers.envelope_to is None
    assert len(record.auth_results.dkim) == 1
    assert record.auth_results.dkim[0].result is DKIMResult.PASS
    assert len(record.auth_results.spf) == 1
    assert record.auth_results.spf[0].result is SPFResult.FAIL
    assert record.auth_results.spf[0].scope is SPFDomainScope.MFROM


def test_report_without_dkim_results_has_empty_dkim_list():
    xml = create_minimal_xml().replace(
        "<dkim>\n        <domain>example.org</domain>\n"
        "        <result>pass</result>\n      </dkim>",
        "",
    )
    feedback = parse_report(xml)
    assert feedback.record[0].auth_results.dkim == []


def test_enumerated_fields_are_case_insensitive():
    feedback = parse_report(
        create_minimal_xml(disposition="QUARANTINE", dkim_result="TempError")
    )
    record = feedback.record[0]
    assert record.row.policy_evaluated.disposition is Disposition.QUARANTINE
    assert record.auth_results.dkim[0].result is DKIMResult.TEMPERROR


def test_evaluated_result_treats_unknown_tokens_as_fail():
    xml = create_minimal_xml().replace("<dkim>pass</dkim>", "<dkim>whatever</dkim>")
    feedback = parse_report(xml)
    assert feedback.record[0].row.policy_evaluated.dkim is Result.FAIL


def test_unknown_enum_token_reports_field_and_token():
    with pytest.raises(UnknownEnumToken) as err:
        parse_report(create_minimal_xml(disposition="drop"))
    assert err.value.enumeration == "Disposition"
    assert err.value.token == "drop"
    assert err.value.field == "feedback.record[0].row.policy_evaluated.disposition"


def test_unknown_policy_override_type_fails():
    xml = create_minimal_xml().replace(
        "<spf>fail</spf>",
        "<spf>fail</spf><reason><type>forwarding</type></reason>",
    )
    with pytest.raises(UnknownEnumToken) as err:
        parse_report(xml)
    assert err.value.enumeration == "PolicyOverride"
    assert err.value.field.endswith("reason[0].type")


def test_invalid_source_ip_is_a_schema_violation():
    with pytest.raises(SchemaViolation) as err:
        parse_report(create_minimal_xml(source_ip="not-an-ip"))
    assert err.value.field == "feedback.record[0].row.source_ip"
    assert "source_ip" in str(err.value)


def test_missing_spf_scope_is_a_schema_violation():
    with pytest.raises(SchemaViolation) as err:
        parse_report(create_minimal_xml(spf_scope=""))
    assert err.value.field == "feedback.record[0].auth_results.spf[0].scope"


def test_missing_required_element_is_a_schema_violation():
    xml = create_minimal_xml().replace("<org_name>example.net</org_name>", "")
    with pytest.raises(SchemaViolation) as err:
        parse_report(xml)
    assert err.value.field == "feedback.report_metadata.org_name"


def test_empty_report_metadata_is_a_schema_violation():
    with pytest.raises(SchemaViolation) as err:
        parse_report("<feedback><report_metadata/></feedback>")
    assert err.value.field.startswith("feedback.report_metadata")


def test_non_integer_count_fails():
    xml = create_minimal_xml().replace("<count>3</count>", "<count>three</count>")
    with pytest.raises(ReportDecodeError):
        parse_report(xml)


@pytest.mark.parametrize(
    "document", ["", "not xml at all", "<feedback><report_metadata></feedback>"]
)
def test_malformed_document(document):
    with pytest.raises(MalformedDocument):
        parse_report(document)


def test_ignores_unknown_elements():
    xml = create_minimal_xml().replace(
        "<fo>1</fo>", "<fo>1</fo><np>none</np><testing>n</testing>"
    )
    assert parse_report(xml) == parse_report(create_minimal_xml())


@pytest.mark.parametrize(
    "element,field",
    [
        ("<sp>reject</sp>", "feedback.policy_published.sp"),
        ("<pct>100</pct>", "feedback.policy_published.pct"),
        ("<fo>1</fo>", "feedback.policy_published.fo"),
        (
            "<envelope_from>example.org</envelope_from>",
            "feedback.record[0].identifiers.envelope_from",
        ),
    ],
)
def test_missing_policy_and_envelope_elements_are_schema_violations(element, field):
    xml = create_minimal_xml().replace(element, "")
    with pytest.raises(SchemaViolation) as err:
        parse_report(xml)
    assert err.value.field == field


@pytest.mark.parametrize("version", ["NaN", "Infinity", "-inf"])
def test_non_finite_version_is_a_schema_violation(version):
    xml = create_minimal_xml().replace(
        "<feedback>", f"<feedback><version>{version}</version>", 1
    )
    with pytest.raises(SchemaViolation) as err:
        parse_report(xml)
    assert err.value.field == "feedback.version"


@pytest.mark.parametrize(
    "namespace",
    ["http://dmarc.org/dmarc-xml/0.1", "urn:ietf:params:xml:ns:dmarc-2.0"],
)
def test_parses_report_with_default_namespace(namespace):
    xml = create_sample_xml().replace(
        "<feedback>", f'<feedback xmlns="{namespace}">', 1
    )
    assert parse_report(xml) == SAMPLE_FEEDBACK


def test_parses_report_with_prefixed_namespace():
    xml = (
        create_minimal_xml()
        .replace("<", "<dmarc:")
        .replace("<dmarc:/", "</dmarc:")
        .replace(
            "<dmarc:feedback>",
            '<dmarc:feedback xmlns:dmarc="http://dmarc.org/dmarc-xml/0.1">',
            1,
        )
    )
    assert parse_report(xml) == parse_report(create_minimal_xml())


def test_ignores_comments():
    xml = create_minimal_xml().replace(
        "<report_metadata>", "<report_metadata><!-- generated -->", 1
    )
    assert parse_report(xml) == parse_report(create_minimal_xml())


@pytest.mark.parametrize(
    "element,repeated,field",
    [
        (
            "<org_name>example.net</org_name>",
            "<org_name>example.net</org_name><org_name>example.com</org_name>",
            "feedback.report_metadata.org_name",
        ),
        (
            "<count>3</count>",
            "<count>3</count><count>4</count>",
            "feedback.record[0].row.count",
        ),
        (
            "<pct>100</pct>",
            "<pct>100</pct><pct>50</pct>",
            "feedback.policy_published.pct",
        ),
        (
            "<result>fail</result>",
            "<result>fail</result><result>pass</result>",
            "feedback.record[0].auth_results.spf[0].result",
        ),
    ],
)
def test_repeated_single_element_is_a_schema_violation(element, repeated, field):
    xml = create_minimal_xml().replace(element, repeated, 1)
    with pytest.raises(SchemaViolation) as err:
        parse_report(xml)
    assert err.value.field == field


def test_repeated_record_elements_are_allowed():
    record = create_minimal_xml().split("<record>", 1)[1].split("</record>", 1)[0]
    xml = create_minimal_xml().replace(
        "</record>", f"</record><record>{record}</record>", 1
    )
    feedback = parse_report(xml)
    assert len(feedback.record) == 2
    assert feedback.record[0] == feedback.record[1]


def test_report_entities_are_frozen():
    feedback = parse_report(create_minimal_xml())
    with pytest.raises(FrozenInstanceError):
        feedback.policy_published.pct = 50


def test_each_decode_returns_its_own_lists():
    first = parse_report(create_minimal_xml())
    second = parse_report(create_minimal_xml())
    assert first.record is not second.record
    assert first.report_metadata.error is not second.report_metadata.error
