from dmarc_report_converter.model.dmarc_aggregate_report import (
    AuthResultType,
    DateRangeType,
    DkimauthResultType,
    Feedback,
    IdentifierType,
    PolicyEvaluatedType,
    PolicyOverrideReason,
    PolicyPublishedType,
    RecordType,
    ReportMetadataType,
    RowType,
    SpfauthResultType,
)

__all__ = [
    "AuthResultType",
    "DateRangeType",
    "DkimauthResultType",
    "Feedback",
    "IdentifierType",
    "PolicyEvaluatedType",
    "PolicyOverrideReason",
    "PolicyPublishedType",
    "RecordType",
    "ReportMetadataType",
    "RowType",
    "SpfauthResultType",
]
