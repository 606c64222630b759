from typing import Any, Optional


class ReportDecodeError(Exception):
    """Base class of all failures to decode a single report."""


class MalformedDocument(ReportDecodeError):
    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def __str__(self):
        return f"Malformed report document: {self.detail}"


class SchemaViolation(ReportDecodeError):
    def __init__(self, field: str, detail: str):
        super().__init__(field, detail)
        self.field = field
        self.detail = detail

    def __str__(self):
        return f"Invalid field '{self.field}': {self.detail}"


class UnknownEnumToken(ReportDecodeError):
    def __init__(self, enumeration: str, token: Any, field: Optional[str] = None):
        super().__init__(enumeration, token, field)
        self.enumeration = enumeration
        self.token = token
        self.field = field

    def at(self, field: str) -> "UnknownEnumToken":
        return UnknownEnumToken(self.enumeration, self.token, field)

    def __str__(self):
        location = f" in field '{self.field}'" if self.field else ""
        return f"Unexpected {self.enumeration} value {self.token!r}{location}."
