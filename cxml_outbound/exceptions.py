"""
cXML Outbound Exceptions

Builder calls raise synchronously at the offending call site; rendering,
schema and transport failures surface from ``submit``.
"""

from __future__ import annotations


class CxmlError(Exception):
    """Base exception for all cXML outbound errors."""
    pass


class InvalidArgumentError(CxmlError, ValueError):
    """
    Raised when an operation receives an argument of the wrong shape,
    e.g. a blank document id, a non-list batch, or an empty submit URL.
    """
    pass


class ValidationError(CxmlError, ValueError):
    """
    Raised when an entity handed to a builder operation is missing a
    required field or a field fails its declared type check.

    Only the first offending field is reported.
    """
    def __init__(self, message: str, entity: str | None = None, field: str | None = None):
        self.entity = entity
        self.field = field
        super().__init__(message)


class PreconditionError(CxmlError):
    """
    Raised when an operation's ordering requirement is violated: item taxes
    before any item, submitting without a header, or submitting an order
    with mixed item currencies and no explicit total.
    """
    pass


class MalformedDocumentError(CxmlError):
    """Raised when rendered text is not well-formed XML."""
    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = list(errors or [])
        super().__init__(message)


class SchemaInvalidError(CxmlError):
    """
    Raised when rendered text does not validate against the protocol DTD.

    Fatal for submission: nothing is sent.
    """
    def __init__(self, message: str, errors: list[str] | None = None, dtd: str | None = None):
        self.errors = list(errors or [])
        self.dtd = dtd
        super().__init__(message)


class TransportError(CxmlError):
    """
    Raised when the HTTP exchange fails: connection error, timeout, or a
    non-2xx status. The underlying ``httpx`` exception is chained.
    """
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        url: str | None = None,
    ):
        self.status_code = status_code
        self.response_body = response_body
        self.url = url
        super().__init__(message)
