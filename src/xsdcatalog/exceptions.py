"""Exception taxonomy shared by the catalog, the validation engine and the API layers.

Every error carries a stable ``code`` that the REST and MCP boundaries
surface to callers.  A document that does not conform to its schema is
*not* an error; it yields an ``invalid`` ValidationResult instead.
"""

from __future__ import annotations


class XsdCatalogError(Exception):
    """Base exception for catalog and validation failures."""

    code = "INTERNAL_FAILURE"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(XsdCatalogError):
    """A required request field is missing or empty."""

    code = "INVALID_INPUT"


class _LocatedError(XsdCatalogError):
    """Parse-time failure with an optional line/column in the offending text."""

    def __init__(self, message: str, line: int | None = None, column: int | None = None) -> None:
        super().__init__(message)
        self.line = line
        self.column = column


class MalformedDocumentError(_LocatedError):
    """The instance document is not well-formed XML."""

    code = "MALFORMED_DOCUMENT"


class MalformedSchemaError(_LocatedError):
    """The schema text is not well-formed XML or not a usable XML Schema."""

    code = "MALFORMED_SCHEMA"


class SchemaNotFoundError(XsdCatalogError):
    """The requested catalog entry does not exist."""

    code = "NOT_FOUND"


class PathTraversalError(XsdCatalogError):
    """A client-supplied path resolves outside the catalog root."""

    code = "PATH_TRAVERSAL"


class InternalFailureError(XsdCatalogError):
    """Unexpected failure; callers only ever see a generic message."""

    code = "INTERNAL_FAILURE"


class CatalogReadError(InternalFailureError):
    """A catalog file exists but could not be read."""


class ValidationTimeoutError(InternalFailureError):
    """A validation call exhausted its wall-clock budget."""


class ValidationCancelledError(InternalFailureError):
    """A validation call was abandoned by its caller."""
