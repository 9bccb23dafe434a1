"""API request/response Pydantic schemas."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from xsdcatalog.models.errors import Diagnostic, Outcome, ValidationResult


class ValidateRequest(BaseModel):
    """Request body for POST /validate.

    Missing fields default to empty strings so that the engine reports them
    as ``INVALID_INPUT`` (400) rather than FastAPI answering 422.
    """

    model_config = ConfigDict(populate_by_name=True)

    document_text: str = Field(
        default="",
        validation_alias=AliasChoices("documentText", "xmlContent", "document_text"),
        description="XML document to validate",
    )
    schema_text: str = Field(
        default="",
        validation_alias=AliasChoices("schemaText", "xsdContent", "schema_text"),
        description="XML Schema (XSD) to validate against",
    )


class DiagnosticDetail(BaseModel):
    """A single conformance violation with its location."""

    message: str
    line: int | None = None
    column: int | None = None
    path: str | None = None

    @classmethod
    def from_diagnostic(cls, diagnostic: Diagnostic) -> DiagnosticDetail:
        return cls(**diagnostic.model_dump())


class ValidateResponse(BaseModel):
    """Response body for POST /validate."""

    outcome: Outcome
    diagnostics: list[str] = []
    details: list[DiagnosticDetail] = []

    @classmethod
    def from_result(cls, result: ValidationResult) -> ValidateResponse:
        return cls(
            outcome=result.outcome,
            diagnostics=[str(d) for d in result.diagnostics],
            details=[DiagnosticDetail.from_diagnostic(d) for d in result.diagnostics],
        )


class SchemaContentResponse(BaseModel):
    """Response body for GET /xsd-content/{path}."""

    content: str


class ErrorResponse(BaseModel):
    """Error body carried in ``detail`` of every non-2xx response."""

    error: str
    message: str
    line: int | None = None
    column: int | None = None


class HealthResponse(BaseModel):
    status: str
    version: str
