"""Validation result models: diagnostics with source position tracking."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class Outcome(StrEnum):
    VALID = "valid"
    INVALID = "invalid"


class Diagnostic(BaseModel):
    """A single conformance violation found in an instance document."""

    model_config = ConfigDict(frozen=True)

    message: str
    line: int | None = None
    column: int | None = None
    path: str | None = None

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"line {self.line}: {self.message}"


class ValidationResult(BaseModel):
    """Result of validating a document against a schema.

    ``diagnostics`` is empty exactly when ``outcome`` is ``valid``.
    """

    model_config = ConfigDict(frozen=True)

    outcome: Outcome
    diagnostics: list[Diagnostic] = []

    @classmethod
    def from_diagnostics(cls, diagnostics: list[Diagnostic]) -> ValidationResult:
        outcome = Outcome.INVALID if diagnostics else Outcome.VALID
        return cls(outcome=outcome, diagnostics=list(diagnostics))

    @property
    def valid(self) -> bool:
        return self.outcome is Outcome.VALID
