"""Tests for Pydantic domain models."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from xsdcatalog.api.schemas import ValidateRequest, ValidateResponse
from xsdcatalog.models.catalog import CatalogNode, DirectoryNode, FileNode
from xsdcatalog.models.errors import Diagnostic, Outcome, ValidationResult


class TestOutcome:
    def test_values(self) -> None:
        assert Outcome.VALID == "valid"
        assert Outcome.INVALID == "invalid"


class TestDiagnostic:
    def test_str_with_line(self) -> None:
        assert str(Diagnostic(message="bad", line=7)) == "line 7: bad"

    def test_str_without_line(self) -> None:
        assert str(Diagnostic(message="bad")) == "bad"

    def test_frozen(self) -> None:
        diagnostic = Diagnostic(message="bad")
        with pytest.raises(ValidationError):
            diagnostic.message = "good"  # type: ignore[misc]


class TestValidationResult:
    def test_outcome_follows_diagnostics(self) -> None:
        assert ValidationResult.from_diagnostics([]).outcome is Outcome.VALID
        result = ValidationResult.from_diagnostics([Diagnostic(message="x")])
        assert result.outcome is Outcome.INVALID
        assert not result.valid

    def test_serialization(self) -> None:
        result = ValidationResult.from_diagnostics([Diagnostic(message="x", line=2, path="/a")])
        data = result.model_dump(mode="json")
        assert data["outcome"] == "invalid"
        assert data["diagnostics"][0] == {"message": "x", "line": 2, "column": None, "path": "/a"}


class TestCatalogNodes:
    def test_discriminated_union(self) -> None:
        adapter = TypeAdapter(list[CatalogNode])
        nodes = adapter.validate_python(
            [
                {
                    "kind": "directory",
                    "name": "orders",
                    "path": "orders",
                    "children": [{"kind": "file", "name": "o.xsd", "path": "orders/o.xsd"}],
                },
                {"kind": "file", "name": "c.xsd", "path": "c.xsd"},
            ]
        )
        assert isinstance(nodes[0], DirectoryNode)
        assert isinstance(nodes[0].children[0], FileNode)
        assert isinstance(nodes[1], FileNode)

    def test_directory_defaults_to_no_children(self) -> None:
        node = DirectoryNode(name="empty", path="empty")
        assert node.children == []
        assert node.model_dump()["kind"] == "directory"


class TestValidateRequest:
    def test_canonical_names(self) -> None:
        request = ValidateRequest.model_validate({"documentText": "<a/>", "schemaText": "<s/>"})
        assert (request.document_text, request.schema_text) == ("<a/>", "<s/>")

    def test_legacy_names(self) -> None:
        request = ValidateRequest.model_validate({"xmlContent": "<a/>", "xsdContent": "<s/>"})
        assert (request.document_text, request.schema_text) == ("<a/>", "<s/>")

    def test_missing_fields_default_to_empty(self) -> None:
        request = ValidateRequest.model_validate({})
        assert request.document_text == ""
        assert request.schema_text == ""


class TestValidateResponse:
    def test_from_result(self) -> None:
        result = ValidationResult.from_diagnostics(
            [Diagnostic(message="bad", line=3, path="/a/b"), Diagnostic(message="worse")]
        )
        response = ValidateResponse.from_result(result)
        assert response.outcome is Outcome.INVALID
        assert response.diagnostics == ["line 3: bad", "worse"]
        assert response.details[0].path == "/a/b"
