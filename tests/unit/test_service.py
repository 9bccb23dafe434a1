"""Tests for ValidationService: catalog facade, deadlines, cancellation and failure wrapping."""

from __future__ import annotations

import itertools
import threading
import time
from pathlib import Path
from types import SimpleNamespace

import pytest

import xsdcatalog.service.validation as validation_module
from xsdcatalog.exceptions import (
    InternalFailureError,
    MalformedDocumentError,
    PathTraversalError,
    ValidationCancelledError,
    ValidationTimeoutError,
)
from xsdcatalog.models.errors import Outcome
from xsdcatalog.service.validation import ValidationService
from xsdcatalog.settings import Settings
from tests.conftest import INVALID_ORDER, MINIMAL_SCHEMA, ORDER_SCHEMA, VALID_ORDER

REPEATED_GROUP_SCHEMA = """\
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">
  <xs:element name="a">
    <xs:complexType>
      <xs:sequence minOccurs="3000000" maxOccurs="unbounded">
        <xs:element name="x" minOccurs="0"/>
      </xs:sequence>
    </xs:complexType>
  </xs:element>
</xs:schema>
"""


class TestCatalogFacade:
    def test_list_catalog(self, service: ValidationService) -> None:
        assert [n.name for n in service.list_catalog()] == ["empty", "orders", "common.xsd"]

    def test_read_schema(self, service: ValidationService) -> None:
        assert service.read_schema("common.xsd") == MINIMAL_SCHEMA

    def test_read_schema_traversal(self, service: ValidationService) -> None:
        with pytest.raises(PathTraversalError):
            service.read_schema("../../secrets.xsd")


class TestValidate:
    def test_valid(self, service: ValidationService) -> None:
        assert service.validate(VALID_ORDER, ORDER_SCHEMA).outcome is Outcome.VALID

    def test_invalid(self, service: ValidationService) -> None:
        result = service.validate(INVALID_ORDER, ORDER_SCHEMA)
        assert result.outcome is Outcome.INVALID
        assert result.diagnostics

    def test_engine_errors_pass_through(self, service: ValidationService) -> None:
        with pytest.raises(MalformedDocumentError):
            service.validate("<a", MINIMAL_SCHEMA)

    def test_document_size_limit(self, catalog_root: Path) -> None:
        service = ValidationService(Settings(catalog_root=catalog_root, max_document_size=100))
        with pytest.raises(MalformedDocumentError, match="maximum size"):
            service.validate("<a>" + "x" * 200 + "</a>", MINIMAL_SCHEMA)

    def test_cancelled_before_start(self, service: ValidationService) -> None:
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(ValidationCancelledError):
            service.validate(VALID_ORDER, ORDER_SCHEMA, cancel)

    def test_deadline_exceeded(
        self, service: ValidationService, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # every clock reading is 50 s after the previous one
        clock = itertools.count(0, 50)
        monkeypatch.setattr(validation_module, "time", SimpleNamespace(monotonic=lambda: next(clock)))
        with pytest.raises(ValidationTimeoutError, match="time budget of 5s"):
            service.validate(VALID_ORDER, ORDER_SCHEMA)

    def test_deadline_exceeded_during_content_matching(
        self, service: ValidationService, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # the clock jumps once the root element is being validated:
        # deadline, start, after parse, after compile, root element
        clock = itertools.chain([0] * 5, itertools.repeat(100))
        monkeypatch.setattr(validation_module, "time", SimpleNamespace(monotonic=lambda: next(clock)))
        with pytest.raises(ValidationTimeoutError):
            service.validate("<a/>", REPEATED_GROUP_SCHEMA)

    def test_huge_occurrence_minimum_stays_within_budget(self, catalog_root: Path) -> None:
        service = ValidationService(
            Settings(catalog_root=catalog_root, validation_timeout_seconds=0.2)
        )
        started = time.monotonic()
        try:
            result = service.validate("<a/>", REPEATED_GROUP_SCHEMA)
        except ValidationTimeoutError:
            result = None
        assert time.monotonic() - started < 2.0
        assert result is None or result.valid

    def test_timeout_is_an_internal_failure(self) -> None:
        assert issubclass(ValidationTimeoutError, InternalFailureError)
        assert ValidationTimeoutError.code == "INTERNAL_FAILURE"

    def test_unexpected_error_is_wrapped(
        self, service: ValidationService, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def boom(*args: object, **kwargs: object) -> None:
            raise RuntimeError("engine exploded")

        monkeypatch.setattr(service._engine, "validate", boom)  # noqa: SLF001
        with pytest.raises(InternalFailureError) as exc_info:
            service.validate(VALID_ORDER, ORDER_SCHEMA)
        assert "exploded" not in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_concurrent_calls_are_independent(self, service: ValidationService) -> None:
        results: dict[str, Outcome] = {}

        def run(key: str, document: str) -> None:
            results[key] = service.validate(document, ORDER_SCHEMA).outcome

        threads = [
            threading.Thread(target=run, args=(f"{kind}{i}", doc))
            for i in range(4)
            for kind, doc in (("valid", VALID_ORDER), ("invalid", INVALID_ORDER))
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert {k: v for k, v in results.items() if k.startswith("valid")} == {
            f"valid{i}": Outcome.VALID for i in range(4)
        }
        assert all(v is Outcome.INVALID for k, v in results.items() if k.startswith("invalid"))


class TestValidateAsync:
    async def test_valid(self, service: ValidationService) -> None:
        result = await service.validate_async(VALID_ORDER, ORDER_SCHEMA)
        assert result.valid

    async def test_errors_propagate(self, service: ValidationService) -> None:
        with pytest.raises(MalformedDocumentError):
            await service.validate_async("<a", MINIMAL_SCHEMA)

    async def test_stuck_worker_is_abandoned(
        self, catalog_root: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        service = ValidationService(
            Settings(catalog_root=catalog_root, validation_timeout_seconds=0.05)
        )
        seen: list[threading.Event] = []

        def stuck(document_text: str, schema_text: str, cancel: threading.Event) -> None:
            seen.append(cancel)
            cancel.wait(10)
            raise ValidationCancelledError("validation was cancelled")

        monkeypatch.setattr(service, "validate", stuck)
        with pytest.raises(ValidationTimeoutError):
            await service.validate_async(VALID_ORDER, ORDER_SCHEMA)
        assert seen and seen[0].is_set()
