"""Validation pipeline: input check → parse → compile → validate → result."""

from __future__ import annotations

import logging
from collections.abc import Callable

from lxml import etree

from xsdcatalog.compiler.validator import DocumentValidator
from xsdcatalog.exceptions import InvalidInputError, MalformedDocumentError, MalformedSchemaError
from xsdcatalog.models.errors import ValidationResult
from xsdcatalog.parser.loader import XmlLoader, XmlParseError, XmlSafetyError
from xsdcatalog.parser.schema_builder import SchemaBuilder

logger = logging.getLogger("xsdcatalog.compiler")

Checkpoint = Callable[[], None]


class ValidationEngine:
    """Validates a document against a pasted schema.

    Holds configuration only: every call parses and compiles afresh and
    keeps no state afterwards, so one engine may be shared across threads.
    """

    def __init__(
        self,
        loader: XmlLoader | None = None,
        builder: SchemaBuilder | None = None,
        max_element_depth: int = 256,
    ) -> None:
        self._loader = loader or XmlLoader()
        self._builder = builder or SchemaBuilder()
        self._max_element_depth = max_element_depth

    def validate(
        self,
        document_text: str,
        schema_text: str,
        checkpoint: Checkpoint | None = None,
    ) -> ValidationResult:
        """Run the full pipeline.

        Raises ``InvalidInputError``, ``MalformedDocumentError`` or
        ``MalformedSchemaError``; a non-conforming document is an
        ``invalid`` result, not an exception.
        """
        checkpoint = checkpoint or (lambda: None)

        # Stage 1: input validation
        if not document_text or not document_text.strip():
            raise InvalidInputError("documentText is required and must not be empty")
        if not schema_text or not schema_text.strip():
            raise InvalidInputError("schemaText is required and must not be empty")

        # Stage 2: parse
        document = self._parse_document(document_text)
        schema_root = self._parse_schema(schema_text)
        checkpoint()

        # Stage 3: compile
        schema = self._builder.build(schema_root)
        checkpoint()
        logger.debug(
            "Compiled schema: %d global elements, %d named types",
            len(schema.elements),
            len(schema.types),
        )

        # Stage 4 + 5: validate and collect
        validator = DocumentValidator(schema, self._max_element_depth, checkpoint)
        return ValidationResult.from_diagnostics(validator.validate(document))

    def _parse_document(self, text: str) -> etree._Element:
        try:
            return self._loader.load_string(text)
        except XmlParseError as exc:
            raise MalformedDocumentError(exc.message, exc.line, exc.column) from None
        except XmlSafetyError as exc:
            raise MalformedDocumentError(str(exc)) from None

    def _parse_schema(self, text: str) -> etree._Element:
        try:
            return self._loader.load_string(text)
        except XmlParseError as exc:
            raise MalformedSchemaError(exc.message, exc.line, exc.column) from None
        except XmlSafetyError as exc:
            raise MalformedSchemaError(str(exc)) from None
