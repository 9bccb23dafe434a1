"""Validation service: the catalog and the validation engine behind one facade.

Reusable by both the REST API and the MCP server.  Stateless apart from
configuration: every validation call gets its own deadline, cancel token
and compiled schema.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time

from xsdcatalog.compiler.pipeline import ValidationEngine
from xsdcatalog.exceptions import (
    InternalFailureError,
    ValidationCancelledError,
    ValidationTimeoutError,
    XsdCatalogError,
)
from xsdcatalog.models.catalog import CatalogNode
from xsdcatalog.models.errors import ValidationResult
from xsdcatalog.parser.loader import XmlLoader
from xsdcatalog.service.catalog import CatalogIndexer, ContentResolver
from xsdcatalog.settings import Settings

logger = logging.getLogger("xsdcatalog.service")

# Extra time the async wrapper waits beyond the cooperative deadline before
# abandoning the worker thread.
_ASYNC_GRACE_SECONDS = 1.0


class ValidationService:
    """Lists the catalog, serves schema text and validates documents."""

    def __init__(self, settings: Settings | None = None) -> None:
        if settings is None:
            settings = Settings()
        self._timeout = settings.validation_timeout_seconds
        self._indexer = CatalogIndexer(settings.catalog_root, settings.catalog_max_depth)
        self._resolver = ContentResolver(settings.catalog_root)
        self._engine = ValidationEngine(
            loader=XmlLoader(max_document_size=settings.max_document_size),
            max_element_depth=settings.max_element_depth,
        )

    # -- catalog -------------------------------------------------------------

    def list_catalog(self) -> list[CatalogNode]:
        return self._indexer.list_catalog()

    def read_schema(self, path: str) -> str:
        return self._resolver.read_schema(path)

    # -- validation ----------------------------------------------------------

    def validate(
        self,
        document_text: str,
        schema_text: str,
        cancel: threading.Event | None = None,
    ) -> ValidationResult:
        """Validate synchronously within the configured wall-clock budget.

        Raises the engine's input/parse errors unchanged.  Running out of
        time, being cancelled and any unexpected failure surface as
        ``InternalFailureError`` subclasses.
        """
        deadline = time.monotonic() + self._timeout

        def checkpoint() -> None:
            if cancel is not None and cancel.is_set():
                raise ValidationCancelledError("validation was cancelled")
            if time.monotonic() > deadline:
                raise ValidationTimeoutError(
                    f"validation exceeded its time budget of {self._timeout:g}s"
                )

        start = time.monotonic()
        try:
            result = self._engine.validate(document_text, schema_text, checkpoint)
        except (ValidationTimeoutError, ValidationCancelledError) as exc:
            logger.warning("Validation aborted: %s", exc.message)
            raise
        except XsdCatalogError:
            raise
        except Exception as exc:
            logger.exception("Unexpected failure during validation")
            raise InternalFailureError("internal error during validation") from exc

        logger.info(
            "Validation finished: outcome=%s diagnostics=%d (%.1f ms)",
            result.outcome,
            len(result.diagnostics),
            (time.monotonic() - start) * 1000,
        )
        return result

    async def validate_async(self, document_text: str, schema_text: str) -> ValidationResult:
        """Run ``validate`` in a worker thread.

        If the awaiting task is cancelled (e.g. the client went away) the
        cancel token is set so the worker stops at its next checkpoint.
        """
        cancel = threading.Event()
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.validate, document_text, schema_text, cancel),
                timeout=self._timeout + _ASYNC_GRACE_SECONDS,
            )
        except TimeoutError:
            logger.warning("Validation worker did not finish within %.1fs; abandoning it", self._timeout)
            raise ValidationTimeoutError(
                f"validation exceeded its time budget of {self._timeout:g}s"
            ) from None
        finally:
            cancel.set()
