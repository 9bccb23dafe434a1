"""Mapping of XsdCatalogError codes to HTTP responses."""

from __future__ import annotations

import logging

from fastapi import HTTPException

from xsdcatalog.api.schemas import ErrorResponse
from xsdcatalog.exceptions import InternalFailureError, XsdCatalogError

logger = logging.getLogger("xsdcatalog.api")

_STATUS_BY_CODE = {
    "INVALID_INPUT": 400,
    "MALFORMED_DOCUMENT": 400,
    "MALFORMED_SCHEMA": 400,
    "NOT_FOUND": 404,
    "PATH_TRAVERSAL": 403,
    "INTERNAL_FAILURE": 500,
}

GENERIC_INTERNAL_MESSAGE = "An internal error occurred while processing the request"


def http_error(exc: XsdCatalogError) -> HTTPException:
    """Build the HTTPException for a service error.

    Internal failures are logged in full here and answered with a generic
    message; every other error's message is safe to return.
    """
    status = _STATUS_BY_CODE.get(exc.code, 500)
    if isinstance(exc, InternalFailureError) or status == 500:
        logger.error("Internal failure (%s): %s", type(exc).__name__, exc.message)
        body = ErrorResponse(error="INTERNAL_FAILURE", message=GENERIC_INTERNAL_MESSAGE)
    else:
        body = ErrorResponse(
            error=exc.code,
            message=exc.message,
            line=getattr(exc, "line", None),
            column=getattr(exc, "column", None),
        )
    return HTTPException(status_code=status, detail=body.model_dump(exclude_none=True))
