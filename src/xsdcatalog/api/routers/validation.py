"""Validation endpoint: POST /validate."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from xsdcatalog.api.deps import get_validation_service
from xsdcatalog.api.errors import http_error
from xsdcatalog.api.schemas import ErrorResponse, ValidateRequest, ValidateResponse
from xsdcatalog.exceptions import XsdCatalogError
from xsdcatalog.service.validation import ValidationService

router = APIRouter()


@router.post(
    "/validate",
    response_model=ValidateResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def validate(
    body: ValidateRequest,
    service: ValidationService = Depends(get_validation_service),  # noqa: B008
) -> ValidateResponse:
    """Validate an XML document against an XML Schema.

    A non-conforming document is a 200 response with ``outcome: invalid``;
    4xx/5xx mean the request itself could not be processed.
    """
    try:
        result = await service.validate_async(body.document_text, body.schema_text)
    except XsdCatalogError as exc:
        raise http_error(exc) from None
    return ValidateResponse.from_result(result)
