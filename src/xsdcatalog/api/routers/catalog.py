"""Catalog endpoints: GET /xsd-tree and GET /xsd-content/{path}."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from xsdcatalog.api.deps import get_validation_service
from xsdcatalog.api.errors import http_error
from xsdcatalog.api.schemas import ErrorResponse, SchemaContentResponse
from xsdcatalog.exceptions import XsdCatalogError
from xsdcatalog.models.catalog import CatalogNode
from xsdcatalog.service.validation import ValidationService

router = APIRouter()


@router.get("/xsd-tree", response_model=list[CatalogNode])
def xsd_tree(
    service: ValidationService = Depends(get_validation_service),  # noqa: B008
) -> list[CatalogNode]:
    """List the schema catalog as a tree; an unreadable catalog yields an empty list."""
    return service.list_catalog()


@router.get(
    "/xsd-content/{path:path}",
    response_model=SchemaContentResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def xsd_content(
    path: str,
    service: ValidationService = Depends(get_validation_service),  # noqa: B008
) -> SchemaContentResponse:
    """Return the text of one catalog schema, addressed relative to the catalog root."""
    try:
        return SchemaContentResponse(content=service.read_schema(path))
    except XsdCatalogError as exc:
        raise http_error(exc) from None
