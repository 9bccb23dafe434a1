"""Pydantic domain models for the XSD catalog and validation results."""

from xsdcatalog.models.catalog import CatalogNode, DirectoryNode, FileNode
from xsdcatalog.models.errors import Diagnostic, Outcome, ValidationResult

__all__ = [
    "CatalogNode",
    "Diagnostic",
    "DirectoryNode",
    "FileNode",
    "Outcome",
    "ValidationResult",
]
