"""Schema compilation and document validation for the XSD catalog."""

from xsdcatalog.compiler.pipeline import ValidationEngine
from xsdcatalog.compiler.validator import DocumentValidator

__all__ = [
    "DocumentValidator",
    "ValidationEngine",
]
