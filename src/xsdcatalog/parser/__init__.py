"""XML parsing and schema interpretation for the XSD catalog."""

from xsdcatalog.parser.loader import XmlLoader, XmlParseError, XmlSafetyError
from xsdcatalog.parser.schema_builder import SchemaBuilder

__all__ = [
    "SchemaBuilder",
    "XmlLoader",
    "XmlParseError",
    "XmlSafetyError",
]
