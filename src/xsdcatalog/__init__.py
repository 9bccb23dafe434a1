"""XSD Catalog: browse a directory of XML schemas and validate documents against them."""

__version__ = "0.3.0"
