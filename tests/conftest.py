"""Shared test fixtures for the XSD Catalog."""

from __future__ import annotations

from pathlib import Path

import pytest

from xsdcatalog.compiler.pipeline import ValidationEngine
from xsdcatalog.parser.loader import XmlLoader
from xsdcatalog.parser.schema_builder import SchemaBuilder
from xsdcatalog.service.validation import ValidationService
from xsdcatalog.settings import Settings


@pytest.fixture
def loader() -> XmlLoader:
    return XmlLoader()


@pytest.fixture
def builder() -> SchemaBuilder:
    return SchemaBuilder()


@pytest.fixture
def engine() -> ValidationEngine:
    return ValidationEngine()


@pytest.fixture
def catalog_root(tmp_path: Path) -> Path:
    """A small catalog: nested directories, schemas and files that must be hidden."""
    root = tmp_path / "xsd"
    (root / "orders" / "v2").mkdir(parents=True)
    (root / "empty").mkdir()
    (root / "orders" / "order.xsd").write_text(ORDER_SCHEMA, encoding="utf-8")
    (root / "orders" / "v2" / "order.xsd").write_text(ORDER_SCHEMA, encoding="utf-8")
    (root / "orders" / "README.md").write_text("not a schema", encoding="utf-8")
    (root / "common.xsd").write_text(MINIMAL_SCHEMA, encoding="utf-8")
    (root / "legacy.XSD").write_text(MINIMAL_SCHEMA, encoding="utf-8")
    (root / "notes.txt").write_text("ignore me", encoding="utf-8")
    return root


@pytest.fixture
def settings(catalog_root: Path) -> Settings:
    return Settings(catalog_root=catalog_root, validation_timeout_seconds=5.0)


@pytest.fixture
def service(settings: Settings) -> ValidationService:
    return ValidationService(settings)


MINIMAL_SCHEMA = """\
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">
  <xs:element name="a">
    <xs:complexType/>
  </xs:element>
</xs:schema>
"""

ORDER_SCHEMA = """\
<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">
  <xs:element name="order" type="OrderType"/>

  <xs:complexType name="OrderType">
    <xs:sequence>
      <xs:element name="customer" type="CustomerType"/>
      <xs:element name="item" type="ItemType" maxOccurs="unbounded"/>
      <xs:element name="note" type="xs:string" minOccurs="0"/>
    </xs:sequence>
    <xs:attribute name="id" type="OrderId" use="required"/>
    <xs:attribute name="status" type="Status" default="open"/>
  </xs:complexType>

  <xs:complexType name="CustomerType">
    <xs:choice>
      <xs:element name="email" type="xs:string"/>
      <xs:element name="phone" type="xs:string"/>
    </xs:choice>
    <xs:attribute name="name" type="xs:string" use="required"/>
  </xs:complexType>

  <xs:complexType name="ItemType">
    <xs:simpleContent>
      <xs:extension base="Quantity">
        <xs:attribute name="sku" type="Sku" use="required"/>
        <xs:attribute name="price" type="Price"/>
      </xs:extension>
    </xs:simpleContent>
  </xs:complexType>

  <xs:simpleType name="OrderId">
    <xs:restriction base="xs:string">
      <xs:pattern value="[0-9]+"/>
    </xs:restriction>
  </xs:simpleType>

  <xs:simpleType name="Status">
    <xs:restriction base="xs:token">
      <xs:enumeration value="open"/>
      <xs:enumeration value="shipped"/>
      <xs:enumeration value="closed"/>
    </xs:restriction>
  </xs:simpleType>

  <xs:simpleType name="Sku">
    <xs:restriction base="xs:string">
      <xs:pattern value="[A-Z]{3}-\\d{4}"/>
    </xs:restriction>
  </xs:simpleType>

  <xs:simpleType name="Quantity">
    <xs:restriction base="xs:positiveInteger">
      <xs:maxInclusive value="100"/>
    </xs:restriction>
  </xs:simpleType>

  <xs:simpleType name="Price">
    <xs:restriction base="xs:decimal">
      <xs:minInclusive value="0"/>
      <xs:totalDigits value="8"/>
      <xs:fractionDigits value="2"/>
    </xs:restriction>
  </xs:simpleType>
</xs:schema>
"""

VALID_ORDER = """\
<?xml version="1.0" encoding="UTF-8"?>
<order id="1042" status="shipped">
  <customer name="Ada Lovelace">
    <email>ada@example.org</email>
  </customer>
  <item sku="ABC-1234" price="19.99">2</item>
  <item sku="XYZ-0001">1</item>
  <note>Leave at the door</note>
</order>
"""

INVALID_ORDER = """\
<order id="A1" status="pending">
  <customer name="Bob">
    <email>bob@example.org</email>
    <phone>555-0100</phone>
  </customer>
  <item sku="abc">2</item>
  <bogus/>
</order>
"""

NAMESPACED_SCHEMA = """\
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema"
           xmlns:inv="urn:example:invoice"
           targetNamespace="urn:example:invoice"
           elementFormDefault="qualified">
  <xs:element name="invoice">
    <xs:complexType>
      <xs:sequence>
        <xs:element name="total" type="inv:Amount"/>
        <xs:any namespace="##other" processContents="lax" minOccurs="0" maxOccurs="unbounded"/>
      </xs:sequence>
      <xs:attribute name="currency" type="xs:string" fixed="EUR"/>
    </xs:complexType>
  </xs:element>
  <xs:simpleType name="Amount">
    <xs:restriction base="xs:decimal">
      <xs:fractionDigits value="2"/>
    </xs:restriction>
  </xs:simpleType>
</xs:schema>
"""
