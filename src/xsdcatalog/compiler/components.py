"""Compiled schema components: types, declarations and content-model particles.

A ``CompiledSchema`` is built fresh for every validation call and is never
shared.  Components are mutable only while ``SchemaBuilder`` fills them in
(forward references are resolved by registering placeholders first).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

XSD_NS = "http://www.w3.org/2001/XMLSchema"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
XML_NS = "http://www.w3.org/XML/1998/namespace"

# (namespace URI, local name); "" stands for "no namespace".
Name = tuple[str, str]


def display_name(name: Name) -> str:
    """Render a Name for diagnostics: local name, with namespace when present."""
    ns, local = name
    return f"{{{ns}}}{local}" if ns else local


class Compositor(StrEnum):
    SEQUENCE = "sequence"
    CHOICE = "choice"
    ALL = "all"


class ContentKind(StrEnum):
    EMPTY = "empty"
    SIMPLE = "simple"
    ELEMENT_ONLY = "element-only"
    MIXED = "mixed"


class Variety(StrEnum):
    ATOMIC = "atomic"
    LIST = "list"
    UNION = "union"


class ProcessContents(StrEnum):
    STRICT = "strict"
    LAX = "lax"
    SKIP = "skip"


class WhiteSpace(StrEnum):
    PRESERVE = "preserve"
    REPLACE = "replace"
    COLLAPSE = "collapse"


# ---------------------------------------------------------------------------
# Simple types
# ---------------------------------------------------------------------------


@dataclass
class Pattern:
    """A pattern facet: the schema's source text and its compiled form."""

    source: str
    regex: re.Pattern[str]


@dataclass
class Facets:
    """Facets declared by one restriction step.

    Bounds and enumeration values are stored already parsed into the
    primitive's value space.  Patterns declared in the same step are
    alternatives; patterns of different steps must all hold.
    """

    patterns: list[Pattern] = field(default_factory=list)
    enumeration: list[tuple[str, Any]] | None = None
    length: int | None = None
    min_length: int | None = None
    max_length: int | None = None
    min_inclusive: tuple[str, Any] | None = None
    max_inclusive: tuple[str, Any] | None = None
    min_exclusive: tuple[str, Any] | None = None
    max_exclusive: tuple[str, Any] | None = None
    total_digits: int | None = None
    fraction_digits: int | None = None
    white_space: WhiteSpace | None = None


@dataclass(eq=False)
class SimpleType:
    """An atomic, list or union simple type.

    ``primitive`` names the built-in primitive that decides lexical parsing
    for atomic types.  Facets are checked along the whole ``base`` chain.
    """

    name: Name | None = None
    variety: Variety = Variety.ATOMIC
    primitive: str = "anySimpleType"
    base: SimpleType | None = None
    facets: Facets = field(default_factory=Facets)
    item_type: SimpleType | None = None
    member_types: list[SimpleType] = field(default_factory=list)
    builtin: bool = False

    @property
    def label(self) -> str:
        if self.name is None:
            return f"anonymous {self.primitive}"
        return self.name[1]

    def chain(self) -> list[SimpleType]:
        """Return this type and its bases, most basic first."""
        steps: list[SimpleType] = []
        current: SimpleType | None = self
        while current is not None:
            steps.append(current)
            current = current.base
        steps.reverse()
        return steps

    def effective_white_space(self) -> WhiteSpace:
        if self.variety is not Variety.ATOMIC:
            return WhiteSpace.COLLAPSE
        for step in reversed(self.chain()):
            if step.facets.white_space is not None:
                return step.facets.white_space
        return WhiteSpace.PRESERVE if self.primitive == "string" else WhiteSpace.COLLAPSE

    def derives_from(self, other: SimpleType) -> bool:
        return any(step is other for step in self.chain())


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class AttributeDecl:
    name: Name
    type: SimpleType | None = None
    default: str | None = None
    fixed: str | None = None


@dataclass(eq=False)
class AttributeUse:
    decl: AttributeDecl
    required: bool = False
    prohibited: bool = False
    default: str | None = None
    fixed: str | None = None

    @property
    def effective_fixed(self) -> str | None:
        return self.fixed if self.fixed is not None else self.decl.fixed


@dataclass
class Wildcard:
    """Namespace constraint of ``xs:any`` / ``xs:anyAttribute``.

    ``mode`` is ``any`` (every namespace), ``not`` (neither ``namespaces``
    nor no-namespace) or ``set`` (exactly ``namespaces``; "" means
    no namespace).
    """

    mode: str = "any"
    namespaces: frozenset[str] = frozenset()
    process_contents: ProcessContents = ProcessContents.STRICT

    def allows(self, namespace: str) -> bool:
        if self.mode == "any":
            return True
        if self.mode == "not":
            return namespace != "" and namespace not in self.namespaces
        return namespace in self.namespaces


@dataclass(eq=False)
class ElementDecl:
    name: Name
    type: SimpleType | ComplexType | None = None
    is_global: bool = False
    nillable: bool = False
    abstract: bool = False
    default: str | None = None
    fixed: str | None = None
    substitution_group: Name | None = None


# ---------------------------------------------------------------------------
# Particles
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class ElementParticle:
    decl: ElementDecl
    min_occurs: int = 1
    max_occurs: int | None = 1  # None means unbounded


@dataclass(eq=False)
class WildcardParticle:
    wildcard: Wildcard
    min_occurs: int = 1
    max_occurs: int | None = 1


@dataclass(eq=False)
class ModelGroup:
    compositor: Compositor
    particles: list[Particle] = field(default_factory=list)
    min_occurs: int = 1
    max_occurs: int | None = 1


Particle = ElementParticle | WildcardParticle | ModelGroup


# ---------------------------------------------------------------------------
# Complex types
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class ComplexType:
    name: Name | None = None
    content_kind: ContentKind = ContentKind.EMPTY
    particle: ModelGroup | None = None
    simple_type: SimpleType | None = None
    attributes: dict[Name, AttributeUse] = field(default_factory=dict)
    attribute_wildcard: Wildcard | None = None
    base: ComplexType | SimpleType | None = None
    abstract: bool = False

    @property
    def label(self) -> str:
        return "anonymous complex type" if self.name is None else self.name[1]

    def derives_from(self, other: ComplexType | SimpleType) -> bool:
        current: ComplexType | SimpleType | None = self
        while current is not None:
            if current is other:
                return True
            if isinstance(current, SimpleType):
                return current.derives_from(other) if isinstance(other, SimpleType) else False
            current = current.base
        return False


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


@dataclass
class CompiledSchema:
    """Everything the validator needs, keyed by expanded name."""

    target_namespace: str = ""
    elements: dict[Name, ElementDecl] = field(default_factory=dict)
    types: dict[Name, SimpleType | ComplexType] = field(default_factory=dict)
    attributes: dict[Name, AttributeDecl] = field(default_factory=dict)
    substitutions: dict[Name, list[ElementDecl]] = field(default_factory=dict)

    def substitutes_for(self, decl: ElementDecl) -> list[ElementDecl]:
        """Return ``decl`` followed by every member of its substitution group."""
        return [decl, *self.substitutions.get(decl.name, [])]
