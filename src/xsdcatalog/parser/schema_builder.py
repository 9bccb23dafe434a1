"""Schema building: interprets a parsed ``xs:schema`` tree as a CompiledSchema.

Building happens in three passes so declarations may appear in any order:

1. every global definition is registered (types and elements as empty
   placeholders) and its derivation / group dependencies are recorded;
2. circular definitions are rejected and global types, groups and
   attribute groups are built, dependencies first;
3. element declarations are filled in last, once every type they may
   refer to is complete.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from lxml import etree

from xsdcatalog.compiler.components import (
    XML_NS,
    XSD_NS,
    AttributeDecl,
    AttributeUse,
    CompiledSchema,
    ComplexType,
    Compositor,
    ContentKind,
    ElementDecl,
    ElementParticle,
    Facets,
    ModelGroup,
    Name,
    Particle,
    Pattern,
    ProcessContents,
    SimpleType,
    Variety,
    WhiteSpace,
    Wildcard,
    WildcardParticle,
)
from xsdcatalog.compiler.datatypes import (
    ORDERED_PRIMITIVES,
    builtin_type,
    normalize_whitespace,
    parse_value,
)
from xsdcatalog.compiler.facets import check_simple_value
from xsdcatalog.compiler.graph import DefinitionGraph, DefinitionKey
from xsdcatalog.compiler.patterns import PatternError, compile_pattern
from xsdcatalog.exceptions import MalformedSchemaError

logger = logging.getLogger("xsdcatalog.parser")

_IGNORED_DIRECTIVES = frozenset({"include", "import", "redefine", "override"})
_COMPOSITORS = {
    "sequence": Compositor.SEQUENCE,
    "choice": Compositor.CHOICE,
    "all": Compositor.ALL,
}
_PARTICLE_TAGS = frozenset({"element", "group", "sequence", "choice", "all", "any"})
_ATTRIBUTE_TAGS = frozenset({"attribute", "attributeGroup", "anyAttribute"})
_BOUND_FACETS = {
    "minInclusive": "min_inclusive",
    "maxInclusive": "max_inclusive",
    "minExclusive": "min_exclusive",
    "maxExclusive": "max_exclusive",
}
_COUNT_FACETS = {
    "length": "length",
    "minLength": "min_length",
    "maxLength": "max_length",
    "totalDigits": "total_digits",
    "fractionDigits": "fraction_digits",
}
_REFERENCE_ATTRIBUTES = {
    "restriction": ("base", "type"),
    "extension": ("base", "type"),
    "list": ("itemType", "type"),
    "union": ("memberTypes", "type"),
    "group": ("ref", "group"),
    "attributeGroup": ("ref", "attributeGroup"),
}


def _local(node: etree._Element) -> str | None:
    """Local name of an element in the XML Schema namespace, else None."""
    if not isinstance(node.tag, str):
        return None
    qname = etree.QName(node)
    return qname.localname if qname.namespace == XSD_NS else None


def _error(node: etree._Element, message: str) -> MalformedSchemaError:
    return MalformedSchemaError(message, line=node.sourceline)


def _children(node: etree._Element) -> list[etree._Element]:
    """Schema-namespace element children, without annotations."""
    result = []
    for child in node:
        if not isinstance(child.tag, str):
            continue
        local = _local(child)
        if local is None:
            raise _error(child, f"unexpected element '{child.tag}' inside xs:{_local(node)}")
        if local != "annotation":
            result.append(child)
    return result


def _bool(node: etree._Element, attribute: str) -> bool:
    value = node.get(attribute)
    if value is None:
        return False
    value = value.strip()
    if value in ("true", "1"):
        return True
    if value in ("false", "0"):
        return False
    raise _error(node, f"attribute '{attribute}' must be a boolean, got '{value}'")


def _make_any_type() -> ComplexType:
    lax = Wildcard(process_contents=ProcessContents.LAX)
    return ComplexType(
        name=(XSD_NS, "anyType"),
        content_kind=ContentKind.MIXED,
        particle=ModelGroup(
            Compositor.SEQUENCE,
            [WildcardParticle(lax, min_occurs=0, max_occurs=None)],
        ),
        attribute_wildcard=Wildcard(process_contents=ProcessContents.LAX),
    )


def _is_empty_group(particle: Particle) -> bool:
    return isinstance(particle, ModelGroup) and all(_is_empty_group(p) for p in particle.particles)


@dataclass
class _AttributeSet:
    uses: dict[Name, AttributeUse] = field(default_factory=dict)
    wildcard: Wildcard | None = None


class SchemaBuilder:
    """Builds a fully-resolved CompiledSchema from a parsed schema document.

    Stateless: every ``build`` call uses its own working state, so one
    builder may serve concurrent requests.
    """

    def build(self, root: etree._Element) -> CompiledSchema:
        """Build the schema.  Raises ``MalformedSchemaError``."""
        return _SchemaBuild(root).run()


class _SchemaBuild:
    """Working state of a single ``SchemaBuilder.build`` call."""

    def __init__(self, root: etree._Element) -> None:
        self._root = root
        self._tns = root.get("targetNamespace", "")
        self._element_qualified = root.get("elementFormDefault") == "qualified"
        self._attribute_qualified = root.get("attributeFormDefault") == "qualified"
        self._schema = CompiledSchema(target_namespace=self._tns)
        self._any_type = _make_any_type()
        self._any_simple = builtin_type("anySimpleType")

        self._graph = DefinitionGraph()
        self._raw: dict[DefinitionKey, etree._Element] = {}
        self._raw_elements: dict[Name, etree._Element] = {}
        self._raw_attributes: dict[Name, etree._Element] = {}
        self._groups: dict[Name, ModelGroup] = {}
        self._attribute_groups: dict[Name, _AttributeSet] = {}
        self._built: set[DefinitionKey] = set()
        self._building: set[DefinitionKey] = set()
        self._pending: deque[tuple[ElementDecl, etree._Element]] = deque()

    # -- driver ---------------------------------------------------------------

    def run(self) -> CompiledSchema:
        if _local(self._root) != "schema":
            raise _error(
                self._root,
                f"root element must be xs:schema in namespace '{XSD_NS}', got '{self._root.tag}'",
            )
        self._collect()

        cycle = self._graph.find_cycle()
        if cycle is not None:
            raise _error(
                self._raw.get(cycle[0], self._root),
                f"circular definition: {self._graph.describe_cycle(cycle)}",
            )
        for key in self._graph.build_order():
            self._ensure_built(key)

        for name in self._raw_attributes:
            self._global_attribute(name, self._root)
        for name, decl in self._schema.elements.items():
            self._pending.appendleft((decl, self._raw_elements[name]))
        while self._pending:
            decl, node = self._pending.popleft()
            self._fill_element(decl, node)
        self._link_substitution_groups()
        return self._schema

    # -- pass 1: registration -------------------------------------------------

    def _collect(self) -> None:
        for child in _children(self._root):
            local = _local(child)
            if local in _IGNORED_DIRECTIVES:
                logger.warning(
                    "Ignoring xs:%s (schemaLocation=%s): pasted schemas are self-contained",
                    local,
                    child.get("schemaLocation"),
                )
                continue
            if local == "notation":
                continue
            raw_name = child.get("name")
            if not raw_name:
                raise _error(child, f"top-level xs:{local} requires a 'name' attribute")
            name: Name = (self._tns, raw_name.strip())

            if local == "element":
                if name in self._schema.elements:
                    raise _error(child, f"duplicate global element '{raw_name}'")
                self._schema.elements[name] = ElementDecl(
                    name=name,
                    is_global=True,
                    nillable=_bool(child, "nillable"),
                    abstract=_bool(child, "abstract"),
                    default=child.get("default"),
                    fixed=child.get("fixed"),
                    substitution_group=(
                        self._qname(child, child.get("substitutionGroup", ""))
                        if child.get("substitutionGroup")
                        else None
                    ),
                )
                self._raw_elements[name] = child
            elif local == "attribute":
                if name in self._raw_attributes:
                    raise _error(child, f"duplicate global attribute '{raw_name}'")
                self._raw_attributes[name] = child
            elif local in ("complexType", "simpleType"):
                if name in self._schema.types:
                    raise _error(child, f"duplicate global type '{raw_name}'")
                if local == "complexType":
                    self._schema.types[name] = ComplexType(name=name, abstract=_bool(child, "abstract"))
                else:
                    self._schema.types[name] = SimpleType(name=name)
                self._register(("type", name), child)
            elif local in ("group", "attributeGroup"):
                key = (local, name)
                if key in self._raw:
                    raise _error(child, f"duplicate xs:{local} '{raw_name}'")
                self._register(key, child)
            else:
                raise _error(child, f"unexpected top-level element xs:{local}")

        for key, node in self._raw.items():
            for dependency in self._scan_dependencies(node):
                if dependency in self._raw:
                    self._graph.add_dependency(key, dependency)

    def _register(self, key: DefinitionKey, node: etree._Element) -> None:
        self._raw[key] = node
        self._graph.add_definition(key)

    def _scan_dependencies(self, node: etree._Element) -> list[DefinitionKey]:
        """References to other definitions that must be built before ``node``.

        Subtrees of element declarations are skipped: recursion through an
        element is how recursive content models are written.
        """
        found: list[DefinitionKey] = []
        stack = list(node)
        while stack:
            current = stack.pop()
            local = _local(current)
            if local is None or local == "element":
                continue
            spec = _REFERENCE_ATTRIBUTES.get(local)
            if spec is not None:
                attribute, kind = spec
                for token in (current.get(attribute) or "").split():
                    found.append((kind, self._qname(current, token)))
            stack.extend(current)
        return found

    # -- QName and type lookup -----------------------------------------------

    def _qname(self, node: etree._Element, value: str) -> Name:
        value = value.strip()
        prefix, sep, local = value.rpartition(":")
        if not local:
            raise _error(node, f"invalid QName '{value}'")
        if sep:
            if prefix == "xml":
                return XML_NS, local
            namespace = node.nsmap.get(prefix)
            if namespace is None:
                raise _error(node, f"undeclared namespace prefix '{prefix}' in '{value}'")
            return namespace, local
        return node.nsmap.get(None) or "", local

    def _type_ref(self, node: etree._Element, name: Name) -> SimpleType | ComplexType:
        if name[0] == XSD_NS:
            if name[1] == "anyType":
                return self._any_type
            builtin = builtin_type(name[1])
            if builtin is None:
                raise _error(node, f"unknown built-in type 'xs:{name[1]}'")
            return builtin
        found = self._schema.types.get(name)
        if found is None:
            raise _error(node, f"unknown type '{name[1]}'")
        self._ensure_built(("type", name))
        return found

    def _simple_type_ref(self, node: etree._Element, name: Name) -> SimpleType:
        found = self._type_ref(node, name)
        if not isinstance(found, SimpleType):
            raise _error(node, f"type '{name[1]}' is a complex type where a simple type is required")
        return found

    def _ensure_built(self, key: DefinitionKey) -> None:
        if key in self._built or key not in self._raw:
            return
        node = self._raw[key]
        if key in self._building:
            raise _error(node, f"circular definition of {key[0]} '{key[1][1]}'")
        self._building.add(key)
        kind, name = key
        if kind == "type":
            target = self._schema.types[name]
            if isinstance(target, ComplexType):
                self._build_complex(node, target)
            else:
                self._build_simple(node, target)
        elif kind == "group":
            self._groups[name] = self._build_group(node)
        else:
            self._attribute_groups[name] = self._build_attribute_group(node)
        self._building.discard(key)
        self._built.add(key)

    # -- simple types -----------------------------------------------------------

    def _anonymous_simple(self, node: etree._Element) -> SimpleType:
        simple = SimpleType()
        self._build_simple(node, simple)
        return simple

    def _build_simple(self, node: etree._Element, target: SimpleType) -> None:
        children = _children(node)
        if len(children) != 1 or _local(children[0]) not in ("restriction", "list", "union"):
            raise _error(node, "xs:simpleType must contain one of restriction, list or union")
        body = children[0]
        kind = _local(body)

        if kind == "restriction":
            parts = _children(body)
            if body.get("base"):
                base = self._simple_type_ref(body, self._qname(body, body.get("base", "")))
            elif parts and _local(parts[0]) == "simpleType":
                base = self._anonymous_simple(parts[0])
                parts = parts[1:]
            else:
                raise _error(body, "xs:restriction needs a 'base' attribute or an inline xs:simpleType")
            target.base = base
            target.variety = base.variety
            target.primitive = base.primitive
            target.facets = self._facets(parts, base)
        elif kind == "list":
            item = self._member_types(body, "itemType")
            if len(item) != 1:
                raise _error(body, "xs:list needs exactly one item type")
            if item[0].variety is Variety.LIST:
                raise _error(body, "the item type of a list cannot itself be a list")
            target.variety = Variety.LIST
            target.item_type = item[0]
        else:
            members = self._member_types(body, "memberTypes")
            if not members:
                raise _error(body, "xs:union needs at least one member type")
            target.variety = Variety.UNION
            target.member_types = members

    def _member_types(self, node: etree._Element, attribute: str) -> list[SimpleType]:
        members = [
            self._simple_type_ref(node, self._qname(node, token))
            for token in (node.get(attribute) or "").split()
        ]
        for child in _children(node):
            if _local(child) != "simpleType":
                raise _error(child, f"unexpected xs:{_local(child)} inside xs:{_local(node)}")
            members.append(self._anonymous_simple(child))
        return members

    def _facets(self, nodes: list[etree._Element], base: SimpleType) -> Facets:
        facets = Facets()
        seen: set[str] = set()
        enumeration: list[tuple[str, object]] = []
        for node in nodes:
            local = _local(node) or ""
            value = node.get("value")
            if value is None:
                raise _error(node, f"facet xs:{local} requires a 'value' attribute")
            if local not in ("pattern", "enumeration"):
                if local in seen:
                    raise _error(node, f"facet xs:{local} is declared more than once")
                seen.add(local)

            if local == "pattern":
                try:
                    facets.patterns.append(Pattern(value, compile_pattern(value)))
                except PatternError as exc:
                    raise _error(node, f"invalid pattern '{value}': {exc}") from None
            elif local == "enumeration":
                enumeration.append((value, self._facet_value(node, base, value)))
            elif local in _COUNT_FACETS:
                setattr(facets, _COUNT_FACETS[local], self._count(node, local, value, base))
            elif local in _BOUND_FACETS:
                if base.variety is not Variety.ATOMIC or base.primitive not in ORDERED_PRIMITIVES:
                    raise _error(node, f"facet xs:{local} does not apply to type '{base.label}'")
                setattr(facets, _BOUND_FACETS[local], (value, self._facet_value(node, base, value)))
            elif local == "whiteSpace":
                try:
                    facets.white_space = WhiteSpace(value.strip())
                except ValueError:
                    raise _error(node, f"invalid whiteSpace value '{value}'") from None
            else:
                raise _error(node, f"unsupported facet xs:{local}")
        if enumeration:
            facets.enumeration = enumeration
        return facets

    def _facet_value(self, node: etree._Element, base: SimpleType, value: str) -> object:
        if base.variety is not Variety.ATOMIC:
            return normalize_whitespace(value, WhiteSpace.COLLAPSE)
        lexical = normalize_whitespace(value, base.effective_white_space())
        try:
            return parse_value(base.primitive, lexical)
        except ValueError:
            raise _error(
                node, f"facet value '{value}' is not a valid {base.primitive}"
            ) from None

    def _count(self, node: etree._Element, local: str, value: str, base: SimpleType) -> int:
        if local in ("totalDigits", "fractionDigits") and (
            base.variety is not Variety.ATOMIC or base.primitive != "decimal"
        ):
            raise _error(node, f"facet xs:{local} only applies to decimal types")
        try:
            count = int(value.strip())
        except ValueError:
            raise _error(node, f"facet xs:{local} needs a non-negative integer, got '{value}'") from None
        if count < 0 or (local == "totalDigits" and count == 0):
            raise _error(node, f"facet xs:{local} value {count} is out of range")
        return count

    # -- complex types --------------------------------------------------------

    def _anonymous_complex(self, node: etree._Element) -> ComplexType:
        complex_type = ComplexType(abstract=_bool(node, "abstract"))
        self._build_complex(node, complex_type)
        return complex_type

    def _build_complex(self, node: etree._Element, target: ComplexType) -> None:
        mixed = _bool(node, "mixed")
        children = _children(node)
        first = _local(children[0]) if children else None
        if first == "simpleContent":
            self._simple_content(children[0], target)
        elif first == "complexContent":
            self._complex_content(children[0], target, mixed)
        else:
            target.base = self._any_type
            particle, rest = self._content_particle(children)
            self._set_content(target, particle, mixed)
            self._attributes_into(target, rest, node)

    def _content_particle(
        self, children: list[etree._Element]
    ) -> tuple[ModelGroup | None, list[etree._Element]]:
        if children and _local(children[0]) in ("sequence", "choice", "all", "group"):
            particle = self._particle(children[0])
            assert particle is None or isinstance(particle, ModelGroup)
            return particle, children[1:]
        return None, children

    def _set_content(self, target: ComplexType, particle: ModelGroup | None, mixed: bool) -> None:
        if particle is not None and not _is_empty_group(particle):
            target.particle = particle
            target.content_kind = ContentKind.MIXED if mixed else ContentKind.ELEMENT_ONLY
        elif mixed:
            target.particle = ModelGroup(Compositor.SEQUENCE)
            target.content_kind = ContentKind.MIXED
        else:
            target.particle = None
            target.content_kind = ContentKind.EMPTY

    def _derivation(self, node: etree._Element) -> tuple[etree._Element, str, SimpleType | ComplexType]:
        children = _children(node)
        if len(children) != 1 or _local(children[0]) not in ("extension", "restriction"):
            raise _error(node, f"xs:{_local(node)} must contain one extension or restriction")
        body = children[0]
        if not body.get("base"):
            raise _error(body, f"xs:{_local(body)} requires a 'base' attribute")
        base = self._type_ref(body, self._qname(body, body.get("base", "")))
        return body, _local(body) or "", base

    def _simple_content(self, node: etree._Element, target: ComplexType) -> None:
        body, method, base = self._derivation(node)
        target.base = base
        target.content_kind = ContentKind.SIMPLE
        parts = _children(body)

        if method == "extension":
            if isinstance(base, SimpleType):
                target.simple_type = base
            elif base.content_kind is ContentKind.SIMPLE and base.simple_type is not None:
                target.simple_type = base.simple_type
                target.attributes = dict(base.attributes)
                target.attribute_wildcard = base.attribute_wildcard
            else:
                raise _error(body, f"simpleContent extension base '{base.label}' has no simple content")
            self._attributes_into(target, parts, body)
            return

        if not isinstance(base, ComplexType) or base.simple_type is None:
            raise _error(body, "simpleContent restriction base must be a complex type with simple content")
        value_base = base.simple_type
        if parts and _local(parts[0]) == "simpleType":
            value_base = self._anonymous_simple(parts[0])
            parts = parts[1:]
        facet_nodes = [p for p in parts if _local(p) not in _ATTRIBUTE_TAGS]
        attribute_nodes = [p for p in parts if _local(p) in _ATTRIBUTE_TAGS]
        target.simple_type = SimpleType(
            base=value_base,
            variety=value_base.variety,
            primitive=value_base.primitive,
            facets=self._facets(facet_nodes, value_base),
        )
        target.attributes = dict(base.attributes)
        self._attributes_into(target, attribute_nodes, body)

    def _complex_content(self, node: etree._Element, target: ComplexType, mixed: bool) -> None:
        body, method, base = self._derivation(node)
        if not isinstance(base, ComplexType):
            raise _error(body, f"complexContent base '{base.label}' must be a complex type")
        target.base = base
        if node.get("mixed") is not None:
            mixed = _bool(node, "mixed")
        particle, rest = self._content_particle(_children(body))

        if method == "extension":
            base_particle = base.particle if base.content_kind in (
                ContentKind.ELEMENT_ONLY, ContentKind.MIXED
            ) else None
            if base_particle is not None and not _is_empty_group(base_particle):
                if particle is not None:
                    particle = ModelGroup(Compositor.SEQUENCE, [base_particle, particle])
                else:
                    particle = base_particle
            mixed = mixed or base.content_kind is ContentKind.MIXED
            target.attributes = dict(base.attributes)
            target.attribute_wildcard = base.attribute_wildcard
        else:
            target.attributes = dict(base.attributes)
        self._set_content(target, particle, mixed)
        self._attributes_into(target, rest, body)

    # -- attributes -------------------------------------------------------------

    def _attributes_into(
        self, target: ComplexType, nodes: list[etree._Element], owner: etree._Element
    ) -> None:
        attribute_set = self._attribute_set(nodes, owner)
        target.attributes.update(attribute_set.uses)
        if attribute_set.wildcard is not None:
            target.attribute_wildcard = attribute_set.wildcard

    def _attribute_set(self, nodes: list[etree._Element], owner: etree._Element) -> _AttributeSet:
        result = _AttributeSet()
        own: set[Name] = set()
        for node in nodes:
            local = _local(node)
            if result.wildcard is not None and local != "anyAttribute":
                raise _error(node, "xs:anyAttribute must come after all attribute declarations")
            if local == "attribute":
                use = self._attribute_use(node)
                if use.decl.name in own:
                    raise _error(node, f"duplicate attribute '{use.decl.name[1]}'")
                own.add(use.decl.name)
                result.uses[use.decl.name] = use
            elif local == "attributeGroup":
                if not node.get("ref"):
                    raise _error(node, "nested xs:attributeGroup requires a 'ref' attribute")
                name = self._qname(node, node.get("ref", ""))
                key = ("attributeGroup", name)
                if key not in self._raw:
                    raise _error(node, f"unknown attribute group '{name[1]}'")
                self._ensure_built(key)
                group = self._attribute_groups[name]
                result.uses.update(group.uses)
                if group.wildcard is not None and result.wildcard is None:
                    result.wildcard = group.wildcard
            elif local == "anyAttribute":
                result.wildcard = self._wildcard(node)
            else:
                raise _error(node, f"unexpected xs:{local} inside xs:{_local(owner)}")
        return result

    def _build_attribute_group(self, node: etree._Element) -> _AttributeSet:
        return self._attribute_set(_children(node), node)

    def _attribute_use(self, node: etree._Element) -> AttributeUse:
        use = (node.get("use") or "optional").strip()
        if use not in ("optional", "required", "prohibited"):
            raise _error(node, f"invalid attribute use '{use}'")
        default, fixed = node.get("default"), node.get("fixed")
        if default is not None and fixed is not None:
            raise _error(node, "an attribute cannot have both 'default' and 'fixed'")
        if default is not None and use != "optional":
            raise _error(node, "an attribute with a default value must be optional")

        if node.get("ref"):
            decl = self._global_attribute(self._qname(node, node.get("ref", "")), node)
            return AttributeUse(
                decl,
                required=use == "required",
                prohibited=use == "prohibited",
                default=default,
                fixed=fixed,
            )

        raw_name = node.get("name")
        if not raw_name:
            raise _error(node, "xs:attribute requires a 'name' or 'ref' attribute")
        form = node.get("form")
        qualified = form == "qualified" if form else self._attribute_qualified
        decl = AttributeDecl(
            name=(self._tns if qualified else "", raw_name.strip()),
            type=self._attribute_type(node),
            default=default,
            fixed=fixed,
        )
        self._check_value_constraint(node, decl.type, default, fixed)
        return AttributeUse(decl, required=use == "required", prohibited=use == "prohibited")

    def _global_attribute(self, name: Name, referrer: etree._Element) -> AttributeDecl:
        found = self._schema.attributes.get(name)
        if found is not None:
            return found
        if name[0] == XML_NS:
            # xml:lang, xml:space, xml:base and xml:id need no declaration
            decl = AttributeDecl(name=name, type=self._any_simple)
            self._schema.attributes[name] = decl
            return decl
        node = self._raw_attributes.get(name)
        if node is None:
            raise _error(referrer, f"unknown attribute '{name[1]}'")
        decl = AttributeDecl(
            name=name,
            type=self._attribute_type(node),
            default=node.get("default"),
            fixed=node.get("fixed"),
        )
        self._check_value_constraint(node, decl.type, decl.default, decl.fixed)
        self._schema.attributes[name] = decl
        return decl

    def _attribute_type(self, node: etree._Element) -> SimpleType | None:
        inline = [c for c in _children(node) if _local(c) == "simpleType"]
        if node.get("type") and inline:
            raise _error(node, "an attribute cannot have both a 'type' and an inline type")
        if node.get("type"):
            return self._simple_type_ref(node, self._qname(node, node.get("type", "")))
        if inline:
            return self._anonymous_simple(inline[0])
        return self._any_simple

    def _wildcard(self, node: etree._Element) -> Wildcard:
        process = (node.get("processContents") or "strict").strip()
        try:
            process_contents = ProcessContents(process)
        except ValueError:
            raise _error(node, f"invalid processContents '{process}'") from None
        tokens = (node.get("namespace") or "##any").split()
        if tokens == ["##any"]:
            return Wildcard("any", frozenset(), process_contents)
        if tokens == ["##other"]:
            return Wildcard("not", frozenset({self._tns}), process_contents)
        namespaces = set()
        for token in tokens:
            if token == "##targetNamespace":
                namespaces.add(self._tns)
            elif token == "##local":
                namespaces.add("")
            elif token.startswith("##"):
                raise _error(node, f"invalid namespace constraint '{token}'")
            else:
                namespaces.add(token)
        return Wildcard("set", frozenset(namespaces), process_contents)

    # -- particles --------------------------------------------------------------

    def _occurs(self, node: etree._Element) -> tuple[int, int | None]:
        raw_min = (node.get("minOccurs") or "1").strip()
        raw_max = (node.get("maxOccurs") or "1").strip()
        try:
            min_occurs = int(raw_min)
            max_occurs = None if raw_max == "unbounded" else int(raw_max)
        except ValueError:
            raise _error(node, f"invalid occurrence bounds minOccurs='{raw_min}' maxOccurs='{raw_max}'") from None
        if min_occurs < 0 or (max_occurs is not None and max_occurs < min_occurs):
            raise _error(node, f"invalid occurrence bounds minOccurs='{raw_min}' maxOccurs='{raw_max}'")
        return min_occurs, max_occurs

    def _particle(self, node: etree._Element) -> Particle | None:
        local = _local(node)
        if local not in _PARTICLE_TAGS:
            raise _error(node, f"unexpected xs:{local} in a content model")
        min_occurs, max_occurs = self._occurs(node)
        if max_occurs == 0:
            return None

        if local == "element":
            if node.get("ref"):
                name = self._qname(node, node.get("ref", ""))
                decl = self._schema.elements.get(name)
                if decl is None:
                    raise _error(node, f"unknown element '{name[1]}'")
            else:
                decl = self._local_element(node)
            return ElementParticle(decl, min_occurs, max_occurs)

        if local == "any":
            return WildcardParticle(self._wildcard(node), min_occurs, max_occurs)

        if local == "group":
            if not node.get("ref"):
                raise _error(node, "nested xs:group requires a 'ref' attribute")
            name = self._qname(node, node.get("ref", ""))
            if ("group", name) not in self._raw:
                raise _error(node, f"unknown model group '{name[1]}'")
            self._ensure_built(("group", name))
            group = self._groups[name]
            return ModelGroup(group.compositor, group.particles, min_occurs, max_occurs)

        compositor = _COMPOSITORS[local]
        group = ModelGroup(compositor, [], min_occurs, max_occurs)
        for child in _children(node):
            if compositor is Compositor.ALL and _local(child) != "element":
                raise _error(child, "xs:all may only contain element declarations")
            particle = self._particle(child)
            if particle is None:
                continue
            if compositor is Compositor.ALL and (particle.max_occurs or 2) > 1:
                raise _error(child, "elements inside xs:all may occur at most once")
            group.particles.append(particle)
        if compositor is Compositor.ALL and (max_occurs != 1 or min_occurs > 1):
            raise _error(node, "xs:all must have maxOccurs='1' and minOccurs of 0 or 1")
        return group

    def _build_group(self, node: etree._Element) -> ModelGroup:
        children = _children(node)
        if len(children) != 1 or _local(children[0]) not in _COMPOSITORS:
            raise _error(node, "xs:group must contain exactly one of sequence, choice or all")
        body = children[0]
        if body.get("minOccurs") is not None or body.get("maxOccurs") is not None:
            raise _error(body, "the compositor of a named group cannot carry occurrence bounds")
        particle = self._particle(body)
        assert isinstance(particle, ModelGroup)
        return particle

    # -- element declarations --------------------------------------------------

    def _local_element(self, node: etree._Element) -> ElementDecl:
        raw_name = node.get("name")
        if not raw_name:
            raise _error(node, "xs:element requires a 'name' or 'ref' attribute")
        form = node.get("form")
        qualified = form == "qualified" if form else self._element_qualified
        decl = ElementDecl(
            name=(self._tns if qualified else "", raw_name.strip()),
            nillable=_bool(node, "nillable"),
            default=node.get("default"),
            fixed=node.get("fixed"),
        )
        self._pending.append((decl, node))
        return decl

    def _fill_element(self, decl: ElementDecl, node: etree._Element) -> None:
        inline = [c for c in _children(node) if _local(c) in ("complexType", "simpleType")]
        if node.get("type") and inline:
            raise _error(node, f"element '{decl.name[1]}' has both a 'type' and an inline type")
        if decl.default is not None and decl.fixed is not None:
            raise _error(node, f"element '{decl.name[1]}' cannot have both 'default' and 'fixed'")

        if node.get("type"):
            decl.type = self._type_ref(node, self._qname(node, node.get("type", "")))
        elif inline and _local(inline[0]) == "complexType":
            decl.type = self._anonymous_complex(inline[0])
        elif inline:
            decl.type = self._anonymous_simple(inline[0])
        elif decl.substitution_group is None:
            decl.type = self._any_type
        # else: inherited from the substitution group head once heads are linked

        if decl.type is not None:
            value_type = decl.type
            if isinstance(value_type, ComplexType):
                value_type = value_type.simple_type  # type: ignore[assignment]
            if isinstance(value_type, SimpleType):
                self._check_value_constraint(node, value_type, decl.default, decl.fixed)

    def _check_value_constraint(
        self,
        node: etree._Element,
        simple_type: SimpleType | None,
        default: str | None,
        fixed: str | None,
    ) -> None:
        if simple_type is None:
            return
        for label, value in (("default", default), ("fixed", fixed)):
            if value is None:
                continue
            problems = check_simple_value(simple_type, value)
            if problems:
                raise _error(node, f"{label} value is invalid: {problems[0]}")

    def _link_substitution_groups(self) -> None:
        elements = self._schema.elements
        for decl in elements.values():
            if decl.substitution_group is not None and decl.substitution_group not in elements:
                raise _error(
                    self._raw_elements[decl.name],
                    f"unknown substitution group head '{decl.substitution_group[1]}'",
                )

        for decl in elements.values():
            seen: set[Name] = {decl.name}
            head_name = decl.substitution_group
            while head_name is not None:
                if head_name in seen:
                    raise _error(
                        self._raw_elements[decl.name],
                        f"circular substitution group involving '{decl.name[1]}'",
                    )
                seen.add(head_name)
                head = elements[head_name]
                self._schema.substitutions.setdefault(head_name, []).append(decl)
                if decl.type is None and head.type is not None:
                    decl.type = head.type
                head_name = head.substitution_group

        # members whose head also inherits its type
        for decl in elements.values():
            head_name = decl.substitution_group
            while decl.type is None and head_name is not None:
                head = elements[head_name]
                decl.type = head.type
                head_name = head.substitution_group
            if decl.type is None:
                decl.type = self._any_type
