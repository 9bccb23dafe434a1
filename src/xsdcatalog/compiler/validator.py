"""Instance validation: walks a parsed document against a CompiledSchema.

Every violation becomes a Diagnostic and the walk carries on; nothing here
raises for a non-conforming document.  The optional ``checkpoint`` callable
is invoked between element-validation steps so the caller can enforce a
deadline or cancellation by raising from it.
"""

from __future__ import annotations

from collections import Counter, deque
from collections.abc import Callable

from lxml import etree

from xsdcatalog.compiler.components import (
    XML_NS,
    XSD_NS,
    XSI_NS,
    CompiledSchema,
    ComplexType,
    ContentKind,
    ElementDecl,
    ElementParticle,
    ModelGroup,
    Name,
    Particle,
    ProcessContents,
    SimpleType,
    Wildcard,
    WildcardParticle,
)
from xsdcatalog.compiler.content import ContentMatcher
from xsdcatalog.compiler.datatypes import builtin_type
from xsdcatalog.compiler.facets import check_simple_value, values_equal
from xsdcatalog.models.errors import Diagnostic

Checkpoint = Callable[[], None]

_XSI_TYPE = f"{{{XSI_NS}}}type"
_XSI_NIL = f"{{{XSI_NS}}}nil"
_DEFAULT_MAX_DEPTH = 256


def _expanded(node: etree._Element) -> Name:
    qname = etree.QName(node)
    return qname.namespace or "", qname.localname


def _element_children(node: etree._Element) -> list[etree._Element]:
    return [child for child in node if isinstance(child.tag, str)]


def _own_text(node: etree._Element) -> str:
    """Character content directly inside ``node`` (not inside its children)."""
    return (node.text or "") + "".join(child.tail or "" for child in node)


def _child_paths(path: str, names: list[Name]) -> list[str]:
    """XPath-like location of each child; repeated names get a 1-based ordinal."""
    totals = Counter(names)
    seen: Counter[Name] = Counter()
    paths = []
    for name in names:
        seen[name] += 1
        suffix = f"[{seen[name]}]" if totals[name] > 1 else ""
        paths.append(f"{path}/{name[1]}{suffix}")
    return paths


class _DeclarationIndex:
    """Name lookup over every element particle reachable in a model group."""

    def __init__(self, schema: CompiledSchema, group: ModelGroup | None) -> None:
        self.elements: dict[Name, ElementDecl] = {}
        self.wildcards: list[Wildcard] = []
        queue: deque[Particle] = deque(
            [group] if group is not None else []
        )
        while queue:
            particle = queue.popleft()
            if isinstance(particle, ElementParticle):
                for decl in schema.substitutes_for(particle.decl):
                    self.elements.setdefault(decl.name, decl)
            elif isinstance(particle, WildcardParticle):
                self.wildcards.append(particle.wildcard)
            else:
                queue.extend(particle.particles)

    def wildcard_for(self, name: Name) -> Wildcard | None:
        return next((w for w in self.wildcards if w.allows(name[0])), None)


class DocumentValidator:
    """Validates one document tree; a fresh instance is used per validation call."""

    def __init__(
        self,
        schema: CompiledSchema,
        max_depth: int = _DEFAULT_MAX_DEPTH,
        checkpoint: Checkpoint | None = None,
    ) -> None:
        self._schema = schema
        self._max_depth = max_depth
        self._checkpoint = checkpoint or (lambda: None)
        self._matcher = ContentMatcher(schema, self._checkpoint)
        self._indexes: dict[int, _DeclarationIndex] = {}
        self._diagnostics: list[Diagnostic] = []

    def validate(self, root: etree._Element) -> list[Diagnostic]:
        name = _expanded(root)
        decl = self._schema.elements.get(name)
        path = f"/{name[1]}"
        if decl is None:
            expected = ", ".join(f"'{n[1]}'" for n in self._schema.elements) or "none declared"
            namespace = f" in namespace '{name[0]}'" if name[0] else ""
            self._report(
                root,
                f"unexpected root element '{name[1]}'{namespace}; expected one of: {expected}",
                path,
            )
            return self._diagnostics
        self._element(root, decl, path, 1)
        return self._diagnostics

    # -- reporting ------------------------------------------------------------

    def _report(self, node: etree._Element, message: str, path: str) -> None:
        self._diagnostics.append(Diagnostic(message=message, line=node.sourceline, path=path))

    # -- elements ---------------------------------------------------------------

    def _element(self, node: etree._Element, decl: ElementDecl, path: str, depth: int) -> None:
        self._checkpoint()
        label = decl.name[1]
        if depth > self._max_depth:
            self._report(node, f"element '{label}' exceeds the maximum nesting depth of {self._max_depth}", path)
            return
        if decl.abstract:
            self._report(node, f"element '{label}' is abstract and cannot appear in a document", path)

        declared = decl.type
        assert declared is not None
        actual = self._instance_type(node, label, declared, path)
        if isinstance(actual, ComplexType) and actual.abstract:
            self._report(
                node,
                f"element '{label}' has abstract type '{actual.label}'; use xsi:type to select a concrete type",
                path,
            )

        if self._nilled(node, decl, path):
            if _element_children(node) or _own_text(node).strip():
                self._report(node, f"element '{label}' is nil and must be empty", path)
            if decl.fixed is not None:
                self._report(node, f"element '{label}' has a fixed value and cannot be nil", path)
            if isinstance(actual, ComplexType):
                self._attributes(node, label, actual, path)
            return

        if isinstance(actual, SimpleType):
            for attribute in node.attrib:
                if etree.QName(attribute).namespace != XSI_NS:
                    self._report(
                        node,
                        f"attribute '{etree.QName(attribute).localname}' is not allowed on element '{label}'",
                        f"{path}/@{etree.QName(attribute).localname}",
                    )
            self._simple_content(node, decl, actual, path)
            return

        self._attributes(node, label, actual, path)
        kind = actual.content_kind
        if kind is ContentKind.SIMPLE and actual.simple_type is not None:
            self._simple_content(node, decl, actual.simple_type, path)
            return
        if kind is ContentKind.ELEMENT_ONLY or kind is ContentKind.EMPTY:
            text = _own_text(node).strip()
            if text:
                what = "must be empty" if kind is ContentKind.EMPTY else "cannot contain text"
                self._report(node, f"element '{label}' {what}; found text '{text[:40]}'", path)
        elif decl.fixed is not None and not _element_children(node):
            text = _own_text(node)
            if text and text != decl.fixed:
                self._report(node, f"element '{label}' must have the fixed value '{decl.fixed}'", path)
        self._children(node, label, actual, path, depth)

    def _instance_type(
        self,
        node: etree._Element,
        label: str,
        declared: SimpleType | ComplexType,
        path: str,
    ) -> SimpleType | ComplexType:
        raw = node.get(_XSI_TYPE)
        if raw is None:
            return declared
        prefix, sep, local = raw.strip().rpartition(":")
        if sep and prefix not in node.nsmap:
            self._report(node, f"xsi:type '{raw}' uses an undeclared prefix", path)
            return declared
        namespace = node.nsmap.get(prefix if sep else None) or ""
        declared_any = declared.name == (XSD_NS, "anyType")

        found: SimpleType | ComplexType | None
        if namespace == XSD_NS and local == "anyType":
            found = declared if declared_any else None
        elif namespace == XSD_NS:
            found = builtin_type(local)
        else:
            found = self._schema.types.get((namespace, local))
        if found is None:
            self._report(node, f"xsi:type '{raw}' on element '{label}' names an unknown type", path)
            return declared

        if declared_any or found is declared:
            return found
        if isinstance(found, ComplexType):
            derives = found.derives_from(declared)
        else:
            derives = isinstance(declared, SimpleType) and found.derives_from(declared)
        if not derives:
            self._report(
                node,
                f"xsi:type '{raw}' on element '{label}' is not derived from the declared type '{declared.label}'",
                path,
            )
            return declared
        return found

    def _nilled(self, node: etree._Element, decl: ElementDecl, path: str) -> bool:
        raw = node.get(_XSI_NIL)
        if raw is None:
            return False
        value = raw.strip()
        if value not in ("true", "1", "false", "0"):
            self._report(node, f"xsi:nil value '{raw}' is not a boolean", path)
            return False
        if not decl.nillable:
            self._report(node, f"element '{decl.name[1]}' is not nillable", path)
            return False
        return value in ("true", "1")

    def _simple_content(
        self, node: etree._Element, decl: ElementDecl, simple_type: SimpleType, path: str
    ) -> None:
        label = decl.name[1]
        children = _element_children(node)
        if children:
            self._report(
                children[0],
                f"element '{label}' has simple content and cannot contain child element "
                f"'{etree.QName(children[0]).localname}'",
                path,
            )
            return
        text = _own_text(node)
        if text == "" and decl.fixed is not None:
            text = decl.fixed
        elif text == "" and decl.default is not None:
            text = decl.default
        for problem in check_simple_value(simple_type, text):
            self._report(node, f"element '{label}': {problem}", path)
        if decl.fixed is not None and not values_equal(simple_type, text, decl.fixed):
            self._report(node, f"element '{label}' must have the fixed value '{decl.fixed}'", path)

    # -- attributes -------------------------------------------------------------

    def _attributes(self, node: etree._Element, label: str, complex_type: ComplexType, path: str) -> None:
        present: set[Name] = set()
        for raw_name, value in node.attrib.items():
            qname = etree.QName(raw_name)
            name: Name = (qname.namespace or "", qname.localname)
            if name[0] == XSI_NS:
                continue
            attr_path = f"{path}/@{name[1]}"
            use = complex_type.attributes.get(name)
            if use is not None:
                if use.prohibited:
                    self._report(node, f"attribute '{name[1]}' is prohibited on element '{label}'", attr_path)
                    continue
                present.add(name)
                self._attribute_value(node, name[1], value, use.decl.type, use.effective_fixed, attr_path)
                continue

            wildcard = complex_type.attribute_wildcard
            if wildcard is None or not wildcard.allows(name[0]):
                self._report(node, f"attribute '{name[1]}' is not allowed on element '{label}'", attr_path)
                continue
            # lax and skip wildcards leave the attribute unchecked
            if wildcard.process_contents is not ProcessContents.STRICT or name[0] == XML_NS:
                continue
            declared = self._schema.attributes.get(name)
            if declared is not None:
                self._attribute_value(node, name[1], value, declared.type, declared.fixed, attr_path)
            else:
                self._report(
                    node,
                    f"attribute '{name[1]}' on element '{label}' matches a strict wildcard but is not declared",
                    attr_path,
                )

        for name, use in complex_type.attributes.items():
            if use.required and name not in present:
                self._report(node, f"required attribute '{name[1]}' is missing on element '{label}'", path)

    def _attribute_value(
        self,
        node: etree._Element,
        name: str,
        value: str,
        simple_type: SimpleType | None,
        fixed: str | None,
        path: str,
    ) -> None:
        if simple_type is None:
            return
        for problem in check_simple_value(simple_type, value):
            self._report(node, f"attribute '{name}': {problem}", path)
        if fixed is not None and not values_equal(simple_type, value, fixed):
            self._report(node, f"attribute '{name}' must have the fixed value '{fixed}'", path)

    # -- children -----------------------------------------------------------------

    def _index(self, group: ModelGroup | None) -> _DeclarationIndex:
        key = id(group)
        index = self._indexes.get(key)
        if index is None:
            index = _DeclarationIndex(self._schema, group)
            self._indexes[key] = index
        return index

    def _children(
        self, node: etree._Element, label: str, complex_type: ComplexType, path: str, depth: int
    ) -> None:
        children = _element_children(node)
        names = [_expanded(child) for child in children]
        group = complex_type.particle if complex_type.content_kind is not ContentKind.EMPTY else None

        paths = _child_paths(path, names)
        for mismatch in self._matcher.match(group, names, label):
            if mismatch.index is None:
                self._report(node, mismatch.message, path)
            else:
                child = children[mismatch.index]
                self._report(child, mismatch.message, paths[mismatch.index])

        index = self._index(group)
        for child, name, child_path in zip(children, names, paths, strict=True):
            decl = index.elements.get(name)
            if decl is not None:
                self._element(child, decl, child_path, depth + 1)
                continue
            wildcard = index.wildcard_for(name)
            # lax and skip wildcards leave the element and its content unchecked
            if wildcard is None or wildcard.process_contents is not ProcessContents.STRICT:
                continue
            global_decl = self._schema.elements.get(name)
            if global_decl is not None:
                self._element(child, global_decl, child_path, depth + 1)
            else:
                self._report(
                    child,
                    f"element '{name[1]}' matches a strict wildcard but is not declared",
                    child_path,
                )
