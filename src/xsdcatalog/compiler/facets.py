"""Value checking of simple-typed text against a simple type and its facets."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from xsdcatalog.compiler.components import Facets, SimpleType, Variety
from xsdcatalog.compiler.datatypes import (
    decimal_digits,
    normalize_whitespace,
    parse_value,
    value_length,
)

_MAX_SHOWN_ENUMERATION = 10


def _quote_all(values: list[str]) -> str:
    shown = ", ".join(f"'{v}'" for v in values[:_MAX_SHOWN_ENUMERATION])
    if len(values) > _MAX_SHOWN_ENUMERATION:
        shown += f", ... ({len(values)} values)"
    return shown


def _compare(left: Any, right: Any) -> int | None:
    """Three-way compare of two primitive values; None when incomparable."""
    try:
        if left < right:
            return -1
        if left > right:
            return 1
    except TypeError:
        return None
    return 0


def _check_bounds(value: Any, lexical: str, facets: Facets) -> list[str]:
    problems: list[str] = []
    checks = (
        (facets.min_inclusive, lambda c: c >= 0, "less than minimum inclusive"),
        (facets.max_inclusive, lambda c: c <= 0, "greater than maximum inclusive"),
        (facets.min_exclusive, lambda c: c > 0, "not greater than minimum exclusive"),
        (facets.max_exclusive, lambda c: c < 0, "not less than maximum exclusive"),
    )
    for bound, accept, wording in checks:
        if bound is None:
            continue
        bound_lexical, bound_value = bound
        if isinstance(value, float) and value != value:  # NaN is incomparable
            problems.append(f"value '{lexical}' is {wording} '{bound_lexical}'")
            continue
        cmp = _compare(value, bound_value)
        if cmp is None or not accept(cmp):
            problems.append(f"value '{lexical}' is {wording} '{bound_lexical}'")
    return problems


def _check_lengths(length: int | None, lexical: str, facets: Facets, unit: str) -> list[str]:
    if length is None:
        return []
    problems: list[str] = []
    if facets.length is not None and length != facets.length:
        problems.append(
            f"value '{lexical}' has length {length}; the required {unit} is {facets.length}"
        )
    if facets.min_length is not None and length < facets.min_length:
        problems.append(
            f"value '{lexical}' is shorter than the minimum {unit} {facets.min_length}"
        )
    if facets.max_length is not None and length > facets.max_length:
        problems.append(
            f"value '{lexical}' is longer than the maximum {unit} {facets.max_length}"
        )
    return problems


def _check_step(
    step: SimpleType, lexical: str, value: Any, length: int | None, unit: str
) -> list[str]:
    """Check the facets a single restriction step declares."""
    facets = step.facets
    problems: list[str] = []

    if facets.patterns and not any(p.regex.fullmatch(lexical) for p in facets.patterns):
        sources = " | ".join(p.source for p in facets.patterns)
        problems.append(f"value '{lexical}' does not match required pattern '{sources}'")

    if facets.enumeration is not None:
        allowed = [v for _, v in facets.enumeration]
        if value not in allowed:
            problems.append(
                f"value '{lexical}' is not one of the allowed values: "
                f"{_quote_all([lex for lex, _ in facets.enumeration])}"
            )

    problems.extend(_check_lengths(length, lexical, facets, unit))
    problems.extend(_check_bounds(value, lexical, facets))

    if isinstance(value, Decimal) and (
        facets.total_digits is not None or facets.fraction_digits is not None
    ):
        total, fraction = decimal_digits(value)
        if facets.total_digits is not None and total > facets.total_digits:
            problems.append(
                f"value '{lexical}' has {total} total digits; at most "
                f"{facets.total_digits} are allowed"
            )
        if facets.fraction_digits is not None and fraction > facets.fraction_digits:
            problems.append(
                f"value '{lexical}' has {fraction} fraction digits; at most "
                f"{facets.fraction_digits} are allowed"
            )
    return problems


def _check_atomic(simple_type: SimpleType, text: str) -> list[str]:
    lexical = normalize_whitespace(text, simple_type.effective_white_space())
    try:
        value = parse_value(simple_type.primitive, lexical)
    except ValueError:
        return [f"value '{lexical}' is not a valid {_type_label(simple_type)}"]
    length = value_length(simple_type.primitive, lexical, value)
    problems: list[str] = []
    for step in simple_type.chain():
        problems.extend(_check_step(step, lexical, value, length, "length"))
    return problems


def _check_list(simple_type: SimpleType, text: str) -> list[str]:
    lexical = normalize_whitespace(text, simple_type.effective_white_space())
    items = lexical.split(" ") if lexical else []
    item_type = _list_item_type(simple_type)
    problems: list[str] = []
    if item_type is not None:
        for item in items:
            problems.extend(check_simple_value(item_type, item))
    for step in simple_type.chain():
        problems.extend(_check_step(step, lexical, lexical, len(items), "number of items"))
    return problems


def _check_union(simple_type: SimpleType, text: str) -> list[str]:
    members = _union_members(simple_type)
    if members and all(check_simple_value(m, text) for m in members):
        lexical = normalize_whitespace(text, simple_type.effective_white_space())
        names = ", ".join(_type_label(m) for m in members)
        return [f"value '{lexical}' does not match any member type of the union ({names})"]
    lexical = normalize_whitespace(text, simple_type.effective_white_space())
    problems: list[str] = []
    for step in simple_type.chain():
        # Only pattern and enumeration apply to unions; they compare lexically here.
        problems.extend(_check_step(step, lexical, lexical, None, "length"))
    return problems


def _list_item_type(simple_type: SimpleType) -> SimpleType | None:
    for step in reversed(simple_type.chain()):
        if step.item_type is not None:
            return step.item_type
    return None


def _union_members(simple_type: SimpleType) -> list[SimpleType]:
    for step in reversed(simple_type.chain()):
        if step.member_types:
            return step.member_types
    return []


def _type_label(simple_type: SimpleType) -> str:
    if simple_type.name is not None:
        return simple_type.name[1]
    if simple_type.variety is Variety.ATOMIC:
        return simple_type.primitive
    return f"{simple_type.variety.value} value"


def check_simple_value(simple_type: SimpleType, text: str) -> list[str]:
    """Return the problems found in ``text`` (empty when it is a valid value)."""
    if simple_type.variety is Variety.LIST:
        return _check_list(simple_type, text)
    if simple_type.variety is Variety.UNION:
        return _check_union(simple_type, text)
    return _check_atomic(simple_type, text)


def values_equal(simple_type: SimpleType, left: str, right: str) -> bool:
    """Compare two lexical forms in the type's value space (used for ``fixed``)."""
    ws = simple_type.effective_white_space()
    left_n, right_n = normalize_whitespace(left, ws), normalize_whitespace(right, ws)
    if simple_type.variety is not Variety.ATOMIC:
        return left_n == right_n
    try:
        return bool(
            parse_value(simple_type.primitive, left_n) == parse_value(simple_type.primitive, right_n)
        )
    except ValueError:
        return left_n == right_n
