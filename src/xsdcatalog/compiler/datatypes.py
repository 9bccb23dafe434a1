"""Built-in XML Schema datatypes: lexical parsing into comparable values.

Every atomic built-in is a ``SimpleType`` whose ``primitive`` selects a
parser below.  Derived built-ins (``integer``, ``token``, ``NCName`` ...)
are expressed as ordinary restrictions with facets, exactly as the XML
Schema datatypes recommendation defines them.  The table is built once at
import and never mutated afterwards.
"""

from __future__ import annotations

import base64
import binascii
import re
from collections.abc import Callable
from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from xsdcatalog.compiler.components import (
    XSD_NS,
    Facets,
    Name,
    Pattern,
    SimpleType,
    Variety,
    WhiteSpace,
)
from xsdcatalog.compiler.patterns import compile_pattern

# ---------------------------------------------------------------------------
# Lexical forms
# ---------------------------------------------------------------------------

_TZ = r"(Z|[+-]\d{2}:\d{2})?"
_DECIMAL_RE = re.compile(r"[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)")
_FLOAT_RE = re.compile(r"[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?|[+-]?INF|NaN")
_DATE_RE = re.compile(r"(-?[0-9]{4,})-([0-9]{2})-([0-9]{2})" + _TZ)
_TIME_RE = re.compile(r"([0-9]{2}):([0-9]{2}):([0-9]{2})(\.[0-9]+)?" + _TZ)
_DATETIME_RE = re.compile(
    r"(-?[0-9]{4,})-([0-9]{2})-([0-9]{2})T([0-9]{2}):([0-9]{2}):([0-9]{2})(\.[0-9]+)?" + _TZ
)
_DURATION_RE = re.compile(
    r"(-)?P(?=[0-9]|T[0-9])(?:([0-9]+)Y)?(?:([0-9]+)M)?(?:([0-9]+)D)?"
    r"(?:T(?=[0-9])(?:([0-9]+)H)?(?:([0-9]+)M)?(?:([0-9]+(?:\.[0-9]+)?)S)?)?"
)
_GYEAR_RE = re.compile(r"(-?[0-9]{4,})" + _TZ)
_GYEARMONTH_RE = re.compile(r"(-?[0-9]{4,})-([0-9]{2})" + _TZ)
_GMONTHDAY_RE = re.compile(r"--([0-9]{2})-([0-9]{2})" + _TZ)
_GDAY_RE = re.compile(r"---([0-9]{2})" + _TZ)
_GMONTH_RE = re.compile(r"--([0-9]{2})" + _TZ)
_HEX_RE = re.compile(r"(?:[0-9a-fA-F]{2})*")
_NCNAME = compile_pattern(r"[\i-[:]][\c-[:]]*")

_BOOLEANS = {"true": True, "1": True, "false": False, "0": False}
_SPACES_RE = re.compile(" {2,}")


def normalize_whitespace(value: str, mode: WhiteSpace) -> str:
    """Apply the whiteSpace facet: preserve, replace or collapse."""
    if mode is WhiteSpace.PRESERVE:
        return value
    replaced = value.replace("\t", " ").replace("\n", " ").replace("\r", " ")
    if mode is WhiteSpace.REPLACE:
        return replaced
    return _SPACES_RE.sub(" ", replaced).strip(" ")


# ---------------------------------------------------------------------------
# Primitive parsers
# ---------------------------------------------------------------------------


def _timezone(text: str | None) -> timezone:
    if not text or text == "Z":
        return UTC
    sign = -1 if text[0] == "-" else 1
    hours, minutes = int(text[1:3]), int(text[4:6])
    if hours > 14 or minutes > 59 or (hours == 14 and minutes):
        raise ValueError("timezone offset out of range")
    return timezone(sign * timedelta(hours=hours, minutes=minutes))


def _microseconds(fraction: str | None) -> int:
    if not fraction:
        return 0
    return int((fraction[1:] + "000000")[:6])


def _build_datetime(
    year: str, month: str, day: str, hour: str, minute: str, second: str,
    fraction: str | None, tz: str | None,
) -> datetime:
    extra = timedelta()
    h = int(hour)
    if h == 24:
        if int(minute) or int(second) or _microseconds(fraction):
            raise ValueError("hour 24 is only allowed as 24:00:00")
        h, extra = 0, timedelta(days=1)
    if int(year) < 1:
        raise ValueError("years before 0001 are not supported")
    return datetime(
        int(year), int(month), int(day), h, int(minute), int(second),
        _microseconds(fraction), tzinfo=_timezone(tz),
    ) + extra


def _parse_decimal(text: str) -> Decimal:
    if not _DECIMAL_RE.fullmatch(text):
        raise ValueError("not a decimal number")
    try:
        return Decimal(text)
    except InvalidOperation:
        raise ValueError("not a decimal number") from None


def _parse_float(text: str) -> float:
    if not _FLOAT_RE.fullmatch(text):
        raise ValueError("not a floating-point number")
    return float(text.replace("INF", "inf"))


def _parse_boolean(text: str) -> bool:
    try:
        return _BOOLEANS[text]
    except KeyError:
        raise ValueError("not a boolean") from None


def _parse_date(text: str) -> datetime:
    match = _DATE_RE.fullmatch(text)
    if match is None:
        raise ValueError("not a date")
    year, month, day, tz = match.groups()
    return _build_datetime(year, month, day, "0", "0", "0", None, tz)


def _parse_datetime(text: str) -> datetime:
    match = _DATETIME_RE.fullmatch(text)
    if match is None:
        raise ValueError("not a dateTime")
    return _build_datetime(*match.groups())


def _parse_time(text: str) -> datetime:
    match = _TIME_RE.fullmatch(text)
    if match is None:
        raise ValueError("not a time")
    hour, minute, second, fraction, tz = match.groups()
    value = _build_datetime("2000", "1", "1", hour, minute, second, fraction, tz)
    return value.replace(year=2000, month=1, day=1)


def _parse_duration(text: str) -> tuple[int, Decimal]:
    match = _DURATION_RE.fullmatch(text)
    if match is None or text.endswith("T"):
        raise ValueError("not a duration")
    sign, years, months, days, hours, minutes, seconds = match.groups()
    total_months = int(years or 0) * 12 + int(months or 0)
    total_seconds = (
        Decimal(days or 0) * 86400
        + Decimal(hours or 0) * 3600
        + Decimal(minutes or 0) * 60
        + Decimal(seconds or 0)
    )
    factor = -1 if sign else 1
    return factor * total_months, factor * total_seconds


def _check_month(month: int) -> int:
    if not 1 <= month <= 12:
        raise ValueError("month out of range")
    return month


def _parse_gyear(text: str) -> int:
    match = _GYEAR_RE.fullmatch(text)
    if match is None:
        raise ValueError("not a gYear")
    _timezone(match.group(2))
    return int(match.group(1))


def _parse_gyearmonth(text: str) -> tuple[int, int]:
    match = _GYEARMONTH_RE.fullmatch(text)
    if match is None:
        raise ValueError("not a gYearMonth")
    _timezone(match.group(3))
    return int(match.group(1)), _check_month(int(match.group(2)))


def _parse_gmonthday(text: str) -> tuple[int, int]:
    match = _GMONTHDAY_RE.fullmatch(text)
    if match is None:
        raise ValueError("not a gMonthDay")
    month, day = _check_month(int(match.group(1))), int(match.group(2))
    # 2000 is a leap year, so --02-29 is accepted
    datetime(2000, month, day)
    return month, day


def _parse_gday(text: str) -> int:
    match = _GDAY_RE.fullmatch(text)
    if match is None or not 1 <= int(match.group(1)) <= 31:
        raise ValueError("not a gDay")
    return int(match.group(1))


def _parse_gmonth(text: str) -> int:
    match = _GMONTH_RE.fullmatch(text)
    if match is None:
        raise ValueError("not a gMonth")
    return _check_month(int(match.group(1)))


def _parse_hex(text: str) -> bytes:
    if not _HEX_RE.fullmatch(text):
        raise ValueError("not hexBinary")
    return bytes.fromhex(text)


def _parse_base64(text: str) -> bytes:
    try:
        return base64.b64decode("".join(text.split()), validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("not base64Binary") from None


def _parse_qname(text: str) -> str:
    prefix, _, local = text.rpartition(":")
    if (prefix and not _NCNAME.fullmatch(prefix)) or not _NCNAME.fullmatch(local):
        raise ValueError("not a QName")
    return text


def _identity(text: str) -> str:
    return text


_PARSERS: dict[str, Callable[[str], Any]] = {
    "anySimpleType": _identity,
    "string": _identity,
    "anyURI": _identity,
    "boolean": _parse_boolean,
    "decimal": _parse_decimal,
    "float": _parse_float,
    "double": _parse_float,
    "duration": _parse_duration,
    "dateTime": _parse_datetime,
    "date": _parse_date,
    "time": _parse_time,
    "gYear": _parse_gyear,
    "gYearMonth": _parse_gyearmonth,
    "gMonthDay": _parse_gmonthday,
    "gDay": _parse_gday,
    "gMonth": _parse_gmonth,
    "hexBinary": _parse_hex,
    "base64Binary": _parse_base64,
    "QName": _parse_qname,
    "NOTATION": _parse_qname,
}

ORDERED_PRIMITIVES = frozenset({
    "decimal", "float", "double", "duration", "dateTime", "date", "time",
    "gYear", "gYearMonth", "gMonthDay", "gDay", "gMonth",
})
_LENGTHLESS_PRIMITIVES = ORDERED_PRIMITIVES | {"boolean", "QName", "NOTATION"}


def parse_value(primitive: str, lexical: str) -> Any:
    """Parse a whitespace-normalized lexical form.  Raises ``ValueError``."""
    try:
        return _PARSERS[primitive](lexical)
    except (ValueError, OverflowError) as exc:
        raise ValueError(str(exc)) from None


def value_length(primitive: str, lexical: str, value: Any) -> int | None:
    """Length as the length facets measure it, or None when they do not apply."""
    if primitive in _LENGTHLESS_PRIMITIVES:
        return None
    if isinstance(value, bytes):
        return len(value)
    return len(lexical)


def decimal_digits(value: Decimal) -> tuple[int, int]:
    """Return (total digits, fraction digits), ignoring insignificant zeros."""
    _sign, digits, exponent = value.normalize().as_tuple()
    if not isinstance(exponent, int):
        return 0, 0
    fraction = max(0, -exponent)
    if exponent > 0:
        return len(digits) + exponent, 0
    return max(len(digits), fraction, 1), fraction


# ---------------------------------------------------------------------------
# Built-in type table
# ---------------------------------------------------------------------------


def _xsd(local: str) -> Name:
    return (XSD_NS, local)


def _bound(primitive: str, lexical: str) -> tuple[str, Any]:
    return lexical, parse_value(primitive, lexical)


def _build_table() -> dict[Name, SimpleType]:
    table: dict[Name, SimpleType] = {}

    for primitive in _PARSERS:
        table[_xsd(primitive)] = SimpleType(
            name=_xsd(primitive), primitive=primitive, builtin=True
        )
    # anySimpleType is not a primitive: it is the base of the primitives
    any_simple = table[_xsd("anySimpleType")]
    for name, st in table.items():
        if st is not any_simple:
            st.base = any_simple
    table[_xsd("string")].facets.white_space = WhiteSpace.PRESERVE

    def derive(local: str, base: str, **facets: Any) -> None:
        parent = table[_xsd(base)]
        patterns = facets.pop("patterns", [])
        table[_xsd(local)] = SimpleType(
            name=_xsd(local),
            primitive=parent.primitive,
            base=parent,
            facets=Facets(
                patterns=[Pattern(p, compile_pattern(p)) for p in patterns],
                **facets,
            ),
            builtin=True,
        )

    def derive_list(local: str, item: str) -> None:
        table[_xsd(local)] = SimpleType(
            name=_xsd(local),
            variety=Variety.LIST,
            primitive="anySimpleType",
            item_type=table[_xsd(item)],
            facets=Facets(min_length=1),
            builtin=True,
        )

    # string family
    derive("normalizedString", "string", white_space=WhiteSpace.REPLACE)
    derive("token", "normalizedString", white_space=WhiteSpace.COLLAPSE)
    derive("language", "token", patterns=[r"[a-zA-Z]{1,8}(-[a-zA-Z0-9]{1,8})*"])
    derive("NMTOKEN", "token", patterns=[r"\c+"])
    derive("Name", "token", patterns=[r"\i\c*"])
    derive("NCName", "Name", patterns=[r"[\i-[:]][\c-[:]]*"])
    for local in ("ID", "IDREF", "ENTITY"):
        derive(local, "NCName")
    derive_list("NMTOKENS", "NMTOKEN")
    derive_list("IDREFS", "IDREF")
    derive_list("ENTITIES", "ENTITY")

    # integer family
    derive("integer", "decimal", fraction_digits=0, patterns=[r"[\-+]?[0-9]+"])
    integer_ranges = [
        ("nonPositiveInteger", "integer", None, "0"),
        ("negativeInteger", "nonPositiveInteger", None, "-1"),
        ("long", "integer", "-9223372036854775808", "9223372036854775807"),
        ("int", "long", "-2147483648", "2147483647"),
        ("short", "int", "-32768", "32767"),
        ("byte", "short", "-128", "127"),
        ("nonNegativeInteger", "integer", "0", None),
        ("unsignedLong", "nonNegativeInteger", None, "18446744073709551615"),
        ("unsignedInt", "unsignedLong", None, "4294967295"),
        ("unsignedShort", "unsignedInt", None, "65535"),
        ("unsignedByte", "unsignedShort", None, "255"),
        ("positiveInteger", "nonNegativeInteger", "1", None),
    ]
    for local, base, low, high in integer_ranges:
        derive(
            local,
            base,
            min_inclusive=_bound("decimal", low) if low is not None else None,
            max_inclusive=_bound("decimal", high) if high is not None else None,
        )

    return table


BUILTIN_TYPES: dict[Name, SimpleType] = _build_table()


def builtin_type(local: str) -> SimpleType | None:
    """Look up a built-in simple type by its local name in the XSD namespace."""
    return BUILTIN_TYPES.get(_xsd(local))
