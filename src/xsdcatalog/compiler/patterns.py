"""Translation of XML Schema regular expressions into Python ``re`` syntax.

XSD patterns differ from Python's: they are implicitly anchored, ``^`` and
``$`` are ordinary characters, ``.`` excludes both CR and LF, and they
support ``\\i``/``\\c`` name-character escapes, ``\\p{..}`` Unicode
categories and blocks, and character-class subtraction (``[a-z-[aeiou]]``).
Character classes are evaluated as sets of code-point ranges and emitted as
explicit Python classes.
"""

from __future__ import annotations

import re
import unicodedata
from functools import cache

_MAX_CP = 0x10FFFF

Ranges = list[tuple[int, int]]


class PatternError(ValueError):
    """Raised for a pattern that is not a valid XSD regular expression."""


# ---------------------------------------------------------------------------
# Range-set arithmetic
# ---------------------------------------------------------------------------


def _normalize(ranges: Ranges) -> Ranges:
    merged: Ranges = []
    for lo, hi in sorted(ranges):
        if merged and lo <= merged[-1][1] + 1:
            merged[-1] = (merged[-1][0], max(merged[-1][1], hi))
        else:
            merged.append((lo, hi))
    return merged


def _complement(ranges: Ranges) -> Ranges:
    result: Ranges = []
    start = 0
    for lo, hi in _normalize(ranges):
        if lo > start:
            result.append((start, lo - 1))
        start = hi + 1
    if start <= _MAX_CP:
        result.append((start, _MAX_CP))
    return result


def _subtract(ranges: Ranges, removed: Ranges) -> Ranges:
    keep = _complement(removed)
    result: Ranges = []
    for lo, hi in _normalize(ranges):
        for klo, khi in keep:
            if klo > hi:
                break
            a, b = max(lo, klo), min(hi, khi)
            if a <= b:
                result.append((a, b))
    return result


# ---------------------------------------------------------------------------
# Character tables
# ---------------------------------------------------------------------------

# XML 1.0 (5th edition) NameStartChar / NameChar productions.
_NAME_START: Ranges = [
    (ord(":"), ord(":")), (ord("A"), ord("Z")), (ord("_"), ord("_")), (ord("a"), ord("z")),
    (0xC0, 0xD6), (0xD8, 0xF6), (0xF8, 0x2FF), (0x370, 0x37D), (0x37F, 0x1FFF),
    (0x200C, 0x200D), (0x2070, 0x218F), (0x2C00, 0x2FEF), (0x3001, 0xD7FF),
    (0xF900, 0xFDCF), (0xFDF0, 0xFFFD), (0x10000, 0xEFFFF),
]
_NAME_CHAR: Ranges = _normalize([
    *_NAME_START,
    (ord("-"), ord("-")), (ord("."), ord(".")), (ord("0"), ord("9")),
    (0xB7, 0xB7), (0x300, 0x36F), (0x203F, 0x2040),
])
_SPACE: Ranges = [(0x9, 0xA), (0xD, 0xD), (0x20, 0x20)]

_BLOCKS: dict[str, tuple[int, int]] = {
    "BasicLatin": (0x0000, 0x007F),
    "Latin-1Supplement": (0x0080, 0x00FF),
    "LatinExtended-A": (0x0100, 0x017F),
    "LatinExtended-B": (0x0180, 0x024F),
    "IPAExtensions": (0x0250, 0x02AF),
    "CombiningDiacriticalMarks": (0x0300, 0x036F),
    "Greek": (0x0370, 0x03FF),
    "Cyrillic": (0x0400, 0x04FF),
    "Armenian": (0x0530, 0x058F),
    "Hebrew": (0x0590, 0x05FF),
    "Arabic": (0x0600, 0x06FF),
    "Devanagari": (0x0900, 0x097F),
    "Thai": (0x0E00, 0x0E7F),
    "LatinExtendedAdditional": (0x1E00, 0x1EFF),
    "GreekExtended": (0x1F00, 0x1FFF),
    "GeneralPunctuation": (0x2000, 0x206F),
    "CurrencySymbols": (0x20A0, 0x20CF),
    "LetterlikeSymbols": (0x2100, 0x214F),
    "NumberForms": (0x2150, 0x218F),
    "Arrows": (0x2190, 0x21FF),
    "MathematicalOperators": (0x2200, 0x22FF),
    "BoxDrawing": (0x2500, 0x257F),
    "CJKSymbolsandPunctuation": (0x3000, 0x303F),
    "Hiragana": (0x3040, 0x309F),
    "Katakana": (0x30A0, 0x30FF),
    "CJKUnifiedIdeographs": (0x4E00, 0x9FFF),
    "HangulSyllables": (0xAC00, 0xD7A3),
    "PrivateUse": (0xE000, 0xF8FF),
    "HalfwidthandFullwidthForms": (0xFF00, 0xFFEF),
    "Specials": (0xFFF0, 0xFFFF),
}


_CATEGORIES = frozenset({
    "L", "Lu", "Ll", "Lt", "Lm", "Lo",
    "M", "Mn", "Mc", "Me",
    "N", "Nd", "Nl", "No",
    "P", "Pc", "Pd", "Ps", "Pe", "Pi", "Pf", "Po",
    "Z", "Zs", "Zl", "Zp",
    "S", "Sm", "Sc", "Sk", "So",
    "C", "Cc", "Cf", "Co", "Cn", "Cs",
})


@cache
def _category_table() -> dict[str, Ranges]:
    """Map every two-letter Unicode general category to its code-point ranges."""
    table: dict[str, Ranges] = {}
    current: str | None = None
    start = 0
    for cp in range(_MAX_CP + 1):
        cat = unicodedata.category(chr(cp))
        if cat != current:
            if current is not None:
                table.setdefault(current, []).append((start, cp - 1))
            current, start = cat, cp
    if current is not None:
        table.setdefault(current, []).append((start, _MAX_CP))
    return table


def _category(name: str) -> Ranges:
    if name.startswith("Is"):
        block = _BLOCKS.get(name[2:])
        if block is None:
            raise PatternError(f"unknown Unicode block '{name[2:]}'")
        return [block]
    if name not in _CATEGORIES:
        raise PatternError(f"unknown Unicode category '{name}'")
    table = _category_table()
    if len(name) == 1:
        return _normalize([r for cat, rs in table.items() if cat[0] == name for r in rs])
    return list(table.get(name, []))


def _word() -> Ranges:
    # \w is everything except punctuation, separators and "other" characters
    return _complement(_category("P") + _category("Z") + _category("C"))


_SINGLE_ESCAPES = {
    "n": "\n", "r": "\r", "t": "\t",
    "\\": "\\", "|": "|", ".": ".", "?": "?", "*": "*", "+": "+",
    "(": "(", ")": ")", "{": "{", "}": "}", "-": "-", "[": "[", "]": "]", "^": "^", "$": "$",
}


# ---------------------------------------------------------------------------
# Translator
# ---------------------------------------------------------------------------


def _emit_char(cp: int) -> str:
    ch = chr(cp)
    if ch.isascii() and ch.isalnum():
        return ch
    return f"\\U{cp:08x}"


def _emit_class(ranges: Ranges) -> str:
    ranges = _normalize(ranges)
    if not ranges:
        return "(?!)"
    parts = []
    for lo, hi in ranges:
        parts.append(_emit_char(lo) if lo == hi else f"{_emit_char(lo)}-{_emit_char(hi)}")
    return "[" + "".join(parts) + "]"


class _Translator:
    def __init__(self, source: str) -> None:
        self._s = source
        self._i = 0

    def _peek(self, offset: int = 0) -> str | None:
        j = self._i + offset
        return self._s[j] if j < len(self._s) else None

    def _next(self) -> str:
        if self._i >= len(self._s):
            raise PatternError("unexpected end of pattern")
        ch = self._s[self._i]
        self._i += 1
        return ch

    def translate(self) -> str:
        out = self._regexp()
        if self._i != len(self._s):
            raise PatternError(f"unbalanced ')' at offset {self._i}")
        return out

    def _regexp(self) -> str:
        branches = [self._branch()]
        while self._peek() == "|":
            self._i += 1
            branches.append(self._branch())
        return "|".join(branches)

    def _branch(self) -> str:
        pieces: list[str] = []
        while self._peek() is not None and self._peek() not in "|)":
            pieces.append(self._piece())
        return "".join(pieces)

    def _piece(self) -> str:
        atom = self._atom()
        ch = self._peek()
        if ch in ("?", "*", "+"):
            self._i += 1
            return atom + ch
        if ch == "{":
            return atom + self._quantity()
        return atom

    def _quantity(self) -> str:
        end = self._s.find("}", self._i)
        if end < 0:
            raise PatternError("unterminated quantifier")
        body = self._s[self._i + 1 : end]
        match = re.fullmatch(r"(\d+)(,(\d*))?", body)
        if match is None:
            raise PatternError(f"invalid quantifier '{{{body}}}'")
        low = int(match.group(1))
        if match.group(3):
            if int(match.group(3)) < low:
                raise PatternError(f"invalid quantifier '{{{body}}}'")
        self._i = end + 1
        return "{" + body + "}"

    def _atom(self) -> str:
        ch = self._next()
        if ch == "(":
            inner = self._regexp()
            if self._peek() != ")":
                raise PatternError("missing ')'")
            self._i += 1
            return f"(?:{inner})"
        if ch == "[":
            return _emit_class(self._class_body())
        if ch == "\\":
            single, ranges = self._escape()
            return re.escape(single) if single is not None else _emit_class(ranges)
        if ch == ".":
            return _emit_class(_complement([(0xA, 0xA), (0xD, 0xD)]))
        if ch in "?*+{":
            raise PatternError(f"quantifier '{ch}' does not follow an atom")
        return re.escape(ch)

    def _escape(self) -> tuple[str | None, Ranges]:
        """Parse the escape after a backslash: a single char or a range set."""
        ch = self._next()
        if ch in _SINGLE_ESCAPES:
            return _SINGLE_ESCAPES[ch], []
        if ch in "pP":
            if self._peek() != "{":
                raise PatternError("expected '{' after \\p")
            end = self._s.find("}", self._i)
            if end < 0:
                raise PatternError("unterminated \\p{...}")
            ranges = _category(self._s[self._i + 1 : end])
            self._i = end + 1
            return None, ranges if ch == "p" else _complement(ranges)
        multi: dict[str, Ranges] = {
            "s": _SPACE,
            "i": _NAME_START,
            "c": _NAME_CHAR,
            "d": _category("Nd") if ch in "dD" else [],
            "w": _word() if ch in "wW" else [],
        }
        lower = ch.lower()
        if lower in multi:
            ranges = multi[lower]
            return None, ranges if ch == lower else _complement(ranges)
        raise PatternError(f"invalid escape '\\{ch}'")

    def _class_char(self) -> tuple[int | None, Ranges]:
        ch = self._next()
        if ch == "\\":
            single, ranges = self._escape()
            if single is not None:
                return ord(single), []
            return None, ranges
        if ch == "[":
            raise PatternError("unescaped '[' in character class")
        return ord(ch), []

    def _class_body(self) -> Ranges:
        negate = False
        if self._peek() == "^":
            negate = True
            self._i += 1
        ranges: Ranges = []
        subtracted: Ranges | None = None
        first = True
        while True:
            ch = self._peek()
            if ch is None:
                raise PatternError("unterminated character class")
            if ch == "]" and not first:
                self._i += 1
                break
            if ch == "-" and self._peek(1) == "[" and not first:
                self._i += 2
                subtracted = self._class_body()
                if self._peek() != "]":
                    raise PatternError("subtraction must end the character class")
                self._i += 1
                break
            first = False
            cp, multi = self._class_char()
            if cp is None:
                ranges.extend(multi)
                continue
            if self._peek() == "-" and self._peek(1) not in (None, "]", "["):
                self._i += 1
                end_cp, end_multi = self._class_char()
                if end_cp is None or end_cp < cp:
                    raise PatternError("invalid range in character class")
                ranges.append((cp, end_cp))
            else:
                ranges.append((cp, cp))
        if negate:
            ranges = _complement(ranges)
        if subtracted is not None:
            ranges = _subtract(ranges, subtracted)
        return ranges


def translate_pattern(source: str) -> str:
    """Translate an XSD pattern to an equivalent Python regular expression."""
    return _Translator(source).translate()


def compile_pattern(source: str) -> re.Pattern[str]:
    """Compile an XSD pattern; match it with ``fullmatch`` (XSD patterns are anchored)."""
    translated = translate_pattern(source)
    try:
        return re.compile(translated)
    except re.error as exc:
        raise PatternError(str(exc)) from None
