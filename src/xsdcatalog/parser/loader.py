"""XML loader with safety limits and line tracking for rich error reporting."""

from __future__ import annotations

from lxml import etree

# ---------------------------------------------------------------------------
# Safety limits
# ---------------------------------------------------------------------------

_MAX_DOCUMENT_SIZE = 5_000_000  # 5M characters
_MAX_NODE_COUNT = 200_000

_DOCTYPE = "<!DOCTYPE"


def _prolog_has_doctype(content: str) -> bool:
    """True when a DOCTYPE declaration appears before the first element.

    Only the prolog is scanned (processing instructions, comments and
    whitespace are skipped), so DOCTYPE text inside CDATA or comments in the
    document body is ordinary character data.
    """
    pos = 0
    while True:
        start = content.find("<", pos)
        if start < 0:
            return False
        if content.startswith("<?", start):
            end = content.find("?>", start + 2)
        elif content.startswith("<!--", start):
            end = content.find("-->", start + 4)
        else:
            return content[start : start + len(_DOCTYPE)].upper() == _DOCTYPE
        if end < 0:
            return False
        pos = end + 2


class XmlSafetyError(Exception):
    """Raised when XML input violates safety constraints.

    Distinct from parse errors: these indicate potentially malicious input
    (entity expansion, excessive node counts, oversized documents).
    """


class XmlParseError(Exception):
    """Raised when XML text is not well-formed."""

    def __init__(self, message: str, line: int | None = None, column: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column


class XmlLoader:
    """Namespace-aware XML loader.

    Uses lxml, which records the source line of every element
    (``element.sourceline``) for diagnostics.  External entities, DTD
    loading and network access are all disabled.
    """

    def __init__(
        self,
        max_document_size: int = _MAX_DOCUMENT_SIZE,
        max_node_count: int = _MAX_NODE_COUNT,
    ) -> None:
        self._max_document_size = max_document_size
        self._max_node_count = max_node_count

    def _new_parser(self) -> etree.XMLParser:
        # One parser per call: lxml parsers keep an error log and are not
        # safe to share between threads.
        return etree.XMLParser(
            encoding="utf-8",
            resolve_entities=False,
            load_dtd=False,
            no_network=True,
            huge_tree=False,
            remove_blank_text=False,
        )

    # -- safety checks -------------------------------------------------------

    def _check_xml_safety(self, content: str) -> None:
        """Pre-parse safety checks on raw XML text."""
        if len(content) > self._max_document_size:
            raise XmlSafetyError(
                f"XML document exceeds maximum size "
                f"({len(content):,} chars > {self._max_document_size:,} limit)"
            )
        if _prolog_has_doctype(content):
            raise XmlSafetyError("DOCTYPE declarations are not supported")

    def _check_doctype(self, root: etree._Element) -> None:
        """Post-parse check: a DOCTYPE the prolog scan did not see is still rejected."""
        docinfo = root.getroottree().docinfo
        if docinfo.doctype or docinfo.internalDTD is not None:
            raise XmlSafetyError("DOCTYPE declarations are not supported")

    def _check_node_count(self, root: etree._Element) -> None:
        """Reject documents with too many nodes."""
        count = 0
        for _ in root.iter():
            count += 1
            if count > self._max_node_count:
                raise XmlSafetyError(
                    f"XML document exceeds maximum node count ({self._max_node_count:,})"
                )

    # -- public loading API --------------------------------------------------

    def load_string(self, content: str) -> etree._Element:
        """Parse XML text and return its root element.

        Raises ``XmlSafetyError`` or ``XmlParseError``.
        """
        self._check_xml_safety(content)
        # Encoding is forced to UTF-8 on the parser, so a declaration such as
        # encoding="ISO-8859-1" in pasted text does not garble the input.
        try:
            data = content.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise XmlParseError(
                f"text is not valid Unicode: {exc.reason} at character {exc.start}"
            ) from None
        try:
            root = etree.fromstring(data, self._new_parser())
        except etree.XMLSyntaxError as exc:
            line, column = exc.position if exc.position else (None, None)
            raise XmlParseError(exc.msg or str(exc), line=line, column=column) from None
        if root is None:
            raise XmlParseError("document has no root element")
        self._check_doctype(root)
        self._check_node_count(root)
        return root
