"""Tests for XML parsing DoS safeguards in XmlLoader."""

from __future__ import annotations

import pytest

from xsdcatalog.parser.loader import XmlLoader, XmlParseError, XmlSafetyError


class TestDoctypeRejection:
    """Neither documents nor schemas need a DTD, so any DOCTYPE is rejected."""

    def test_billion_laughs_rejected(self, loader: XmlLoader) -> None:
        xml = (
            '<?xml version="1.0"?>\n'
            "<!DOCTYPE lolz [\n"
            ' <!ENTITY lol "lol">\n'
            ' <!ENTITY lol2 "&lol;&lol;&lol;&lol;&lol;&lol;&lol;&lol;&lol;&lol;">\n'
            ' <!ENTITY lol3 "&lol2;&lol2;&lol2;&lol2;&lol2;&lol2;&lol2;&lol2;">\n'
            "]>\n"
            "<lolz>&lol3;</lolz>"
        )
        with pytest.raises(XmlSafetyError, match="DOCTYPE"):
            loader.load_string(xml)

    def test_external_entity_rejected(self, loader: XmlLoader) -> None:
        xml = '<!DOCTYPE a [<!ENTITY xxe SYSTEM "file:///etc/passwd">]><a>&xxe;</a>'
        with pytest.raises(XmlSafetyError):
            loader.load_string(xml)

    def test_lowercase_doctype_rejected(self, loader: XmlLoader) -> None:
        with pytest.raises(XmlSafetyError):
            loader.load_string("<!doctype a><a/>")

    def test_doctype_word_in_text_is_fine(self, loader: XmlLoader) -> None:
        root = loader.load_string("<a>DOCTYPE declarations are not used here</a>")
        assert root.text is not None and root.text.startswith("DOCTYPE")

    def test_doctype_markup_in_cdata_is_fine(self, loader: XmlLoader) -> None:
        root = loader.load_string("<a><![CDATA[<!DOCTYPE html><p>hi</p>]]></a>")
        assert root.text == "<!DOCTYPE html><p>hi</p>"

    def test_doctype_markup_in_body_comment_is_fine(self, loader: XmlLoader) -> None:
        root = loader.load_string("<a><!-- <!DOCTYPE html> --></a>")
        assert root.tag == "a"

    def test_doctype_after_prolog_comment_and_pi_rejected(self, loader: XmlLoader) -> None:
        xml = '<?xml version="1.0"?>\n<!-- header -->\n<?app hint?>\n<!DOCTYPE a>\n<a/>'
        with pytest.raises(XmlSafetyError, match="DOCTYPE"):
            loader.load_string(xml)

    def test_comment_in_prolog_mentioning_doctype_is_fine(self, loader: XmlLoader) -> None:
        root = loader.load_string("<!-- no <!DOCTYPE here -->\n<a/>")
        assert root.tag == "a"


class TestEncoding:
    def test_lone_surrogate_is_a_parse_error(self, loader: XmlLoader) -> None:
        with pytest.raises(XmlParseError, match="not valid Unicode"):
            loader.load_string("<a>\ud800</a>")


class TestDocumentSize:
    def test_oversized_rejected(self) -> None:
        loader = XmlLoader(max_document_size=50)
        with pytest.raises(XmlSafetyError, match="maximum size"):
            loader.load_string("<a>" + "x" * 100 + "</a>")

    def test_at_limit_accepted(self) -> None:
        text = "<a>" + "x" * 10 + "</a>"
        assert XmlLoader(max_document_size=len(text)).load_string(text).tag == "a"


class TestNodeCount:
    def test_too_many_nodes_rejected(self) -> None:
        loader = XmlLoader(max_node_count=10)
        with pytest.raises(XmlSafetyError, match="node count"):
            loader.load_string("<a>" + "<b/>" * 20 + "</a>")

    def test_within_node_count(self) -> None:
        root = XmlLoader(max_node_count=10).load_string("<a>" + "<b/>" * 5 + "</a>")
        assert len(root) == 5


class TestMalformedInput:
    def test_empty_string(self, loader: XmlLoader) -> None:
        with pytest.raises(XmlParseError):
            loader.load_string("")

    def test_text_only(self, loader: XmlLoader) -> None:
        with pytest.raises(XmlParseError):
            loader.load_string("just text")

    def test_two_roots(self, loader: XmlLoader) -> None:
        with pytest.raises(XmlParseError) as exc_info:
            loader.load_string("<a/>\n<b/>")
        assert exc_info.value.line == 2
