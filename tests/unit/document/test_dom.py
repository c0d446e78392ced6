"""Tests for document loading and DOM helpers."""

from __future__ import annotations

from bs4 import BeautifulSoup, Comment, NavigableString

from sensenote.document.dom import (
    HIGHLIGHT_ID_ATTR,
    WRAPPER_CLASS,
    Document,
    detect_source_type,
    extract_title,
    is_rendered,
    is_text_node,
    is_wrapper,
    load_document,
    normalize,
    shallow_clone,
    text_to_html,
    wrapper_ancestor,
)


class TestDetectSourceType:
    """Tests for detect_source_type()."""

    def test_doctype_is_html(self) -> None:
        assert detect_source_type("<!DOCTYPE html><html></html>") == "html"

    def test_fragment_with_tags_is_html(self) -> None:
        assert detect_source_type("Intro <p>para</p>") == "html"

    def test_plain_text(self) -> None:
        """Angle brackets alone do not make text HTML."""
        assert detect_source_type("a < b and c > d") == "text"


class TestTextToHtml:
    """Tests for text_to_html()."""

    def test_paragraphs_and_line_breaks(self) -> None:
        html = text_to_html("first\nline\n\nsecond")
        assert html == "<p>first<br>line</p>\n<p>second</p>"

    def test_escapes_markup(self) -> None:
        assert text_to_html("<b>") == "<p>&lt;b&gt;</p>"

    def test_empty_text(self) -> None:
        assert text_to_html("") == "<p></p>"


class TestExtractTitle:
    """Tests for extract_title()."""

    def test_reads_title(self) -> None:
        html = "<html><head><title> My Page </title></head><body></body></html>"
        assert extract_title(html) == "My Page"

    def test_missing_title(self) -> None:
        assert extract_title("<p>no title</p>") == ""

    def test_empty_input(self) -> None:
        assert extract_title("") == ""


class TestNodePredicates:
    """Tests for is_text_node / is_wrapper / wrapper_ancestor / is_rendered."""

    def test_comment_is_not_text(self) -> None:
        soup = BeautifulSoup("<p>a<!-- note --></p>", "html.parser")
        text, comment = soup.p.contents
        assert is_text_node(text)
        assert isinstance(comment, Comment)
        assert not is_text_node(comment)

    def test_wrapper_class_list(self) -> None:
        soup = BeautifulSoup(
            f'<span class="x {WRAPPER_CLASS}">t</span>', "html.parser"
        )
        assert is_wrapper(soup.span)

    def test_wrapper_requires_exact_class(self) -> None:
        """A class that merely contains the marker is not a wrapper."""
        soup = BeautifulSoup(
            f'<span class="{WRAPPER_CLASS}-menu">t</span>', "html.parser"
        )
        assert not is_wrapper(soup.span)

    def test_wrapper_ancestor(self) -> None:
        soup = BeautifulSoup(
            f'<p><span class="{WRAPPER_CLASS}"><b>deep</b></span></p>', "html.parser"
        )
        assert wrapper_ancestor(soup.b.string) is soup.span
        assert wrapper_ancestor(soup.p) is None

    def test_script_text_not_rendered(self) -> None:
        soup = BeautifulSoup("<div><script>var x;</script>shown</div>", "html.parser")
        assert not is_rendered(soup.script.string)
        assert is_rendered(soup.div.contents[-1])


class TestNormalize:
    """Tests for normalize()."""

    def test_merges_adjacent_text(self) -> None:
        soup = BeautifulSoup("<p></p>", "html.parser")
        soup.p.append(NavigableString("Hel"))
        soup.p.append(NavigableString("lo"))
        normalize(soup.p)
        assert len(soup.p.contents) == 1
        assert str(soup.p) == "<p>Hello</p>"

    def test_drops_empty_text(self) -> None:
        soup = BeautifulSoup("<p><b>x</b></p>", "html.parser")
        soup.b.append(NavigableString(""))
        normalize(soup.p)
        assert len(soup.b.contents) == 1

    def test_recurses_into_children(self) -> None:
        soup = BeautifulSoup("<div><p></p></div>", "html.parser")
        soup.p.append(NavigableString("a"))
        soup.p.append(NavigableString("b"))
        normalize(soup.div)
        assert soup.p.contents == ["ab"]

    def test_does_not_merge_across_elements(self) -> None:
        soup = BeautifulSoup("<p>a<b>b</b>c</p>", "html.parser")
        normalize(soup.p)
        assert len(soup.p.contents) == 3


class TestShallowClone:
    """Tests for shallow_clone()."""

    def test_copies_attributes_not_children(self) -> None:
        soup = BeautifulSoup('<a href="/x" class="c d">text</a>', "html.parser")
        clone = shallow_clone(soup, soup.a)
        assert clone.name == "a"
        assert clone["href"] == "/x"
        assert clone["class"] == ["c", "d"]
        assert clone.contents == []

    def test_class_list_is_independent(self) -> None:
        soup = BeautifulSoup('<a class="c">text</a>', "html.parser")
        clone = shallow_clone(soup, soup.a)
        clone["class"].append("extra")
        assert soup.a["class"] == ["c"]


class TestDocument:
    """Tests for Document and load_document()."""

    def test_root_is_body(self) -> None:
        doc = Document.from_html("<html><body><p>x</p></body></html>")
        assert doc.root.name == "body"

    def test_root_for_fragment(self) -> None:
        doc = Document.from_html("<p>x</p>")
        assert doc.root is doc.soup

    def test_title_read_at_load(self) -> None:
        doc = Document.from_html(
            "<html><head><title>T</title></head><body>b</body></html>"
        )
        assert doc.title == "T"

    def test_find_wrappers(self) -> None:
        doc = Document.from_html(
            f'<p><span class="{WRAPPER_CLASS}" {HIGHLIGHT_ID_ATTR}="hl-1">a</span>'
            f'<span class="{WRAPPER_CLASS}" {HIGHLIGHT_ID_ATTR}="hl-2">b</span>'
            f'<span class="{WRAPPER_CLASS}" {HIGHLIGHT_ID_ATTR}="hl-1">c</span></p>'
        )
        assert [w.get_text() for w in doc.find_wrappers("hl-1")] == ["a", "c"]
        assert doc.find_wrapper("hl-2").get_text() == "b"
        assert doc.find_wrapper("hl-9") is None
        assert doc.wrapper_ids() == ["hl-1", "hl-2"]

    def test_load_plain_text(self) -> None:
        doc = load_document("one\n\ntwo")
        assert [p.get_text() for p in doc.soup.find_all("p")] == ["one", "two"]

    def test_load_bytes(self) -> None:
        doc = load_document("<p>café</p>".encode())
        assert doc.text_content() == "café"

    def test_load_latin1_bytes(self) -> None:
        doc = load_document("<p>café</p>".encode("latin-1"))
        assert doc.text_content() == "café"

    def test_forced_source_type(self) -> None:
        doc = load_document("<p>kept</p>", source_type="text")
        assert doc.text_content() == "<p>kept</p>"
