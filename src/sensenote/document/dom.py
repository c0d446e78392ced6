"""Document loading and DOM helpers on top of BeautifulSoup.

The live document is a ``bs4`` tree. Text nodes are ``NavigableString``
instances, which compare equal by *value*, so every helper here compares
nodes by identity (``is``) and uses ``Tag.index`` (identity based) rather
than ``list.index``.
"""

# Pattern: Functional Core (pure helpers plus a thin Document wrapper)

from __future__ import annotations

import html as html_module
import logging
import re
from typing import TYPE_CHECKING, Literal

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString
from selectolax.lexbor import LexborHTMLParser

if TYPE_CHECKING:
    from bs4 import PageElement

logger = logging.getLogger(__name__)

# Reserved marker class and attributes carried by highlight wrappers
WRAPPER_CLASS = "sensenote-highlight"
HIGHLIGHT_ID_ATTR = "data-highlight-id"
# Set on elements cloned when a wrapper splits an element in two
SPLIT_ATTR = "data-sensenote-split"

# Containers whose text is never rendered
NON_RENDERED_TAGS = frozenset(
    ("script", "style", "noscript", "template", "head", "title")
)

SourceType = Literal["html", "text"]


def _decode_bytes(content: bytes) -> str:
    """Decode bytes to string for content type detection."""
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        # Fall back to latin-1 which accepts all byte values
        return content.decode("latin-1")


def detect_source_type(content: str) -> SourceType:
    """Detect whether *content* is HTML markup or plain text.

    Detection heuristics:
        - HTML: Starts with <!DOCTYPE, <html, or contains HTML-like tags
        - Text: Default fallback
    """
    stripped = content.lstrip()
    lower = stripped.lower()
    if lower.startswith("<!doctype") or lower.startswith("<html"):
        return "html"

    if re.search(
        r"<(div|p|span|h[1-6]|ul|ol|li|table|body|article|section|b|i|em|strong)\b",
        stripped,
        re.IGNORECASE,
    ):
        return "html"

    return "text"


def text_to_html(text: str) -> str:
    """Convert plain text to HTML paragraphs.

    Double newlines are paragraph breaks, single newlines become ``<br>``.
    """
    escaped = html_module.escape(text)

    html_parts = []
    for para in escaped.split("\n\n"):
        if para.strip():
            html_parts.append(f"<p>{para.replace(chr(10), '<br>')}</p>")

    return "\n".join(html_parts) if html_parts else "<p></p>"


def extract_title(html: str) -> str:
    """Read the document ``<title>`` text, or an empty string."""
    if not html:
        return ""
    title = LexborHTMLParser(html).css_first("title")
    if title is None:
        return ""
    return title.text(strip=True)


def is_text_node(node: PageElement | None) -> bool:
    """True for character data that is part of the document's text.

    Comments, doctypes, declarations, CDATA sections and processing
    instructions are ``NavigableString`` subclasses too, but carry no text.
    """
    return isinstance(node, NavigableString) and not isinstance(
        node, PreformattedString
    )


def is_wrapper(node: PageElement | None) -> bool:
    """True if *node* is a highlight wrapper element."""
    if not isinstance(node, Tag):
        return False
    classes = node.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return WRAPPER_CLASS in classes


def wrapper_ancestor(node: PageElement) -> Tag | None:
    """Return the nearest highlight wrapper enclosing *node*, if any."""
    parent = node.parent
    while parent is not None:
        if is_wrapper(parent):
            return parent
        parent = parent.parent
    return None


def is_rendered(node: PageElement) -> bool:
    """False when *node* sits inside a script/style/head-like container."""
    parent = node.parent
    while parent is not None:
        if parent.name in NON_RENDERED_TAGS:
            return False
        parent = parent.parent
    return True


def normalize(tag: Tag) -> None:
    """Merge adjacent text nodes and drop empty ones, recursively.

    Mirrors DOM ``Node.normalize()``. Only text nodes of the same class are
    merged, so script text never fuses with ordinary text.
    """
    for child in list(tag.contents):
        if isinstance(child, Tag):
            normalize(child)

    previous: NavigableString | None = None
    for child in list(tag.contents):
        if not is_text_node(child):
            previous = None
            continue
        if not child:
            child.extract()
            continue
        if previous is not None and type(previous) is type(child):
            merged = type(previous)(str(previous) + str(child))
            previous.replace_with(merged)
            child.extract()
            previous = merged
        else:
            previous = child


def shallow_clone(soup: BeautifulSoup, tag: Tag) -> Tag:
    """Copy *tag*'s name and attributes without its children."""
    attrs = {
        key: list(value) if isinstance(value, list) else value
        for key, value in tag.attrs.items()
    }
    return soup.new_tag(tag.name, attrs=attrs)


class Document:
    """A parsed, mutable HTML document.

    Attributes:
        soup: The BeautifulSoup tree (mutated in place by wrapper operations).
        title: Document title, read once at load time.
    """

    def __init__(self, soup: BeautifulSoup, title: str = "") -> None:
        self.soup = soup
        self.title = title

    @classmethod
    def from_html(cls, html: str) -> Document:
        """Parse *html* into a Document."""
        return cls(BeautifulSoup(html, "html.parser"), title=extract_title(html))

    @property
    def root(self) -> Tag:
        """The ``<body>`` element, or the whole tree for fragments."""
        body = self.soup.body
        return body if body is not None else self.soup

    def find_wrappers(self, highlight_id: str) -> list[Tag]:
        """All wrapper elements carrying *highlight_id*, in document order."""
        return self.soup.find_all(
            lambda tag: is_wrapper(tag) and tag.get(HIGHLIGHT_ID_ATTR) == highlight_id
        )

    def find_wrapper(self, highlight_id: str) -> Tag | None:
        """First wrapper element carrying *highlight_id*, or None."""
        wrappers = self.find_wrappers(highlight_id)
        return wrappers[0] if wrappers else None

    def wrapper_ids(self) -> list[str]:
        """Highlight ids present in the document, first occurrence order."""
        seen: dict[str, None] = {}
        for tag in self.soup.find_all(is_wrapper):
            highlight_id = tag.get(HIGHLIGHT_ID_ATTR)
            if highlight_id:
                seen.setdefault(str(highlight_id), None)
        return list(seen)

    def text_content(self) -> str:
        """Concatenated text of every text node under the root."""
        return "".join(
            str(node) for node in self.root.descendants if is_text_node(node)
        )

    def html(self) -> str:
        """Serialise the current tree."""
        return str(self.soup)


def load_document(
    content: str | bytes, source_type: SourceType | None = None
) -> Document:
    """Load raw content into a Document.

    Args:
        content: HTML or plain text (string or bytes).
        source_type: Force "html" or "text"; detected when omitted.

    Returns:
        The parsed Document.
    """
    if isinstance(content, bytes):
        content = _decode_bytes(content)

    kind = source_type or detect_source_type(content)
    html = text_to_html(content) if kind == "text" else content
    logger.debug("Loaded %s document (%d chars)", kind, len(content))
    return Document.from_html(html)
