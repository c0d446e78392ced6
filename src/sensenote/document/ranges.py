"""Live ranges over a BeautifulSoup tree.

A boundary point is ``(node, offset)``: a character offset when the node is a
text node, a child index when it is an element (the DOM convention). Points
are compared through a document-order index built from the tree, so a range
can be read without mutating anything.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import chain
from typing import TYPE_CHECKING

from bs4 import NavigableString, Tag

from sensenote.document.dom import is_text_node

if TYPE_CHECKING:
    from bs4 import PageElement


def node_length(node: PageElement) -> int:
    """Characters in a text node, children in an element."""
    if isinstance(node, NavigableString):
        return len(node)
    if isinstance(node, Tag):
        return len(node.contents)
    return 0


def tree_root(node: PageElement) -> PageElement:
    """Walk up to the top of *node*'s tree."""
    while node.parent is not None:
        node = node.parent
    return node


def inclusive_ancestors(node: PageElement) -> list[PageElement]:
    """*node* followed by each of its ancestors, innermost first."""
    chain_: list[PageElement] = [node]
    while chain_[-1].parent is not None:
        chain_.append(chain_[-1].parent)
    return chain_


def common_ancestor(first: PageElement, second: PageElement) -> PageElement:
    """Deepest node that is an inclusive ancestor of both nodes."""
    second_chain = {id(node) for node in inclusive_ancestors(second)}
    for node in inclusive_ancestors(first):
        if id(node) in second_chain:
            return node
    msg = "Nodes share no ancestor"
    raise ValueError(msg)


def container_element(node: PageElement) -> Tag:
    """The element a boundary point lives in (text nodes defer to parent)."""
    if isinstance(node, Tag):
        return node
    if node.parent is None:
        msg = "Boundary text node is detached from the document"
        raise ValueError(msg)
    return node.parent


@dataclass
class BoundaryPoint:
    """One end of a range: ``(node, offset)``."""

    node: PageElement
    offset: int

    def __post_init__(self) -> None:
        length = node_length(self.node)
        if not 0 <= self.offset <= length:
            msg = f"Offset {self.offset} outside node of length {length}"
            raise ValueError(msg)


class _DocumentOrder:
    """Document-order index of every node in one tree (identity keyed)."""

    def __init__(self, root: PageElement) -> None:
        nodes = [root]
        if isinstance(root, Tag):
            nodes = list(chain([root], root.descendants))
        self.nodes = nodes
        self._index = {id(node): i for i, node in enumerate(nodes)}

    def index(self, node: PageElement) -> int:
        try:
            return self._index[id(node)]
        except KeyError:
            msg = "Boundary node does not belong to this document"
            raise ValueError(msg) from None

    def position(self, point: BoundaryPoint) -> tuple[int, int]:
        """Comparable ``(order, char_offset)`` for a boundary point."""
        node = point.node
        if not isinstance(node, Tag):
            return self.index(node), point.offset
        if point.offset < len(node.contents):
            return self.index(node.contents[point.offset]), 0
        # After the last descendant of the element
        return self.index(node) + sum(1 for _ in node.descendants) + 1, 0


@dataclass
class TextRange:
    """A contiguous span of a document between two boundary points."""

    start: BoundaryPoint
    end: BoundaryPoint

    def __post_init__(self) -> None:
        root = tree_root(self.start.node)
        if tree_root(self.end.node) is not root:
            msg = "Range boundaries belong to different documents"
            raise ValueError(msg)
        order = _DocumentOrder(root)
        if order.position(self.end) < order.position(self.start):
            msg = "Range end precedes its start"
            raise ValueError(msg)

    @property
    def collapsed(self) -> bool:
        order = _DocumentOrder(tree_root(self.start.node))
        return order.position(self.start) == order.position(self.end)

    def clone(self) -> TextRange:
        return TextRange(
            BoundaryPoint(self.start.node, self.start.offset),
            BoundaryPoint(self.end.node, self.end.offset),
        )

    def common_ancestor(self) -> PageElement:
        """Deepest node containing both boundary nodes (may be a text node)."""
        return common_ancestor(self.start.node, self.end.node)

    def to_string(self) -> str:
        """Text spanned by the range, as DOM ``Range.toString()`` reads it."""
        order = _DocumentOrder(tree_root(self.start.node))
        start_order, start_offset = order.position(self.start)
        end_order, end_offset = order.position(self.end)

        parts: list[str] = []
        for i in range(start_order, min(end_order + 1, len(order.nodes))):
            node = order.nodes[i]
            if not is_text_node(node):
                continue
            lo = start_offset if i == start_order else 0
            hi = end_offset if i == end_order else len(node)
            if hi > lo:
                parts.append(str(node)[lo:hi])
        return "".join(parts)
