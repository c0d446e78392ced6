"""Apply and remove highlight wrappers around live ranges.

A wrapper is a ``<span class="sensenote-highlight">`` inserted around the
range's content. Two strategies, tried in order:

1. Surround: when both boundaries sit in the same element, the text nodes at
   the boundaries are split and the sibling run between them is moved into
   the wrapper. Nothing else in the tree changes.
2. Extract: when the range crosses element boundaries, the partially
   selected elements are split in two (the selected half is a shallow clone
   carrying ``data-sensenote-split``), the selected content is moved into
   the wrapper, and the wrapper is inserted where the content was.

Removal unwraps every element with the highlight id, rejoins split clones
with the halves they came from and merges adjacent text nodes, so the tree
returns to the structure it had before the wrapper was applied.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bs4 import Tag

from sensenote.anchors.models import DEFAULT_COLOR
from sensenote.document.dom import (
    HIGHLIGHT_ID_ATTR,
    SPLIT_ATTR,
    WRAPPER_CLASS,
    normalize,
    shallow_clone,
)
from sensenote.document.ranges import common_ancestor, container_element
from sensenote.errors import StructuralBoundaryError, WrapperApplicationFailed

if TYPE_CHECKING:
    from bs4 import BeautifulSoup, PageElement

    from sensenote.document.dom import Document
    from sensenote.document.ranges import BoundaryPoint, TextRange

logger = logging.getLogger(__name__)

# Split clone merges back into the sibling before / after it on removal
_MERGE_PREV = "prev"
_MERGE_NEXT = "next"


def make_wrapper(soup: BeautifulSoup, highlight_id: str, color: str) -> Tag:
    """Create a detached wrapper element for *highlight_id*."""
    return soup.new_tag(
        "span",
        attrs={
            "class": [WRAPPER_CLASS],
            HIGHLIGHT_ID_ATTR: highlight_id,
            "style": f"background-color: {color}; cursor: pointer;",
        },
    )


# ---------------------------------------------------------------------------
# Boundary splitting
# ---------------------------------------------------------------------------


def _split_point(
    node: PageElement, offset: int
) -> tuple[Tag, PageElement | None, PageElement]:
    """Turn a boundary point into ``(parent, ref)`` by splitting its text node.

    The point becomes "before *ref*" in *parent* (``ref`` None means the end
    of *parent*). The third item is the node now holding the text before the
    point: the left half after a split, otherwise *node* itself.
    """
    if isinstance(node, Tag):
        ref = node.contents[offset] if offset < len(node.contents) else None
        return node, ref, node

    parent = container_element(node)
    if offset == 0:
        return parent, node, node
    if offset >= len(node):
        return parent, node.next_sibling, node

    cls = type(node)
    left, right = cls(str(node)[:offset]), cls(str(node)[offset:])
    node.replace_with(left)
    left.insert_after(right)
    return parent, right, left


def _split_boundaries(
    start: BoundaryPoint, end: BoundaryPoint
) -> tuple[tuple[Tag, PageElement | None], tuple[Tag, PageElement | None]]:
    """Split both boundary text nodes, end first so the start stays valid."""
    end_parent, end_ref, end_left = _split_point(end.node, end.offset)
    start_node = end_left if start.node is end.node else start.node
    start_parent, start_ref, _ = _split_point(start_node, start.offset)
    return (start_parent, start_ref), (end_parent, end_ref)


def _move_run(
    first: PageElement | None, stop: PageElement | None
) -> list[PageElement]:
    """Detach siblings from *first* up to (not including) *stop*."""
    moved: list[PageElement] = []
    node = first
    while node is not None and node is not stop:
        following = node.next_sibling
        moved.append(node.extract())
        node = following
    return moved


# ---------------------------------------------------------------------------
# Strategy 1: surround
# ---------------------------------------------------------------------------


def surround_contents(rng: TextRange, wrapper: Tag) -> None:
    """Move the range's content into *wrapper*, in place.

    Raises:
        StructuralBoundaryError: If the boundaries are in different elements.
    """
    start_el = container_element(rng.start.node)
    end_el = container_element(rng.end.node)
    if start_el is not end_el:
        msg = "Range partially selects an element"
        raise StructuralBoundaryError(msg)

    (parent, start_ref), (_end_parent, end_ref) = _split_boundaries(
        rng.start, rng.end
    )
    if start_ref is None:
        parent.append(wrapper)
    else:
        start_ref.insert_before(wrapper)
    for node in _move_run(wrapper.next_sibling, end_ref):
        wrapper.append(node)


# ---------------------------------------------------------------------------
# Strategy 2: extract and re-insert
# ---------------------------------------------------------------------------


def _child_toward(ancestor: Tag, descendant: PageElement) -> Tag:
    """The child of *ancestor* on the path down to *descendant*."""
    node = descendant
    while node.parent is not ancestor:
        if node.parent is None:
            msg = "Node is not inside the expected ancestor"
            raise ValueError(msg)
        node = node.parent
    return node


class _Splitter:
    """Extracts the partially selected halves of elements as marked clones."""

    def __init__(self, soup: BeautifulSoup, highlight_id: str) -> None:
        self.soup = soup
        self.highlight_id = highlight_id

    def _clone(self, element: Tag, merge: str) -> Tag:
        clone = shallow_clone(self.soup, element)
        clone[SPLIT_ATTR] = f"{self.highlight_id}:{merge}"
        return clone

    def tail(self, ancestor: Tag, parent: Tag, ref: PageElement | None) -> Tag:
        """Extract everything in *ancestor* after the point ``(parent, ref)``."""
        clone = self._clone(ancestor, _MERGE_PREV)
        if ancestor is parent:
            for node in _move_run(ref, None):
                clone.append(node)
            return clone

        path_child = _child_toward(ancestor, parent)
        inner = self.tail(path_child, parent, ref)
        if inner.contents:
            clone.append(inner)
        for node in _move_run(path_child.next_sibling, None):
            clone.append(node)
        return clone

    def head(self, ancestor: Tag, parent: Tag, ref: PageElement | None) -> Tag:
        """Extract everything in *ancestor* before the point ``(parent, ref)``."""
        clone = self._clone(ancestor, _MERGE_NEXT)
        first = ancestor.contents[0] if ancestor.contents else None
        if ancestor is parent:
            for node in _move_run(first, ref):
                clone.append(node)
            return clone

        path_child = _child_toward(ancestor, parent)
        for node in _move_run(first, path_child):
            clone.append(node)
        inner = self.head(path_child, parent, ref)
        if inner.contents:
            clone.append(inner)
        return clone


def extract_and_wrap(
    soup: BeautifulSoup, rng: TextRange, wrapper: Tag, highlight_id: str
) -> None:
    """Wrap a range that crosses element boundaries.

    Equivalent to ``range.extractContents()`` followed by inserting the
    wrapper (holding the extracted fragment) at the collapsed range.
    """
    (start_parent, start_ref), (end_parent, end_ref) = _split_boundaries(
        rng.start, rng.end
    )
    common = common_ancestor(start_parent, end_parent)

    # Points at the very edge of an element move outside it, so whole
    # elements are moved instead of being split into an empty half and a clone
    while start_parent is not common:
        if start_ref is None:
            start_ref = start_parent.next_sibling
        elif start_ref.previous_sibling is None:
            start_ref = start_parent
        else:
            break
        start_parent = start_parent.parent
    while end_parent is not common:
        if end_ref is None:
            end_ref = end_parent.next_sibling
        elif end_ref.previous_sibling is None:
            end_ref = end_parent
        else:
            break
        end_parent = end_parent.parent

    splitter = _Splitter(soup, highlight_id)
    fragment: list[PageElement] = []

    if start_parent is common:
        between_start = start_ref
    else:
        start_child = _child_toward(common, start_parent)
        tail = splitter.tail(start_child, start_parent, start_ref)
        if tail.contents:
            fragment.append(tail)
        between_start = start_child.next_sibling

    end_child: Tag | None = None
    if end_parent is common:
        between_end = end_ref
    else:
        end_child = _child_toward(common, end_parent)
        between_end = end_child

    fragment.extend(_move_run(between_start, between_end))

    if end_child is not None:
        head = splitter.head(end_child, end_parent, end_ref)
        if head.contents:
            fragment.append(head)

    for node in fragment:
        wrapper.append(node)

    if between_end is None:
        common.append(wrapper)
    else:
        between_end.insert_before(wrapper)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def apply_highlight(
    document: Document,
    rng: TextRange,
    highlight_id: str,
    color: str = DEFAULT_COLOR,
) -> Tag:
    """Wrap *rng* in a highlight wrapper.

    Args:
        document: Document the range belongs to.
        rng: The range to highlight (not modified; a clone is used).
        highlight_id: Anchor id written to ``data-highlight-id``.
        color: CSS background color.

    Returns:
        The inserted wrapper element.

    Raises:
        WrapperApplicationFailed: If the range is collapsed or the tree is in
            a state the wrapper cannot handle.
    """
    if rng.collapsed:
        msg = "Invalid or collapsed range"
        raise WrapperApplicationFailed(highlight_id, msg)

    working = rng.clone()
    try:
        wrapper = make_wrapper(document.soup, highlight_id, color)
        try:
            surround_contents(working, wrapper)
            logger.debug("Wrapped highlight %s in place", highlight_id)
            return wrapper
        except StructuralBoundaryError:
            # Selection crosses elements - use the extract strategy
            pass

        extract_and_wrap(document.soup, working, wrapper, highlight_id)
        if wrapper.parent is not None:
            normalize(wrapper.parent)
        logger.debug("Wrapped highlight %s across element boundaries", highlight_id)
        return wrapper
    except (ValueError, TypeError, AttributeError, IndexError) as exc:
        logger.exception("Error applying highlight %s", highlight_id)
        msg = f"Could not wrap highlight {highlight_id}: {exc}"
        raise WrapperApplicationFailed(highlight_id, msg) from exc


def _rejoin_splits(document: Document, highlight_id: str) -> None:
    """Merge clones made by *highlight_id*'s wrapper back into their halves."""
    prefix = f"{highlight_id}:"
    clones = document.soup.find_all(
        lambda tag: str(tag.get(SPLIT_ATTR, "")).startswith(prefix)
    )
    for clone in clones:
        merge = str(clone[SPLIT_ATTR]).rpartition(":")[2]
        target = clone.previous_sibling if merge == _MERGE_PREV else clone.next_sibling
        if not isinstance(target, Tag) or target.name != clone.name:
            del clone[SPLIT_ATTR]
            continue

        children = list(clone.contents)
        if merge == _MERGE_PREV:
            for child in children:
                target.append(child)
        else:
            for i, child in enumerate(children):
                target.insert(i, child)
        clone.decompose()


def remove_highlight(document: Document, highlight_id: str) -> bool:
    """Remove the wrapper(s) for *highlight_id*, restoring the original tree.

    Returns:
        True if a wrapper was found and removed.
    """
    wrappers = document.find_wrappers(highlight_id)
    if not wrappers:
        logger.debug("No wrapper for highlight %s", highlight_id)
        return False

    for wrapper in wrappers:
        wrapper.unwrap()
    _rejoin_splits(document, highlight_id)
    normalize(document.root)

    logger.debug("Removed %d wrapper(s) for %s", len(wrappers), highlight_id)
    return True
