"""Anchor resolution: find a stored anchor again in a (possibly changed) document.

Search policy, in order:

1. Context-qualified: ``context_before + exact_text + context_after``, when
   either context window is non-empty.
2. Bare text: ``exact_text`` alone.

The leftmost occurrence always wins. The matched span is then mapped back to
a live range through the run list, and the range's text must equal the
anchor's exact text, otherwise the match is discarded.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sensenote.document.linearize import linearize
from sensenote.document.ranges import BoundaryPoint, TextRange
from sensenote.errors import (
    AlreadyMaterialized,
    ResolutionMismatch,
    ResolutionNotFound,
)

if TYPE_CHECKING:
    from sensenote.anchors.models import Anchor
    from sensenote.document.dom import Document
    from sensenote.document.linearize import LinearText

logger = logging.getLogger(__name__)


def find_offset(anchor: Anchor, text: str) -> int:
    """Linear offset where *anchor*'s exact text starts in *text*.

    Raises:
        ResolutionNotFound: If neither search finds the text.
    """
    before = anchor.context_before
    after = anchor.context_after

    if before or after:
        position = text.find(before + anchor.exact_text + after)
        if position != -1:
            logger.debug("Found exact match with context for %s", anchor.id)
            return position + len(before)

    position = text.find(anchor.exact_text)
    if position == -1:
        msg = f"Text not found on page: {anchor.preview!r}"
        raise ResolutionNotFound(anchor.id, msg)
    logger.debug("Found text without context for %s", anchor.id)
    return position


def materialize(linear: LinearText, start: int, end: int) -> TextRange:
    """Build a live range for the linear span ``[start, end)``.

    Raises:
        ValueError: If the span is empty or falls outside the runs.
    """
    if end <= start:
        msg = f"Empty span [{start}, {end})"
        raise ValueError(msg)

    located_start = linear.locate(start)
    located_end = linear.locate(end, at_end=True)
    if located_start is None or located_end is None:
        msg = f"Span [{start}, {end}) is outside the document text"
        raise ValueError(msg)

    start_run, start_offset = located_start
    end_run, end_offset = located_end
    return TextRange(
        BoundaryPoint(start_run.node, start_offset),
        BoundaryPoint(end_run.node, end_offset),
    )


def locate_anchor(
    anchor: Anchor, document: Document, linear: LinearText | None = None
) -> TextRange:
    """Resolve *anchor* to a verified live range in *document*.

    Args:
        anchor: The stored anchor (never modified).
        document: Document to search.
        linear: Linearization to reuse; computed fresh when omitted.

    Raises:
        AlreadyMaterialized: If a wrapper for the anchor is already present.
        ResolutionNotFound: If the anchor's text is absent.
        ResolutionMismatch: If the mapped range does not spell the text.
    """
    if document.find_wrapper(anchor.id) is not None:
        msg = f"Highlight already exists on page: {anchor.id}"
        raise AlreadyMaterialized(anchor.id, msg)

    if linear is None:
        linear = linearize(document.root)

    start = find_offset(anchor, linear.text)
    end = start + len(anchor.exact_text)

    try:
        rng = materialize(linear, start, end)
    except ValueError as exc:
        msg = f"Could not find text nodes for range: {exc}"
        raise ResolutionMismatch(anchor.id, msg) from exc

    range_text = rng.to_string()
    if range_text != anchor.exact_text:
        msg = (
            f"Range text mismatch. Expected: {anchor.exact_text[:30]!r} "
            f"Got: {range_text[:30]!r}"
        )
        raise ResolutionMismatch(anchor.id, msg)

    logger.debug("Resolved highlight %s at offset %d", anchor.id, start)
    return rng
