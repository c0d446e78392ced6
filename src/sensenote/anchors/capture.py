"""Anchor capture: turn a live selection into a durable Anchor.

The selection's absolute offset comes from the run that owns its start node;
context windows are sliced from the linear text around it. If the start node
is not a run (a selection that starts in an element boundary, a generated
region or inside an existing highlight), capture degrades to the exact text
alone rather than failing.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sensenote.anchors.models import DEFAULT_COLOR, Anchor
from sensenote.errors import CaptureDegraded, EmptySelectionError

if TYPE_CHECKING:
    from sensenote.document.linearize import LinearText
    from sensenote.document.ranges import TextRange

logger = logging.getLogger(__name__)

CONTEXT_LENGTH = 50


def selected_text(selection: TextRange) -> str:
    """The selection's text with surrounding whitespace removed."""
    return selection.to_string().strip()


def _locate_selection(
    selection: TextRange, linear: LinearText, text: str, span: int
) -> tuple[int, int]:
    """Absolute ``[start, end)`` of the selected text in the linear text.

    The stripped text is searched for from the start boundary. Whitespace the
    range string holds but the linear text skips means the offset cannot be
    derived from the string alone; the match must begin within *span*
    characters of the boundary.

    Raises:
        CaptureDegraded: If the selection's start node is not a text run, or
            the text does not follow the start boundary.
    """
    run = linear.run_for_node(selection.start.node)
    if run is None:
        msg = "Selection start is not part of the linear text"
        raise CaptureDegraded(msg)
    boundary = run.start + selection.start.offset
    start = linear.text.find(text, boundary)
    if start == -1 or start - boundary > span:
        msg = f"Selected text does not follow offset {boundary}"
        raise CaptureDegraded(msg)
    return start, start + len(text)


def capture_anchor(
    selection: TextRange,
    linear: LinearText,
    *,
    url: str,
    color: str = DEFAULT_COLOR,
    page_title: str = "",
    context_length: int = CONTEXT_LENGTH,
    highlight_id: str | None = None,
) -> Anchor:
    """Build an Anchor for a live selection.

    Args:
        selection: The selected range.
        linear: Fresh linearization of the document the range lives in.
        url: Current address (the fragment is stripped).
        color: Highlight color chosen by the user.
        page_title: Document title stored for display.
        context_length: Maximum length of each context window.
        highlight_id: Explicit id; generated when omitted.

    Returns:
        A fully populated Anchor (not yet applied to the document).

    Raises:
        EmptySelectionError: If the selection holds no text.
    """
    raw = selection.to_string()
    text = raw.strip()
    if not text:
        msg = "No text to highlight"
        raise EmptySelectionError(msg)

    start = end = 0
    before = after = ""
    try:
        start, end = _locate_selection(selection, linear, text, len(raw))
        before = linear.text[max(0, start - context_length) : start]
        after = linear.text[end : end + context_length]
        logger.debug(
            "Captured context - offset: %d, before: %d chars, after: %d chars",
            start,
            len(before),
            len(after),
        )
    except CaptureDegraded as exc:
        logger.debug("Could not extract context, using exact text only: %s", exc)

    fields = {
        "exact_text": text,
        "context_before": before,
        "context_after": after,
        "document_key": url,
        "page_title": page_title,
        "captured_start_offset": start,
        "captured_end_offset": end,
        "color": color,
    }
    if highlight_id is not None:
        fields["id"] = highlight_id
    return Anchor(**fields)
