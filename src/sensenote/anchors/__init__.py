"""Anchors: capture, identity and resolution of durable text selections."""

from sensenote.anchors.capture import capture_anchor
from sensenote.anchors.identity import (
    document_key,
    highlight_fragment,
    new_highlight_id,
    parse_highlight_fragment,
)
from sensenote.anchors.models import Anchor
from sensenote.anchors.resolve import find_offset, locate_anchor, materialize

__all__ = [
    "Anchor",
    "capture_anchor",
    "document_key",
    "find_offset",
    "highlight_fragment",
    "locate_anchor",
    "materialize",
    "new_highlight_id",
    "parse_highlight_fragment",
]
