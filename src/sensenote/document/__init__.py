"""Document model: parsing, live ranges and text linearization."""

from sensenote.document.dom import (
    HIGHLIGHT_ID_ATTR,
    WRAPPER_CLASS,
    Document,
    load_document,
    normalize,
)
from sensenote.document.linearize import LinearText, TextRun, linearize
from sensenote.document.ranges import BoundaryPoint, TextRange

__all__ = [
    "HIGHLIGHT_ID_ATTR",
    "WRAPPER_CLASS",
    "BoundaryPoint",
    "Document",
    "LinearText",
    "TextRange",
    "TextRun",
    "linearize",
    "load_document",
    "normalize",
]
