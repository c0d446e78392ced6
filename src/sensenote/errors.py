"""Exception hierarchy for capture, resolution, wrapping and storage.

Per-anchor failures (everything under ``ResolutionError`` plus
``WrapperApplicationFailed``) are recoverable: the restoration pipeline
counts them and moves on. ``StoreUnavailable`` propagates to the caller.
"""

from __future__ import annotations


class SenseNoteError(Exception):
    """Base class for all SenseNote errors."""


class EmptySelectionError(SenseNoteError, ValueError):
    """The selection contains no text once surrounding whitespace is removed."""


class CaptureDegraded(SenseNoteError):
    """Context could not be extracted; the anchor carries exact text only."""


class ResolutionError(SenseNoteError):
    """An anchor could not be turned back into a live range."""

    def __init__(self, highlight_id: str, message: str) -> None:
        super().__init__(message)
        self.highlight_id = highlight_id


class ResolutionNotFound(ResolutionError):
    """The anchor's text does not appear in the current document."""


class ResolutionMismatch(ResolutionError):
    """The materialized range does not spell the anchor's exact text."""


class AlreadyMaterialized(ResolutionError):
    """A wrapper for this anchor already exists in the document."""


class StructuralBoundaryError(SenseNoteError):
    """The range partially selects an element, so it cannot be surrounded."""


class WrapperApplicationFailed(SenseNoteError):
    """Wrapping a range failed on unexpected document structure."""

    def __init__(self, highlight_id: str, message: str) -> None:
        super().__init__(message)
        self.highlight_id = highlight_id


class StoreUnavailable(SenseNoteError):
    """The highlight store could not be read or written."""
