"""Highlight wrappers: non-destructive marks around live ranges."""

from sensenote.highlight.wrapper import (
    DEFAULT_COLOR,
    apply_highlight,
    remove_highlight,
)

__all__ = ["DEFAULT_COLOR", "apply_highlight", "remove_highlight"]
