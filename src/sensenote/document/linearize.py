"""Text linearization: a document's rendered text as one offset-indexed string.

Walks text nodes in document order and records, for each contributing node,
the ``[start, end)`` span it occupies in the concatenated text. The run list
is the only bridge from a linear offset back to a live node, so it must be
rebuilt whenever the document may have changed; nothing here is cached.

Skipped text nodes:
- whitespace-only nodes (indentation between tags)
- text inside non-rendered containers (script, style, head, ...)
- text inside an existing highlight wrapper, so highlighted text is never
  counted as plain text again
"""

from __future__ import annotations

import logging
from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sensenote.document.dom import is_rendered, is_text_node, wrapper_ancestor

if TYPE_CHECKING:
    from bs4 import NavigableString, PageElement, Tag

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class TextRun:
    """One text node's contribution to the linear text.

    Attributes:
        index: Position of this run in the run list.
        node: The owning text node (compare with ``is``).
        start: Linear offset of the first character.
        end: Linear offset one past the last character.
        text: The node's raw text.
    """

    index: int
    node: NavigableString
    start: int
    end: int
    text: str


@dataclass
class LinearText:
    """Linear text of a document plus the runs it was built from."""

    text: str
    runs: list[TextRun]
    _starts: list[int] = field(init=False, repr=False)
    _ends: list[int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._starts = [run.start for run in self.runs]
        self._ends = [run.end for run in self.runs]

    def __len__(self) -> int:
        return len(self.text)

    def run_for_node(self, node: PageElement) -> TextRun | None:
        """The run owned by *node* (identity match), or None."""
        for run in self.runs:
            if run.node is node:
                return run
        return None

    def locate(
        self, offset: int, *, at_end: bool = False
    ) -> tuple[TextRun, int] | None:
        """Map a linear offset to ``(run, local_offset)``.

        A start offset resolves to the run whose ``[start, end)`` contains
        it. An end offset (``at_end=True``) resolves to the run whose
        ``(start, end]`` contains it, so an end that lands on a run boundary
        stays at the end of the preceding run.

        Returns:
            The run and the offset inside its node, or None when the offset
            is outside the text.
        """
        if at_end:
            i = bisect_left(self._ends, offset)
            if i < len(self.runs) and self.runs[i].start < offset:
                run = self.runs[i]
                return run, offset - run.start
            return None

        i = bisect_right(self._starts, offset) - 1
        if i >= 0 and offset < self.runs[i].end:
            run = self.runs[i]
            return run, offset - run.start
        return None


def linearize(root: Tag) -> LinearText:
    """Build the linear text model for everything under *root*."""
    runs: list[TextRun] = []
    parts: list[str] = []
    offset = 0

    for node in root.descendants:
        if not is_text_node(node):
            continue
        text = str(node)
        if not text.strip():
            continue
        if not is_rendered(node) or wrapper_ancestor(node) is not None:
            continue
        runs.append(TextRun(len(runs), node, offset, offset + len(text), text))
        parts.append(text)
        offset += len(text)

    logger.debug("Linearized %d text runs (%d chars)", len(runs), offset)
    return LinearText("".join(parts), runs)
