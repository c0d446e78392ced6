"""Shared pytest fixtures for SenseNote tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from sensenote.config import get_settings
from sensenote.document.dom import Document
from sensenote.document.linearize import linearize
from sensenote.document.ranges import BoundaryPoint, TextRange
from sensenote.page import Page, ToastLog
from sensenote.store import MemoryHighlightStore

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from sensenote.config import Settings

PAGE_URL = "https://example.com/article"

# Every delay in the pipeline is zero under test
_FAST_ENV = {
    "RESTORE__SCROLL_MAX_ATTEMPTS": "3",
    "RESTORE__SCROLL_RETRY_DELAY": "0",
    "RESTORE__SCROLL_INITIAL_DELAY": "0",
    "RESTORE__FRAGMENT_CLEAR_DELAY": "0",
    "UI__SELECTION_DEBOUNCE": "0",
    "UI__OUTSIDE_CLICK_DELAY": "0",
    "UI__DISMISS_SUPPRESSION": "0",
    "UI__NOTE_PROMPT_DELAY": "0",
    "UI__TOAST_DURATION": "0",
}


@pytest.fixture(autouse=True)
def fast_settings(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Iterator[Settings]:
    """Settings with zero delays and storage under tmp_path."""
    for key, value in _FAST_ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("STORE__PATH", str(tmp_path / "highlights.json"))
    monkeypatch.setenv("APP__LOG_DIR", str(tmp_path / "logs"))
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def settings(fast_settings: Settings) -> Settings:
    return fast_settings


@pytest.fixture
def store() -> MemoryHighlightStore:
    return MemoryHighlightStore()


@pytest.fixture
def make_page() -> Callable[..., Page]:
    """Build a Page from HTML with a recording notifier."""

    def _make(html: str, url: str = PAGE_URL) -> Page:
        return Page(Document.from_html(html), url, notifier=ToastLog())

    return _make


@pytest.fixture
def select_text() -> Callable[..., TextRange]:
    """Build a live selection over the n-th occurrence of some text.

    Mirrors what a user drag produces: boundaries sit in text nodes.
    """

    def _select(document: Document, text: str, occurrence: int = 1) -> TextRange:
        linear = linearize(document.root)
        position = -1
        for _ in range(occurrence):
            position = linear.text.find(text, position + 1)
            assert position != -1, f"{text!r} not in {linear.text!r}"
        start_run, start_offset = linear.locate(position)
        end_run, end_offset = linear.locate(position + len(text), at_end=True)
        return TextRange(
            BoundaryPoint(start_run.node, start_offset),
            BoundaryPoint(end_run.node, end_offset),
        )

    return _select
