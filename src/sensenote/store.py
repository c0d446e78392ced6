"""Highlight record storage and CRUD helpers.

The store is a flat list of anchors with last-write-wins semantics. Every
helper that mutates annotation fields re-reads the list first, so an edit
never clobbers records written by another part of the pipeline since the
caller last looked.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol

from pydantic import ValidationError

from sensenote.anchors.identity import document_key
from sensenote.anchors.models import Anchor
from sensenote.errors import StoreUnavailable

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

# Top-level key of the stored JSON object (matches the extension's storage)
STORE_KEY = "highlights"


class HighlightStore(Protocol):
    """Persistence collaborator for anchors."""

    async def load(self) -> list[Anchor]:
        """Return every stored anchor, in stored order."""
        ...

    async def save(self, highlights: list[Anchor]) -> None:
        """Replace the stored list."""
        ...


def _parse_records(records: object) -> list[Anchor]:
    if not isinstance(records, list):
        msg = f"Expected a list of highlight records, got {type(records).__name__}"
        raise StoreUnavailable(msg)
    try:
        return [Anchor.model_validate(record) for record in records]
    except ValidationError as exc:
        msg = f"Invalid highlight record in store: {exc}"
        raise StoreUnavailable(msg) from exc


class MemoryHighlightStore:
    """In-process store holding serialised records (used by tests)."""

    def __init__(self, highlights: list[Anchor] | None = None) -> None:
        self._records = [h.to_record() for h in highlights or []]

    async def load(self) -> list[Anchor]:
        return _parse_records(list(self._records))

    async def save(self, highlights: list[Anchor]) -> None:
        self._records = [h.to_record() for h in highlights]


class JsonHighlightStore:
    """Stores anchors as ``{"highlights": [...]}`` in a JSON file.

    A missing file is an empty store. Unreadable or malformed files raise
    ``StoreUnavailable``.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def _read(self) -> list[Anchor]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            msg = f"Could not read highlight store {self.path}: {exc}"
            raise StoreUnavailable(msg) from exc
        if not isinstance(data, dict):
            msg = f"Highlight store {self.path} is not a JSON object"
            raise StoreUnavailable(msg)
        return _parse_records(data.get(STORE_KEY, []))

    def _write(self, highlights: list[Anchor]) -> None:
        payload = {STORE_KEY: [h.to_record() for h in highlights]}
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8"
            )
            tmp_path.replace(self.path)
        except OSError as exc:
            msg = f"Could not write highlight store {self.path}: {exc}"
            raise StoreUnavailable(msg) from exc

    async def load(self) -> list[Anchor]:
        return await asyncio.to_thread(self._read)

    async def save(self, highlights: list[Anchor]) -> None:
        await asyncio.to_thread(self._write, highlights)
        logger.debug("Saved %d highlight(s) to %s", len(highlights), self.path)


# ---------------------------------------------------------------------------
# CRUD helpers
# ---------------------------------------------------------------------------


async def highlights_for_document(store: HighlightStore, url: str) -> list[Anchor]:
    """Anchors whose document key matches *url* (fragment ignored)."""
    key = document_key(url)
    return [h for h in await store.load() if h.document_key == key]


async def get_highlight(store: HighlightStore, highlight_id: str) -> Anchor | None:
    """A single anchor by id, freshly read."""
    for highlight in await store.load():
        if highlight.id == highlight_id:
            return highlight
    return None


async def add_highlight(store: HighlightStore, anchor: Anchor) -> None:
    """Append *anchor* to the store."""
    highlights = await store.load()
    highlights.append(anchor)
    await store.save(highlights)


async def update_annotation(
    store: HighlightStore,
    highlight_id: str,
    *,
    note: str | None = None,
    category: str | None = None,
    favorite: bool | None = None,
    color: str | None = None,
) -> Anchor | None:
    """Update annotation fields of one anchor; ``None`` leaves a field alone.

    Returns:
        The updated anchor, or None if the id is unknown.
    """
    highlights = await store.load()
    for highlight in highlights:
        if highlight.id != highlight_id:
            continue
        if note is not None:
            highlight.note = note
        if category is not None:
            highlight.category = category
        if favorite is not None:
            highlight.favorite = favorite
        if color is not None:
            highlight.color = color
        highlight.last_modified = datetime.now(UTC)
        await store.save(highlights)
        return highlight

    logger.warning("Highlight not found for update: %s", highlight_id)
    return None


async def toggle_favorite(store: HighlightStore, highlight_id: str) -> Anchor | None:
    """Flip the favorite flag of one anchor."""
    highlight = await get_highlight(store, highlight_id)
    if highlight is None:
        return None
    return await update_annotation(
        store, highlight_id, favorite=not highlight.favorite
    )


async def delete_highlight(store: HighlightStore, highlight_id: str) -> bool:
    """Remove one anchor. Returns True if it existed."""
    highlights = await store.load()
    remaining = [h for h in highlights if h.id != highlight_id]
    if len(remaining) == len(highlights):
        return False
    await store.save(remaining)
    return True


async def clear_highlights(store: HighlightStore) -> int:
    """Delete every anchor. Returns how many were removed."""
    count = len(await store.load())
    await store.save([])
    return count


async def existing_categories(store: HighlightStore) -> list[str]:
    """Distinct non-blank categories, in first-use order."""
    seen: dict[str, None] = {}
    for highlight in await store.load():
        if highlight.category.strip():
            seen.setdefault(highlight.category, None)
    return list(seen)
