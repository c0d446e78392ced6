"""Highlight library: filtering, sorting, display helpers and Markdown export."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from sensenote.config import DEFAULT_PALETTE

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sensenote.anchors.models import Anchor

EXPORT_TITLE = "SenseNote Export"


class DateSort(StrEnum):
    NEWEST = "newest"
    OLDEST = "oldest"


@dataclass(frozen=True)
class HighlightFilter:
    """Library filter. ``None`` for color or category means "all"."""

    favorite_only: bool = False
    color: str | None = None
    category: str | None = None
    date_sort: DateSort = DateSort.NEWEST

    def matches(self, highlight: Anchor) -> bool:
        if self.favorite_only and not highlight.favorite:
            return False
        if self.color is not None and highlight.color != self.color:
            return False
        return self.category is None or highlight.category == self.category


def filter_highlights(
    highlights: Iterable[Anchor], highlight_filter: HighlightFilter | None = None
) -> list[Anchor]:
    """Apply *highlight_filter* and sort by creation time."""
    highlight_filter = highlight_filter or HighlightFilter()
    selected = [h for h in highlights if highlight_filter.matches(h)]
    selected.sort(
        key=lambda h: h.timestamp,
        reverse=highlight_filter.date_sort is DateSort.NEWEST,
    )
    return selected


def color_name(color: str) -> str:
    """Palette name of a color; unknown colors read as yellow."""
    for name, value in DEFAULT_PALETTE.items():
        if value.lower() == color.lower():
            return name
    return "yellow"


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'} ago"


def format_relative_date(moment: datetime, *, now: datetime | None = None) -> str:
    """Human-friendly age: "Just now", "5 mins ago" ... then a short date."""
    now = now or datetime.now(UTC)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    seconds = (now - moment).total_seconds()
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return _plural(minutes, "min")
    if hours < 24:
        return _plural(hours, "hour")
    if days < 7:
        return _plural(days, "day")
    return f"{moment:%b} {moment.day}, {moment.year}"


def _format_timestamp(moment: datetime) -> str:
    return f"{moment:%Y-%m-%d %H:%M:%S}"


def export_markdown(
    highlights: Iterable[Anchor], *, now: datetime | None = None
) -> str:
    """Render highlights as the Markdown export document."""
    highlights = list(highlights)
    now = now or datetime.now(UTC)

    lines = [
        f"# {EXPORT_TITLE}",
        "",
        f"Exported: {_format_timestamp(now)}",
        f"Total Highlights: {len(highlights)}",
        "",
        "---",
        "",
    ]
    for index, highlight in enumerate(highlights, start=1):
        lines += [
            f"## {index}. {highlight.page_title}",
            "",
            "**Highlighted Text:**",
            f"> {highlight.exact_text}",
            "",
        ]
        if highlight.note:
            lines += ["**Note:**", highlight.note, ""]
        if highlight.category:
            lines += [f"**Category:** {highlight.category}", ""]
        url = highlight.document_key
        lines += [
            f"**Source:** [{url}]({url})",
            f"**Date:** {_format_timestamp(highlight.timestamp)}",
            "",
            "---",
            "",
        ]
    return "\n".join(lines)


def export_filename(now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    return f"sensenote-export-{int(now.timestamp() * 1000)}.md"
