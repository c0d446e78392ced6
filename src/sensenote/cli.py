"""Command-line interface for SenseNote.

Captures highlights on HTML files, restores them into a (possibly edited)
copy of the document, and manages the highlight store.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from sensenote import _setup_logging
from sensenote.anchors.capture import capture_anchor
from sensenote.anchors.identity import highlight_link
from sensenote.anchors.resolve import materialize
from sensenote.config import get_settings
from sensenote.document.dom import load_document
from sensenote.document.linearize import linearize
from sensenote.errors import SenseNoteError
from sensenote.highlight.wrapper import apply_highlight
from sensenote.library import (
    DateSort,
    HighlightFilter,
    color_name,
    export_filename,
    export_markdown,
    filter_highlights,
    format_relative_date,
)
from sensenote.page import Page, ToastLog
from sensenote.restore import HighlightRestorer
from sensenote.store import (
    JsonHighlightStore,
    add_highlight,
    clear_highlights,
    delete_highlight,
    highlights_for_document,
)

if TYPE_CHECKING:
    from sensenote.anchors.models import Anchor
    from sensenote.document.dom import Document
    from sensenote.document.ranges import TextRange
    from sensenote.store import HighlightStore

console = Console()

PREVIEW_WIDTH = 60


def _preview(text: str, width: int = PREVIEW_WIDTH) -> str:
    text = " ".join(text.split())
    return text if len(text) <= width else text[: width - 3] + "..."


def _read_document(path: Path, con: Console) -> Document:
    """Load an HTML file or exit with error."""
    try:
        return load_document(path.read_bytes())
    except OSError as exc:
        con.print(f"[red]Error:[/] could not read {path}: {exc}")
        sys.exit(1)


def _select_text(document: Document, text: str, occurrence: int) -> TextRange | None:
    """Range over the *occurrence*-th (1-based) appearance of *text*."""
    linear = linearize(document.root)
    position = -1
    for _ in range(occurrence):
        position = linear.text.find(text, position + 1)
        if position == -1:
            return None
    return materialize(linear, position, position + len(text))


def _build_parser() -> argparse.ArgumentParser:
    """Build argparse parser for sensenote subcommands."""
    parser = argparse.ArgumentParser(
        prog="sensenote",
        description="Durable text highlights for HTML documents.",
    )
    parser.add_argument(
        "--store",
        type=Path,
        default=None,
        help="Highlight store file (default: STORE__PATH setting)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # capture
    capture_p = sub.add_parser("capture", help="Highlight text in an HTML file")
    capture_p.add_argument("html", type=Path, help="HTML file")
    capture_p.add_argument("--url", required=True, help="Address of the document")
    capture_p.add_argument("--text", required=True, help="Text to highlight")
    capture_p.add_argument(
        "--occurrence",
        type=int,
        default=1,
        help="Which occurrence of the text to highlight (default: 1)",
    )
    capture_p.add_argument(
        "--color", default=None, help="Palette name or #rrggbb (default: yellow)"
    )

    # restore
    restore_p = sub.add_parser("restore", help="Reapply stored highlights")
    restore_p.add_argument("html", type=Path, help="HTML file")
    restore_p.add_argument("--url", required=True, help="Address of the document")
    restore_p.add_argument(
        "--output", type=Path, default=None, help="Write highlighted HTML here"
    )

    # list
    list_p = sub.add_parser("list", help="List stored highlights")
    list_p.add_argument("--url", default=None, help="Only highlights for this page")
    list_p.add_argument(
        "--favorites", action="store_true", help="Only favorite highlights"
    )
    list_p.add_argument("--color", default=None, help="Only this color")
    list_p.add_argument("--category", default=None, help="Only this category")
    list_p.add_argument("--oldest", action="store_true", help="Oldest first")

    # export
    export_p = sub.add_parser("export", help="Export highlights as Markdown")
    export_p.add_argument(
        "--output", type=Path, default=None, help="Output file (default: stdout)"
    )

    # delete
    delete_p = sub.add_parser("delete", help="Delete one highlight")
    delete_p.add_argument("id", help="Highlight id")

    # clear
    clear_p = sub.add_parser("clear", help="Delete every highlight")
    clear_p.add_argument("--yes", action="store_true", help="Do not ask to confirm")

    return parser


def _resolve_color(value: str | None) -> str:
    anchor_config = get_settings().anchor
    if value is None:
        return anchor_config.default_color
    return anchor_config.palette.get(value.lower(), value)


async def _cmd_capture(
    store: HighlightStore,
    html: Path,
    *,
    url: str,
    text: str,
    occurrence: int = 1,
    color: str | None = None,
    console: Console | None = None,
) -> Anchor:
    """Capture a highlight of *text* in *html* and store it."""
    con = console or globals()["console"]
    settings = get_settings()
    document = _read_document(html, con)

    selection = _select_text(document, text, occurrence) if text.strip() else None
    if selection is None:
        con.print(f"[red]Error:[/] text not found (occurrence {occurrence}): {text!r}")
        sys.exit(1)

    highlight_color = _resolve_color(color)
    anchor = capture_anchor(
        selection,
        linearize(document.root),
        url=url,
        color=highlight_color,
        page_title=document.title,
        context_length=settings.anchor.context_length,
    )
    await add_highlight(store, anchor)
    apply_highlight(document, selection, anchor.id, highlight_color)

    con.print(f"[green]Highlight saved[/] {anchor.id}")
    link = highlight_link(url, anchor.id, settings.anchor.fragment_prefix)
    con.print(f"  Link: {link}")
    return anchor


async def _cmd_restore(
    store: HighlightStore,
    html: Path,
    *,
    url: str,
    output: Path | None = None,
    console: Console | None = None,
) -> None:
    """Restore stored highlights into *html*."""
    con = console or globals()["console"]
    document = _read_document(html, con)
    toasts = ToastLog()
    page = Page(document, url, notifier=toasts)

    restorer = HighlightRestorer(page, store)
    outcome = await restorer.restore()

    for toast in toasts.toasts:
        style = "yellow" if toast.type == "warning" else "green"
        con.print(f"[{style}]{toast.message}[/]")

    table = Table(title=f"Restore: {page.document_key}")
    table.add_column("Restored", style="green")
    table.add_column("Failed", style="red")
    table.add_column("Already present")
    table.add_row(str(outcome.restored), str(outcome.failed), str(outcome.skipped))
    con.print(table)

    for highlight_id, reason in outcome.failures.items():
        con.print(f"  [dim]{highlight_id}[/]: {reason}")

    if output is not None:
        output.write_text(document.html(), encoding="utf-8")
        con.print(f"Wrote {output}")


async def _cmd_list(
    store: HighlightStore,
    *,
    url: str | None = None,
    favorites: bool = False,
    color: str | None = None,
    category: str | None = None,
    oldest: bool = False,
    console: Console | None = None,
) -> None:
    """List highlights as a Rich table."""
    con = console or globals()["console"]
    if url is not None:
        highlights = await highlights_for_document(store, url)
    else:
        highlights = await store.load()

    highlight_filter = HighlightFilter(
        favorite_only=favorites,
        color=_resolve_color(color) if color else None,
        category=category,
        date_sort=DateSort.OLDEST if oldest else DateSort.NEWEST,
    )
    highlights = filter_highlights(highlights, highlight_filter)

    if not highlights:
        con.print("[yellow]No highlights found.[/]")
        return

    table = Table(title="Highlights")
    table.add_column("ID", style="dim")
    table.add_column("Text", style="cyan")
    table.add_column("Color")
    table.add_column("Category")
    table.add_column("★")
    table.add_column("Created")

    for h in highlights:
        table.add_row(
            h.id,
            _preview(h.exact_text),
            color_name(h.color),
            h.category,
            "★" if h.favorite else "",
            format_relative_date(h.timestamp),
        )

    con.print(table)


async def _cmd_export(
    store: HighlightStore,
    *,
    output: Path | None = None,
    console: Console | None = None,
) -> None:
    """Export every highlight as Markdown."""
    con = console or globals()["console"]
    highlights = await store.load()
    if not highlights:
        con.print("[yellow]No highlights to export.[/]")
        return

    markdown = export_markdown(highlights)
    if output is None:
        con.print(markdown, markup=False, highlight=False)
        return
    if output.is_dir():
        output = output / export_filename()
    output.write_text(markdown, encoding="utf-8")
    con.print(f"[green]Exported[/] {len(highlights)} highlight(s) to {output}")


async def _cmd_delete(
    store: HighlightStore,
    highlight_id: str,
    *,
    console: Console | None = None,
) -> None:
    con = console or globals()["console"]
    if await delete_highlight(store, highlight_id):
        con.print(f"[green]Deleted[/] {highlight_id}")
    else:
        con.print(f"[red]Error:[/] no highlight with id '{highlight_id}'")
        sys.exit(1)


async def _cmd_clear(
    store: HighlightStore,
    *,
    yes: bool = False,
    console: Console | None = None,
) -> None:
    con = console or globals()["console"]
    if not yes and not Confirm.ask(
        "Delete all highlights? This cannot be undone.", console=con
    ):
        con.print("Cancelled.")
        return
    count = await clear_highlights(store)
    con.print(f"[green]Deleted[/] {count} highlight(s)")


def main(argv: list[str] | None = None) -> None:
    """Run the sensenote command line.

    Usage:
        sensenote [--store FILE] <command> [options]

    Commands:
        capture <html> --url URL --text TEXT   Highlight text and store it
        restore <html> --url URL               Reapply stored highlights
        list                                   List stored highlights
        export                                 Export highlights as Markdown
        delete <id>                            Delete one highlight
        clear                                  Delete every highlight
    """
    parser = _build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    settings = get_settings()
    _setup_logging(settings.app.log_dir)
    store = JsonHighlightStore(args.store or settings.store.path)

    async def _run() -> None:
        match args.command:
            case "capture":
                await _cmd_capture(
                    store,
                    args.html,
                    url=args.url,
                    text=args.text,
                    occurrence=args.occurrence,
                    color=args.color,
                )
            case "restore":
                await _cmd_restore(store, args.html, url=args.url, output=args.output)
            case "list":
                await _cmd_list(
                    store,
                    url=args.url,
                    favorites=args.favorites,
                    color=args.color,
                    category=args.category,
                    oldest=args.oldest,
                )
            case "export":
                await _cmd_export(store, output=args.output)
            case "delete":
                await _cmd_delete(store, args.id)
            case "clear":
                await _cmd_clear(store, yes=args.yes)

    try:
        asyncio.run(_run())
    except SenseNoteError as exc:
        console.print(f"[red]Error:[/] {exc}")
        sys.exit(1)
