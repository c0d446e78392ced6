"""Per-page interaction session: selection, menus, editing and deletion.

``PageSession`` receives discrete input events (a mouseup with the current
selection, a color choice, a click on a highlight, dialog buttons) and drives
capture, storage and wrapping. Anything that reads an anchor for display
re-reads it from the store first, so edits made elsewhere are never lost.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sensenote.anchors.capture import capture_anchor
from sensenote.config import get_settings
from sensenote.document.dom import is_wrapper, wrapper_ancestor
from sensenote.document.linearize import linearize
from sensenote.errors import (
    EmptySelectionError,
    StoreUnavailable,
    WrapperApplicationFailed,
)
from sensenote.highlight.wrapper import apply_highlight, remove_highlight
from sensenote.menus import MenuState, MenuStateMachine
from sensenote.restore import WRAP_FAILED_MESSAGE, HighlightRestorer
from sensenote.store import (
    add_highlight,
    existing_categories,
    get_highlight,
    update_annotation,
)
from sensenote.store import delete_highlight as delete_record
from sensenote.store import toggle_favorite as toggle_record

if TYPE_CHECKING:
    from collections.abc import Callable

    from bs4 import Tag

    from sensenote.anchors.models import Anchor
    from sensenote.config import Settings
    from sensenote.document.ranges import TextRange
    from sensenote.page import Page
    from sensenote.restore import RestoreOutcome
    from sensenote.store import HighlightStore

logger = logging.getLogger(__name__)

_EDITABLE_TAGS = frozenset({"input", "textarea"})
POPUP_PREVIEW_LENGTH = 50
DIALOG_PREVIEW_LENGTH = 100
MAX_CATEGORY_SUGGESTIONS = 5


@dataclass
class PointerEvent:
    """A mouseup on the page.

    Attributes:
        x: Horizontal page coordinate.
        y: Vertical page coordinate.
        target: Document element under the pointer, if any.
        surface: The open menu/popup/dialog the pointer is on, if any.
        on_button: The pointer is on a button of that surface.
    """

    x: float = 0.0
    y: float = 0.0
    target: Tag | None = None
    surface: MenuState | None = None
    on_button: bool = False


@dataclass(frozen=True)
class ActivationEvent:
    """A highlight wrapper was clicked."""

    highlight_id: str
    x: float
    y: float


@dataclass
class DetailView:
    """What the detail popup shows for one highlight."""

    anchor: Anchor
    preview: str
    note: str | None


@dataclass
class EditorView:
    """What the edit dialog shows for one highlight."""

    anchor: Anchor
    preview: str
    categories: list[str] = field(default_factory=list)

    @property
    def suggestions(self) -> list[str]:
        return self.categories[:MAX_CATEGORY_SUGGESTIONS]


def _truncate(text: str, length: int) -> str:
    return text[:length] + "..." if len(text) > length else text


def _is_editable(target: Tag | None) -> bool:
    node = target
    while node is not None:
        if node.name in _EDITABLE_TAGS or node.get("contenteditable") == "true":
            return True
        node = node.parent
    return False


def _always_confirm(_message: str) -> bool:
    return True


class PageSession:
    """Interaction state for one page and its highlights.

    Args:
        page: The page being annotated.
        store: Highlight storage.
        settings: Application settings (cached settings when omitted).
        confirm: Asks the user a yes/no question before destructive actions.
    """

    def __init__(
        self,
        page: Page,
        store: HighlightStore,
        settings: Settings | None = None,
        *,
        confirm: Callable[[str], bool] = _always_confirm,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.page = page
        self.store = store
        self.settings = settings or get_settings()
        self.confirm = confirm
        machine_args = {
            "dismiss_suppression": self.settings.ui.dismiss_suppression,
            "outside_click_delay": self.settings.ui.outside_click_delay,
        }
        if clock is not None:
            machine_args["clock"] = clock
        self.menus = MenuStateMachine(**machine_args)
        self.selection: TextRange | None = None
        self.pending: TextRange | None = None
        self.detail: DetailView | None = None
        self.editor: EditorView | None = None
        self.activation_handlers: list[Callable[[ActivationEvent], None]] = []

    async def enter(self) -> tuple[RestoreOutcome, bool]:
        """Page entry: restore this document's highlights and follow links."""
        restorer = HighlightRestorer(self.page, self.store, self.settings)
        return await restorer.on_page_enter()

    # -- Selection -----------------------------------------------------------

    def select(self, selection: TextRange | None) -> None:
        """Set the live selection (None clears it)."""
        self.selection = selection

    async def handle_mouseup(self, event: PointerEvent) -> bool:
        """React to a mouseup; returns True if the color menu opened."""
        if _is_editable(event.target):
            return False
        if event.on_button and self.menus.suppressed:
            return False

        on_surface = event.surface is not None
        on_highlight = event.target is not None and (
            is_wrapper(event.target) or wrapper_ancestor(event.target) is not None
        )
        if not on_surface and not on_highlight:
            self.menus.close(suppress=False)

        # Give the selection time to settle
        await asyncio.sleep(self.settings.ui.selection_debounce)
        if on_surface or on_highlight:
            return False

        selection = self.selection
        if selection is None or selection.collapsed:
            return False
        if not selection.to_string().strip():
            return False
        if not self.menus.open_selection_menu(event.x, event.y):
            return False
        self.pending = selection.clone()
        return True

    def handle_click(self, event: PointerEvent) -> bool:
        """A click anywhere on the page; returns True if it dismissed a surface.

        Clicks on the open surface itself are ignored. Clicks elsewhere only
        dismiss once ``outside_click_delay`` has passed since it opened, so the
        click that opened it does not close it again.
        """
        if event.surface is not None and event.surface is self.menus.state:
            return False
        dismissed = self.menus.outside_click()
        if dismissed:
            self.pending = None
            self.detail = None
            self.editor = None
        return dismissed

    async def choose_color(self, color: str) -> Anchor | None:
        """Create a highlight from the pending selection in *color*."""
        selection = self.pending
        self.pending = None
        self.menus.close()
        if selection is None:
            logger.warning("No pending selection to highlight")
            return None

        document = self.page.document
        try:
            anchor = capture_anchor(
                selection,
                linearize(document.root),
                url=self.page.url,
                color=color,
                page_title=document.title,
                context_length=self.settings.anchor.context_length,
            )
        except EmptySelectionError:
            logger.warning("No text to highlight")
            return None

        try:
            await add_highlight(self.store, anchor)
        except StoreUnavailable:
            logger.exception("Error creating highlight")
            self.page.notifier.notify("⚠️ Could not save highlight", type="warning")
            return None

        try:
            apply_highlight(document, selection, anchor.id, color)
        except WrapperApplicationFailed:
            self.page.notifier.notify(WRAP_FAILED_MESSAGE, type="warning")

        self.selection = None
        self.page.notifier.notify("✓ Highlight saved!")

        await asyncio.sleep(self.settings.ui.note_prompt_delay)
        await self.open_editor(anchor.id)
        return anchor

    # -- Existing highlights ---------------------------------------------------

    async def activate(
        self, highlight_id: str, x: float, y: float
    ) -> DetailView | None:
        """A highlight was clicked: notify listeners and show its details."""
        event = ActivationEvent(highlight_id, x, y)
        for handler in self.activation_handlers:
            handler(event)

        anchor = await get_highlight(self.store, highlight_id)
        if anchor is None or anchor.document_key != self.page.document_key:
            logger.error("Highlight not found: %s", highlight_id)
            return None
        if not self.menus.open_detail_popup(highlight_id, x, y):
            return None

        note = anchor.note if anchor.note.strip() else None
        self.detail = DetailView(
            anchor, _truncate(anchor.exact_text, POPUP_PREVIEW_LENGTH), note
        )
        return self.detail

    async def open_editor(self, highlight_id: str) -> EditorView | None:
        """Open the edit dialog with the stored note, category and suggestions."""
        anchor = await get_highlight(self.store, highlight_id)
        if anchor is None:
            logger.error("Highlight not found for note dialog: %s", highlight_id)
            return None

        self.menus.open_edit_dialog(highlight_id)
        self.detail = None
        self.editor = EditorView(
            anchor,
            _truncate(anchor.exact_text, DIALOG_PREVIEW_LENGTH),
            await existing_categories(self.store),
        )
        return self.editor

    def cancel_editor(self) -> None:
        self.editor = None
        self.menus.close()

    async def save_details(
        self,
        highlight_id: str,
        note: str | None = None,
        category: str | None = None,
    ) -> Anchor | None:
        """Save the edit dialog. ``None`` leaves a field unchanged."""
        updated = await update_annotation(
            self.store,
            highlight_id,
            note=note.strip() if note is not None else None,
            category=category.strip() if category is not None else None,
        )
        self.editor = None
        self.menus.close()
        if updated is not None:
            self.page.notifier.notify("✓ Saved!")
        return updated

    async def delete_highlight(self, highlight_id: str) -> bool:
        """Delete a highlight from the store and unwrap it from the page."""
        if not self.confirm("Delete this highlight?"):
            return False

        self.detail = None
        self.menus.close()
        deleted = await delete_record(self.store, highlight_id)
        if not deleted:
            logger.warning("Highlight not found for delete: %s", highlight_id)
            return False

        remove_highlight(self.page.document, highlight_id)
        self.page.notifier.notify("✓ Highlight deleted")
        return True

    async def toggle_favorite(self, highlight_id: str) -> Anchor | None:
        return await toggle_record(self.store, highlight_id)
