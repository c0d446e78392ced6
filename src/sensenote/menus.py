"""Menu, popup and dialog lifecycle.

At most one floating surface is open at a time: the color menu shown after a
selection, the detail popup of a clicked highlight, or the edit dialog.
Closing a surface through one of its own buttons opens a short suppression
window so the same click cannot immediately start a new selection menu.
Clicks outside a surface only dismiss it once ``outside_click_delay`` has
passed since it opened, so the click that opened it does not close it.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class MenuState(StrEnum):
    CLOSED = "closed"
    SELECTION_MENU = "selection_menu"
    DETAIL_POPUP = "detail_popup"
    EDIT_DIALOG = "edit_dialog"
    DISMISSED = "dismissed"


_OPEN_STATES = frozenset(
    {MenuState.SELECTION_MENU, MenuState.DETAIL_POPUP, MenuState.EDIT_DIALOG}
)


@dataclass(frozen=True)
class MenuPosition:
    x: float
    y: float


class MenuStateMachine:
    """Tracks which surface is open and when clicks may act on it.

    Args:
        dismiss_suppression: Seconds after a button-close during which a new
            selection menu is refused.
        outside_click_delay: Seconds after opening before an outside click
            dismisses the surface.
        clock: Monotonic time source (seconds).
    """

    def __init__(
        self,
        *,
        dismiss_suppression: float = 0.016,
        outside_click_delay: float = 0.2,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.dismiss_suppression = dismiss_suppression
        self.outside_click_delay = outside_click_delay
        self._clock = clock
        self._state = MenuState.CLOSED
        self._opened_at = 0.0
        self._dismissed_at = 0.0
        self.position: MenuPosition | None = None
        self.highlight_id: str | None = None

    @property
    def state(self) -> MenuState:
        if (
            self._state is MenuState.DISMISSED
            and self._clock() - self._dismissed_at >= self.dismiss_suppression
        ):
            self._state = MenuState.CLOSED
        return self._state

    @property
    def is_open(self) -> bool:
        return self.state in _OPEN_STATES

    @property
    def suppressed(self) -> bool:
        """True while a just-closed surface still swallows clicks."""
        return self.state is MenuState.DISMISSED

    def _open(
        self,
        state: MenuState,
        position: MenuPosition | None,
        highlight_id: str | None,
    ) -> None:
        logger.debug("Menu %s -> %s", self._state, state)
        self._state = state
        self._opened_at = self._clock()
        self.position = position
        self.highlight_id = highlight_id

    def open_selection_menu(self, x: float, y: float) -> bool:
        """Show the color menu at (x, y).

        Refused while the edit dialog is open or inside the suppression
        window. Any other open surface is replaced.
        """
        state = self.state
        if state is MenuState.EDIT_DIALOG:
            return False
        if state is MenuState.DISMISSED:
            logger.debug("Selection menu suppressed after close")
            return False
        self._open(MenuState.SELECTION_MENU, MenuPosition(x, y), None)
        return True

    def open_detail_popup(self, highlight_id: str, x: float, y: float) -> bool:
        """Show the detail popup for a highlight, replacing any menu."""
        if self.state is MenuState.EDIT_DIALOG:
            return False
        self._open(MenuState.DETAIL_POPUP, MenuPosition(x, y), highlight_id)
        return True

    def open_edit_dialog(self, highlight_id: str) -> None:
        """Open the modal edit dialog; it replaces whatever is open."""
        self._open(MenuState.EDIT_DIALOG, None, highlight_id)

    def close(self, *, suppress: bool = True) -> None:
        """Close the open surface.

        Args:
            suppress: Start the suppression window (closing via a button).
                Clicking away closes without it.
        """
        if not self.is_open:
            return
        self.position = None
        self.highlight_id = None
        if suppress:
            self._state = MenuState.DISMISSED
            self._dismissed_at = self._clock()
        else:
            self._state = MenuState.CLOSED
        logger.debug("Menu closed -> %s", self._state)

    def outside_click(self) -> bool:
        """An outside click; returns True if it dismissed the surface."""
        if not self.is_open:
            return False
        if self._clock() - self._opened_at < self.outside_click_delay:
            return False
        self.close()
        return True
