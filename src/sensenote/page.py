"""The page a document is shown on: address, viewport and notifications.

``Page`` stands in for the browser tab. It owns the live ``Document``, the
visible address (which may carry a ``#sensenote-<id>`` fragment), the
element last scrolled into view, and a notifier for transient toasts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal, Protocol

from sensenote.anchors.identity import document_key
from sensenote.config import get_settings
from sensenote.document.dom import HIGHLIGHT_ID_ATTR

if TYPE_CHECKING:
    from bs4 import Tag

    from sensenote.document.dom import Document

logger = logging.getLogger(__name__)

ToastType = Literal["positive", "warning", "info"]


class Notifier(Protocol):
    """Shows transient, non-blocking messages to the user."""

    def notify(self, message: str, type: ToastType = "positive") -> None: ...


@dataclass
class Toast:
    message: str
    type: ToastType
    duration: float


def _toast_duration() -> float:
    return get_settings().ui.toast_duration


@dataclass
class ToastLog:
    """Notifier that records toasts (and logs them) instead of drawing them."""

    toasts: list[Toast] = field(default_factory=list)
    duration: float = field(default_factory=_toast_duration)

    def notify(self, message: str, type: ToastType = "positive") -> None:
        logger.info("Toast (%s, %.1fs): %s", type, self.duration, message)
        self.toasts.append(Toast(message, type, self.duration))

    @property
    def messages(self) -> list[str]:
        return [t.message for t in self.toasts]


class Page:
    """A loaded document plus its address and viewport state."""

    def __init__(
        self, document: Document, url: str, notifier: Notifier | None = None
    ) -> None:
        self.document = document
        self.url = url
        self.notifier: Notifier = notifier or ToastLog()
        self.scrolled_to: str | None = None

    @property
    def document_key(self) -> str:
        return document_key(self.url)

    @property
    def fragment(self) -> str:
        _, _, fragment = self.url.partition("#")
        return fragment

    def replace_address(self, url: str) -> None:
        """Change the visible address without reloading."""
        logger.debug("Address %s -> %s", self.url, url)
        self.url = url

    def clear_fragment(self) -> None:
        self.replace_address(document_key(self.url))

    def scroll_into_view(self, element: Tag) -> None:
        """Bring *element* into the viewport (recorded as its highlight id)."""
        highlight_id = element.get(HIGHLIGHT_ID_ATTR)
        self.scrolled_to = str(highlight_id) if highlight_id else element.name
        logger.debug("Scrolled into view: %s", self.scrolled_to)
