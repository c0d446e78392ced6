"""Document identity and highlight ids.

``document_key`` must be computed the same way at capture and at
restoration time: it is the only thing that decides which anchors belong to
a document load.
"""

from __future__ import annotations

import secrets
import string
import time

DEFAULT_FRAGMENT_PREFIX = "sensenote-"

_ID_ALPHABET = string.digits + string.ascii_lowercase


def document_key(url: str) -> str:
    """The address with any navigation fragment removed."""
    return url.split("#", 1)[0]


def new_highlight_id(now_ms: int | None = None) -> str:
    """Generate a highlight id: ``hl-<epoch ms>-<9 base36 chars>``."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"hl-{now_ms}-{suffix}"


def highlight_fragment(
    highlight_id: str, prefix: str = DEFAULT_FRAGMENT_PREFIX
) -> str:
    """Navigation fragment that points at a highlight (``#sensenote-<id>``)."""
    return f"#{prefix}{highlight_id}"


def highlight_link(
    url: str, highlight_id: str, prefix: str = DEFAULT_FRAGMENT_PREFIX
) -> str:
    """Address that opens *url* and scrolls to the highlight."""
    return document_key(url) + highlight_fragment(highlight_id, prefix)


def parse_highlight_fragment(
    url: str, prefix: str = DEFAULT_FRAGMENT_PREFIX
) -> str | None:
    """Extract the highlight id from an address's fragment, if it has one."""
    _, sep, fragment = url.partition("#")
    if not sep or not fragment.startswith(prefix):
        return None
    highlight_id = fragment[len(prefix) :]
    return highlight_id or None
