"""Restoration orchestrator: reapply stored highlights when a page is entered.

Per document load the restorer moves through
``IDLE -> LOADING -> RESTORING -> DONE``. Each anchor goes through
resolve -> materialize -> wrap on its own; a failure is counted and the
batch carries on. Only the aggregate counts are reported upward.

The document is re-linearized for every anchor, so offsets always reflect
wrappers applied earlier in the same pass.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from sensenote.anchors.identity import (
    DEFAULT_FRAGMENT_PREFIX,
    parse_highlight_fragment,
)
from sensenote.anchors.resolve import locate_anchor
from sensenote.config import get_settings
from sensenote.errors import (
    AlreadyMaterialized,
    ResolutionError,
    WrapperApplicationFailed,
)
from sensenote.highlight.wrapper import apply_highlight
from sensenote.store import highlights_for_document

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sensenote.anchors.models import Anchor
    from sensenote.config import Settings
    from sensenote.page import Page
    from sensenote.store import HighlightStore

logger = logging.getLogger(__name__)

WRAP_FAILED_MESSAGE = "⚠️ Could not highlight this selection"


class RestoreState(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    RESTORING = "restoring"
    DONE = "done"


@dataclass
class RestoreOutcome:
    """Aggregate result of one restoration pass.

    Attributes:
        restored: Anchors wrapped in this pass.
        failed: Anchors that could not be found, verified or wrapped.
        skipped: Anchors whose wrapper was already on the page.
        failures: Diagnostic reason per failed anchor id.
    """

    restored: int = 0
    failed: int = 0
    skipped: int = 0
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.restored + self.failed + self.skipped


def restore_anchors(page: Page, anchors: Iterable[Anchor]) -> RestoreOutcome:
    """Apply each anchor to *page*'s document, isolating failures."""
    outcome = RestoreOutcome()
    document = page.document

    for anchor in anchors:
        try:
            rng = locate_anchor(anchor, document)
            apply_highlight(document, rng, anchor.id, anchor.color)
        except AlreadyMaterialized:
            logger.debug("Highlight already exists on page: %s", anchor.id)
            outcome.skipped += 1
            continue
        except ResolutionError as exc:
            logger.warning("Could not create range for highlight: %s", exc)
            outcome.failed += 1
            outcome.failures[anchor.id] = str(exc)
            continue
        except WrapperApplicationFailed as exc:
            page.notifier.notify(WRAP_FAILED_MESSAGE, type="warning")
            outcome.failed += 1
            outcome.failures[anchor.id] = str(exc)
            continue
        except Exception as exc:
            # One broken anchor must never stop the rest of the batch
            logger.exception("Error restoring highlight %r", anchor.preview)
            outcome.failed += 1
            outcome.failures[anchor.id] = repr(exc)
            continue
        outcome.restored += 1

    logger.info(
        "Restored %d highlight(s), %d failed, %d already present",
        outcome.restored,
        outcome.failed,
        outcome.skipped,
    )
    return outcome


async def scroll_to_highlight(
    page: Page,
    *,
    max_attempts: int = 10,
    retry_delay: float = 0.5,
    initial_delay: float = 0.5,
    clear_delay: float = 1.0,
    prefix: str = DEFAULT_FRAGMENT_PREFIX,
) -> bool:
    """Scroll to the highlight named by the address fragment, if any.

    Polls for the wrapper with a bounded number of attempts because
    restoration may still be running. The fragment is cleared from the
    address whether or not the highlight was found.

    Returns:
        True if the highlight was found and scrolled into view.
    """
    highlight_id = parse_highlight_fragment(page.url, prefix)
    if highlight_id is None:
        return False

    await asyncio.sleep(initial_delay)
    for attempt in range(1, max_attempts + 1):
        element = page.document.find_wrapper(highlight_id)
        if element is not None:
            logger.debug("Found highlight %s, scrolling to it", highlight_id)
            page.scroll_into_view(element)
            await asyncio.sleep(clear_delay)
            page.clear_fragment()
            return True
        if attempt < max_attempts:
            logger.debug(
                "Highlight not found yet, retrying... (%d/%d)",
                attempt,
                max_attempts,
            )
            await asyncio.sleep(retry_delay)

    logger.warning(
        "Could not find highlight %s after %d attempts",
        highlight_id,
        max_attempts,
    )
    page.clear_fragment()
    return False


class HighlightRestorer:
    """Runs restoration and fragment scrolling for one page.

    Attributes:
        state: Where the current document load is in its lifecycle.
        outcome: Result of the last completed pass.
    """

    def __init__(
        self,
        page: Page,
        store: HighlightStore,
        settings: Settings | None = None,
    ) -> None:
        self.page = page
        self.store = store
        self.settings = settings or get_settings()
        self.state = RestoreState.IDLE
        self.outcome: RestoreOutcome | None = None

    async def restore(self) -> RestoreOutcome:
        """Load this document's anchors and restore them.

        Raises:
            StoreUnavailable: If the store cannot be read.
        """
        self.state = RestoreState.LOADING
        try:
            anchors = await highlights_for_document(self.store, self.page.url)
        except Exception:
            self.state = RestoreState.IDLE
            raise
        logger.info("Found %d highlight(s) for this page", len(anchors))

        self.state = RestoreState.RESTORING
        outcome = restore_anchors(self.page, anchors)
        self.state = RestoreState.DONE
        self.outcome = outcome

        if outcome.restored > 0:
            self.page.notifier.notify(f"✓ Restored {outcome.restored} highlight(s)")
        return outcome

    async def scroll_to_fragment(self) -> bool:
        config = self.settings.restore
        return await scroll_to_highlight(
            self.page,
            max_attempts=config.scroll_max_attempts,
            retry_delay=config.scroll_retry_delay,
            initial_delay=config.scroll_initial_delay,
            clear_delay=config.fragment_clear_delay,
            prefix=self.settings.anchor.fragment_prefix,
        )

    async def on_page_enter(self) -> tuple[RestoreOutcome, bool]:
        """Restore highlights while polling for the fragment's highlight."""
        scroll_task = asyncio.create_task(self.scroll_to_fragment())
        try:
            outcome = await self.restore()
        finally:
            scrolled = await scroll_task
        return outcome, scrolled

    async def on_address_change(self, url: str) -> bool:
        """Same-document navigation: scroll to a newly linked highlight."""
        self.page.replace_address(url)
        return await self.scroll_to_fragment()
