"""Rescan the table when the portal re-renders it on its own."""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from eta_harvester.browser.document import AddedNode, Document, Unsubscribe

logger = logging.getLogger(__name__)

WATCHED_CLASSES = frozenset({"ms-DetailsRow", "ms-List-cell", "eta-pageNumber"})


def is_relevant(node: AddedNode) -> bool:
    """An added node that looks like a record row, list cell or page control."""
    return node.contains_row or any(cls in WATCHED_CLASSES for cls in node.classes)


class LiveUpdateWatcher:
    """Debounced rescans triggered by document mutations.

    Rescans are suppressed while is_suppressed() is true; the check runs
    both when a burst is scheduled and when the timer fires.
    """

    def __init__(
        self,
        document: Document,
        rescan: Callable[[], Awaitable[object]],
        is_suppressed: Callable[[], bool],
        debounce: float = 1.0,
    ):
        self.document = document
        self.rescan = rescan
        self.is_suppressed = is_suppressed
        self.debounce = debounce
        self._unsubscribe: Optional[Unsubscribe] = None
        self._pending: Optional[asyncio.Task] = None
        self.rescans = 0

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.document.subscribe(self.on_mutations)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._cancel_pending()

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    def on_mutations(self, added: list[AddedNode]) -> None:
        if not any(is_relevant(node) for node in added):
            return
        if self.is_suppressed():
            logger.debug("Mutation ignored: harvest in progress")
            return
        self._cancel_pending()
        self._pending = asyncio.get_running_loop().create_task(self._fire_later())

    async def _fire_later(self) -> None:
        await asyncio.sleep(self.debounce)
        # Past the debounce window; a new burst schedules its own timer.
        self._pending = None
        if self.is_suppressed():
            logger.debug("Debounced rescan dropped: harvest in progress")
            return
        try:
            await self.rescan()
            self.rescans += 1
        except Exception as e:
            logger.warning(f"Live rescan failed: {e}")
