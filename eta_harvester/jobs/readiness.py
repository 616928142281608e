"""Polling-based readiness checks over the document tree."""
import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from eta_harvester.config import config
from eta_harvester.parse.page_scanner import PageScanner, loading_visible, valid_rows

logger = logging.getLogger(__name__)

Predicate = Callable[[], Union[bool, Awaitable[bool]]]


@dataclass
class HarvestTimings:
    """Timing knobs for readiness polling and pacing, in seconds."""

    poll_interval: float = 0.1
    load_timeout: float = 10.0
    stability_samples: int = 3
    stability_interval: float = 0.2
    settle_delay: float = 1.0
    page_delay: float = 1.5
    rescan_debounce: float = 1.0
    details_batch_delay: float = 0.3

    @classmethod
    def from_config(cls) -> "HarvestTimings":
        return cls(
            poll_interval=config.POLL_INTERVAL,
            load_timeout=config.LOAD_TIMEOUT,
            stability_samples=config.STABILITY_SAMPLES,
            stability_interval=config.STABILITY_INTERVAL,
            settle_delay=config.SETTLE_DELAY,
            page_delay=config.PAGE_DELAY,
            rescan_debounce=config.RESCAN_DEBOUNCE,
            details_batch_delay=config.DETAILS_BATCH_DELAY,
        )


async def wait_for(predicate: Predicate, timeout: float, interval: float = 0.1) -> bool:
    """
    Poll predicate until it is true or timeout elapses.

    Returns False on timeout instead of raising; the caller decides whether
    that is fatal. Exceptions raised by the predicate count as "not yet".
    """
    deadline = time.monotonic() + timeout
    while True:
        try:
            result = predicate()
            if inspect.isawaitable(result):
                result = await result
            if result:
                return True
        except Exception as e:
            logger.debug(f"Readiness predicate raised: {e}")
        if time.monotonic() >= deadline:
            return False
        await asyncio.sleep(interval)


class ReadinessMonitor:
    """Decides when a freshly navigated page is loaded and settled."""

    def __init__(self, scanner: PageScanner, timings: Optional[HarvestTimings] = None):
        self.scanner = scanner
        self.timings = timings or HarvestTimings.from_config()

    async def _no_loading_indicator(self) -> bool:
        return not loading_visible(await self.scanner.tree())

    async def _rows_present(self) -> bool:
        return len(valid_rows(await self.scanner.tree())) > 0

    async def _row_count(self) -> int:
        return len(valid_rows(await self.scanner.tree()))

    async def wait_for_stable_rows(self) -> bool:
        """Require the same row count across consecutive samples."""
        t = self.timings
        samples: list[int] = []

        async def stable() -> bool:
            samples.append(await self._row_count())
            del samples[: -t.stability_samples]
            if len(samples) < t.stability_samples:
                return False
            return samples[0] > 0 and len(set(samples)) == 1

        return await wait_for(stable, t.load_timeout, interval=t.stability_interval)

    async def wait_for_page_loaded(self, expected_page: Optional[int] = None) -> bool:
        """
        Wait until the table looks loaded.

        Steps: loading indicators gone, rows present, pagination on the
        expected page (if given), row count stable; then a settle delay.
        A timed-out step is logged and the sequence proceeds anyway.
        """
        t = self.timings
        ok = True

        if not await wait_for(self._no_loading_indicator, t.load_timeout, t.poll_interval):
            logger.warning("Timed out waiting for loading indicators to clear")
            ok = False

        if not await wait_for(self._rows_present, t.load_timeout, t.poll_interval):
            logger.warning("Timed out waiting for record rows")
            ok = False

        if expected_page is not None:
            async def on_expected_page() -> bool:
                state = await self.scanner.extract_pagination()
                return state.current_page == expected_page

            if not await wait_for(on_expected_page, t.load_timeout, t.poll_interval):
                logger.warning(f"Timed out waiting for page {expected_page} to become active")
                ok = False

        if not await self.wait_for_stable_rows():
            logger.warning("Row count did not stabilise")
            ok = False

        await asyncio.sleep(t.settle_delay)
        return ok
