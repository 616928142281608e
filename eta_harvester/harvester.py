"""Public entry point of the harvesting engine.

Every public operation resolves to a result value; nothing raises across
this boundary.
"""
import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Callable, Optional

from eta_harvester.browser.document import Document
from eta_harvester.jobs.navigator import PaginationNavigator
from eta_harvester.jobs.readiness import HarvestTimings, ReadinessMonitor
from eta_harvester.jobs.runner import HarvestRunner, HarvestSession
from eta_harvester.jobs.watcher import LiveUpdateWatcher
from eta_harvester.parse.details import extract_line_items, find_record, summary_line_item
from eta_harvester.parse.models import (
    DetailsResult,
    HarvestResult,
    InvoiceRecord,
    PageData,
    PaginationState,
    ProgressEvent,
)
from eta_harvester.parse.page_scanner import PageScanner

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressEvent], None]
ALREADY_RUNNING = "harvest already in progress"


class InvoiceHarvester:
    """Scans, watches and harvests the documents table of one Document."""

    def __init__(
        self,
        document: Document,
        timings: Optional[HarvestTimings] = None,
        default_page_size: Optional[int] = None,
    ):
        self.document = document
        self.timings = timings or HarvestTimings.from_config()
        self.scanner = PageScanner(document, default_page_size=default_page_size)
        self.readiness = ReadinessMonitor(self.scanner, self.timings)
        self.navigator = PaginationNavigator(document, self.scanner, self.readiness)
        self.watcher = LiveUpdateWatcher(
            document,
            rescan=self.rescan,
            is_suppressed=lambda: self.harvest_in_progress,
            debounce=self.timings.rescan_debounce,
        )
        self._session_lock = asyncio.Lock()
        self._records: list[InvoiceRecord] = []
        self._harvested: list[InvoiceRecord] = []
        self._pagination = PaginationState()
        self._listeners: list[ProgressListener] = []

    @property
    def harvest_in_progress(self) -> bool:
        return self._session_lock.locked()

    async def start(self) -> PageData:
        """Initial scan plus live-update watching."""
        data = await self.rescan()
        self.watcher.start()
        return data

    def close(self) -> None:
        self.watcher.stop()

    # Progress channel

    def add_progress_listener(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def remove_progress_listener(self, listener: ProgressListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _publish(self, event: ProgressEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Progress listener raised: {e}")

    # Boundary contract

    def get_current_page_data(self) -> PageData:
        """The last scan, without touching the document."""
        return PageData(
            records=list(self._records),
            total_count=self._pagination.total_count,
            current_page=self._pagination.current_page,
            total_pages=self._pagination.total_pages,
        )

    async def rescan(self) -> PageData:
        """Scan the current page immediately."""
        try:
            self._records, self._pagination = await self.scanner.scan()
        except Exception as e:
            logger.error(f"Rescan failed: {e}")
        return self.get_current_page_data()

    async def harvest_all_pages(self, options: Any = None) -> HarvestResult:
        """
        Harvest every page.

        A call made while another harvest holds the session is rejected
        rather than queued, so the running session's accumulator is never
        shared.
        """
        if self._session_lock.locked():
            logger.warning("Harvest requested while another is running; rejected")
            return HarvestResult(success=False, error=ALREADY_RUNNING)

        async with self._session_lock:
            session = HarvestSession()
            try:
                options = {} if options is None else options
                if not isinstance(options, Mapping):
                    raise TypeError(f"options must be a mapping, got {type(options).__name__}")
                report_progress = bool(options.get("progress", False))

                runner = HarvestRunner(
                    self.scanner,
                    self.navigator,
                    self.readiness,
                    timings=self.timings,
                    on_progress=self._publish if report_progress else None,
                )
                result = await runner.run(session)
            except Exception as e:
                logger.error(f"Harvest could not start: {e}")
                return HarvestResult(
                    success=False,
                    records=session.records,
                    total_processed=len(session.records),
                    error=str(e),
                )

        self._harvested = result.records
        await self.rescan()
        return result

    async def get_record_details(self, record_id: str) -> DetailsResult:
        """Line items for one record from the details grid currently shown."""
        try:
            items = extract_line_items(await self.document.snapshot())
            if not items:
                record = find_record(self._records + self._harvested, record_id)
                if record is not None:
                    items = [summary_line_item(record)]
            return DetailsResult(success=True, line_items=items)
        except Exception as e:
            logger.error(f"Error getting details for {record_id}: {e}")
            return DetailsResult(success=False, error=str(e))
