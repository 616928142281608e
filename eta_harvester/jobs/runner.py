"""Multi-page harvest orchestration."""
import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional

from eta_harvester.jobs.metrics import HarvestMetrics
from eta_harvester.jobs.navigator import PaginationNavigator
from eta_harvester.jobs.readiness import HarvestTimings, ReadinessMonitor
from eta_harvester.parse.models import HarvestResult, InvoiceRecord, ProgressEvent
from eta_harvester.parse.page_scanner import PageScanner

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class HarvestSession:
    """State owned by exactly one harvest run."""

    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    start_page: int = 1
    total_pages: int = 1
    records: list[InvoiceRecord] = field(default_factory=list)
    skipped_pages: list[int] = field(default_factory=list)
    failed_pages: list[int] = field(default_factory=list)

    def append(self, records: list[InvoiceRecord]) -> None:
        self.records.extend(records)


class HarvestRunner:
    """Drives scanning, navigation and readiness across every page."""

    def __init__(
        self,
        scanner: PageScanner,
        navigator: PaginationNavigator,
        readiness: ReadinessMonitor,
        timings: Optional[HarvestTimings] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.scanner = scanner
        self.navigator = navigator
        self.readiness = readiness
        self.timings = timings or readiness.timings
        self.on_progress = on_progress

    def _progress(self, page: int, total: int, message: str) -> None:
        if self.on_progress is None:
            return
        try:
            self.on_progress(ProgressEvent.build(page, total, message))
        except Exception as e:
            logger.warning(f"Progress listener failed: {e}")

    async def _harvest_page(self, session: HarvestSession, page: int) -> int:
        """Navigate to page, scan it and append its records. Returns records added."""
        total = session.total_pages
        self._progress(page, total, f"Navigating to page {page} of {total}...")

        if not await self.navigator.go_to_page(page):
            logger.warning(f"[{session.run_id[:8]}] Page {page}: navigation failed, skipped")
            session.skipped_pages.append(page)
            return 0

        self._progress(page, total, f"Processing page {page} of {total}...")

        records, pagination = await self.scanner.scan()
        if pagination.current_page != page:
            logger.warning(
                f"[{session.run_id[:8]}] Page {page}: table reports page "
                f"{pagination.current_page} after load, skipped"
            )
            session.skipped_pages.append(page)
            return 0

        session.append(records)
        self._progress(page, total, f"Collected {len(records)} invoices from page {page} of {total}")
        return len(records)

    async def run(self, session: HarvestSession) -> HarvestResult:
        """
        Harvest every page into session.

        Idle -> Scanning(start) -> {Navigating(k) -> Scanning(k)}* -> Done.
        Per-page problems are logged and the page contributes nothing;
        only an unexpected failure outside the page loop yields success=False.
        """
        metrics = HarvestMetrics()
        try:
            records, pagination = await self.scanner.scan()
            session.start_page = pagination.current_page
            session.total_pages = pagination.total_pages
            session.append(records)
            metrics.total_pages = max(pagination.total_pages, 1)
            metrics.page_done("ok", len(records))

            if pagination.total_pages <= 1:
                logger.info(f"[{session.run_id[:8]}] Single page, {len(records)} records")
                return HarvestResult(
                    success=True, records=session.records, total_processed=len(session.records)
                )

            logger.info(
                f"[{session.run_id[:8]}] Harvesting {pagination.total_pages} pages "
                f"({pagination.total_count} invoices), starting from page {session.start_page}"
            )
            self._progress(session.start_page, session.total_pages, "Starting...")

            for page in range(1, session.total_pages + 1):
                if page == session.start_page:
                    continue
                try:
                    added = await self._harvest_page(session, page)
                    metrics.page_done("skipped" if page in session.skipped_pages else "ok", added)
                except Exception as e:
                    logger.error(f"[{session.run_id[:8]}] Error processing page {page}: {e}", exc_info=True)
                    session.failed_pages.append(page)
                    metrics.page_done("failed")
                metrics.report()

                if page < session.total_pages:
                    await asyncio.sleep(self.timings.page_delay)

            self._progress(session.total_pages, session.total_pages, "Done")
            self._final_report(session, metrics)
            return HarvestResult(
                success=True,
                records=session.records,
                total_processed=len(session.records),
                skipped_pages=sorted(session.skipped_pages + session.failed_pages),
            )

        except Exception as e:
            logger.error(f"[{session.run_id[:8]}] Harvest failed: {e}", exc_info=True)
            return HarvestResult(
                success=False,
                records=session.records,
                total_processed=len(session.records),
                skipped_pages=sorted(session.skipped_pages + session.failed_pages),
                error=str(e),
            )

    def _final_report(self, session: HarvestSession, metrics: HarvestMetrics) -> None:
        summary = metrics.get_summary()
        logger.info("=" * 60)
        logger.info("HARVEST REPORT")
        logger.info(f"Run ID: {session.run_id}")
        logger.info(f"Pages: {summary['ok']}/{session.total_pages} harvested")
        logger.info(f"Skipped pages: {session.skipped_pages or 'none'}")
        logger.info(f"Failed pages: {session.failed_pages or 'none'}")
        logger.info(f"Records: {len(session.records)}")
        logger.info(f"Elapsed: {summary['elapsed_seconds']:.1f}s")
        logger.info("=" * 60)
