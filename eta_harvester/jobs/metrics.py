"""Per-run page counters and time-remaining estimate."""
import logging
import time
from collections import Counter
from typing import Dict

logger = logging.getLogger(__name__)

PAGE_OUTCOMES = ("ok", "skipped", "failed")


class HarvestMetrics:
    """Counts page outcomes and harvested records for one harvest run."""

    def __init__(self, total_pages: int = 0):
        self.total_pages = total_pages
        self.started = time.monotonic()
        self.pages: Counter = Counter()
        self.records = 0

    @property
    def pages_done(self) -> int:
        return sum(self.pages.values())

    def page_done(self, outcome: str, records: int = 0) -> None:
        if outcome not in PAGE_OUTCOMES:
            raise ValueError(f"Unknown page outcome: {outcome}")
        self.pages[outcome] += 1
        self.records += records

    def elapsed(self) -> float:
        return time.monotonic() - self.started

    def seconds_remaining(self) -> float:
        done = self.pages_done
        if done == 0:
            return 0.0
        left = max(self.total_pages - done, 0)
        return left * self.elapsed() / done

    @staticmethod
    def format_duration(seconds: float) -> str:
        if seconds < 60:
            return f"{seconds:.0f}s"
        if seconds < 3600:
            return f"{seconds / 60:.1f}m"
        return f"{seconds / 3600:.1f}h"

    def report(self) -> None:
        done = self.pages_done
        pct = done * 100 // self.total_pages if self.total_pages > 0 else 0
        logger.info(
            f"Pages {done}/{self.total_pages} ({pct}%) | "
            f"records {self.records} | skipped {self.pages['skipped']} | "
            f"failed {self.pages['failed']} | remaining ~{self.format_duration(self.seconds_remaining())}"
        )

    def get_summary(self) -> Dict:
        return {
            "total_pages": self.total_pages,
            "pages_done": self.pages_done,
            **{outcome: self.pages[outcome] for outcome in PAGE_OUTCOMES},
            "records": self.records,
            "elapsed_seconds": self.elapsed(),
        }
