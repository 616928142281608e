"""Tests for harvest metrics."""
import pytest

from eta_harvester.jobs.metrics import HarvestMetrics


def test_summary_counts_outcomes():
    metrics = HarvestMetrics(total_pages=4)
    metrics.page_done("ok", 10)
    metrics.page_done("skipped")
    metrics.page_done("failed")

    summary = metrics.get_summary()
    assert summary["pages_done"] == 3
    assert summary["ok"] == 1
    assert summary["skipped"] == 1
    assert summary["failed"] == 1
    assert summary["records"] == 10


def test_unknown_outcome_rejected():
    with pytest.raises(ValueError):
        HarvestMetrics(total_pages=1).page_done("lost")


def test_format_duration():
    assert HarvestMetrics.format_duration(42) == "42s"
    assert HarvestMetrics.format_duration(90) == "1.5m"
    assert HarvestMetrics.format_duration(5400) == "1.5h"
