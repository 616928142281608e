"""Tests for JSON export."""
import orjson
import pytest

from eta_harvester.parse.models import UNSPECIFIED, InvoiceRecord
from eta_harvester.store.json_export import build_export, calculate_statistics, default_filename, export_json


def make_record(i, total, vat, status="Valid", doc_type="فاتورة"):
    return InvoiceRecord(
        index=i,
        page_number=1,
        electronic_number=f"E{i}",
        total_amount=total,
        vat_amount=vat,
        status=status,
        document_type=doc_type,
    )


def test_statistics():
    records = [
        make_record(1, "1,140.00", "140.00"),
        make_record(2, "570.00", "70.00", status="Rejected"),
        make_record(3, "n/a", "", status=""),
    ]
    stats = calculate_statistics(records)

    assert stats["totalValue"] == 1710.0
    assert stats["totalVAT"] == 210.0
    assert stats["averageValue"] == 570.0
    assert stats["statusCounts"] == {"Valid": 1, "Rejected": 1, UNSPECIFIED: 1}
    assert stats["typeCounts"] == {"فاتورة": 3}


def test_statistics_empty():
    stats = calculate_statistics([])
    assert stats["totalValue"] == 0
    assert stats["averageValue"] == 0


def test_build_export_uses_camel_case():
    payload = build_export([make_record(1, "100.00", "12.28")], all_pages=True, current_page=2, total_pages=5)

    assert payload["exportType"] == "all_pages"
    assert payload["totalCount"] == 1
    invoice = payload["invoices"][0]
    assert invoice["electronicNumber"] == "E1"
    assert invoice["pageNumber"] == 1
    assert "details" not in invoice


def test_default_filename():
    assert default_filename(True, 3).startswith("ETA_Invoices_AllPages_")
    assert default_filename(False, 3).startswith("ETA_Invoices_Page3_")


@pytest.mark.asyncio
async def test_export_json_writes_file(tmp_path):
    payload = build_export([make_record(1, "100.00", "12.28")], all_pages=False, current_page=1, total_pages=1)
    path = await export_json(tmp_path / "out" / "invoices.json", payload)

    written = orjson.loads(path.read_bytes())
    assert written["exportType"] == "current_page"
    assert written["invoices"][0]["status"] == "Valid"
