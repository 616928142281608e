"""Write harvested invoices to a JSON document."""
import logging
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import aiofiles
import orjson

from eta_harvester.parse.models import UNSPECIFIED, InvoiceRecord
from eta_harvester.parse.row_extractor import parse_amount

logger = logging.getLogger(__name__)


def calculate_statistics(records: list[InvoiceRecord]) -> dict[str, Any]:
    """Totals and breakdowns over the exported records."""
    total_value = 0.0
    total_vat = 0.0
    for record in records:
        total_value += float(parse_amount(record.total_amount) or 0)
        total_vat += float(parse_amount(record.vat_amount) or 0)

    return {
        "totalValue": round(total_value, 2),
        "totalVAT": round(total_vat, 2),
        "averageValue": round(total_value / len(records), 2) if records else 0,
        "statusCounts": dict(Counter(r.status or UNSPECIFIED for r in records)),
        "typeCounts": dict(Counter(r.document_type or UNSPECIFIED for r in records)),
    }


def build_export(
    records: list[InvoiceRecord],
    all_pages: bool,
    current_page: int,
    total_pages: int,
    options: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    return {
        "exportDate": datetime.now(timezone.utc).isoformat(),
        "totalCount": len(records),
        "exportType": "all_pages" if all_pages else "current_page",
        "totalPages": total_pages,
        "currentPage": current_page,
        "options": options or {},
        "statistics": calculate_statistics(records),
        "invoices": [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in records],
    }


def default_filename(all_pages: bool, current_page: int) -> str:
    page_info = "AllPages" if all_pages else f"Page{current_page}"
    return f"ETA_Invoices_{page_info}_{datetime.now().strftime('%Y-%m-%d')}.json"


async def export_json(path: Path, payload: dict[str, Any]) -> Path:
    """Write payload as indented UTF-8 JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(path, "wb") as f:
        await f.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
    logger.info(f"Exported {payload.get('totalCount', 0)} invoices to {path}")
    return path
