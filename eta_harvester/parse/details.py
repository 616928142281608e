"""Extract invoice line items from a document details view."""
import logging
from typing import Optional

from selectolax.parser import HTMLParser, Node

from eta_harvester.parse.models import InvoiceRecord, LineItem
from eta_harvester.parse.page_scanner import ROW_SELECTOR
from eta_harvester.parse.row_extractor import CELL_SELECTOR, node_text

logger = logging.getLogger(__name__)

DETAILS_TABLE_SELECTOR = '.ms-DetailsList, [data-automationid="DetailsList"]'
CELL_CONTENT_SELECTOR = ".griCellTitle, .griCellTitleGray, .ms-DetailsRow-cellContent"
HEADER_DESCRIPTIONS = {"الوصف", "Description"}

# Column order of the details grid.
LINE_ITEM_COLUMNS = (
    "item_code",
    "code_name",
    "description",
    "quantity",
    "unit_code",
    "unit_name",
    "unit_price",
    "total_value",
    "vat_amount",
    "total_with_vat",
)


def cell_text(cell: Node) -> str:
    content = cell.css_first(CELL_CONTENT_SELECTOR)
    return node_text(content if content is not None else cell)


def extract_line_items(html_content: str) -> list[LineItem]:
    """Line items from the details grid; header and short rows are skipped."""
    if not html_content:
        return []

    tree = HTMLParser(html_content)
    table = tree.css_first(DETAILS_TABLE_SELECTOR)
    if table is None:
        return []

    items = []
    for row in table.css(ROW_SELECTOR):
        cells = row.css(CELL_SELECTOR)
        if len(cells) < len(LINE_ITEM_COLUMNS):
            continue
        values = {
            name: text
            for name, text in zip(LINE_ITEM_COLUMNS, (cell_text(cell) for cell in cells))
            if text
        }
        item = LineItem(**values)
        if item.description and item.description not in HEADER_DESCRIPTIONS:
            items.append(item)
    return items


def summary_line_item(record: InvoiceRecord) -> LineItem:
    """Single line summarising a record whose details grid is unavailable."""
    return LineItem(
        item_code="SUMMARY",
        code_name="إجمالي",
        description="إجمالي الفاتورة",
        unit_price=record.total_amount or "0",
        total_value=record.invoice_value or record.total_amount or "0",
        vat_amount=record.vat_amount or "0",
        total_with_vat=record.total_amount or "0",
    )


def find_record(records: list[InvoiceRecord], electronic_number: str) -> Optional[InvoiceRecord]:
    return next((r for r in records if r.electronic_number == electronic_number), None)
