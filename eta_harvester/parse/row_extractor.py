"""Map one documents-table row to an InvoiceRecord."""
import logging
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from selectolax.parser import Node

from eta_harvester.config import config
from eta_harvester.parse.models import UNSPECIFIED, InvoiceRecord

logger = logging.getLogger(__name__)

CELL_SELECTOR = ".ms-DetailsRow-cell"
VAT_RATE = Decimal("0.14")
THOUSANDS_SEPARATORS = re.compile(r"[,٬]")
ARROW = " → "

# data-automation-key -> (title field, subtitle field)
TWO_LINE_CELLS = {
    "dateTimeReceived": ("issue_date", "issue_time"),
    "typeName": ("document_type", "document_version"),
    "issuerName": ("seller_name", "seller_tax_number"),
    "receiverName": ("buyer_name", "buyer_tax_number"),
}
TITLE_GRAY = ".griCellTitleGray"
SUBTITLE = ".griCellSubTitle"


def node_text(node: Node | None, selector: str | None = None) -> str:
    """Stripped text of node (or of its first match for selector)."""
    if node is None:
        return ""
    target = node.css_first(selector) if selector else node
    if target is None:
        return ""
    return target.text(separator=" ", strip=True)


def parse_amount(text: str) -> Decimal | None:
    """Parse a displayed amount, dropping ASCII and Arabic thousands separators."""
    if not text:
        return None
    cleaned = THOUSANDS_SEPARATORS.sub("", text).strip()
    match = re.search(r"-?\d+(?:\.\d+)?", cleaned)
    if not match:
        return None
    try:
        return Decimal(match.group())
    except InvalidOperation:
        return None


def split_vat(gross: Decimal) -> tuple[str, str]:
    """Back-calculate (net, vat) from a 14% tax-inclusive gross, 2 decimals each."""
    cents = Decimal("0.01")
    vat = (gross * VAT_RATE / (1 + VAT_RATE)).quantize(cents, rounding=ROUND_HALF_UP)
    net = (gross - vat).quantize(cents, rounding=ROUND_HALF_UP)
    return f"{net:.2f}", f"{vat:.2f}"


def build_share_link(electronic_number: str, submission_id: str = "") -> str:
    """Public share URL for a document."""
    if not electronic_number:
        return ""
    if submission_id and len(submission_id) > 10:
        share_id = submission_id
    else:
        share_id = re.sub(r"[^A-Z0-9]", "", electronic_number)[:26]
    return f"{config.SHARE_BASE_URL}/{electronic_number}/share/{share_id}"


def extract_status(cell: Node) -> str:
    """Status text; a Valid→Rejected transition is joined with an arrow."""
    transition = cell.css_first(".horizontal.valid-rejected")
    if transition is not None:
        first = node_text(transition, ".status-Valid")
        second = node_text(transition, ".status-Rejected")
        if first and second:
            return f"{first}{ARROW}{second}"
        return first or second or node_text(transition)
    text_status = cell.css_first(".textStatus")
    if text_status is not None:
        return node_text(text_status)
    return node_text(cell)


def _cells_by_key(row: Node) -> dict[str, Node]:
    cells = {}
    for cell in row.css(CELL_SELECTOR):
        key = cell.attributes.get("data-automation-key")
        if key and key not in cells:
            cells[key] = cell
    return cells


def extract_record(row: Node, index: int, page_number: int) -> InvoiceRecord:
    """
    Extract one record from a row node.

    Never raises: a missing cell or sub-element leaves the field at its
    default and is reported with a warning.
    """
    record = InvoiceRecord(index=index, page_number=page_number)
    missing: list[str] = []

    try:
        cells = _cells_by_key(row)
        if not cells:
            logger.warning(f"Row {index} on page {page_number}: no cells found")
            return record

        uuid_cell = cells.get("uuid")
        if uuid_cell is not None:
            record.electronic_number = node_text(uuid_cell, ".internalId-link a.griCellTitle")
            record.internal_number = node_text(uuid_cell, SUBTITLE)
        else:
            missing.append("uuid")

        for key, (title_field, subtitle_field) in TWO_LINE_CELLS.items():
            cell = cells.get(key)
            if cell is None:
                missing.append(key)
                continue
            setattr(record, title_field, node_text(cell, TITLE_GRAY))
            setattr(record, subtitle_field, node_text(cell, SUBTITLE))

        total_cell = cells.get("total")
        if total_cell is not None:
            record.total_amount = node_text(total_cell, TITLE_GRAY)
            record.total_invoice = record.total_amount
            record.invoice_value = record.total_amount
        else:
            missing.append("total")

        submission_cell = cells.get("submission")
        if submission_cell is not None:
            record.submission_id = node_text(submission_cell, "a.submissionId-link")
            record.purchase_order_ref = record.submission_id
        else:
            missing.append("submission")

        status_cell = cells.get("status")
        if status_cell is not None:
            record.status = extract_status(status_cell)
        else:
            missing.append("status")

        gross = parse_amount(record.total_amount)
        if gross is not None:
            record.invoice_value, record.vat_amount = split_vat(gross)

        if record.seller_name and not record.seller_address:
            record.seller_address = UNSPECIFIED
        if record.buyer_name and not record.buyer_address:
            record.buyer_address = UNSPECIFIED

        record.external_link = build_share_link(record.electronic_number, record.submission_id)

    except Exception as e:
        logger.warning(f"Error extracting row {index} on page {page_number}: {e}")

    if missing:
        logger.warning(f"Row {index} on page {page_number}: missing cells {', '.join(missing)}")
    return record
