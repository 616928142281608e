"""Locate valid record rows in a snapshot and read the pagination footer."""
import logging
import re

from selectolax.parser import HTMLParser, Node

from eta_harvester.browser.document import VISIBILITY_ATTR, Document
from eta_harvester.config import config
from eta_harvester.parse.models import InvoiceRecord, PaginationState
from eta_harvester.parse.row_extractor import extract_record, node_text

logger = logging.getLogger(__name__)

ROW_SELECTOR = '.ms-DetailsRow[role="row"]'
LOADING_SELECTOR = ".LoadingIndicator, .ms-Spinner"
TOTAL_LABEL_SELECTOR = ".eta-pagination-totalrecordCount-label"
PAGE_BUTTON_SELECTOR = ".eta-pageNumber"
ACTIVE_PAGE_SELECTOR = ".eta-pageNumber.is-checked"
BUTTON_LABEL_SELECTOR = ".ms-Button-label"
IDENTIFIER_SELECTORS = (".internalId-link a.griCellTitle", ".griCellSubTitle")

TOTAL_PATTERN = re.compile(r"(?:النتائج|Results)\s*:\s*([\d,٬]+)", re.IGNORECASE)
_HIDDEN_STYLE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden")
_OPACITY_STYLE = re.compile(r"opacity\s*:\s*(\d*\.?\d+)")


def is_rendered(node: Node) -> bool:
    """
    Whether a node is attached and visibly rendered.

    Live snapshots carry a measured visibility marker; static markup falls
    back to hidden/aria-hidden attributes and inline styles on the node and
    its ancestors.
    """
    marker = node.attributes.get(VISIBILITY_ATTR)
    if marker is not None:
        return marker == "1"

    current: Node | None = node
    while current is not None and current.tag not in ("html", "-undef"):
        attrs = current.attributes
        if "hidden" in attrs or attrs.get("aria-hidden") == "true":
            return False
        style = (attrs.get("style") or "").lower()
        if _HIDDEN_STYLE.search(style):
            return False
        opacity = _OPACITY_STYLE.search(style)
        if opacity and float(opacity.group(1)) < 1:
            return False
        current = current.parent
    return True


def has_identifier(row: Node) -> bool:
    """Row carries a populated electronic or internal number."""
    uuid_cell = row.css_first('[data-automation-key="uuid"]')
    if uuid_cell is None:
        return False
    return any(node_text(uuid_cell, selector) for selector in IDENTIFIER_SELECTORS)


def valid_rows(tree: HTMLParser) -> list[Node]:
    """Rows that are visible and identify a document, in DOM order."""
    return [row for row in tree.css(ROW_SELECTOR) if is_rendered(row) and has_identifier(row)]


def loading_visible(tree: HTMLParser) -> bool:
    return any(is_rendered(node) for node in tree.css(LOADING_SELECTOR))


def parse_int(text: str) -> int | None:
    digits = re.sub(r"[,٬\s]", "", text or "")
    return int(digits) if digits.isdigit() else None


class PageScanner:
    """Scans the current page of the documents table.

    Keeps the last pagination values so that a footer or page label which
    fails to parse does not reset the total or the active page. The page
    size comes from the rows of the snapshot being read, floored at the
    default.
    """

    def __init__(self, document: Document, default_page_size: int | None = None):
        self.document = document
        self.default_page_size = default_page_size or config.DEFAULT_PAGE_SIZE
        self.pagination = PaginationState()

    async def tree(self) -> HTMLParser:
        return HTMLParser(await self.document.snapshot())

    def read_pagination(self, tree: HTMLParser, visible_rows: int | None = None) -> PaginationState:
        """Update and return pagination from a parsed snapshot."""
        total_count = self.pagination.total_count
        current_page = self.pagination.current_page

        label = tree.css_first(TOTAL_LABEL_SELECTOR)
        if label is not None:
            match = TOTAL_PATTERN.search(node_text(label))
            parsed = parse_int(match.group(1)) if match else None
            if parsed is not None:
                total_count = parsed
            else:
                logger.debug(f"Total label did not match: {node_text(label)!r}")

        active = tree.css_first(ACTIVE_PAGE_SELECTOR)
        if active is not None:
            page = parse_int(node_text(active, BUTTON_LABEL_SELECTOR))
            if page:
                current_page = page
            else:
                logger.debug(f"Active page label unreadable: {node_text(active)!r}")

        if visible_rows is None:
            visible_rows = len(valid_rows(tree))
        page_size = max(visible_rows, self.default_page_size)

        self.pagination = PaginationState(
            current_page=current_page,
            total_pages=PaginationState.page_count(total_count, page_size),
            total_count=total_count,
        )
        return self.pagination

    async def extract_pagination(self) -> PaginationState:
        """Re-read pagination from a fresh snapshot."""
        return self.read_pagination(await self.tree())

    async def scan(self) -> tuple[list[InvoiceRecord], PaginationState]:
        """Extract all valid records on the current page plus pagination."""
        tree = await self.tree()
        rows = valid_rows(tree)
        pagination = self.read_pagination(tree, visible_rows=len(rows))

        records: list[InvoiceRecord] = []
        for position, row in enumerate(rows, start=1):
            try:
                record = extract_record(row, position, pagination.current_page)
            except Exception as e:
                logger.warning(f"Skipping row {position} on page {pagination.current_page}: {e}")
                continue
            if record.is_valid():
                records.append(record)

        logger.info(
            f"Page {pagination.current_page}/{pagination.total_pages}: "
            f"{len(records)} valid records (total {pagination.total_count})"
        )
        return records, pagination
