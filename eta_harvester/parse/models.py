"""Data models for harvested invoice records."""
import math
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_CURRENCY = "EGP"
UNSPECIFIED = "غير محدد"
SIGNED_ELECTRONICALLY = "موقع إلكترونياً"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LineItem(_CamelModel):
    """One line of an invoice details table."""

    item_code: str = ""
    code_name: str = ""
    description: str = ""
    quantity: str = "1"
    unit_code: str = "EA"
    unit_name: str = "قطعة"
    unit_price: str = "0"
    total_value: str = "0"
    vat_amount: str = "0"
    total_with_vat: str = "0"


class InvoiceRecord(_CamelModel):
    """One invoice row harvested from the documents table."""

    index: int = Field(..., description="1-based position of the row on its page")
    page_number: int = Field(..., description="Page the row was scanned from")

    electronic_number: str = ""
    internal_number: str = ""
    issue_date: str = ""
    issue_time: str = ""
    document_type: str = ""
    document_version: str = ""
    status: str = ""

    total_amount: str = Field(default="", description="Gross total as displayed")
    invoice_value: str = Field(default="", description="Net value, tax back-calculated")
    vat_amount: str = ""
    total_invoice: str = ""
    currency: str = DEFAULT_CURRENCY

    seller_name: str = ""
    seller_tax_number: str = ""
    seller_address: str = ""
    buyer_name: str = ""
    buyer_tax_number: str = ""
    buyer_address: str = ""

    submission_id: str = ""
    purchase_order_ref: str = ""
    purchase_order_desc: str = ""
    sales_order_ref: str = ""
    tax_discount: str = "0"
    electronic_signature: str = SIGNED_ELECTRONICALLY
    food_drug_guide: str = ""
    external_link: str = ""

    details: Optional[list[LineItem]] = None

    def is_valid(self) -> bool:
        """A record is worth keeping when any key field is populated."""
        return bool(self.electronic_number or self.internal_number or self.total_amount)


class PaginationState(_CamelModel):
    """Pagination as read from the table footer."""

    current_page: int = 1
    total_pages: int = 1
    total_count: int = 0

    @staticmethod
    def page_count(total_count: int, page_size: int) -> int:
        if total_count <= 0 or page_size <= 0:
            return 0
        return math.ceil(total_count / page_size)


class ProgressEvent(_CamelModel):
    """Transient progress notification emitted during a harvest."""

    current_page: int
    total_pages: int
    message: str
    percentage: float = 0.0

    @classmethod
    def build(cls, current_page: int, total_pages: int, message: str) -> "ProgressEvent":
        percentage = (current_page / total_pages) * 100 if total_pages > 0 else 0.0
        return cls(
            current_page=current_page,
            total_pages=total_pages,
            message=message,
            percentage=round(min(percentage, 100.0), 2),
        )


class PageData(_CamelModel):
    """Snapshot of the last scan."""

    records: list[InvoiceRecord] = Field(default_factory=list)
    total_count: int = 0
    current_page: int = 1
    total_pages: int = 1


class HarvestResult(_CamelModel):
    """Outcome of a multi-page harvest."""

    success: bool
    records: list[InvoiceRecord] = Field(default_factory=list)
    total_processed: int = 0
    skipped_pages: list[int] = Field(default_factory=list)
    error: Optional[str] = None


class DetailsResult(_CamelModel):
    """Outcome of a details lookup for one record."""

    success: bool
    line_items: list[LineItem] = Field(default_factory=list)
    error: Optional[str] = None
