"""Shared fixtures: an in-memory portal implementing the Document protocol."""
import pytest
from selectolax.parser import HTMLParser

from eta_harvester.browser.document import AddedNode
from eta_harvester.jobs.readiness import HarvestTimings


def row_html(
    electronic: str = "",
    internal: str = "",
    total: str = "",
    date: str = "2024-03-01",
    time: str = "10:15",
    doc_type: str = "فاتورة",
    version: str = "1.0",
    seller: str = "Seller Co",
    seller_tax: str = "100-200-300",
    buyer: str = "Buyer Co",
    buyer_tax: str = "400-500-600",
    submission: str = "SUB123",
    status_html: str = '<span class="textStatus">Valid</span>',
    style: str = "",
) -> str:
    style_attr = f' style="{style}"' if style else ""
    return f"""
    <div class="ms-DetailsRow" role="row"{style_attr}>
      <div class="ms-DetailsRow-cell" data-automation-key="uuid">
        <div class="internalId-link"><a class="griCellTitle">{electronic}</a></div>
        <div class="griCellSubTitle">{internal}</div>
      </div>
      <div class="ms-DetailsRow-cell" data-automation-key="dateTimeReceived">
        <div class="griCellTitleGray">{date}</div><div class="griCellSubTitle">{time}</div>
      </div>
      <div class="ms-DetailsRow-cell" data-automation-key="typeName">
        <div class="griCellTitleGray">{doc_type}</div><div class="griCellSubTitle">{version}</div>
      </div>
      <div class="ms-DetailsRow-cell" data-automation-key="total">
        <div class="griCellTitleGray">{total}</div>
      </div>
      <div class="ms-DetailsRow-cell" data-automation-key="issuerName">
        <div class="griCellTitleGray">{seller}</div><div class="griCellSubTitle">{seller_tax}</div>
      </div>
      <div class="ms-DetailsRow-cell" data-automation-key="receiverName">
        <div class="griCellTitleGray">{buyer}</div><div class="griCellSubTitle">{buyer_tax}</div>
      </div>
      <div class="ms-DetailsRow-cell" data-automation-key="submission">
        <a class="submissionId-link">{submission}</a>
      </div>
      <div class="ms-DetailsRow-cell" data-automation-key="status">{status_html}</div>
    </div>
    """


def first_row(html: str):
    return HTMLParser(html).css_first(".ms-DetailsRow")


class FakePortal:
    """
    Scripted documents table.

    pages maps page number -> list of electronic numbers shown on it.
    Clicks that would land on a page in fail_pages leave the table where it
    was, the way a request that never completes does.
    """

    def __init__(
        self,
        pages: dict[int, list[str]],
        current_page: int = 1,
        total_count: int | None = None,
        fail_pages: set[int] | None = None,
        page_buttons: bool = True,
        loading: bool = False,
        extra_html: str = "",
    ):
        self.pages = pages
        self.current_page = current_page
        self.total_count = total_count if total_count is not None else sum(len(r) for r in pages.values())
        self.fail_pages = fail_pages or set()
        self.page_buttons = page_buttons
        self.loading = loading
        self.extra_html = extra_html
        self.clicks: list[tuple[str, int]] = []
        self.snapshots = 0
        self.listeners = []

    @property
    def last_page(self) -> int:
        return max(self.pages)

    def rows_for(self, page: int) -> str:
        return "".join(
            row_html(electronic=num, internal=f"INT-{num}", total="1,140.00")
            for num in self.pages.get(page, [])
        )

    def render(self) -> str:
        page = self.current_page
        spinner = '<div class="ms-Spinner"></div>' if self.loading else ""
        buttons = ""
        if self.page_buttons:
            buttons = "".join(
                f'<button class="ms-Button eta-pageNumber{" is-checked" if n == page else ""}">'
                f'<span class="ms-Button-label">{n}</span></button>'
                for n in sorted(self.pages)
            )
        prev_disabled = " disabled" if page <= 1 else ""
        next_disabled = " disabled" if page >= self.last_page else ""
        active_marker = ""
        if not self.page_buttons:
            # The active page label is still rendered without the clickable list.
            active_marker = (
                f'<span class="eta-pageNumber is-checked"><span class="ms-Button-label">{page}</span></span>'
            )
        return f"""
        <html><body>
          {spinner}
          <div class="ms-DetailsList">
            <div class="ms-DetailsHeader" role="row">
              <div class="ms-DetailsHeader-cell">Electronic number</div>
            </div>
            {self.rows_for(page)}
            <div class="ms-DetailsRow" role="row" style="display: none">
              <div class="ms-DetailsRow-cell" data-automation-key="uuid">
                <div class="internalId-link"><a class="griCellTitle">STALE-ROW</a></div>
              </div>
            </div>
          </div>
          {self.extra_html}
          <div class="eta-pagination">
            <div class="eta-pagination-totalrecordCount-label">النتائج: {self.total_count}</div>
            <button class="ms-Button"{prev_disabled}><i data-icon-name="ChevronLeft"></i></button>
            {buttons}{active_marker}
            <button class="ms-Button"{next_disabled}><i data-icon-name="ChevronRight"></i></button>
          </div>
        </body></html>
        """

    async def snapshot(self) -> str:
        self.snapshots += 1
        return self.render()

    async def click(self, selector: str, index: int = 0) -> bool:
        nodes = HTMLParser(self.render()).css(selector)
        if index >= len(nodes):
            return False
        node = nodes[index]
        self.clicks.append((selector, index))

        if "ChevronRight" in selector:
            target = self.current_page + 1
        elif "ChevronLeft" in selector:
            target = self.current_page - 1
        else:
            label = node.css_first(".ms-Button-label")
            target = int(label.text(strip=True)) if label is not None else self.current_page

        button = node if node.tag == "button" else node.parent
        if "disabled" in button.attributes:
            return True
        if target in self.fail_pages or target not in self.pages:
            return True
        self.current_page = target
        return True

    def subscribe(self, listener):
        self.listeners.append(listener)

        def unsubscribe():
            if listener in self.listeners:
                self.listeners.remove(listener)

        return unsubscribe

    def emit(self, *nodes: AddedNode) -> None:
        for listener in list(self.listeners):
            listener(list(nodes))


@pytest.fixture
def fast_timings() -> HarvestTimings:
    return HarvestTimings(
        poll_interval=0.001,
        load_timeout=0.05,
        stability_samples=2,
        stability_interval=0.001,
        settle_delay=0,
        page_delay=0,
        rescan_debounce=0.02,
        details_batch_delay=0,
    )


@pytest.fixture
def three_pages() -> dict[int, list[str]]:
    return {
        1: ["EA1", "EA2", "EA3"],
        2: ["EB1", "EB2", "EB3"],
        3: ["EC1", "EC2"],
    }
