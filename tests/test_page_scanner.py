"""Tests for page scanning and pagination extraction."""
import pytest
from selectolax.parser import HTMLParser

from conftest import FakePortal, row_html
from eta_harvester.parse.page_scanner import PageScanner, is_rendered, valid_rows


class StaticDocument:
    """Document returning a fixed (replaceable) HTML string."""

    def __init__(self, html: str):
        self.html = html

    async def snapshot(self) -> str:
        return self.html

    async def click(self, selector: str, index: int = 0) -> bool:
        return False

    def subscribe(self, listener):
        return lambda: None


def footer(total_label: str = "النتائج: 25", page: int | str = 1) -> str:
    return f"""
    <div class="eta-pagination-totalrecordCount-label">{total_label}</div>
    <button class="ms-Button eta-pageNumber is-checked"><span class="ms-Button-label">{page}</span></button>
    """


@pytest.mark.asyncio
async def test_scan_empty_document():
    """No rows at all: empty result, no exception."""
    scanner = PageScanner(StaticDocument("<html><body></body></html>"))
    records, pagination = await scanner.scan()

    assert records == []
    assert pagination.total_count == 0
    assert pagination.current_page == 1


@pytest.mark.asyncio
async def test_scan_filters_hidden_and_placeholder_rows():
    html = (
        row_html(electronic="VISIBLE", internal="I1", total="10")
        + row_html(electronic="GONE", total="10", style="display:none")
        + row_html(electronic="FADING", total="10", style="opacity: 0.4")
        + row_html(total="10")  # placeholder without identifiers
        + '<div hidden>' + row_html(electronic="HIDDEN-PARENT") + "</div>"
        + footer()
    )
    records, _ = await PageScanner(StaticDocument(html)).scan()

    assert [r.electronic_number for r in records] == ["VISIBLE"]
    assert records[0].index == 1


def test_visibility_marker_overrides_markup():
    html = row_html(electronic="E1").replace('role="row"', 'role="row" data-harvest-visible="0"', 1)
    row = HTMLParser(html).css_first(".ms-DetailsRow")
    assert not is_rendered(row)

    html = row_html(electronic="E1", style="display:none").replace(
        'role="row"', 'role="row" data-harvest-visible="1"', 1
    )
    row = HTMLParser(html).css_first(".ms-DetailsRow")
    assert is_rendered(row)


def test_header_rows_are_not_rows():
    html = '<div class="ms-DetailsHeader" role="row"><div>Electronic number</div></div>'
    assert valid_rows(HTMLParser(html)) == []


@pytest.mark.asyncio
async def test_pagination_arabic_label():
    html = "".join(row_html(electronic=f"E{i}") for i in range(10)) + footer("النتائج: 25", page=2)
    _, pagination = await PageScanner(StaticDocument(html)).scan()

    assert pagination.total_count == 25
    assert pagination.current_page == 2
    assert pagination.total_pages == 3


@pytest.mark.asyncio
async def test_pagination_english_label_with_separator():
    html = row_html(electronic="E1") + footer("Results: 1,234")
    _, pagination = await PageScanner(StaticDocument(html)).scan()

    assert pagination.total_count == 1234
    assert pagination.total_pages == 124


@pytest.mark.asyncio
async def test_page_size_inferred_from_visible_rows():
    html = "".join(row_html(electronic=f"E{i}") for i in range(20)) + footer("Results: 50")
    _, pagination = await PageScanner(StaticDocument(html)).scan()
    assert pagination.total_pages == 3


@pytest.mark.asyncio
async def test_total_retained_when_label_does_not_match():
    """A footer that fails to match never resets the total to zero."""
    document = StaticDocument(row_html(electronic="E1") + footer("النتائج: 40"))
    scanner = PageScanner(document)
    _, first = await scanner.scan()
    assert first.total_count == 40

    document.html = row_html(electronic="E1") + footer("loading...")
    _, second = await scanner.scan()
    assert second.total_count == 40
    assert second.total_pages == 4

    document.html = row_html(electronic="E1")
    _, third = await scanner.scan()
    assert third.total_count == 40


@pytest.mark.asyncio
async def test_rescan_is_idempotent(three_pages):
    portal = FakePortal(three_pages)
    scanner = PageScanner(portal, default_page_size=3)

    first, _ = await scanner.scan()
    second, _ = await scanner.scan()

    assert [r.model_dump() for r in first] == [r.model_dump() for r in second]
    assert [r.electronic_number for r in first] == ["EA1", "EA2", "EA3"]


@pytest.mark.asyncio
async def test_every_scan_reads_a_fresh_snapshot(three_pages):
    portal = FakePortal(three_pages)
    scanner = PageScanner(portal, default_page_size=3)

    await scanner.scan()
    portal.current_page = 2
    records, pagination = await scanner.scan()

    assert portal.snapshots == 2
    assert pagination.current_page == 2
    assert [r.page_number for r in records] == [2, 2, 2]


@pytest.mark.asyncio
async def test_page_size_follows_current_rows():
    """A smaller page after a larger one brings the page count back up."""
    document = StaticDocument("".join(row_html(electronic=f"E{i}") for i in range(20)) + footer("Results: 40"))
    scanner = PageScanner(document)
    _, wide = await scanner.scan()
    assert wide.total_pages == 2

    document.html = "".join(row_html(electronic=f"E{i}") for i in range(10)) + footer("Results: 40")
    _, narrow = await scanner.scan()
    assert narrow.total_pages == 4


@pytest.mark.asyncio
async def test_unreadable_labels_keep_previous_values():
    document = StaticDocument(row_html(electronic="E1") + footer("النتائج: 30", page=3))
    scanner = PageScanner(document)
    await scanner.scan()

    document.html = row_html(electronic="E1") + footer("النتائج: ,", page="…")
    _, pagination = await scanner.scan()

    assert pagination.total_count == 30
    assert pagination.current_page == 3
