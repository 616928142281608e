"""Page-to-page navigation of the documents table."""
import logging
from typing import Optional

from selectolax.parser import HTMLParser, Node

from eta_harvester.browser.document import Document
from eta_harvester.jobs.readiness import ReadinessMonitor
from eta_harvester.parse.page_scanner import (
    BUTTON_LABEL_SELECTOR,
    PAGE_BUTTON_SELECTOR,
    PageScanner,
    parse_int,
)
from eta_harvester.parse.row_extractor import node_text

logger = logging.getLogger(__name__)

# Directional controls differ between locales and portal releases; tried in order.
NEXT_SELECTORS = (
    '[data-icon-name="ChevronRight"]',
    'button[aria-label="الصفحة التالية"]',
    'button[aria-label="Next page"]',
    'button[title="Next"]',
    ".eta-nextPage",
)
PREVIOUS_SELECTORS = (
    '[data-icon-name="ChevronLeft"]',
    'button[aria-label="الصفحة السابقة"]',
    'button[aria-label="Previous page"]',
    'button[title="Previous"]',
    ".eta-previousPage",
)


def _enclosing_button(node: Node) -> Node:
    current: Optional[Node] = node
    while current is not None:
        if current.tag == "button":
            return current
        current = current.parent
    return node


def is_disabled(control: Node) -> bool:
    attrs = control.attributes
    classes = (attrs.get("class") or "").split()
    return "disabled" in attrs or attrs.get("aria-disabled") == "true" or "is-disabled" in classes


class PaginationNavigator:
    """
    Moves the table between pages and verifies the move.

    Every failure is reported as False; nothing raises out of this class.
    """

    def __init__(self, document: Document, scanner: PageScanner, readiness: ReadinessMonitor):
        self.document = document
        self.scanner = scanner
        self.readiness = readiness

    async def _step(self, selectors: tuple[str, ...], direction: str) -> bool:
        try:
            tree = HTMLParser(await self.document.snapshot())
            for selector in selectors:
                for position, node in enumerate(tree.css(selector)):
                    if is_disabled(_enclosing_button(node)):
                        logger.debug(f"{direction} control {selector!r} is disabled")
                        continue
                    if await self.document.click(selector, position):
                        return True
            logger.debug(f"No usable {direction} control found")
            return False
        except Exception as e:
            logger.error(f"Error activating {direction} control: {e}")
            return False

    async def next(self) -> bool:
        """Activate the next-page control if present and enabled."""
        return await self._step(NEXT_SELECTORS, "next")

    async def previous(self) -> bool:
        """Activate the previous-page control if present and enabled."""
        return await self._step(PREVIOUS_SELECTORS, "previous")

    async def _click_page_number(self, page: int) -> Optional[bool]:
        """Click the direct control for page; None when no such control exists."""
        tree = HTMLParser(await self.document.snapshot())
        for position, button in enumerate(tree.css(PAGE_BUTTON_SELECTOR)):
            if parse_int(node_text(button, BUTTON_LABEL_SELECTOR)) == page:
                if is_disabled(button):
                    return False
                return await self.document.click(PAGE_BUTTON_SELECTOR, position)
        return None

    async def _step_to(self, page: int, current: int) -> bool:
        while current != page:
            moved = await (self.next() if page > current else self.previous())
            expected = current + 1 if page > current else current - 1
            if not moved:
                logger.warning(f"Stepping towards page {page} stopped at page {current}")
                return False
            await self.readiness.wait_for_page_loaded(expected)
            state = await self.scanner.extract_pagination()
            if state.current_page != expected:
                logger.warning(f"Step to page {expected} landed on page {state.current_page}")
                return False
            current = state.current_page
        return True

    async def go_to_page(self, page: int) -> bool:
        """Navigate to page and confirm it is active."""
        try:
            state = await self.scanner.extract_pagination()
            if state.current_page == page:
                return True

            clicked = await self._click_page_number(page)
            if clicked:
                await self.readiness.wait_for_page_loaded(page)
                state = await self.scanner.extract_pagination()
                if state.current_page == page:
                    logger.debug(f"Direct navigation to page {page} succeeded")
                    return True
                logger.warning(
                    f"Direct navigation to page {page} landed on page {state.current_page}, "
                    f"falling back to stepping"
                )
            elif clicked is None:
                logger.debug(f"No direct control for page {page}, stepping")

            return await self._step_to(page, state.current_page)
        except Exception as e:
            logger.error(f"Error navigating to page {page}: {e}")
            return False
