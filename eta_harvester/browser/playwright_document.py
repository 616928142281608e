"""Document implementation backed by a live Chromium page."""
import logging
from typing import Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from eta_harvester.browser.document import (
    MEASURED_SELECTORS,
    VISIBILITY_ATTR,
    AddedNode,
    MutationListener,
    Unsubscribe,
)
from eta_harvester.config import config

logger = logging.getLogger(__name__)

BINDING_NAME = "__etaHarvestMutations"

MARK_VISIBILITY_JS = """
([selectors, attr]) => {
    const visible = el => {
        if (!el.isConnected) return false;
        const style = window.getComputedStyle(el);
        if (style.display === 'none' || style.visibility === 'hidden') return false;
        if (parseFloat(style.opacity) < 1) return false;
        const rect = el.getBoundingClientRect();
        return rect.width > 0 && rect.height > 0;
    };
    for (const selector of selectors) {
        document.querySelectorAll(selector).forEach(el => {
            el.setAttribute(attr, visible(el) ? '1' : '0');
        });
    }
}
"""

OBSERVER_JS = """
(() => {
    if (window.__etaHarvestObserver) return;
    const install = () => {
        window.__etaHarvestObserver = new MutationObserver(mutations => {
            const added = [];
            for (const mutation of mutations) {
                if (mutation.type !== 'childList') continue;
                mutation.addedNodes.forEach(node => {
                    if (node.nodeType !== Node.ELEMENT_NODE) return;
                    added.push({
                        classes: Array.from(node.classList || []),
                        containsRow: !!(node.querySelector && node.querySelector('.ms-DetailsRow')),
                    });
                });
            }
            if (added.length && window.%(binding)s) window.%(binding)s(added);
        });
        window.__etaHarvestObserver.observe(document.body, {childList: true, subtree: true});
    };
    if (document.body) install();
    else document.addEventListener('DOMContentLoaded', install);
})();
""" % {"binding": BINDING_NAME}


class BrowserLaunchError(RuntimeError):
    """The browser or the portal page could not be opened."""


class PlaywrightDocument:
    """Chromium page exposed through the Document protocol."""

    def __init__(
        self,
        url: Optional[str] = None,
        headless: Optional[bool] = None,
        storage_state: Optional[str] = None,
    ):
        self.url = url or config.PORTAL_URL
        self.headless = config.HEADLESS if headless is None else headless
        self.storage_state = storage_state or config.STORAGE_STATE
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._listeners: list[MutationListener] = []

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("PlaywrightDocument is not open")
        return self._page

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def open(self) -> None:
        """Launch Chromium, install the mutation bridge and open the portal."""
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self.headless)
            self._context = await self._browser.new_context(
                storage_state=self.storage_state or None,
                locale="ar-EG",
            )
            await self._context.expose_function(BINDING_NAME, self._dispatch)
            await self._context.add_init_script(script=OBSERVER_JS)
            self._page = await self._context.new_page()
            await self._goto(self.url)
        except Exception as e:
            await self.close()
            raise BrowserLaunchError(f"Could not open {self.url}: {e}") from e
        logger.info(f"Opened {self.url} (headless={self.headless})")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=15),
        retry=retry_if_exception_type(PlaywrightTimeoutError),
        reraise=True,
    )
    async def _goto(self, url: str) -> None:
        logger.debug(f"Navigating to {url}")
        await self.page.goto(url, wait_until="domcontentloaded", timeout=config.NAVIGATION_TIMEOUT * 1000)

    async def close(self) -> None:
        if self._context is not None:
            await self._context.close()
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()
        self._context = self._browser = self._playwright = None
        self._page = None

    async def save_storage_state(self, path: str) -> None:
        """Persist cookies/local storage so later runs skip the manual login."""
        if self._context is not None:
            await self._context.storage_state(path=path)

    async def snapshot(self) -> str:
        await self.page.evaluate(MARK_VISIBILITY_JS, [list(MEASURED_SELECTORS), VISIBILITY_ATTR])
        return await self.page.content()

    async def click(self, selector: str, index: int = 0) -> bool:
        locator = self.page.locator(selector)
        if await locator.count() <= index:
            return False
        try:
            await locator.nth(index).click(timeout=config.NAVIGATION_TIMEOUT * 1000)
            return True
        except PlaywrightTimeoutError:
            logger.warning(f"Timed out clicking {selector!r}[{index}]")
            return False

    def subscribe(self, listener: MutationListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _dispatch(self, added: list[dict]) -> None:
        nodes = [
            AddedNode(classes=tuple(item.get("classes") or ()), contains_row=bool(item.get("containsRow")))
            for item in added
        ]
        for listener in list(self._listeners):
            try:
                listener(nodes)
            except Exception as e:
                logger.warning(f"Mutation listener raised: {e}")
        logger.debug(f"Dispatched {len(nodes)} added nodes")
