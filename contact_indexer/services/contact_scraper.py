import logging
import re
from typing import Any, AsyncContextManager, Callable

from playwright.async_api import Page, async_playwright

from contact_indexer.config import Settings
from contact_indexer.mappers.page_signals import ParsedPage, extract_page_signals, find_fallback_links
from contact_indexer.mappers.signal_merger import location_resolved, merge_signals
from contact_indexer.schemas.contact import ExtractionResult, PageSnapshot

logger = logging.getLogger(__name__)

_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/140.0.0.0 Safari/537.36"
)

_LAUNCH_ARGS = [
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-extensions",
    "--disable-blink-features=AutomationControlled",
]

_ROOT_SELECTOR = "body"
_OVERLAY_SELECTOR = "button, [role=button]"
_OVERLAY_CLOSE_TEXT = re.compile(r"\bClose\b")
_OVERLAY_CLICK_TIMEOUT_MS = 2000


class ContactScraperService:
    """Headless-browser contact extraction, one isolated browser per URL.

    The primary page is always visited. Contact-like pages on the same host
    are visited afterwards until address and coordinates are both known.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        launcher: Callable[[], AsyncContextManager[Any]] = async_playwright,
    ):
        settings = settings or Settings()
        self._launcher = launcher
        self._region = settings.default_phone_region
        self._primary_timeout_ms = settings.primary_timeout_ms
        self._fallback_timeout_ms = settings.fallback_timeout_ms
        self._settle_delay_ms = settings.settle_delay_ms
        self._max_fallback_pages = settings.max_fallback_pages

    async def extract(self, url: str) -> ExtractionResult:
        """Extract contact signals for ``url``. Never raises."""
        try:
            result = await self._extract_with_browser(url)
        except Exception as exc:
            logger.exception("Contact extraction failed for %s", url)
            return ExtractionResult(url=url, success=False, error=str(exc) or "scraping failed")
        return result.model_copy(update={"success": True, "error": ""})

    async def _extract_with_browser(self, url: str) -> ExtractionResult:
        async with self._launcher() as playwright:
            browser = await playwright.chromium.launch(headless=True, args=_LAUNCH_ARGS)
            try:
                context = await browser.new_context(user_agent=_USER_AGENT)
                page = await context.new_page()
                return await self._crawl(page, url)
            finally:
                await browser.close()

    async def _crawl(self, page: Page, url: str) -> ExtractionResult:
        primary = await self._load(page, url, self._primary_timeout_ms)
        result = merge_signals(ExtractionResult(url=url), extract_page_signals(primary, self._region))

        for link in self._fallback_links(primary):
            if location_resolved(result):
                break
            try:
                logger.info("Trying location page: %s", link)
                snapshot = await self._load(page, link, self._fallback_timeout_ms)
            except Exception as exc:
                logger.warning("Failed location page %s: %s", link, exc)
                continue
            result = merge_signals(result, extract_page_signals(snapshot, self._region))

        return result

    def _fallback_links(self, snapshot: PageSnapshot) -> list[str]:
        try:
            return find_fallback_links(ParsedPage.from_snapshot(snapshot), self._max_fallback_pages)
        except Exception:
            logger.warning("Could not collect fallback links on %s", snapshot.url, exc_info=True)
            return []

    async def _load(self, page: Page, url: str, timeout_ms: int) -> PageSnapshot:
        await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        await page.wait_for_selector(_ROOT_SELECTOR, timeout=timeout_ms)
        await page.wait_for_timeout(self._settle_delay_ms)
        await self._dismiss_overlay(page)

        html = await page.content()
        try:
            text = await page.inner_text(_ROOT_SELECTOR, timeout=timeout_ms)
        except Exception:
            logger.debug("No visible text on %s", url, exc_info=True)
            text = ""
        return PageSnapshot(url=page.url or url, html=html, text=text)

    async def _dismiss_overlay(self, page: Page) -> None:
        """Best-effort click on a consent/cookie "Close" control."""
        try:
            button = page.locator(_OVERLAY_SELECTOR).filter(has_text=_OVERLAY_CLOSE_TEXT).first
            if await button.count():
                await button.click(timeout=_OVERLAY_CLICK_TIMEOUT_MS)
        except Exception as exc:
            logger.debug("Overlay dismiss skipped on %s: %s", page.url, exc)
