"""Playwright-backed render surface for JavaScript-rendered listing pages."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Route,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from shelfscan.ingest.base import (
    NavigationError,
    ProbeTimeout,
    RenderSurface,
    SessionError,
    Viewport,
)

logger = logging.getLogger(__name__)

# Chromium launch flags for containerised headless runs
LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-gpu",
    "--no-first-run",
]

CLICK_TIMEOUT_MS = 5000


class PlaywrightSurface(RenderSurface):
    """One browser context + page, owned by a single scrape target.

    The context is created by configure(), so the user agent, viewport and
    locale are the context's own and the page's scripts see them too.
    """

    def __init__(self, browser: Browser):
        self._browser = browser
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._blocked: set[str] = set()

    @property
    def page(self) -> Page:
        if self._page is None:
            raise SessionError("Render session used before configure()")
        return self._page

    async def configure(
        self,
        viewport: Viewport,
        user_agent: str,
        headers: Dict[str, str],
        blocked_resource_types: List[str],
    ) -> None:
        locale = headers.get("Accept-Language", "").split(",")[0].strip() or None
        try:
            self._context = await self._browser.new_context(
                user_agent=user_agent,
                viewport={"width": viewport.width, "height": viewport.height},
                locale=locale,
                extra_http_headers=headers,
                ignore_https_errors=True,
            )
            self._page = await self._context.new_page()

            self._blocked = set(blocked_resource_types)
            if self._blocked:
                await self._page.route("**/*", self._route_request)
        except PlaywrightError as e:
            raise SessionError(f"Failed to configure browser context: {e}") from e

    async def _route_request(self, route: Route) -> None:
        """Abort heavy resource types, let everything else through."""
        try:
            if route.request.resource_type in self._blocked:
                await route.abort()
            else:
                await route.continue_()
        except PlaywrightError as e:
            # Page may have navigated or closed while the request was in flight
            logger.debug(f"Route handling error: {e}")

    async def navigate(self, url: str, timeout_ms: int) -> None:
        logger.debug(f"Navigating to {url}")
        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            raise NavigationError(url, "Navigation timeout")
        except PlaywrightError as e:
            raise NavigationError(url, str(e))

    async def wait_for_selector(
        self, selector: str, timeout_ms: int, hidden: bool = False
    ) -> None:
        state = "hidden" if hidden else "attached"
        try:
            await self.page.wait_for_selector(selector, state=state, timeout=timeout_ms)
        except PlaywrightTimeoutError:
            raise ProbeTimeout(f"selector '{selector}' ({state})", timeout_ms / 1000)

    async def query_count(self, selector: str) -> int:
        return await self.page.locator(selector).count()

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if arg is None:
            return await self.page.evaluate(script)
        return await self.page.evaluate(script, arg)

    async def click(self, selector: str) -> bool:
        try:
            element = self.page.locator(selector).first
            if await element.count() == 0:
                return False
            if not await element.is_visible() or not await element.is_enabled():
                return False
            await element.scroll_into_view_if_needed(timeout=CLICK_TIMEOUT_MS)
            await element.click(timeout=CLICK_TIMEOUT_MS)
            return True
        except PlaywrightTimeoutError:
            logger.debug(f"Click timed out for {selector}")
            return False
        except PlaywrightError as e:
            logger.debug(f"Click failed for {selector}: {e}")
            return False

    async def scroll_by(self, pixels: int) -> None:
        await self.page.evaluate("(px) => window.scrollBy(0, px)", pixels)

    async def screenshot(self) -> bytes:
        return await self.page.screenshot(type="png", full_page=False)

    async def close(self) -> None:
        # Closing the context also closes its page
        if self._context is not None:
            await self._context.close()
            self._context = None
            self._page = None


class PlaywrightSurfaceFactory:
    """Lazily launches one shared Chromium and hands out isolated contexts."""

    def __init__(self, headless: bool = True):
        self.headless = headless
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._init_lock = asyncio.Lock()

    async def _ensure_browser(self) -> Browser:
        async with self._init_lock:
            if self._playwright is None:
                self._playwright = await async_playwright().start()

            if self._browser is None or not self._browser.is_connected():
                logger.info("Launching headless Chromium")
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless,
                    args=LAUNCH_ARGS,
                )

            return self._browser

    async def open(self) -> PlaywrightSurface:
        """
        Open a fresh, unshared render session.

        The browser context itself is created when the session is configured.

        Raises:
            SessionError: If the browser cannot be launched
        """
        try:
            browser = await self._ensure_browser()
        except PlaywrightError as e:
            raise SessionError(f"Failed to launch browser: {e}") from e

        return PlaywrightSurface(browser)

    async def close(self):
        """Close browser and cleanup."""
        if self._browser:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                logger.error(f"Error closing browser: {e}")
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
