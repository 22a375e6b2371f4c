"""Page driver implementation using Playwright's async API."""

from __future__ import annotations

import logging
from typing import Any, Callable

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from pagelens.browser.base import PageDriver
from pagelens.domain.models import WaitCondition

logger = logging.getLogger(__name__)


class PlaywrightDriver(PageDriver):
    """Drives one page in a Playwright-launched browser."""

    def __init__(
        self,
        engine: str = "chromium",
        default_timeout_ms: float = 30000,
    ) -> None:
        self._engine = engine
        self._default_timeout_ms = default_timeout_ms
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    async def launch(
        self,
        *,
        headless: bool,
        viewport: tuple[int, int],
        storage_state: dict[str, Any] | None = None,
    ) -> None:
        self._playwright = await async_playwright().start()
        browser_type = getattr(self._playwright, self._engine, self._playwright.chromium)
        self._browser = await browser_type.launch(headless=headless)
        width, height = viewport
        self._context = await self._browser.new_context(
            storage_state=storage_state,
            viewport={"width": width, "height": height},
        )
        self._page = await self._context.new_page()
        self._page.set_default_timeout(self._default_timeout_ms)
        logger.info(
            "Launched %s (headless=%s, viewport %dx%d)",
            self._engine, headless, width, height,
        )

    async def close(self) -> None:
        try:
            if self._browser is not None:
                await self._browser.close()
                logger.info("Closed %s browser", self._engine)
        finally:
            try:
                if self._playwright is not None:
                    await self._playwright.stop()
            finally:
                self._page = None
                self._context = None
                self._browser = None
                self._playwright = None

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        self._require_page().on(event, handler)

    async def goto(self, url: str, wait_until: WaitCondition) -> None:
        await self._require_page().goto(url, wait_until=wait_until)

    async def click(self, selector: str) -> None:
        await self._require_page().click(selector)

    async def fill(self, selector: str, text: str) -> None:
        await self._require_page().fill(selector, text)

    async def screenshot(self, full_page: bool = False) -> bytes:
        return await self._require_page().screenshot(full_page=full_page, type="png")

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        return await self._require_page().evaluate(expression, arg)

    async def wheel(self, delta_x: float, delta_y: float) -> None:
        await self._require_page().mouse.wheel(delta_x, delta_y)

    async def scroll_into_view(self, selector: str) -> None:
        await self._require_page().locator(selector).scroll_into_view_if_needed()

    async def title(self) -> str:
        return await self._require_page().title()

    async def storage_state(self) -> dict[str, Any]:
        if self._context is None:
            raise RuntimeError("Browser context is not open")
        return await self._context.storage_state()

    @property
    def url(self) -> str | None:
        return self._page.url if self._page is not None else None

    def _require_page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Browser page is not open. Call launch() first.")
        return self._page
