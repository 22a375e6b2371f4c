"""Browser session coordinator.

Owns the live page, the workspace's persisted storage state, and the
optional external renderer. Commands run serially through this class;
page events flow independently into the EventCollector.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import IO, Any, Awaitable, Callable, Mapping, TypeVar

from pagelens.browser.base import (
    BrowserOperationError,
    PageDriver,
    SessionNotInitializedError,
)
from pagelens.browser.collector import EventCollector
from pagelens.browser.renderer import RendererSupervisor
from pagelens.domain.models import (
    ConsoleEvent,
    ConsoleSeverity,
    NetworkEvent,
    RendererState,
    WaitCondition,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATE_FILE_NAME = "session-state.json"

_READ_STORAGE_JS = """() => ({
    localStorage: Object.fromEntries(Object.entries(window.localStorage)),
    sessionStorage: Object.fromEntries(Object.entries(window.sessionStorage)),
})"""
_SET_STORAGE_JS = "([key, value]) => window.localStorage.setItem(key, value)"
_SCROLL_TO_JS = "([x, y]) => window.scrollTo(x, y)"
_CAN_GO_BACK_JS = "() => window.history.length > 1"


def is_terminal_environment(
    stdout: IO | None = None,
    environ: Mapping[str, str] | None = None,
) -> bool:
    """Whether we run in a bare terminal with no windowed display."""
    stdout = stdout if stdout is not None else sys.stdout
    environ = environ if environ is not None else os.environ
    try:
        tty = stdout.isatty()
    except (AttributeError, ValueError):
        tty = False
    return bool(tty and not environ.get("DISPLAY") and not environ.get("ELECTRON_RUN_AS_NODE"))


class BrowserSession:
    """Coordinates the page driver, event collector, and renderer.

    Example usage::

        session = BrowserSession(PlaywrightDriver(), state_dir=".pagelens/browser")
        await session.initialize()
        await session.navigate("https://example.com")
        png = await session.screenshot()
        await session.close()
    """

    def __init__(
        self,
        driver: PageDriver,
        state_dir: Path | str,
        collector: EventCollector | None = None,
        renderer: RendererSupervisor | None = None,
        headless: bool = False,
        viewport: tuple[int, int] = (1920, 1080),
    ) -> None:
        self._driver = driver
        self._state_dir = Path(state_dir)
        self._state_file = self._state_dir / STATE_FILE_NAME
        self._collector = collector or EventCollector()
        self._renderer = renderer
        # The renderer mirrors the page in the terminal, so no window is needed
        self._headless = True if renderer is not None else headless
        self._viewport = viewport
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def collector(self) -> EventCollector:
        return self._collector

    @property
    def renderer(self) -> RendererSupervisor | None:
        return self._renderer

    @property
    def state_file(self) -> Path:
        return self._state_file

    @property
    def current_url(self) -> str | None:
        if not self._initialized:
            return None
        return self._driver.url or None

    async def initialize(self) -> None:
        """Launch the browser with the workspace's saved storage state."""
        if self._initialized:
            return
        self._state_dir.mkdir(parents=True, exist_ok=True)
        storage_state = self._load_storage_state()
        await self._driver.launch(
            headless=self._headless,
            viewport=self._viewport,
            storage_state=storage_state,
        )
        self._collector.attach(self._driver)
        self._initialized = True
        logger.info(
            "Browser session initialized (state %s, renderer=%s)",
            "restored" if storage_state else "empty",
            "on" if self._renderer is not None else "off",
        )

    def _load_storage_state(self) -> dict[str, Any] | None:
        if not self._state_file.exists():
            return None
        try:
            with open(self._state_file, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable storage state %s: %s", self._state_file, e)
            return None

    async def _call(self, operation: str, func: Callable[..., Awaitable[T]], *args: Any) -> T:
        """Run a driver call, wrapping its failures with the operation name."""
        if not self._initialized:
            raise SessionNotInitializedError(operation)
        try:
            return await func(*args)
        except Exception as e:
            raise BrowserOperationError(str(e), operation=operation) from e

    async def _mirror(self, command: str, *args: object) -> None:
        if self._renderer is not None:
            await self._renderer.send_command(command, args)

    # -- Navigation and interaction -------------------------------------------

    async def navigate(self, url: str, wait_until: WaitCondition = "load") -> None:
        if not self._initialized:
            raise SessionNotInitializedError("navigate")
        if self._renderer is not None:
            if self._renderer.state is RendererState.NOT_STARTED:
                await self._renderer.start(url)
            else:
                await self._renderer.navigate(url)
        await self._call("navigate", self._driver.goto, url, wait_until)

    async def click(self, selector: str) -> None:
        await self._call("click", self._driver.click, selector)

    async def type(self, selector: str, text: str) -> None:
        await self._call("type", self._driver.fill, selector, text)

    async def screenshot(self, full_page: bool = False) -> bytes:
        """Capture the page as PNG bytes; displaying them is up to the caller."""
        return await self._call("screenshot", self._driver.screenshot, full_page)

    async def evaluate(self, script: str) -> Any:
        return await self._call("evaluate", self._driver.evaluate, script)

    async def scroll(self, delta_x: float, delta_y: float) -> None:
        await self._call("scroll", self._driver.wheel, delta_x, delta_y)
        await self._mirror("scroll", delta_x, delta_y)

    async def scroll_to(self, x: float, y: float) -> None:
        await self._call("scroll to", self._driver.evaluate, _SCROLL_TO_JS, [x, y])
        await self._mirror("scrollTo", x, y)

    async def scroll_to_element(self, selector: str) -> None:
        await self._call("scroll to element", self._driver.scroll_into_view, selector)
        await self._mirror("scrollToElement", selector)

    async def page_down(self) -> None:
        await self.scroll(0, self._viewport[1])

    async def page_up(self) -> None:
        await self.scroll(0, -self._viewport[1])

    async def title(self) -> str:
        return await self._call("get title", self._driver.title)

    async def page_info(self) -> dict[str, Any]:
        """Summary of the page for a host UI: url, title, history state."""
        return {
            "url": self.current_url or "about:blank",
            "title": await self.title(),
            "loading": False,
            "can_go_back": bool(
                await self._call("check history", self._driver.evaluate, _CAN_GO_BACK_JS)
            ),
            "can_go_forward": False,
        }

    # -- Storage --------------------------------------------------------------

    async def get_storage(self) -> dict[str, Any]:
        """Read the page's localStorage and sessionStorage."""
        return await self._call("get storage", self._driver.evaluate, _READ_STORAGE_JS)

    async def set_storage_item(self, key: str, value: str) -> None:
        await self._call("set storage", self._driver.evaluate, _SET_STORAGE_JS, [key, value])

    async def save(self) -> None:
        """Persist cookies and storage for the workspace."""
        if not self._initialized:
            return
        state = await self._call("save session", self._driver.storage_state)
        self._state_dir.mkdir(parents=True, exist_ok=True)
        # Swap in a complete file; a failed write leaves the previous state
        tmp_file = self._state_file.with_name(self._state_file.name + ".tmp")
        try:
            with open(tmp_file, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2)
            os.replace(tmp_file, self._state_file)
        except BaseException:
            tmp_file.unlink(missing_ok=True)
            raise
        logger.debug("Saved storage state to %s", self._state_file)

    # -- Page activity --------------------------------------------------------

    def get_console_logs(self, severity: ConsoleSeverity | str | None = None) -> list[ConsoleEvent]:
        return self._collector.get_console(severity)

    def get_network_requests(self, url_filter: str | None = None) -> list[NetworkEvent]:
        return self._collector.get_network(url_filter)

    def clear_logs(self) -> None:
        self._collector.clear()

    # -- Teardown -------------------------------------------------------------

    async def close(self) -> None:
        """Save state, stop the renderer, and close the browser.

        Every step runs even if an earlier one fails; failures are logged.
        """
        steps: list[tuple[str, Callable[[], Awaitable[None]]]] = [("save session", self.save)]
        if self._renderer is not None:
            steps.append(("stop renderer", self._renderer.stop))
        steps.append(("close browser", self._driver.close))

        for name, step in steps:
            try:
                await step()
            except Exception as e:
                logger.warning("Teardown step '%s' failed: %s", name, e)

        self._collector.detach(self._driver)
        self._initialized = False
        logger.info("Browser session closed")
