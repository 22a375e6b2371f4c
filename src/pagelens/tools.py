"""Agent-facing browser tools.

Each tool wraps one session operation and returns a short human-readable
report, the form a calling agent consumes. Console and network tools
write their results to log files and point at them, so large logs are
inspected with grep instead of being pasted back whole.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pagelens.browser.logs import LogWriter
from pagelens.browser.renderer import RendererSupervisor
from pagelens.browser.session import BrowserSession, is_terminal_environment
from pagelens.config.settings import Settings
from pagelens.domain.models import ConsoleSeverity, Frame, WaitCondition
from pagelens.terminal.display import TerminalDisplay
from pagelens.terminal.probe import CapabilityProbe

logger = logging.getLogger(__name__)


class BrowserTools:
    """The operations exposed to the routing layer."""

    def __init__(
        self,
        session: BrowserSession,
        display: TerminalDisplay,
        logs: LogWriter,
        cell_size: tuple[int, int] = (80, 40),
        default_wait_until: WaitCondition = "load",
    ) -> None:
        self.session = session
        self.display = display
        self.logs = logs
        self._cell_size = cell_size
        self._default_wait_until = default_wait_until

    async def startup(self) -> None:
        """Prepare logs, probe the terminal, and launch the browser."""
        self.logs.initialize()
        await self.display.initialize()
        await self.session.initialize()

    async def shutdown(self) -> None:
        await self.session.close()

    async def navigate(self, url: str, wait_until: WaitCondition | None = None) -> str:
        await self.session.navigate(url, wait_until or self._default_wait_until)
        title = await self.session.title()
        return f"Navigated to {url}\nPage title: {title}"

    async def click(self, selector: str) -> str:
        await self.session.click(selector)
        return f"Clicked element: {selector}"

    async def type(self, selector: str, text: str) -> str:
        await self.session.type(selector, text)
        return f"Typed into {selector}"

    async def screenshot(self, full_page: bool = False) -> str:
        data = await self.session.screenshot(full_page)
        width, height = self._cell_size
        result = self.display.show(Frame(data=data, width=width, height=height))
        return f"Screenshot captured ({len(data)} bytes)\n{result.message}"

    async def console_logs(self, severity: ConsoleSeverity | str | None = None) -> str:
        events = self.session.get_console_logs(severity)
        path = self.logs.write_console_logs(events)
        return (
            f"Console logs written to: {path}\n"
            f"Total logs: {len(events)}\n\n"
            f'Use grep tool to inspect: grep "ERROR" {path}'
        )

    async def network_requests(self, url_filter: str | None = None) -> str:
        events = self.session.get_network_requests(url_filter)
        path = self.logs.write_network_logs(events)
        return (
            f"Network logs written to: {path}\n"
            f"Total requests: {len(events)}\n\n"
            f'Use grep tool to inspect: grep "POST" {path}'
        )

    async def evaluate(self, script: str) -> str:
        result = await self.session.evaluate(script)
        return f"Result: {_to_json(result)}"

    async def storage_get(self) -> str:
        storage = await self.session.get_storage()
        return f"Storage state:\n{_to_json(storage)}"

    async def storage_set(self, key: str, value: str) -> str:
        await self.session.set_storage_item(key, value)
        return f"Set localStorage['{key}'] = '{value}'"

    async def current_url(self) -> str:
        return f"Current URL: {self.session.current_url}"

    async def clear_logs(self) -> str:
        self.session.clear_logs()
        return "Logs cleared"

    async def scroll(self, delta_x: float = 0, delta_y: float = 0) -> str:
        await self.session.scroll(delta_x, delta_y)
        return f"Scrolled by ({delta_x}, {delta_y})"

    async def scroll_to(self, x: float, y: float) -> str:
        await self.session.scroll_to(x, y)
        return f"Scrolled to ({x}, {y})"

    async def scroll_to_element(self, selector: str) -> str:
        await self.session.scroll_to_element(selector)
        return f"Scrolled to element: {selector}"

    async def page_up(self) -> str:
        await self.session.page_up()
        return "Scrolled up one page"

    async def page_down(self) -> str:
        await self.session.page_down()
        return "Scrolled down one page"


def _to_json(value: Any) -> str:
    return json.dumps(value, indent=2, default=str)


def create_tools(settings: Settings) -> BrowserTools:
    """Wire a Playwright-backed tool set from configuration."""
    from pagelens.browser.playwright_driver import PlaywrightDriver

    workspace = settings.workspace
    use_renderer = settings.renderer.enabled
    if use_renderer is None:
        use_renderer = is_terminal_environment()
    renderer = None
    if use_renderer:
        renderer = RendererSupervisor(
            path=settings.renderer.path,
            settle_delay=settings.renderer.settle_delay,
        )

    session = BrowserSession(
        PlaywrightDriver(
            engine=settings.browser.engine,
            default_timeout_ms=settings.browser.default_timeout_ms,
        ),
        state_dir=workspace.state_dir,
        renderer=renderer,
        headless=settings.browser.headless,
        viewport=(settings.browser.viewport_width, settings.browser.viewport_height),
    )
    display = TerminalDisplay(
        fallback_dir=workspace.screenshot_dir,
        probe=CapabilityProbe(timeout=settings.display.probe_timeout),
        chunk_size=settings.display.chunk_size,
    )
    return BrowserTools(
        session=session,
        display=display,
        logs=LogWriter(workspace.log_dir),
        cell_size=(settings.display.cell_width, settings.display.cell_height),
        default_wait_until=settings.browser.default_wait_until,
    )
