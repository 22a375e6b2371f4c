"""Abstract base class for the page-control driver.

The session coordinator talks to the browser only through this
interface, so the Playwright implementation can be swapped for a fake in
tests or for another automation backend without touching the rest of
the pipeline.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

from pagelens.domain.models import WaitCondition

logger = logging.getLogger(__name__)

# Events a driver must be able to deliver through on()
PAGE_EVENTS = ("console", "request", "response")


class PageDriver(ABC):
    """Abstract interface for driving a single browser page.

    Event objects delivered through on() expose the attributes the
    collector reads: console messages have ``type`` and ``text``,
    requests have ``url`` and ``method``, responses ``url`` and
    ``status``.

    Example usage::

        driver = PlaywrightDriver()
        await driver.launch(headless=True, viewport=(1280, 720))
        driver.on("console", handler)
        await driver.goto("https://example.com", "load")
        png = await driver.screenshot(full_page=False)
        await driver.close()
    """

    @abstractmethod
    async def launch(
        self,
        *,
        headless: bool,
        viewport: tuple[int, int],
        storage_state: dict[str, Any] | None = None,
    ) -> None:
        """Start the browser and open a page with the given storage state."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the page and the browser. Safe to call more than once."""
        ...

    @abstractmethod
    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        """Subscribe a handler to one of PAGE_EVENTS."""
        ...

    @abstractmethod
    async def goto(self, url: str, wait_until: WaitCondition) -> None:
        ...

    @abstractmethod
    async def click(self, selector: str) -> None:
        ...

    @abstractmethod
    async def fill(self, selector: str, text: str) -> None:
        ...

    @abstractmethod
    async def screenshot(self, full_page: bool = False) -> bytes:
        """Capture the page as PNG bytes."""
        ...

    @abstractmethod
    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        ...

    @abstractmethod
    async def wheel(self, delta_x: float, delta_y: float) -> None:
        """Dispatch a mouse wheel scroll."""
        ...

    @abstractmethod
    async def scroll_into_view(self, selector: str) -> None:
        ...

    @abstractmethod
    async def title(self) -> str:
        ...

    @abstractmethod
    async def storage_state(self) -> dict[str, Any]:
        """Snapshot cookies and origin storage for persistence."""
        ...

    @property
    @abstractmethod
    def url(self) -> str | None:
        """The page's current URL, or None when no page is open."""
        ...


class BrowserError(Exception):
    """Base class for browser session failures."""


class SessionNotInitializedError(BrowserError):
    """Raised when an operation runs before the session has a page."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Cannot {operation}: browser session not initialized")
        self.operation = operation


class BrowserOperationError(BrowserError):
    """Raised when the driver fails while executing a command."""

    def __init__(self, message: str, operation: str = "") -> None:
        super().__init__(f"{operation} failed: {message}" if operation else message)
        self.operation = operation
        self.detail = message
