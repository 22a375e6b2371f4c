"""Shared test fixtures for the pagelens test suite.

Provides common fixtures used across unit tests: sample PNG bytes, a
scripted in-memory page driver, and a fake terminal stream.
"""

from __future__ import annotations

import io
from types import SimpleNamespace
from typing import Any, Callable

import pytest

from pagelens.browser.base import PageDriver
from pagelens.domain.models import Frame


# ---------------------------------------------------------------------------
# Frame Fixtures
# ---------------------------------------------------------------------------

# 1x1 PNG image
PNG_1X1 = bytes.fromhex(
    "89504e470d0a1a0a0000000d49484452000000010000000108060000001f15c489"
    "0000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_1X1


@pytest.fixture
def sample_frame(png_bytes: bytes) -> Frame:
    return Frame(data=png_bytes, width=100, height=50)


# ---------------------------------------------------------------------------
# Terminal Fixtures
# ---------------------------------------------------------------------------


class FakeTerminal(io.StringIO):
    """A text stream that can pretend to be a TTY."""

    def __init__(self, tty: bool = False, fd: int = 0) -> None:
        super().__init__()
        self._tty = tty
        self._fd = fd

    def isatty(self) -> bool:
        return self._tty

    def fileno(self) -> int:
        return self._fd


@pytest.fixture
def fake_terminal() -> Callable[..., FakeTerminal]:
    return FakeTerminal


# ---------------------------------------------------------------------------
# Driver Fixtures
# ---------------------------------------------------------------------------


class FakeDriver(PageDriver):
    """In-memory page driver recording calls and replaying page events."""

    def __init__(self) -> None:
        self.handlers: dict[str, list[Callable[[Any], None]]] = {}
        self.calls: list[tuple] = []
        self.launch_kwargs: dict[str, Any] | None = None
        self.closed = False
        self.page_url: str | None = None
        self.page_title = "Example Domain"
        self.screenshot_data = PNG_1X1
        self.evaluate_result: Any = None
        self.state: dict[str, Any] = {"cookies": [], "origins": []}
        self.fail_on: dict[str, Exception] = {}

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if name in self.fail_on:
            raise self.fail_on[name]

    async def launch(self, *, headless, viewport, storage_state=None) -> None:
        # A launch opens a new page with no listeners
        self.handlers = {}
        self.launch_kwargs = {
            "headless": headless,
            "viewport": viewport,
            "storage_state": storage_state,
        }
        self.page_url = "about:blank"

    async def close(self) -> None:
        self._record("close")
        self.closed = True

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event: str, **attrs: Any) -> None:
        payload = SimpleNamespace(**attrs)
        for handler in self.handlers.get(event, []):
            handler(payload)

    async def goto(self, url, wait_until) -> None:
        self._record("goto", url, wait_until)
        self.page_url = url

    async def click(self, selector) -> None:
        self._record("click", selector)

    async def fill(self, selector, text) -> None:
        self._record("fill", selector, text)

    async def screenshot(self, full_page=False) -> bytes:
        self._record("screenshot", full_page)
        return self.screenshot_data

    async def evaluate(self, expression, arg=None) -> Any:
        self._record("evaluate", expression, arg)
        return self.evaluate_result

    async def wheel(self, delta_x, delta_y) -> None:
        self._record("wheel", delta_x, delta_y)

    async def scroll_into_view(self, selector) -> None:
        self._record("scroll_into_view", selector)

    async def title(self) -> str:
        self._record("title")
        return self.page_title

    async def storage_state(self) -> dict[str, Any]:
        self._record("storage_state")
        return self.state

    @property
    def url(self) -> str | None:
        return self.page_url


@pytest.fixture
def fake_driver() -> FakeDriver:
    return FakeDriver()
