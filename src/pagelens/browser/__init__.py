"""Browser session module for pagelens.

Drives a page through a pluggable driver, records its console and
network activity, persists per-workspace storage, and optionally mirrors
navigation into an external terminal renderer.

Public API:
    PageDriver -- Abstract page-control interface
    PlaywrightDriver -- Playwright implementation
    EventCollector -- Console / network event buffer
    RendererSupervisor -- External renderer process lifecycle
    BrowserSession -- Session coordinator
    LogWriter -- Grep-friendly log files
"""

from pagelens.browser.base import (
    BrowserError,
    BrowserOperationError,
    PageDriver,
    SessionNotInitializedError,
)
from pagelens.browser.collector import EventCollector
from pagelens.browser.logs import LogWriter
from pagelens.browser.renderer import RendererSupervisor
from pagelens.browser.session import BrowserSession

__all__ = [
    "BrowserError",
    "BrowserOperationError",
    "BrowserSession",
    "EventCollector",
    "LogWriter",
    "PageDriver",
    "PlaywrightDriver",
    "RendererSupervisor",
    "SessionNotInitializedError",
]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "PlaywrightDriver":
        from pagelens.browser.playwright_driver import PlaywrightDriver
        return PlaywrightDriver
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
