"""Console and network activity recorded from a live page.

The driver delivers console, request, and response events on its own
schedule while the session issues unrelated commands. All buffer access
goes through a single lock, so readers never observe a half-applied
update or a partially cleared buffer.

Capacity: buffers grow without bound for the life of the session. The
only way to release memory is clear().
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from pagelens.browser.base import PageDriver
from pagelens.domain.models import ConsoleEvent, ConsoleSeverity, NetworkEvent

logger = logging.getLogger(__name__)


class EventCollector:
    """Buffers page console messages and network requests in arrival order."""

    def __init__(self) -> None:
        self._console: list[ConsoleEvent] = []
        self._network: list[NetworkEvent] = []
        self._lock = threading.Lock()
        self._sources: set[int] = set()

    def attach(self, source: PageDriver) -> None:
        """Subscribe to a page's console, request, and response events.

        Attaching the same source twice is ignored so events are never
        recorded twice.
        """
        if id(source) in self._sources:
            logger.debug("Collector already attached to %r", source)
            return
        source.on("console", self._on_console)
        source.on("request", self._on_request)
        source.on("response", self._on_response)
        self._sources.add(id(source))

    def detach(self, source: PageDriver) -> None:
        """Forget a source whose page has closed.

        The next attach() subscribes again. A relaunched driver has a new
        page with no listeners.
        """
        self._sources.discard(id(source))

    # -- Event delivery path --------------------------------------------------

    def _on_console(self, message: Any) -> None:
        event = ConsoleEvent(
            severity=ConsoleSeverity.from_driver(str(message.type)),
            text=str(message.text),
        )
        with self._lock:
            self._console.append(event)

    def _on_request(self, request: Any) -> None:
        event = NetworkEvent(url=request.url, method=request.method)
        with self._lock:
            self._network.append(event)

    def _on_response(self, response: Any) -> None:
        # First unresolved entry with the same URL wins. Concurrent requests
        # to one URL can therefore be paired with the wrong response.
        with self._lock:
            for event in self._network:
                if event.url == response.url and event.status is None:
                    event.status = response.status
                    return
        logger.debug("Dropped response with no pending request: %s", response.url)

    # -- Command path ---------------------------------------------------------

    def get_console(self, severity: ConsoleSeverity | str | None = None) -> list[ConsoleEvent]:
        """Return console events in arrival order, optionally by severity."""
        wanted = ConsoleSeverity(severity) if severity is not None else None
        with self._lock:
            events = list(self._console)
        if wanted is None:
            return events
        return [event for event in events if event.severity is wanted]

    def get_network(self, url_filter: str | None = None) -> list[NetworkEvent]:
        """Return copies of recorded requests, optionally by URL substring."""
        with self._lock:
            events = [event.model_copy() for event in self._network]
        if not url_filter:
            return events
        return [event for event in events if url_filter in event.url]

    def clear(self) -> None:
        """Empty both buffers in one step."""
        with self._lock:
            self._console = []
            self._network = []
        logger.debug("Cleared console and network buffers")

    @property
    def console_count(self) -> int:
        with self._lock:
            return len(self._console)

    @property
    def network_count(self) -> int:
        with self._lock:
            return len(self._network)
