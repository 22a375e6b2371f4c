"""Plain-text console and network log files.

One line per event, written when logs are retrieved so they can be
inspected with grep. Line layout is stable:

    [2025-01-01T12:00:00.000Z] [ERROR] Uncaught TypeError: x is undefined
    [2025-01-01T12:00:00.120Z] POST [201] https://api.example.com/items
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from pagelens.domain.models import ConsoleEvent, NetworkEvent

logger = logging.getLogger(__name__)

CONSOLE_LOG_NAME = "console.log"
NETWORK_LOG_NAME = "network.log"


class LogWriter:
    """Writes console and network events to the session's log directory."""

    def __init__(self, log_dir: Path | str) -> None:
        self._log_dir = Path(log_dir)
        self._console_path = self._log_dir / CONSOLE_LOG_NAME
        self._network_path = self._log_dir / NETWORK_LOG_NAME

    @property
    def console_log_path(self) -> Path:
        return self._console_path

    @property
    def network_log_path(self) -> Path:
        return self._network_path

    def initialize(self) -> None:
        """Create the log directory and start both files empty."""
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._console_path.write_text("")
        self._network_path.write_text("")
        logger.debug("Initialized logs in %s", self._log_dir)

    def write_console_logs(self, events: Iterable[ConsoleEvent]) -> Path:
        """Replace the console log with the given events."""
        return self._write(self._console_path, (event.to_log_line() for event in events))

    def write_network_logs(self, events: Iterable[NetworkEvent]) -> Path:
        """Replace the network log with the given requests."""
        return self._write(self._network_path, (event.to_log_line() for event in events))

    def append_console_log(self, event: ConsoleEvent) -> None:
        self._append(self._console_path, event.to_log_line())

    def append_network_request(self, event: NetworkEvent) -> None:
        self._append(self._network_path, event.to_log_line())

    def _write(self, path: Path, lines: Iterable[str]) -> Path:
        self._log_dir.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            for line in lines:
                f.write(line + "\n")
        return path

    def _append(self, path: Path, line: str) -> None:
        self._log_dir.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
