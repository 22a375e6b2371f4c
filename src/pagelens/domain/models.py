"""Core domain models for the pagelens system.

These models represent the data flowing through the capture pipeline:
the terminal's image capability, console and network events recorded
from the live page, screenshot frames, and the lifecycle states of the
external renderer process.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_CELL_WIDTH = 80
DEFAULT_CELL_HEIGHT = 40

WaitCondition = Literal["load", "networkidle"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(ts: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with millisecond precision.

    The format is ``2025-01-01T12:00:00.000Z`` and must stay stable since
    log files written with it are grepped by external tooling.
    """
    ts = ts.astimezone(timezone.utc)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class TerminalProtocol(str, enum.Enum):
    """Image-transfer protocols a terminal may support."""

    KITTY = "kitty"  # Chunked APC graphics transfer
    ITERM2 = "iterm2"  # OSC 1337 inline file
    SIXEL = "sixel"  # Raster format, needs external conversion
    NONE = "none"


class ConsoleSeverity(str, enum.Enum):
    LOG = "log"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    DEBUG = "debug"

    @classmethod
    def from_driver(cls, value: str) -> ConsoleSeverity:
        """Map a driver-reported console type onto the five severities.

        Playwright reports ``warning`` for ``console.warn`` and a dozen
        other types (``dir``, ``table``, ``trace``...) that have no
        severity of their own; those are recorded as ``log``.
        """
        value = (value or "").lower()
        if value == "warning":
            return cls.WARN
        if value == "assert":
            return cls.ERROR
        try:
            return cls(value)
        except ValueError:
            return cls.LOG


class RendererState(str, enum.Enum):
    """Lifecycle of the external renderer subprocess."""

    NOT_STARTED = "not_started"
    STARTING = "starting"
    READY = "ready"
    STOPPED = "stopped"
    CRASHED = "crashed"


# ---------------------------------------------------------------------------
# Terminal Models
# ---------------------------------------------------------------------------


class TerminalCapability(BaseModel):
    """The image protocol detected for the attached terminal.

    Exactly one protocol is active. ``NONE`` carries a human-readable
    reason and means frames cannot be rendered inline.
    """

    model_config = ConfigDict(frozen=True)

    protocol: TerminalProtocol
    reason: str | None = Field(
        default=None, description="Why no protocol is available (NONE only)"
    )

    @property
    def supported(self) -> bool:
        return self.protocol is not TerminalProtocol.NONE


class Frame(BaseModel):
    """A single screenshot's PNG bytes plus an optional display size.

    Width and height are counted in terminal cells, not pixels.
    """

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(description="PNG-encoded image bytes")
    width: int | None = Field(default=None, gt=0, description="Display width in cells")
    height: int | None = Field(default=None, gt=0, description="Display height in cells")

    def size_hint(self) -> tuple[int, int]:
        return (self.width or DEFAULT_CELL_WIDTH, self.height or DEFAULT_CELL_HEIGHT)


class DisplayResult(BaseModel):
    """Outcome of showing a frame in the terminal."""

    model_config = ConfigDict(frozen=True)

    protocol: TerminalProtocol
    displayed: bool = Field(description="Whether the frame was rendered inline")
    message: str = Field(default="", description="Informational text for the operator")
    path: str | None = Field(default=None, description="Fallback file holding the frame")


# ---------------------------------------------------------------------------
# Page Activity Models
# ---------------------------------------------------------------------------


class ConsoleEvent(BaseModel):
    """A console message emitted by the page."""

    model_config = ConfigDict(frozen=True)

    severity: ConsoleSeverity
    text: str
    timestamp: datetime = Field(default_factory=utc_now)

    def to_log_line(self) -> str:
        return f"[{format_timestamp(self.timestamp)}] [{self.severity.value.upper()}] {self.text}"


class NetworkEvent(BaseModel):
    """A network request issued by the page.

    Created when the request starts, with ``status`` unset; the status is
    filled in once the matching response arrives.
    """

    url: str
    method: str
    status: int | None = None
    timestamp: datetime = Field(default_factory=utc_now)

    @property
    def resolved(self) -> bool:
        return self.status is not None

    def to_log_line(self) -> str:
        status = f" [{self.status}]" if self.status is not None else ""
        return f"[{format_timestamp(self.timestamp)}] {self.method}{status} {self.url}"
