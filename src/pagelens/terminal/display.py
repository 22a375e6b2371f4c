"""Terminal display for screenshot frames.

Combines the capability probe and the frame encoder. Frames go inline
when the terminal supports Kitty or iTerm2 graphics; otherwise they are
saved to a file and the operator gets instructions for viewing it.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import IO

from pagelens.domain.models import DisplayResult, Frame, TerminalCapability, TerminalProtocol
from pagelens.terminal.encoder import DEFAULT_CHUNK_SIZE, FrameEncoder
from pagelens.terminal.probe import CapabilityProbe, recommended_terminals_text

logger = logging.getLogger(__name__)


class TerminalDisplay:
    """Shows frames in the operator's terminal.

    Call initialize() once before show(); it runs the capability probe
    in a worker thread so the bounded terminal read does not stall the
    event loop.
    """

    def __init__(
        self,
        fallback_dir: Path | str,
        probe: CapabilityProbe | None = None,
        out: IO[str] | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._fallback_dir = Path(fallback_dir)
        self._probe = probe or CapabilityProbe()
        self._encoder = FrameEncoder(out if out is not None else sys.stdout, chunk_size=chunk_size)
        self._capability: TerminalCapability | None = None

    @property
    def capability(self) -> TerminalCapability | None:
        return self._capability

    @property
    def protocol(self) -> TerminalProtocol:
        if self._capability is None:
            return TerminalProtocol.NONE
        return self._capability.protocol

    async def initialize(self) -> TerminalCapability:
        """Detect the terminal capability (once per session)."""
        if self._capability is None:
            loop = asyncio.get_event_loop()
            self._capability = await loop.run_in_executor(None, self._probe.detect)
            if not self._capability.supported:
                logger.warning("Terminal graphics not supported: %s", self._capability.reason)
        return self._capability

    async def reinitialize(self) -> TerminalCapability:
        """Discard the cached capability and probe the terminal again."""
        self._probe.reset()
        self._capability = None
        return await self.initialize()

    def show(self, frame: Frame) -> DisplayResult:
        """Display a frame inline, or save it and explain how to view it."""
        protocol = self.protocol
        if protocol is not TerminalProtocol.NONE and self._encoder.encode(frame, protocol):
            return DisplayResult(
                protocol=protocol,
                displayed=True,
                message=f"Displayed in terminal using {protocol.value}",
            )

        path = self._save_fallback(frame)
        if protocol is TerminalProtocol.SIXEL:
            message = (
                "Sixel protocol requires external conversion (libsixel).\n"
                f"Screenshot saved. View with: chafa {path}"
            )
        else:
            reason = self._capability.reason if self._capability else "Terminal not probed"
            message = f"{reason}\nScreenshot saved to {path}\n\n{recommended_terminals_text()}"
        return DisplayResult(protocol=protocol, displayed=False, message=message, path=str(path))

    def _save_fallback(self, frame: Frame) -> Path:
        self._fallback_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        path = self._fallback_dir / f"screenshot-{stamp}.png"
        path.write_bytes(frame.data)
        logger.info("Saved screenshot to %s", path)
        return path
