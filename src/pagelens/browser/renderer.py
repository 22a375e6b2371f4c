"""Supervisor for the external terminal renderer process.

In terminal-only environments an external renderer (awrit by default)
mirrors the page so the operator can scroll it interactively. It is
started with ``--ipc`` and an optional URL, draws straight to the
inherited stdout/stderr, and accepts one command per line on stdin:

    navigate https://example.com
    scroll 0 400

The process has no response channel and no ready signal, so readiness
is assumed after a fixed settle delay. That delay is a timing guess,
not a guarantee: a slow start can still drop the first commands.

Renderer failures never propagate to the caller. A missing mirror must
not block the primary browser control path.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from pagelens.domain.models import RendererState

logger = logging.getLogger(__name__)

DEFAULT_RENDERER_PATH = "awrit"
DEFAULT_SETTLE_DELAY = 1.0
IPC_FLAG = "--ipc"


class RendererSupervisor:
    """Launches, feeds, and tears down the external renderer.

    States: NOT_STARTED -> STARTING -> READY -> STOPPED, with CRASHED
    reachable from STARTING or READY when the process exits on its own.
    CRASHED is final; stop() leaves it in place.
    """

    def __init__(
        self,
        path: str = DEFAULT_RENDERER_PATH,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
    ) -> None:
        self._path = path
        self._settle_delay = settle_delay
        self._state = RendererState.NOT_STARTED
        self._process: asyncio.subprocess.Process | None = None
        self._exit_task: asyncio.Task[None] | None = None
        self._exit_code: int | None = None

    @property
    def state(self) -> RendererState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is RendererState.READY

    @property
    def exit_code(self) -> int | None:
        """Exit code of the last process that terminated, if any."""
        return self._exit_code

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    async def start(self, initial_url: str | None = None) -> None:
        """Launch the renderer and wait for it to settle."""
        if self._state is not RendererState.NOT_STARTED:
            logger.warning("Renderer start ignored in state %s", self._state.value)
            return

        args = [IPC_FLAG]
        if initial_url:
            args.append(initial_url)

        self._state = RendererState.STARTING
        try:
            process = await asyncio.create_subprocess_exec(
                self._path,
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=None,
                stderr=None,
            )
        except OSError as e:
            logger.warning("Failed to launch renderer %s: %s", self._path, e)
            self._state = RendererState.CRASHED
            return

        if process.stdin is None:
            logger.warning("Renderer %s has no stdin pipe", self._path)
            process.kill()
            await process.wait()
            self._state = RendererState.CRASHED
            return

        self._process = process
        self._exit_task = asyncio.create_task(self._watch_exit(process))
        logger.info("Started renderer %s (pid=%d)", self._path, process.pid)

        await asyncio.sleep(self._settle_delay)
        if self._state is RendererState.STARTING:
            self._state = RendererState.READY
            logger.debug("Renderer assumed ready after %.2fs", self._settle_delay)

    async def send_command(self, command: str, args: Sequence[object] = ()) -> bool:
        """Write ``<command> <arg> ...`` as one line to the renderer.

        Returns:
            True if the line was written, False if the renderer is not
            ready or its channel is closed. Never raises.
        """
        process = self._process
        if self._state is not RendererState.READY or process is None or process.stdin is None:
            logger.warning(
                "Renderer not ready (state=%s), dropped command: %s",
                self._state.value, command,
            )
            return False

        line = " ".join([command, *(str(arg) for arg in args)])
        try:
            process.stdin.write(f"{line}\n".encode())
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.warning("Renderer command channel closed, dropped command %s: %s", command, e)
            return False
        logger.debug("Sent renderer command: %s", line)
        return True

    async def navigate(self, url: str) -> bool:
        return await self.send_command("navigate", [url])

    async def reload(self) -> bool:
        return await self.send_command("reload")

    async def back(self) -> bool:
        return await self.send_command("back")

    async def forward(self) -> bool:
        return await self.send_command("forward")

    async def stop(self) -> None:
        """Terminate the renderer and wait for it to exit."""
        if self._exit_task is not None:
            self._exit_task.cancel()
            try:
                await self._exit_task
            except asyncio.CancelledError:
                pass
            self._exit_task = None

        process = self._process
        if process is not None:
            if process.returncode is None:
                try:
                    process.terminate()
                except ProcessLookupError:
                    pass
            self._exit_code = await process.wait()
            logger.info("Renderer stopped (exit code %s)", self._exit_code)

        self._process = None
        if self._state is not RendererState.CRASHED:
            self._state = RendererState.STOPPED

    async def _watch_exit(self, process: asyncio.subprocess.Process) -> None:
        """Mark the renderer crashed when its process exits on its own."""
        code = await process.wait()
        if self._process is not process:
            return
        self._exit_code = code
        self._process = None
        self._state = RendererState.CRASHED
        logger.warning("Renderer process exited unexpectedly with code %s", code)
