"""Terminal image-protocol detection.

Determines, once per session, which inline image protocol the attached
terminal understands. Detection runs three probes in strict order and
the first success wins:

1. An in-band Kitty graphics query written to the terminal, answered (or
   not) within a short timeout. Only attempted on an interactive TTY.
2. Environment variables naming a known terminal program (iTerm2).
3. Terminal-type heuristics for Sixel-capable emulators.

A terminal that passes none of them gets ``TerminalProtocol.NONE`` with a
reason string. That is a normal outcome, not an error.
"""

from __future__ import annotations

import logging
import os
import select
import sys
import termios
import time
import tty
from contextlib import contextmanager
from typing import IO, Iterator, Mapping

from pagelens.domain.models import TerminalCapability, TerminalProtocol

logger = logging.getLogger(__name__)

# Graphics query for a 1x1 RGB image (a=q: query only, nothing is drawn),
# followed by a primary device attributes request. Terminals without Kitty
# graphics answer only the latter.
KITTY_QUERY = "\x1b_Gi=31,s=1,v=1,a=q,t=d,f=24;AAAA\x1b\\\x1b[c"
KITTY_RESPONSE_MARKER = b"\x1b_Gi="
DEVICE_ATTRIBUTES_MARKER = b"\x1b[?"

DEFAULT_PROBE_TIMEOUT = 0.1

SIXEL_TERM_HINTS = ("xterm", "mlterm", "yaft")

UNSUPPORTED_REASON = (
    "No supported graphics protocol detected. Please use Kitty, Ghostty, "
    "iTerm2, WezTerm, or a Sixel-compatible terminal."
)

RECOMMENDED_TERMINALS = (
    ("Kitty", "https://sw.kovidgoyal.net/kitty/"),
    ("Ghostty", "https://ghostty.org/"),
    ("iTerm2", "https://iterm2.com/ (macOS)"),
    ("WezTerm", "https://wezfurlong.org/wezterm/"),
)


@contextmanager
def raw_mode(fd: int) -> Iterator[None]:
    """Put a terminal file descriptor into raw mode for the block's duration.

    The previous attributes are restored on every exit path, including
    exceptions raised inside the block.
    """
    saved = termios.tcgetattr(fd)
    try:
        tty.setraw(fd, termios.TCSANOW)
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


class CapabilityProbe:
    """Detects and caches the terminal's image protocol.

    Example usage::

        probe = CapabilityProbe()
        capability = probe.detect()
        if capability.supported:
            ...
    """

    def __init__(
        self,
        stdin: IO | None = None,
        stdout: IO | None = None,
        environ: Mapping[str, str] | None = None,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        self._stdin = stdin if stdin is not None else sys.stdin
        self._stdout = stdout if stdout is not None else sys.stdout
        self._environ = environ if environ is not None else os.environ
        self._timeout = timeout
        self._capability: TerminalCapability | None = None

    @property
    def capability(self) -> TerminalCapability | None:
        """The cached result, or None if detect() has not run yet."""
        return self._capability

    def detect(self) -> TerminalCapability:
        """Return the terminal capability, probing on first call only."""
        if self._capability is None:
            self._capability = self._probe()
            logger.info("Terminal graphics protocol: %s", self._capability.protocol.value)
        return self._capability

    def reset(self) -> None:
        """Forget the cached result so the next detect() probes again."""
        self._capability = None

    def _probe(self) -> TerminalCapability:
        if self._query_kitty():
            return TerminalCapability(protocol=TerminalProtocol.KITTY)
        if self._env_iterm2():
            return TerminalCapability(protocol=TerminalProtocol.ITERM2)
        if self._env_sixel():
            return TerminalCapability(protocol=TerminalProtocol.SIXEL)
        return TerminalCapability(protocol=TerminalProtocol.NONE, reason=UNSUPPORTED_REASON)

    # -- Step 1: in-band query ------------------------------------------------

    def _is_interactive(self) -> bool:
        try:
            return bool(self._stdin.isatty() and self._stdout.isatty())
        except (AttributeError, ValueError):
            # Detached or closed streams
            return False

    def _query_kitty(self) -> bool:
        if not self._is_interactive():
            return False
        try:
            fd = self._stdin.fileno()
            with raw_mode(fd):
                self._stdout.write(KITTY_QUERY)
                self._stdout.flush()
                return self._await_response(fd)
        except (OSError, termios.error) as e:
            logger.debug("Kitty graphics query failed: %s", e)
            return False

    def _await_response(self, fd: int) -> bool:
        """Read terminal input until a reply marker appears or time runs out."""
        deadline = time.monotonic() + self._timeout
        received = b""
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.debug("No graphics query response within %.3fs", self._timeout)
                return False
            readable, _, _ = select.select([fd], [], [], remaining)
            if not readable:
                continue
            chunk = os.read(fd, 1024)
            if not chunk:
                return False
            received += chunk
            if KITTY_RESPONSE_MARKER in received:
                return True
            # The device attributes reply always comes after the graphics
            # reply, so seeing it alone means the query was ignored.
            if DEVICE_ATTRIBUTES_MARKER in received and received.rstrip().endswith(b"c"):
                return False

    # -- Step 2 and 3: environment --------------------------------------------

    def _env_iterm2(self) -> bool:
        return (
            self._environ.get("TERM_PROGRAM") == "iTerm.app"
            or self._environ.get("LC_TERMINAL") == "iTerm2"
        )

    def _env_sixel(self) -> bool:
        term = self._environ.get("TERM", "")
        xterm_version = self._environ.get("XTERM_VERSION", "")
        return any(hint in term for hint in SIXEL_TERM_HINTS) or len(xterm_version) > 0


def recommended_terminals_text() -> str:
    lines = ["Recommended terminals:"]
    lines.extend(f"  - {name}: {url}" for name, url in RECOMMENDED_TERMINALS)
    return "\n".join(lines)
