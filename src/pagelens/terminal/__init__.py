"""Terminal graphics module for pagelens.

Detects which inline image protocol the operator's terminal supports and
encodes screenshot frames for it, falling back to files when inline
display is not possible.

Public API:
    CapabilityProbe -- Detects and caches the terminal's image protocol
    FrameEncoder -- Writes frames as Kitty / iTerm2 escape sequences
    TerminalDisplay -- Probe + encoder + file fallback
"""

from pagelens.terminal.display import TerminalDisplay
from pagelens.terminal.encoder import EncoderError, FrameEncoder
from pagelens.terminal.probe import CapabilityProbe

__all__ = ["CapabilityProbe", "EncoderError", "FrameEncoder", "TerminalDisplay"]
