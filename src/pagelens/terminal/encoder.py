"""Inline image encoding for terminal graphics protocols.

Turns PNG bytes into the exact escape sequences a terminal expects:

- Kitty: base64 payload split into fixed-size chunks, each wrapped in an
  APC ``_G`` sequence; the first carries the transfer metadata and every
  chunk but the last sets ``m=1`` (more data follows).
- iTerm2: a single OSC 1337 ``File=`` sequence with the whole payload.
- Sixel: not encoded here. It needs a pixel format conversion, so the
  caller is told to fall back to a file and an external converter.

Dispatch is a plain mapping from protocol to encoding function.
"""

from __future__ import annotations

import base64
import logging
from typing import IO, Callable

from pagelens.domain.models import Frame, TerminalProtocol

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 4096

ESC = "\x1b"
ST = ESC + "\\"  # String terminator
BEL = "\x07"


class EncoderError(Exception):
    """Raised when a frame cannot be encoded for the requested protocol."""


def split_chunks(payload: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """Split an encoded payload into consecutive fixed-size pieces.

    Splitting the base64 text (not the raw bytes) keeps every piece a
    valid run of the base64 alphabet.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    return [payload[i : i + chunk_size] for i in range(0, len(payload), chunk_size)]


def kitty_sequences(
    data: bytes,
    width: int,
    height: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> list[str]:
    """Build the Kitty graphics escape sequences for a PNG image."""
    chunks = split_chunks(base64.b64encode(data).decode("ascii"), chunk_size)
    sequences = []
    for index, chunk in enumerate(chunks):
        more = 0 if index == len(chunks) - 1 else 1
        if index == 0:
            sequences.append(
                f"{ESC}_Gf=100,a=T,t=d,s={width},v={height},m={more};{chunk}{ST}"
            )
        else:
            sequences.append(f"{ESC}_Gm={more};{chunk}{ST}")
    return sequences


def iterm2_sequence(data: bytes, width: int, height: int) -> str:
    """Build the iTerm2 inline-file escape sequence for an image."""
    payload = base64.b64encode(data).decode("ascii")
    return f"{ESC}]1337;File=inline=1;width={width};height={height}:{payload}{BEL}"


class FrameEncoder:
    """Writes frames to a terminal stream using the negotiated protocol."""

    def __init__(self, out: IO[str], chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._out = out
        self._chunk_size = chunk_size
        self._encoders: dict[TerminalProtocol, Callable[[Frame], bool]] = {
            TerminalProtocol.KITTY: self._encode_kitty,
            TerminalProtocol.ITERM2: self._encode_iterm2,
            TerminalProtocol.SIXEL: self._encode_sixel,
        }

    def encode(self, frame: Frame, protocol: TerminalProtocol) -> bool:
        """Write a frame to the output stream.

        Returns:
            True if the frame was written inline, False if the protocol
            requires the caller to fall back to a file-based display.

        Raises:
            EncoderError: If the frame is empty or the protocol is NONE.
        """
        if not frame.data:
            raise EncoderError("Cannot encode an empty frame")
        encoder = self._encoders.get(protocol)
        if encoder is None:
            raise EncoderError(f"No inline encoding for protocol {protocol.value!r}")
        return encoder(frame)

    def _encode_kitty(self, frame: Frame) -> bool:
        width, height = frame.size_hint()
        sequences = kitty_sequences(frame.data, width, height, self._chunk_size)
        for sequence in sequences:
            self._out.write(sequence)
        self._out.write("\n")
        self._out.flush()
        logger.debug("Wrote %d-byte frame as %d kitty chunks", len(frame.data), len(sequences))
        return True

    def _encode_iterm2(self, frame: Frame) -> bool:
        width, height = frame.size_hint()
        self._out.write(iterm2_sequence(frame.data, width, height) + "\n")
        self._out.flush()
        logger.debug("Wrote %d-byte frame as iTerm2 inline file", len(frame.data))
        return True

    def _encode_sixel(self, frame: Frame) -> bool:
        logger.info("Sixel output requires external conversion (libsixel); using file fallback")
        return False
