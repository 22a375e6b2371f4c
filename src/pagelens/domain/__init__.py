"""Domain models for pagelens.

This package contains the core data structures, enumerations, and value
objects used throughout the system. All models use Pydantic v2 for
validation and serialization.
"""

from pagelens.domain.models import (
    ConsoleEvent,
    ConsoleSeverity,
    DisplayResult,
    Frame,
    NetworkEvent,
    RendererState,
    TerminalCapability,
    TerminalProtocol,
    WaitCondition,
)

__all__ = [
    "ConsoleEvent",
    "ConsoleSeverity",
    "DisplayResult",
    "Frame",
    "NetworkEvent",
    "RendererState",
    "TerminalCapability",
    "TerminalProtocol",
    "WaitCondition",
]
