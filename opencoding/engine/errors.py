"""Exception hierarchy for the turn engine.

Only spawn failures reach the consumer (through ``on_error``).
Decode problems, missing images and cleanup failures degrade
gracefully and never raise.
"""
from __future__ import annotations


class OpenCodingError(Exception):
    """Base exception for all engine errors."""


class ToolNotFoundError(OpenCodingError):
    """Requested tool id is not registered."""
    def __init__(self, tool_id: str, available: list[str]):
        self.tool_id = tool_id
        self.available = available
        avail_str = ", ".join(available) if available else "none"
        super().__init__(
            f"Tool '{tool_id}' not found. Available: {avail_str}"
        )


class SpawnError(OpenCodingError):
    """The subprocess for a turn could not be started."""
    def __init__(self, command: str, reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"Failed to spawn '{command[:80]}': {reason}")
