"""Event types produced from the turn callbacks.

Each event corresponds to one TurnCallbacks invocation, wrapped in a
typed dataclass for consumers that prefer a queue over callbacks.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from opencoding.engine.models import ToolCallRecord, UsageReport


@dataclass
class TurnEvent:
    """Base event for one session's turn."""
    event_type: str = ""
    session_id: str = ""


@dataclass
class TextChunk(TurnEvent):
    event_type: str = "text_chunk"
    text: str = ""


@dataclass
class RenderRequested(TurnEvent):
    event_type: str = "render_requested"
    full_text: str = ""


@dataclass
class NativeSessionCaptured(TurnEvent):
    event_type: str = "native_session_captured"
    native_session_id: str = ""


@dataclass
class ToolCallFinished(TurnEvent):
    event_type: str = "tool_call_finished"
    record: ToolCallRecord = field(default_factory=lambda: ToolCallRecord(name=""))


@dataclass
class UsageUpdated(TurnEvent):
    event_type: str = "usage_updated"
    usage: UsageReport = field(default_factory=UsageReport)


@dataclass
class TurnDone(TurnEvent):
    event_type: str = "turn_done"
    exit_code: int = 0


@dataclass
class TurnFailed(TurnEvent):
    event_type: str = "turn_failed"
    message: str = ""


TERMINAL_EVENTS = (TurnDone, TurnFailed)
