"""Core data models for the turn engine.

All dataclasses, enums, and type aliases. Single source of truth
to avoid circular imports.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class RunState(str, Enum):
    """Per-session subprocess lifecycle. See lifecycle.py for transition rules."""
    IDLE = "idle"
    RUNNING = "running"
    EXITED = "exited"
    CANCELLED = "cancelled"


@dataclass
class TurnOptions:
    """Per-send parameters, constructed fresh for every message."""
    is_first: bool = True
    cli_session_id: str | None = None
    image_paths: list[str] = field(default_factory=list)
    model: str | None = None
    thinking: bool = False


@dataclass(frozen=True)
class BuiltCommand:
    """Shell command line for one turn.

    ``temp_file`` is an auxiliary input file the runner deletes once
    the subprocess exits.
    """
    command: str
    temp_file: str | None = None


# ── Normalized stream events ──────────────────────────────────────


@dataclass(frozen=True)
class TextFragment:
    text: str


@dataclass(frozen=True)
class NativeSessionId:
    """The external tool's own conversation id (not ours)."""
    session_id: str


@dataclass(frozen=True)
class ToolCallStarted:
    index: int
    name: str


@dataclass(frozen=True)
class ToolCallInputDelta:
    index: int
    partial_json: str


@dataclass(frozen=True)
class ToolCallCompleted:
    index: int


@dataclass(frozen=True)
class UsageReport:
    """Token accounting reported at the end of a turn."""
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_creation_input_tokens
            + self.cache_read_input_tokens
        )


StreamEvent = Union[
    TextFragment,
    NativeSessionId,
    ToolCallStarted,
    ToolCallInputDelta,
    ToolCallCompleted,
    UsageReport,
]


@dataclass(frozen=True)
class ToolCallRecord:
    """A fully reassembled tool call, ready for display."""
    name: str
    label: str = ""
    preview: str = ""
    icon: str = ""
    file_path: str = ""
    arguments: dict[str, Any] | None = None


# ── Consumer callbacks ────────────────────────────────────────────


@dataclass
class TurnCallbacks:
    """Consumer hooks for one send.

    ``on_done`` fires exactly once per turn unless the turn is cancelled
    or superseded. ``on_error`` fires at most once, for spawn failures
    only. ``on_render`` carries the full accumulated text and is paced
    by the output throttle.
    """
    on_text: Callable[[str], None] | None = None
    on_render: Callable[[str], None] | None = None
    on_native_session_id: Callable[[str], None] | None = None
    on_tool_call: Callable[[ToolCallRecord], None] | None = None
    on_usage: Callable[[UsageReport], None] | None = None
    on_done: Callable[[int], None] | None = None
    on_error: Callable[[str], None] | None = None


@dataclass(frozen=True)
class ToolInfo:
    """Static description of a registered tool."""
    id: str
    name: str
    icon: str
    command: str
    detect_command: str
    default_args: tuple[str, ...] = ()


@dataclass(frozen=True)
class ToolDetectResult:
    id: str
    installed: bool
    version: str = ""


# ── Native session history ──


@dataclass(frozen=True)
class NativeSession:
    """A conversation the tool itself persisted, resumable by id."""
    session_id: str
    title: str
    timestamp: str
    tool_id: str


@dataclass(frozen=True)
class HistoryMessage:
    role: str  # "user" | "assistant"
    content: str
    timestamp: str = ""


# ── Plain-text activity ──


class ActivityKind(str, Enum):
    FILE_READ = "file_read"
    FILE_WRITE = "file_write"
    FILE_EDIT = "file_edit"
    TOOL_USE = "tool_use"
    COMMAND_RUN = "command_run"


@dataclass(frozen=True)
class ActivityItem:
    """File or command activity recognized in plain-text output."""
    kind: ActivityKind
    label: str
