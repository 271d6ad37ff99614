"""Reassembly of tool calls streamed as partial-JSON deltas.

Per block index: Absent → Accumulating → Completed (entry removed).
Deltas or completions for an index that was never started are
ignored.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import logging

from .models import (
    StreamEvent,
    ToolCallCompleted,
    ToolCallInputDelta,
    ToolCallRecord,
    ToolCallStarted,
)
from opencoding.shared.formatters.tool_call import format_tool_call, parse_args

logger = logging.getLogger(__name__)


@dataclass
class _Accumulator:
    name: str
    parts: list[str] = field(default_factory=list)


class ToolCallReassembler:
    """Rebuilds complete tool-call records for one run."""

    def __init__(self) -> None:
        self._entries: dict[int, _Accumulator] = {}

    def started(self, index: int, name: str) -> None:
        if index in self._entries:
            logger.debug("Tool call block %d restarted as %s", index, name)
        self._entries[index] = _Accumulator(name=name)

    def delta(self, index: int, partial_json: str) -> None:
        entry = self._entries.get(index)
        if entry is None:
            logger.debug("Input delta for unknown tool call block %d", index)
            return
        entry.parts.append(partial_json)

    def completed(self, index: int) -> ToolCallRecord | None:
        entry = self._entries.pop(index, None)
        if entry is None:
            return None
        return build_record(entry.name, "".join(entry.parts))

    def handle(self, event: StreamEvent) -> ToolCallRecord | None:
        """Apply a tool-call event; returns a record on completion."""
        if isinstance(event, ToolCallStarted):
            self.started(event.index, event.name)
        elif isinstance(event, ToolCallInputDelta):
            self.delta(event.index, event.partial_json)
        elif isinstance(event, ToolCallCompleted):
            return self.completed(event.index)
        return None

    @property
    def pending(self) -> int:
        return len(self._entries)

    def reset(self) -> None:
        self._entries.clear()


def build_record(name: str, accumulated: str) -> ToolCallRecord:
    """Derive the display record for a finished tool call.

    Unparseable input yields a name-only record.
    """
    args = parse_args(accumulated)
    if args is None:
        logger.debug(
            "Tool call %s input is not valid JSON (%d chars)",
            name, len(accumulated),
        )
        return ToolCallRecord(name=name)

    fmt = format_tool_call(name, args)
    return ToolCallRecord(
        name=name,
        label=fmt.label,
        preview=fmt.preview,
        icon=fmt.icon,
        file_path=fmt.file_path,
        arguments=args,
    )
