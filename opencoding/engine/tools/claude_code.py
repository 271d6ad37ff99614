"""Claude Code CLI profile.

Runs ``claude -p '<message>' --output-format stream-json --verbose``
and decodes its stream-json records. Images are sent as a structured
stdin document (``--input-format stream-json``).
"""
from __future__ import annotations

from ..models import (
    NativeSessionId,
    StreamEvent,
    TextFragment,
    ToolCallCompleted,
    ToolCallInputDelta,
    ToolCallStarted,
    UsageReport,
)
from .base import CommandGrammar, ToolProfile, parse_record, token_count


def _block_index(record: dict) -> int:
    index = record.get("index")
    if isinstance(index, int) and not isinstance(index, bool):
        return index
    return 0


class ClaudeCodeProfile(ToolProfile):
    """Profile for Anthropic's ``claude`` CLI.

    Record types of interest:
      system / assistant / result: carry ``session_id``
      assistant: full message, text blocks joined
      content_block_start (tool_use), content_block_delta
      (text_delta / input_json_delta), content_block_stop
      result: token usage

    Partial-message records may arrive wrapped as
    ``{"type": "stream_event", "event": {...}}``.
    """

    @property
    def id(self) -> str:
        return "claude-code"

    @property
    def display_name(self) -> str:
        return "Claude Code"

    @property
    def icon(self) -> str:
        return "claude"

    def default_grammar(self) -> CommandGrammar:
        return CommandGrammar(
            command="claude",
            print_mode_args=("-p",),
            skip_confirm_args=("--dangerously-skip-permissions",),
            continue_args=("-c",),
            resume_args=("--resume",),
            output_format_args=("--output-format", "stream-json", "--verbose"),
            input_format_args=("--input-format", "stream-json"),
            model_args=("--model",),
        )

    def decode_line(self, line: str) -> StreamEvent | None:
        record = parse_record(line)
        if record is None:
            return None

        session_id = record.get("session_id")
        inner = record.get("event")
        if record.get("type") == "stream_event" and isinstance(inner, dict):
            record = inner

        return (
            self._tool_call_event(record)
            or self._text_event(record)
            or self._usage_event(record)
            or (
                NativeSessionId(session_id)
                if isinstance(session_id, str) and session_id
                else None
            )
        )

    @staticmethod
    def _tool_call_event(record: dict) -> StreamEvent | None:
        rtype = record.get("type")
        if rtype == "content_block_start":
            block = record.get("content_block") or {}
            if isinstance(block, dict) and block.get("type") == "tool_use":
                return ToolCallStarted(
                    index=_block_index(record),
                    name=str(block.get("name") or ""),
                )
        elif rtype == "content_block_delta":
            delta = record.get("delta") or {}
            if isinstance(delta, dict) and delta.get("type") == "input_json_delta":
                return ToolCallInputDelta(
                    index=_block_index(record),
                    partial_json=str(delta.get("partial_json") or ""),
                )
        elif rtype == "content_block_stop":
            index = record.get("index")
            if isinstance(index, int) and not isinstance(index, bool):
                return ToolCallCompleted(index=index)
        return None

    @staticmethod
    def _text_event(record: dict) -> TextFragment | None:
        rtype = record.get("type")
        if rtype == "assistant":
            message = record.get("message") or {}
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, list):
                text = "".join(
                    str(block.get("text") or "")
                    for block in content
                    if isinstance(block, dict) and block.get("type") == "text"
                )
                if text:
                    return TextFragment(text)
        elif rtype == "content_block_delta":
            delta = record.get("delta") or {}
            if isinstance(delta, dict) and delta.get("type") == "text_delta":
                text = delta.get("text")
                if isinstance(text, str) and text:
                    return TextFragment(text)
        return None

    @staticmethod
    def _usage_event(record: dict) -> UsageReport | None:
        if record.get("type") != "result":
            return None
        usage = record.get("usage")
        if not isinstance(usage, dict):
            return None
        return UsageReport(
            input_tokens=token_count(usage, "input_tokens"),
            output_tokens=token_count(usage, "output_tokens"),
            cache_creation_input_tokens=token_count(
                usage, "cache_creation_input_tokens",
            ),
            cache_read_input_tokens=token_count(usage, "cache_read_input_tokens"),
        )
