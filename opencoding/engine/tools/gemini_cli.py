"""Gemini CLI profile.

Gemini stream-json event types:
  init: session metadata (session_id, model)
  message: text content (role=user or assistant)
  tool_use / tool_result: tool activity (not surfaced)
  result: final stats
"""
from __future__ import annotations

from ..models import NativeSessionId, StreamEvent, TextFragment, UsageReport
from .base import CommandGrammar, ToolProfile, parse_record, token_count


class GeminiCliProfile(ToolProfile):
    """Profile for Google's ``gemini`` CLI."""

    @property
    def id(self) -> str:
        return "gemini-cli"

    @property
    def display_name(self) -> str:
        return "Gemini CLI"

    @property
    def icon(self) -> str:
        return "gemini"

    def default_grammar(self) -> CommandGrammar:
        return CommandGrammar(
            command="gemini",
            skip_confirm_args=("-y",),
            resume_args=("-r",),
            model_args=("-m",),
            output_format_args=("-o", "stream-json"),
        )

    def decode_line(self, line: str) -> StreamEvent | None:
        record = parse_record(line)
        if record is None:
            return None

        etype = record.get("type", "")

        if etype == "message" and record.get("role") == "assistant":
            text = record.get("content")
            if isinstance(text, str) and text:
                return TextFragment(text)
            return None

        if etype == "result":
            stats = record.get("stats")
            if isinstance(stats, dict) and stats:
                return UsageReport(
                    input_tokens=token_count(stats, "input_tokens"),
                    output_tokens=token_count(stats, "output_tokens"),
                    cache_read_input_tokens=token_count(stats, "cached"),
                )
            return None

        if etype == "init":
            session_id = record.get("session_id")
            if isinstance(session_id, str) and session_id:
                return NativeSessionId(session_id)

        return None
