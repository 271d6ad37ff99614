"""Tests for per-tool output line decoders."""
from __future__ import annotations

import json

import pytest

from opencoding.engine.models import (
    NativeSessionId,
    TextFragment,
    ToolCallCompleted,
    ToolCallInputDelta,
    ToolCallStarted,
    UsageReport,
)
from opencoding.engine.tools.claude_code import ClaudeCodeProfile
from opencoding.engine.tools.codex import CodexProfile
from opencoding.engine.tools.gemini_cli import GeminiCliProfile
from opencoding.engine.tools.generic import kimi_code


def _line(obj) -> str:
    return json.dumps(obj)


@pytest.fixture
def claude():
    return ClaudeCodeProfile()


class TestClaudeDecoder:
    def test_session_id_from_init(self, claude):
        line = _line({"type": "system", "subtype": "init", "session_id": "abc"})
        assert claude.decode_line(line) == NativeSessionId("abc")

    def test_assistant_text_blocks_joined(self, claude):
        line = _line({
            "type": "assistant",
            "session_id": "abc",
            "message": {"content": [
                {"type": "text", "text": "Hello "},
                {"type": "tool_use", "name": "Read", "input": {}},
                {"type": "text", "text": "world"},
            ]},
        })
        assert claude.decode_line(line) == TextFragment("Hello world")

    def test_assistant_without_text_falls_back_to_session_id(self, claude):
        line = _line({
            "type": "assistant",
            "session_id": "abc",
            "message": {"content": [{"type": "tool_use", "name": "Read"}]},
        })
        assert claude.decode_line(line) == NativeSessionId("abc")

    def test_text_delta(self, claude):
        line = _line({
            "type": "content_block_delta",
            "index": 0,
            "delta": {"type": "text_delta", "text": "chunk"},
        })
        assert claude.decode_line(line) == TextFragment("chunk")

    def test_tool_use_start(self, claude):
        line = _line({
            "type": "content_block_start",
            "index": 2,
            "content_block": {"type": "tool_use", "id": "t1", "name": "Edit"},
        })
        assert claude.decode_line(line) == ToolCallStarted(2, "Edit")

    def test_tool_use_start_defaults_index(self, claude):
        line = _line({
            "type": "content_block_start",
            "content_block": {"type": "tool_use", "name": "Bash"},
        })
        assert claude.decode_line(line) == ToolCallStarted(0, "Bash")

    def test_text_block_start_is_not_a_tool_call(self, claude):
        line = _line({
            "type": "content_block_start",
            "index": 0,
            "content_block": {"type": "text", "text": ""},
        })
        assert claude.decode_line(line) is None

    def test_input_json_delta(self, claude):
        line = _line({
            "type": "content_block_delta",
            "index": 1,
            "delta": {"type": "input_json_delta", "partial_json": '{"fi'},
        })
        assert claude.decode_line(line) == ToolCallInputDelta(1, '{"fi')

    def test_block_stop(self, claude):
        assert claude.decode_line(
            _line({"type": "content_block_stop", "index": 3})
        ) == ToolCallCompleted(3)

    def test_block_stop_requires_numeric_index(self, claude):
        assert claude.decode_line(
            _line({"type": "content_block_stop", "index": "3"})
        ) is None
        assert claude.decode_line(_line({"type": "content_block_stop"})) is None

    def test_result_usage_beats_session_id(self, claude):
        line = _line({
            "type": "result",
            "session_id": "abc",
            "usage": {
                "input_tokens": 10,
                "output_tokens": 20,
                "cache_creation_input_tokens": 3,
                "cache_read_input_tokens": 4,
            },
        })
        usage = claude.decode_line(line)
        assert usage == UsageReport(10, 20, 3, 4)
        assert usage.total_tokens == 37

    def test_usage_missing_counters_are_zero(self, claude):
        line = _line({"type": "result", "usage": {"input_tokens": None}})
        assert claude.decode_line(line) == UsageReport()

    def test_stream_event_wrapper(self, claude):
        line = _line({
            "type": "stream_event",
            "session_id": "abc",
            "event": {
                "type": "content_block_delta",
                "index": 0,
                "delta": {"type": "text_delta", "text": "hi"},
            },
        })
        assert claude.decode_line(line) == TextFragment("hi")

    def test_stream_event_wrapper_message_start(self, claude):
        line = _line({
            "type": "stream_event",
            "session_id": "abc",
            "event": {"type": "message_start", "message": {}},
        })
        assert claude.decode_line(line) == NativeSessionId("abc")

    @pytest.mark.parametrize("line", [
        "not json at all",
        "[1, 2, 3]",
        '"just a string"',
        '{"type": "unknown"}',
        '{"type": "assistant", "message": "oops"}',
        '{"type": "content_block_delta", "delta": null}',
        "{broken",
    ])
    def test_unrecognised_lines_yield_nothing(self, claude, line):
        assert claude.decode_line(line) is None


class TestGeminiDecoder:
    def test_init(self):
        line = _line({"type": "init", "session_id": "g-1", "model": "auto"})
        assert GeminiCliProfile().decode_line(line) == NativeSessionId("g-1")

    def test_assistant_message(self):
        line = _line({
            "type": "message", "role": "assistant",
            "content": "Hi", "delta": True,
        })
        assert GeminiCliProfile().decode_line(line) == TextFragment("Hi")

    def test_user_message_ignored(self):
        line = _line({"type": "message", "role": "user", "content": "Hi"})
        assert GeminiCliProfile().decode_line(line) is None

    def test_result_stats(self):
        line = _line({
            "type": "result",
            "status": "success",
            "stats": {"input_tokens": 5, "output_tokens": 7, "total_tokens": 12},
        })
        assert GeminiCliProfile().decode_line(line) == UsageReport(
            input_tokens=5, output_tokens=7,
        )

    def test_plain_text_noise(self):
        assert GeminiCliProfile().decode_line("Loaded cached credentials.") is None


class TestCodexDecoder:
    def test_thread_started(self):
        line = _line({"type": "thread.started", "thread_id": "th-9"})
        assert CodexProfile().decode_line(line) == NativeSessionId("th-9")

    def test_text_delta(self):
        line = _line({"type": "message.output_text.delta", "delta": "abc"})
        assert CodexProfile().decode_line(line) == TextFragment("abc")

    def test_agent_message_item(self):
        line = _line({
            "type": "item.completed",
            "item": {"id": "i1", "type": "agent_message", "text": "Done."},
        })
        assert CodexProfile().decode_line(line) == TextFragment("Done.\n")

    def test_other_items_ignored(self):
        line = _line({
            "type": "item.completed",
            "item": {"id": "i2", "type": "command_execution", "command": "ls"},
        })
        assert CodexProfile().decode_line(line) is None

    def test_turn_completed_usage(self):
        line = _line({
            "type": "turn.completed",
            "usage": {
                "input_tokens": 100,
                "cached_input_tokens": 40,
                "output_tokens": 9,
            },
        })
        assert CodexProfile().decode_line(line) == UsageReport(
            input_tokens=100, output_tokens=9, cache_read_input_tokens=40,
        )

    def test_turn_started_ignored(self):
        assert CodexProfile().decode_line(_line({"type": "turn.started"})) is None


class TestPlainTextProfile:
    def test_no_structured_events(self):
        profile = kimi_code()
        assert profile.uses_structured_events is False
        assert profile.decode_line('{"type": "assistant"}') is None
        assert profile.command == "kimi"
        assert profile.detect_command == "kimi --version"
