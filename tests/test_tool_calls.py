"""Tests for opencoding.engine.tool_calls: partial-JSON tool call reassembly."""
from __future__ import annotations

import pytest

from opencoding.engine.models import (
    TextFragment,
    ToolCallCompleted,
    ToolCallInputDelta,
    ToolCallRecord,
    ToolCallStarted,
)
from opencoding.engine.tool_calls import ToolCallReassembler, build_record


EDIT_INPUT = '{"file":"a.txt"}'


class TestToolCallReassembler:
    def test_basic_reassembly(self):
        r = ToolCallReassembler()
        r.started(0, "Edit")
        r.delta(0, '{"file')
        r.delta(0, '":"a.txt"}')
        record = r.completed(0)
        assert record is not None
        assert record.name == "Edit"
        assert record.label == "a.txt"
        assert record.file_path == "a.txt"
        assert record.arguments == {"file": "a.txt"}
        assert r.pending == 0

    @pytest.mark.parametrize("split", range(len(EDIT_INPUT) + 1))
    def test_any_split_gives_same_label(self, split):
        r = ToolCallReassembler()
        r.handle(ToolCallStarted(1, "Edit"))
        r.handle(ToolCallInputDelta(1, EDIT_INPUT[:split]))
        r.handle(ToolCallInputDelta(1, EDIT_INPUT[split:]))
        record = r.handle(ToolCallCompleted(1))
        assert record is not None
        assert record.label == "a.txt"

    def test_completion_without_start(self):
        r = ToolCallReassembler()
        assert r.completed(5) is None
        assert r.handle(ToolCallCompleted(5)) is None

    def test_delta_before_start_is_ignored(self):
        r = ToolCallReassembler()
        r.delta(0, '{"file":"ignored.txt"}')
        r.started(0, "Edit")
        record = r.completed(0)
        assert record is not None
        assert record.arguments == {}
        assert record.label == ""

    def test_unparseable_input_gives_name_only_record(self):
        r = ToolCallReassembler()
        r.started(0, "Edit")
        r.delta(0, '{"file')
        assert r.completed(0) == ToolCallRecord(name="Edit")

    def test_interleaved_blocks(self):
        r = ToolCallReassembler()
        r.started(1, "Read")
        r.started(2, "Bash")
        r.delta(2, '{"command": "ls"}')
        r.delta(1, '{"file_path": "/src/pkg/mod.py"}')
        assert r.pending == 2

        bash = r.completed(2)
        read = r.completed(1)
        assert bash.label == "ls"
        assert read.label == "pkg/mod.py"
        assert read.file_path == "/src/pkg/mod.py"

    def test_restart_discards_previous_input(self):
        r = ToolCallReassembler()
        r.started(0, "Edit")
        r.delta(0, '{"file": "old')
        r.started(0, "Write")
        r.delta(0, '{"file_path": "new.txt"}')
        record = r.completed(0)
        assert record.name == "Write"
        assert record.label == "new.txt"

    def test_handle_ignores_other_events(self):
        assert ToolCallReassembler().handle(TextFragment("hi")) is None

    def test_reset(self):
        r = ToolCallReassembler()
        r.started(0, "Edit")
        r.started(1, "Read")
        r.reset()
        assert r.pending == 0
        assert r.completed(0) is None


class TestBuildRecord:
    def test_empty_input_is_empty_arguments(self):
        record = build_record("Bash", "")
        assert record.arguments == {}
        assert record.label == ""

    def test_non_object_json(self):
        record = build_record("Custom", "[1, 2]")
        assert record.arguments == {"_raw": "[1, 2]"}
        assert record.label == "[1, 2]"

    def test_label_is_truncated(self):
        record = build_record("Bash", '{"command": "%s"}' % ("x" * 200))
        assert len(record.label) == 60
        assert record.label.endswith("...")
