"""Tests for opencoding.adapters.event_bus: callback to queue bridging."""
from __future__ import annotations

import asyncio

import pytest

from opencoding.adapters.event_bus import EventBus
from opencoding.adapters.events import (
    NativeSessionCaptured,
    RenderRequested,
    TextChunk,
    ToolCallFinished,
    TurnDone,
    TurnFailed,
    UsageUpdated,
)
from opencoding.engine.models import ToolCallRecord, UsageReport


async def _collect(bus: EventBus, **kwargs) -> list:
    return [event async for event in bus.consume(**kwargs)]


class TestEventBus:
    @pytest.mark.asyncio
    async def test_callbacks_become_events(self):
        bus = EventBus()
        cb = bus.make_callbacks("s1")
        cb.on_native_session_id("n-1")
        cb.on_text("hi")
        cb.on_render("hi")
        cb.on_tool_call(ToolCallRecord(name="Bash", label="ls"))
        cb.on_usage(UsageReport(input_tokens=1))
        cb.on_done(0)

        events = await _collect(bus)
        assert [type(e) for e in events] == [
            NativeSessionCaptured, TextChunk, RenderRequested,
            ToolCallFinished, UsageUpdated, TurnDone,
        ]
        assert all(e.session_id == "s1" for e in events)
        assert events[1].text == "hi"
        assert events[3].record.label == "ls"
        assert events[4].usage.input_tokens == 1
        assert events[-1].event_type == "turn_done"

    @pytest.mark.asyncio
    async def test_consumer_stops_after_terminal_event(self):
        bus = EventBus()
        cb = bus.make_callbacks("s1")
        cb.on_error("spawn failed")
        cb.on_text("never seen")

        events = await _collect(bus)
        assert len(events) == 1
        assert isinstance(events[0], TurnFailed)
        assert bus.pending == 1

    @pytest.mark.asyncio
    async def test_close_drains_then_stops(self):
        bus = EventBus()
        cb = bus.make_callbacks("s1")
        cb.on_text("a")
        cb.on_text("b")
        bus.close()
        cb.on_text("ignored")

        events = await _collect(bus)
        assert [e.text for e in events] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_keep_consuming_across_turns(self):
        bus = EventBus()
        cb = bus.make_callbacks("s1")
        cb.on_done(0)
        cb.on_done(1)
        bus.close()

        events = await _collect(bus, stop_after_turn=False)
        assert [e.exit_code for e in events] == [0, 1]

    @pytest.mark.asyncio
    async def test_events_arriving_later(self):
        bus = EventBus()
        cb = bus.make_callbacks("s1")
        consumer = asyncio.create_task(_collect(bus))
        await asyncio.sleep(0)
        cb.on_text("late")
        cb.on_done(0)
        events = await asyncio.wait_for(consumer, timeout=2)
        assert [type(e) for e in events] == [TextChunk, TurnDone]

    def test_without_text_events(self):
        cb = EventBus().make_callbacks("s1", include_text=False)
        assert cb.on_text is None
        assert cb.on_render is not None
