"""Async event bus bridging turn callbacks to queue consumers.

The runner fires synchronous callbacks from its pump task. The
EventBus turns them into typed events on an asyncio.Queue so a
consumer can ``async for`` over a turn.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from opencoding.adapters.events import (
    TERMINAL_EVENTS,
    NativeSessionCaptured,
    RenderRequested,
    TextChunk,
    ToolCallFinished,
    TurnDone,
    TurnEvent,
    TurnFailed,
    UsageUpdated,
)
from opencoding.engine.models import ToolCallRecord, TurnCallbacks, UsageReport

logger = logging.getLogger(__name__)


class EventBus:
    """Async queue bridging turn callbacks to event consumers."""

    def __init__(self) -> None:
        # Unbounded: callbacks are synchronous and cannot wait for room
        self._queue: asyncio.Queue[TurnEvent] = asyncio.Queue()
        self._closed = False

    def emit(self, event: TurnEvent) -> None:
        if self._closed:
            return
        self._queue.put_nowait(event)

    def make_callbacks(
        self, session_id: str, *, include_text: bool = True,
    ) -> TurnCallbacks:
        """Return TurnCallbacks that publish onto this bus."""

        def on_text(text: str) -> None:
            self.emit(TextChunk(session_id=session_id, text=text))

        def on_render(full_text: str) -> None:
            self.emit(RenderRequested(session_id=session_id, full_text=full_text))

        def on_native_session_id(native_id: str) -> None:
            self.emit(NativeSessionCaptured(
                session_id=session_id, native_session_id=native_id,
            ))

        def on_tool_call(record: ToolCallRecord) -> None:
            self.emit(ToolCallFinished(session_id=session_id, record=record))

        def on_usage(usage: UsageReport) -> None:
            self.emit(UsageUpdated(session_id=session_id, usage=usage))

        def on_done(exit_code: int) -> None:
            self.emit(TurnDone(session_id=session_id, exit_code=exit_code))

        def on_error(message: str) -> None:
            self.emit(TurnFailed(session_id=session_id, message=message))

        return TurnCallbacks(
            on_text=on_text if include_text else None,
            on_render=on_render,
            on_native_session_id=on_native_session_id,
            on_tool_call=on_tool_call,
            on_usage=on_usage,
            on_done=on_done,
            on_error=on_error,
        )

    async def consume(
        self, *, stop_after_turn: bool = True,
    ) -> AsyncIterator[TurnEvent]:
        """Yield events as they arrive.

        Stops once closed and drained, or after a TurnDone/TurnFailed
        event when *stop_after_turn* is set.
        """
        while not (self._closed and self._queue.empty()):
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=0.5)
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                break
            yield event
            if stop_after_turn and isinstance(event, TERMINAL_EVENTS):
                logger.debug(
                    "EventBus: %s for session %s, stopping consumer",
                    event.event_type, event.session_id,
                )
                break

    def close(self) -> None:
        """Stop accepting events; consumers finish after draining."""
        self._closed = True

    @property
    def pending(self) -> int:
        return self._queue.qsize()
