"""OpenCodingEngine: top-level facade.

Resolves a tool id to its profile, builds the turn's command and
hands it to the MessageRunner. Unknown tool ids are rejected before
anything is built or spawned.
"""
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .activity import extract_activity
from .config import EngineConfig, fire_callback
from .detector import ToolDetector
from .models import (
    ActivityItem,
    HistoryMessage,
    NativeSession,
    RunState,
    ToolDetectResult,
    ToolInfo,
    TurnCallbacks,
    TurnOptions,
)
from .process import FileSystem, LocalFileSystem, Spawner
from .runner import MessageRunner
from .sessions import NativeSessionStore
from .throttle import CallLater
from .tools.registry import ToolRegistry, build_default_registry

if TYPE_CHECKING:
    from opencoding.adapters.events import TurnEvent

logger = logging.getLogger(__name__)


class OpenCodingEngine:
    """Unified interface over the registered command-line coding tools.

    Usage:
        engine = OpenCodingEngine()
        task = await engine.send_message(
            "chat-1", "claude-code", "explain main.py", cwd="/repo",
            callbacks=TurnCallbacks(on_text=print),
        )
        await task
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        registry: ToolRegistry | None = None,
        *,
        spawner: Spawner | None = None,
        fs: FileSystem | None = None,
        call_later: CallLater | None = None,
    ) -> None:
        self.config = config or EngineConfig.from_env()
        self.registry = registry or build_default_registry(self.config)
        self._fs = fs or LocalFileSystem()
        self.runner = MessageRunner(
            spawner=spawner,
            fs=self._fs,
            config=self.config,
            call_later=call_later,
        )
        self.detector = ToolDetector(self.registry, self.config)
        self.sessions = NativeSessionStore(
            Path(str(self.config.claude_home)).expanduser()
            if self.config.claude_home else None
        )

    def list_tools(self) -> list[ToolInfo]:
        return [p.info() for p in self.registry.profiles()]

    async def detect_tools(self) -> list[ToolDetectResult]:
        return await self.detector.detect_all()

    def list_sessions(self, tool_id: str, project_path: str) -> list[NativeSession]:
        """Native sessions the tool saved for *project_path*, newest first."""
        self.registry.get_or_raise(tool_id)
        return self.sessions.list_sessions(tool_id, project_path)

    def load_session_messages(
        self, tool_id: str, project_path: str, session_id: str,
    ) -> list[HistoryMessage]:
        self.registry.get_or_raise(tool_id)
        return self.sessions.load_messages(tool_id, project_path, session_id)

    def extract_activity(self, tool_id: str, text: str) -> list[ActivityItem]:
        """File and command activity in a plain-text tool's output."""
        self.registry.get_or_raise(tool_id)
        return extract_activity(text, tool_id)

    async def send_message(
        self,
        session_id: str,
        tool_id: str,
        message: str,
        cwd: str | None = None,
        options: TurnOptions | None = None,
        callbacks: TurnCallbacks | None = None,
    ) -> asyncio.Task | None:
        """Start one turn on *session_id* with tool *tool_id*.

        Raises ToolNotFoundError for an unknown tool id. Returns the
        runner's pump task, or None if the turn could not start.
        """
        profile = self.registry.get_or_raise(tool_id)
        options = options or TurnOptions()
        callbacks = callbacks or TurnCallbacks()

        try:
            built = profile.build_command(message, options, self._fs)
        except OSError as exc:
            logger.error(
                "Could not prepare input for %s on session %s: %s",
                tool_id, session_id, exc,
            )
            fire_callback(callbacks.on_error, f"Failed to prepare input: {exc}")
            return None

        return await self.runner.send(
            session_id, profile, built, cwd=cwd, callbacks=callbacks,
        )

    async def stream_message(
        self,
        session_id: str,
        tool_id: str,
        message: str,
        cwd: str | None = None,
        options: TurnOptions | None = None,
    ) -> AsyncIterator[TurnEvent]:
        """Run one turn and yield its callbacks as typed events.

        Ends after the done/error event, or when the turn is cancelled
        or superseded.
        """
        from opencoding.adapters.event_bus import EventBus

        bus = EventBus()
        task = await self.send_message(
            session_id, tool_id, message, cwd=cwd, options=options,
            callbacks=bus.make_callbacks(session_id),
        )
        if task is None:
            bus.close()
        else:
            task.add_done_callback(lambda _: bus.close())
        async for event in bus.consume():
            yield event

    def cancel(self, session_id: str) -> bool:
        return self.runner.cancel(session_id)

    def state(self, session_id: str) -> RunState:
        return self.runner.state(session_id)

    async def shutdown(self) -> None:
        """Kill every running turn. Call at application exit."""
        await self.runner.destroy_all()
