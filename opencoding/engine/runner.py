"""Per-session subprocess supervision.

MessageRunner owns at most one running subprocess per session id.
Each send spawns the built command, then a pump task reads raw
output, reassembles lines (or filters plain text), decodes events
and dispatches them to the consumer callbacks.

Every send or cancel bumps the session's generation counter. A pump
whose generation is no longer current never fires callbacks, so the
exit of a superseded or cancelled process is silently dropped.
"""
from __future__ import annotations

import asyncio
import codecs
from dataclasses import dataclass, field
import logging

from .config import EngineConfig, fire_callback
from .errors import SpawnError
from .lifecycle import validate_transition
from .models import (
    BuiltCommand,
    NativeSessionId,
    RunState,
    StreamEvent,
    TextFragment,
    ToolCallCompleted,
    ToolCallInputDelta,
    ToolCallStarted,
    TurnCallbacks,
    UsageReport,
)
from .process import FileSystem, LocalFileSystem, ProcessHandle, ShellSpawner, Spawner
from .stream import LineReassembler, ThinkingFilter
from .throttle import CallLater, OutputThrottle
from .tool_calls import ToolCallReassembler
from .tools.base import ToolProfile

logger = logging.getLogger(__name__)

_TOOL_CALL_EVENTS = (ToolCallStarted, ToolCallInputDelta, ToolCallCompleted)


@dataclass
class _SessionRun:
    """Runtime state of one turn on one session."""
    session_id: str
    generation: int
    profile: ToolProfile
    callbacks: TurnCallbacks
    handle: ProcessHandle
    throttle: OutputThrottle
    temp_file: str | None = None
    lines: LineReassembler = field(default_factory=LineReassembler)
    thinking: ThinkingFilter = field(default_factory=ThinkingFilter)
    tool_calls: ToolCallReassembler = field(default_factory=ToolCallReassembler)
    native_session_id: str | None = None
    state: RunState = RunState.IDLE
    cancelled: bool = False
    task: asyncio.Task | None = None


class MessageRunner:
    """Spawns, streams and cancels one subprocess per session.

    Sessions are independent; the only shared structures are the
    maps keyed by session id, touched from the event loop thread.
    """

    def __init__(
        self,
        spawner: Spawner | None = None,
        fs: FileSystem | None = None,
        config: EngineConfig | None = None,
        call_later: CallLater | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._spawner = spawner or ShellSpawner(self._config)
        self._fs = fs or LocalFileSystem()
        self._call_later = call_later
        self._runs: dict[str, _SessionRun] = {}
        self._states: dict[str, RunState] = {}
        self._generations: dict[str, int] = {}
        self._tasks: set[asyncio.Task] = set()

    # ── Queries ──

    def state(self, session_id: str) -> RunState:
        return self._states.get(session_id, RunState.IDLE)

    def is_running(self, session_id: str) -> bool:
        return session_id in self._runs

    def active_sessions(self) -> list[str]:
        return list(self._runs.keys())

    # ── Lifecycle ──

    async def send(
        self,
        session_id: str,
        profile: ToolProfile,
        built: BuiltCommand,
        cwd: str | None = None,
        callbacks: TurnCallbacks | None = None,
    ) -> asyncio.Task | None:
        """Start a turn, superseding any running turn on *session_id*.

        Returns the pump task, or None when the subprocess could not
        be spawned (``on_error`` has fired) or a newer send/cancel
        arrived while spawning.
        """
        callbacks = callbacks or TurnCallbacks()
        if self.cancel(session_id):
            logger.info("Superseded running turn on session %s", session_id)
        generation = self._generations[session_id]

        logger.debug(
            "Spawning %s for session %s in %s: %s",
            profile.id, session_id, cwd or ".", built.command,
        )
        try:
            handle = await self._spawner.spawn(built.command, cwd)
        except SpawnError as exc:
            self._discard_temp_file(built.temp_file)
            if self._generations.get(session_id) != generation:
                return None
            logger.error("Spawn failed for session %s: %s", session_id, exc)
            self._set_state(session_id, RunState.IDLE)
            fire_callback(callbacks.on_error, str(exc))
            return None

        if self._generations.get(session_id) != generation:
            logger.debug(
                "Session %s superseded during spawn; killing pid=%s",
                session_id, handle.pid,
            )
            handle.kill()
            self._discard_temp_file(built.temp_file)
            return None

        run = _SessionRun(
            session_id=session_id,
            generation=generation,
            profile=profile,
            callbacks=callbacks,
            handle=handle,
            throttle=OutputThrottle(
                callbacks.on_render,
                tiers=self._config.render_delay_tiers,
                max_delay=self._config.render_max_delay,
                call_later=self._call_later,
            ),
            temp_file=built.temp_file,
        )
        self._set_state(session_id, RunState.RUNNING)
        run.state = RunState.RUNNING
        self._runs[session_id] = run
        logger.info(
            "Turn started: session=%s tool=%s pid=%s cwd=%s",
            session_id, profile.id, handle.pid, cwd or ".",
        )

        task = asyncio.create_task(self._pump(run))
        run.task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def cancel(self, session_id: str) -> bool:
        """Kill the running turn on *session_id*, if any.

        No callbacks fire for the cancelled turn afterwards. Returns
        True if a running turn was cancelled.
        """
        self._bump_generation(session_id)
        run = self._runs.pop(session_id, None)
        if run is None:
            return False
        self._cancel_run(run)
        self._set_state(session_id, RunState.CANCELLED)
        logger.info("Turn cancelled: session=%s", session_id)
        return True

    async def destroy_all(self) -> None:
        """Kill every running turn and wait for their pump tasks."""
        for session_id in list(self._generations):
            self.cancel(session_id)
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("MessageRunner destroyed (%d pump tasks)", len(tasks))

    # ── Internals ──

    def _bump_generation(self, session_id: str) -> int:
        generation = self._generations.get(session_id, 0) + 1
        self._generations[session_id] = generation
        return generation

    def _set_state(self, session_id: str, target: RunState) -> None:
        current = self.state(session_id)
        if current is target:
            return
        validate_transition(current, target)
        self._states[session_id] = target

    def _is_current(self, run: _SessionRun) -> bool:
        return (
            not run.cancelled
            and self._generations.get(run.session_id) == run.generation
        )

    def _cancel_run(self, run: _SessionRun) -> None:
        validate_transition(run.state, RunState.CANCELLED)
        run.state = RunState.CANCELLED
        run.cancelled = True
        try:
            run.handle.kill()
        except OSError as exc:
            logger.warning(
                "Kill failed for session %s pid=%s: %s",
                run.session_id, run.handle.pid, exc,
            )
        run.lines.reset()
        run.thinking.reset()
        run.tool_calls.reset()
        run.throttle.cancel()

    async def _pump(self, run: _SessionRun) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while True:
                chunk = await run.handle.read()
                if not chunk:
                    break
                if not self._is_current(run):
                    continue
                self._handle_text(run, decoder.decode(chunk))
            if self._is_current(run):
                self._handle_text(run, decoder.decode(b"", final=True))
            exit_code = await run.handle.wait()
        except Exception as exc:
            logger.exception(
                "Output pump failed: session=%s pid=%s",
                run.session_id, run.handle.pid,
            )
            self._fail(run, exc)
            return
        finally:
            self._discard_temp_file(run.temp_file)

        if not self._is_current(run):
            logger.debug(
                "Suppressed stale exit: session=%s generation=%d code=%s",
                run.session_id, run.generation, exit_code,
            )
            return
        self._finish(run, exit_code)

    def _finish(self, run: _SessionRun, exit_code: int) -> None:
        if not run.profile.uses_structured_events:
            tail = run.thinking.flush()
            if tail:
                self._emit_text(run, tail)
        remainder = run.lines.reset()
        if remainder.strip():
            logger.debug(
                "Discarded unterminated line for session %s (%d chars)",
                run.session_id, len(remainder),
            )
        if run.tool_calls.pending:
            logger.debug(
                "Discarded %d unfinished tool calls for session %s",
                run.tool_calls.pending, run.session_id,
            )
            run.tool_calls.reset()
        if self._is_current(run):
            run.throttle.finalize()
        # The tail text or final render may have cancelled this run
        if not self._is_current(run):
            logger.debug(
                "Run cancelled during finish: session=%s code=%s",
                run.session_id, exit_code,
            )
            return

        validate_transition(run.state, RunState.EXITED)
        run.state = RunState.EXITED
        self._runs.pop(run.session_id, None)
        self._set_state(run.session_id, RunState.EXITED)
        logger.info(
            "Turn exited: session=%s code=%s", run.session_id, exit_code,
        )
        fire_callback(run.callbacks.on_done, exit_code)

    def _fail(self, run: _SessionRun, exc: Exception) -> None:
        if not self._is_current(run):
            return
        try:
            run.handle.kill()
        except OSError as kill_exc:
            logger.warning(
                "Kill failed for session %s pid=%s: %s",
                run.session_id, run.handle.pid, kill_exc,
            )
        run.lines.reset()
        run.thinking.reset()
        run.tool_calls.reset()
        run.throttle.cancel()
        validate_transition(run.state, RunState.EXITED)
        run.state = RunState.EXITED
        self._runs.pop(run.session_id, None)
        self._set_state(run.session_id, RunState.EXITED)
        fire_callback(run.callbacks.on_error, f"Output stream failed: {exc}")

    def _handle_text(self, run: _SessionRun, text: str) -> None:
        if not text:
            return
        if not run.profile.uses_structured_events:
            visible = run.thinking.feed(text)
            if visible:
                self._emit_text(run, visible)
            return

        for line in run.lines.feed(text):
            try:
                event = run.profile.decode_line(line)
            except Exception:
                logger.exception(
                    "Decoder %s failed on line: %.200s", run.profile.id, line,
                )
                continue
            if event is None:
                logger.debug("Dropped undecodable line: %.200s", line)
                continue
            self._dispatch(run, event)
            # A callback may have cancelled or superseded this run
            if not self._is_current(run):
                return

    def _dispatch(self, run: _SessionRun, event: StreamEvent) -> None:
        callbacks = run.callbacks
        if isinstance(event, TextFragment):
            self._emit_text(run, event.text)
        elif isinstance(event, NativeSessionId):
            if run.native_session_id is not None:
                return
            run.native_session_id = event.session_id
            logger.info(
                "Captured native session id for %s: %s",
                run.session_id, event.session_id,
            )
            fire_callback(callbacks.on_native_session_id, event.session_id)
        elif isinstance(event, _TOOL_CALL_EVENTS):
            record = run.tool_calls.handle(event)
            if record is not None:
                fire_callback(callbacks.on_tool_call, record)
        elif isinstance(event, UsageReport):
            fire_callback(callbacks.on_usage, event)

    def _emit_text(self, run: _SessionRun, text: str) -> None:
        fire_callback(run.callbacks.on_text, text)
        run.throttle.push(text)

    def _discard_temp_file(self, path: str | None) -> None:
        if not path:
            return
        try:
            self._fs.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Failed to delete temp file %s: %s", path, exc)
