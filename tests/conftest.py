"""Shared doubles for runner and engine tests."""
from __future__ import annotations

import asyncio

import pytest

from opencoding.engine.errors import SpawnError
from opencoding.engine.models import TurnCallbacks


class FakeProcess:
    """In-memory ProcessHandle; output and exit are driven by the test."""

    def __init__(self, pid: int) -> None:
        self.pid = pid
        self.killed = False
        self._chunks: asyncio.Queue[bytes] = asyncio.Queue()
        self._exit: asyncio.Future[int] = asyncio.get_running_loop().create_future()

    def feed(self, data: str | bytes) -> None:
        self._chunks.put_nowait(data.encode("utf-8") if isinstance(data, str) else data)

    def finish(self, code: int = 0) -> None:
        self._chunks.put_nowait(b"")
        if not self._exit.done():
            self._exit.set_result(code)

    async def read(self) -> bytes:
        return await self._chunks.get()

    async def wait(self) -> int:
        return await self._exit

    def kill(self) -> None:
        # Exit notification is delivered later by finish()
        self.killed = True


class FakeSpawner:
    def __init__(self) -> None:
        self.commands: list[tuple[str, str | None]] = []
        self.processes: list[FakeProcess] = []
        self.fail: str | None = None
        self.script: list[str] | None = None
        self.script_exit_code = 0
        self.gate: asyncio.Event | None = None

    async def spawn(self, command: str, cwd: str | None) -> FakeProcess:
        self.commands.append((command, cwd))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise SpawnError(command, self.fail)
        proc = FakeProcess(pid=1000 + len(self.processes))
        if self.script is not None:
            for chunk in self.script:
                proc.feed(chunk)
            proc.finish(self.script_exit_code)
        self.processes.append(proc)
        return proc


class FakeFileSystem:
    def __init__(self, files: dict[str, bytes] | None = None) -> None:
        self.files = dict(files or {})
        self.written: dict[str, str] = {}
        self.removed: list[str] = []

    def exists(self, path: str) -> bool:
        return path in self.files

    def read_bytes(self, path: str) -> bytes:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def write_temp(self, content: str, prefix: str, suffix: str) -> str:
        path = f"/tmp/{prefix}test{len(self.written)}{suffix}"
        self.written[path] = content
        return path

    def remove(self, path: str) -> None:
        self.removed.append(path)


class FakeTimerHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Stand-in for loop.call_later that fires only on demand."""

    def __init__(self) -> None:
        self.calls: list[tuple[float, object, FakeTimerHandle]] = []

    def __call__(self, delay, callback):
        handle = FakeTimerHandle()
        self.calls.append((delay, callback, handle))
        return handle

    @property
    def delays(self) -> list[float]:
        return [delay for delay, _, _ in self.calls]

    def fire(self, index: int = -1) -> None:
        _, callback, handle = self.calls[index]
        if not handle.cancelled:
            callback()


class Recorder:
    """Collects every callback of one turn."""

    def __init__(self) -> None:
        self.text: list[str] = []
        self.renders: list[str] = []
        self.session_ids: list[str] = []
        self.tool_calls: list = []
        self.usage: list = []
        self.done: list[int] = []
        self.errors: list[str] = []

    def callbacks(self) -> TurnCallbacks:
        return TurnCallbacks(
            on_text=self.text.append,
            on_render=self.renders.append,
            on_native_session_id=self.session_ids.append,
            on_tool_call=self.tool_calls.append,
            on_usage=self.usage.append,
            on_done=self.done.append,
            on_error=self.errors.append,
        )


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
def fake_fs() -> FakeFileSystem:
    return FakeFileSystem()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def recorder_factory():
    return Recorder
