"""Process-spawning and filesystem primitives used by the runner.

ShellSpawner runs a built command through ``<shell> -l -c`` in its
own process group so that pipelines (``cat tmp | claude ...``) are
killed as a unit. LocalFileSystem covers image reads and temp-file
handling. Both sit behind small protocols so tests can substitute
in-memory doubles.
"""
from __future__ import annotations

import asyncio
import logging
import os
import signal
import tempfile
from typing import Protocol

from .config import EngineConfig
from .errors import SpawnError

logger = logging.getLogger(__name__)


class ProcessHandle(Protocol):
    """A running turn subprocess."""

    pid: int | None

    async def read(self) -> bytes:
        """Next chunk of combined stdout/stderr; ``b""`` at EOF."""
        ...

    async def wait(self) -> int:
        """Wait for exit and return the exit code."""
        ...

    def kill(self) -> None:
        """Fire-and-forget termination signal."""
        ...


class Spawner(Protocol):
    async def spawn(self, command: str, cwd: str | None) -> ProcessHandle:
        """Start *command*. Raises SpawnError when it cannot start."""
        ...


class FileSystem(Protocol):
    def exists(self, path: str) -> bool: ...

    def read_bytes(self, path: str) -> bytes: ...

    def write_temp(self, content: str, prefix: str, suffix: str) -> str: ...

    def remove(self, path: str) -> None: ...


class LocalFileSystem:
    """FileSystem backed by the local disk."""

    def exists(self, path: str) -> bool:
        return os.path.isfile(path)

    def read_bytes(self, path: str) -> bytes:
        with open(path, "rb") as f:
            return f.read()

    def write_temp(self, content: str, prefix: str, suffix: str) -> str:
        fd, path = tempfile.mkstemp(prefix=prefix, suffix=suffix)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        return path

    def remove(self, path: str) -> None:
        os.unlink(path)


class ShellProcess:
    """ProcessHandle over an asyncio subprocess."""

    def __init__(
        self, proc: asyncio.subprocess.Process, chunk_size: int,
    ) -> None:
        self._proc = proc
        self._chunk_size = chunk_size

    @property
    def pid(self) -> int | None:
        return self._proc.pid

    async def read(self) -> bytes:
        if self._proc.stdout is None:
            return b""
        return await self._proc.stdout.read(self._chunk_size)

    async def wait(self) -> int:
        return await self._proc.wait()

    def kill(self) -> None:
        if self._proc.returncode is not None:
            return
        try:
            # start_new_session=True makes the shell a group leader
            os.killpg(self._proc.pid, signal.SIGTERM)
        except ProcessLookupError:
            return
        except OSError as exc:
            logger.debug(
                "killpg failed for pid=%s (%s); terminating shell only",
                self._proc.pid, exc,
            )
            try:
                self._proc.terminate()
            except ProcessLookupError:
                pass
        logger.info("Sent SIGTERM to process group pid=%s", self._proc.pid)


class ShellSpawner:
    """Spawner that runs commands through the configured shell."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self._config = config or EngineConfig()

    def argv(self, command: str) -> list[str]:
        if self._config.login_shell:
            return [self._config.shell, "-l", "-c", command]
        return [self._config.shell, "-c", command]

    async def spawn(self, command: str, cwd: str | None) -> ShellProcess:
        env = os.environ.copy()
        env["HOME"] = os.path.expanduser("~")
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.argv(command),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                env=env,
                cwd=cwd,
                start_new_session=True,
            )
        except OSError as exc:
            raise SpawnError(command, exc.strerror or str(exc)) from exc
        return ShellProcess(proc, self._config.read_chunk_size)
