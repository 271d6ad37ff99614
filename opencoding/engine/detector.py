"""Installation and version detection for registered tools.

Runs each tool's ``<command> --version`` through the login shell so
user PATH additions (nvm, pipx, homebrew) are honoured.
"""
from __future__ import annotations

import asyncio
import logging
import os

from .config import EngineConfig
from .models import ToolDetectResult
from .tools.base import ToolProfile
from .tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class ToolDetector:
    """Detects which registered tools are installed."""

    def __init__(
        self,
        registry: ToolRegistry,
        config: EngineConfig | None = None,
    ) -> None:
        self._registry = registry
        self._config = config or EngineConfig()

    async def detect(self, profile: ToolProfile) -> ToolDetectResult:
        """Run *profile*'s detect command; never raises."""
        argv = [self._config.shell]
        if self._config.login_shell:
            argv.append("-l")
        argv += ["-c", profile.detect_command]

        env = os.environ.copy()
        env["HOME"] = os.path.expanduser("~")
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                start_new_session=True,
            )
        except OSError as exc:
            logger.warning(
                "Detect for %s could not start %s: %s",
                profile.id, argv[0], exc,
            )
            return ToolDetectResult(id=profile.id, installed=False)

        try:
            stdout, _ = await asyncio.wait_for(
                proc.communicate(),
                timeout=self._config.detect_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Detect for %s timed out after %.1fs",
                profile.id, self._config.detect_timeout_seconds,
            )
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
            return ToolDetectResult(id=profile.id, installed=False)

        if proc.returncode != 0:
            logger.debug(
                "Detect for %s exited with code %s", profile.id, proc.returncode,
            )
            return ToolDetectResult(id=profile.id, installed=False)

        version = stdout.decode("utf-8", errors="replace").strip()
        logger.info("Detected %s: %s", profile.id, version or "(no version)")
        return ToolDetectResult(id=profile.id, installed=True, version=version)

    async def detect_one(self, tool_id: str) -> ToolDetectResult | None:
        profile = self._registry.get(tool_id)
        if profile is None:
            return None
        return await self.detect(profile)

    async def detect_all(self) -> list[ToolDetectResult]:
        """Detect every registered tool concurrently, in registry order."""
        return list(await asyncio.gather(
            *(self.detect(p) for p in self._registry.profiles())
        ))
