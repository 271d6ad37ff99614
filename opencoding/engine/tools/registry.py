"""Tool registry: maps tool ids to ToolProfile instances."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..errors import ToolNotFoundError
from .base import ToolProfile

if TYPE_CHECKING:
    from ..config import EngineConfig

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Registry of known command-line coding tools.

    Profiles are immutable and registered once at startup.
    """

    def __init__(self) -> None:
        self._profiles: dict[str, ToolProfile] = {}

    def register(self, profile: ToolProfile) -> None:
        """Register a profile under its id."""
        self._profiles[profile.id] = profile
        logger.info(
            "Tool registered: %s (command=%s)", profile.id, profile.command,
        )

    def get(self, tool_id: str) -> ToolProfile | None:
        """Get a profile by id, or None if not registered."""
        return self._profiles.get(tool_id)

    def get_or_raise(self, tool_id: str) -> ToolProfile:
        """Get a profile by id, raising ToolNotFoundError if not found."""
        profile = self._profiles.get(tool_id)
        if profile is None:
            raise ToolNotFoundError(tool_id, self.list_ids())
        return profile

    def list_ids(self) -> list[str]:
        """Return all registered tool ids, in registration order."""
        return list(self._profiles.keys())

    def profiles(self) -> list[ToolProfile]:
        return list(self._profiles.values())

    def list_available(self) -> list[str]:
        """Return ids of tools whose executable is on PATH."""
        return [
            tool_id for tool_id, p in self._profiles.items()
            if p.is_available()
        ]

    def __contains__(self, tool_id: object) -> bool:
        return tool_id in self._profiles

    @property
    def count(self) -> int:
        return len(self._profiles)


def build_default_registry(config: EngineConfig | None = None) -> ToolRegistry:
    """Build a registry with every built-in tool.

    Executable overrides come from ``config.tool_commands``; overrides
    for ids that are not built in are logged and ignored.
    """
    from .claude_code import ClaudeCodeProfile
    from .codex import CodexProfile
    from .gemini_cli import GeminiCliProfile
    from .generic import copilot, kimi_code, qwen_code

    overrides = dict(config.tool_commands) if config else {}
    factories = {
        "claude-code": ClaudeCodeProfile,
        "gemini-cli": GeminiCliProfile,
        "codex": CodexProfile,
        "qwen-code": qwen_code,
        "kimi-code": kimi_code,
        "copilot": copilot,
    }

    registry = ToolRegistry()
    for tool_id, factory in factories.items():
        registry.register(factory(command=overrides.pop(tool_id, None)))

    for tool_id in overrides:
        logger.warning(
            "Command override for unknown tool '%s', ignoring", tool_id,
        )

    return registry
