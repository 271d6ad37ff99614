"""Configuration loaded from environment variables.

All settings have sensible defaults. Override via OPENCODING_* env vars.
"""
from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}

# (max accumulated chars, delay seconds); beyond the last tier the
# render_max_delay applies.
DEFAULT_RENDER_DELAY_TIERS: tuple[tuple[int, float], ...] = (
    (2_000, 0.10),
    (10_000, 0.20),
    (30_000, 0.35),
)
DEFAULT_RENDER_MAX_DELAY = 0.5


def fire_callback(callback: Callable[..., Any] | None, *args: Any) -> None:
    """Invoke a consumer callback if set, logging and swallowing errors."""
    if callback is None:
        return
    try:
        callback(*args)
    except Exception:
        # Never let consumer errors break the stream loop
        logger.exception(
            "Consumer callback %s raised",
            getattr(callback, "__name__", repr(callback)),
        )


def _default_shell() -> str:
    return os.environ.get("SHELL") or "/bin/sh"


@dataclass
class EngineConfig:
    """Turn engine configuration."""

    # Shell used to run built commands: <shell> -l -c <command>
    shell: str = field(default_factory=_default_shell)
    login_shell: bool = True

    # Max bytes per read from the subprocess output pipe
    read_chunk_size: int = 65536

    # Timeout for `<tool> --version` detection
    detect_timeout_seconds: float = 8.0

    # Output throttle pacing
    render_delay_tiers: tuple[tuple[int, float], ...] = DEFAULT_RENDER_DELAY_TIERS
    render_max_delay: float = DEFAULT_RENDER_MAX_DELAY

    # Per-tool executable overrides (tool id -> command)
    tool_commands: dict[str, str] = field(default_factory=dict)

    # Directory holding the Claude Code history (default ~/.claude)
    claude_home: str | None = None

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Load configuration from OPENCODING_* environment variables."""
        env_vars = {
            k: v for k, v in os.environ.items() if k.startswith("OPENCODING_")
        }
        if env_vars:
            logger.info(
                "EngineConfig.from_env: OPENCODING_* env overrides: %s",
                ", ".join(f"{k}={v}" for k, v in sorted(env_vars.items())),
            )
        else:
            logger.debug(
                "EngineConfig.from_env: no OPENCODING_* env vars set, using defaults"
            )

        login_raw = os.getenv("OPENCODING_LOGIN_SHELL")
        config = cls(
            shell=os.getenv("OPENCODING_SHELL") or _default_shell(),
            login_shell=(
                login_raw.lower() in _TRUTHY
                if login_raw is not None
                else cls.login_shell
            ),
            read_chunk_size=int(os.getenv(
                "OPENCODING_READ_CHUNK_SIZE", str(cls.read_chunk_size)
            )),
            detect_timeout_seconds=float(os.getenv(
                "OPENCODING_DETECT_TIMEOUT", str(cls.detect_timeout_seconds)
            )),
            log_level=os.getenv("OPENCODING_LOG_LEVEL", cls.log_level),
            claude_home=os.getenv("OPENCODING_CLAUDE_HOME") or None,
        )
        logger.info(
            "EngineConfig.from_env: shell=%s login=%s chunk=%d log_level=%s",
            config.shell, config.login_shell,
            config.read_chunk_size, config.log_level,
        )
        return config
