"""YAML configuration loader.

Loads a single YAML file layered over the environment-derived
defaults. Every section is optional.

Example YAML:
    engine:
      shell: /bin/zsh
      login_shell: true
      read_chunk_size: 65536
      detect_timeout_seconds: 8
      log_level: DEBUG
      claude_home: ~/.claude

    throttle:
      tiers:
        - [2000, 0.1]
        - [10000, 0.2]
        - [30000, 0.35]
      max_delay: 0.5

    tools:
      claude-code:
        command: /opt/claude/bin/claude
      codex:
        command: codex-beta
"""
from __future__ import annotations

import logging
from pathlib import Path

import yaml

from .config import EngineConfig

logger = logging.getLogger(__name__)

KNOWN_TOOL_IDS = frozenset({
    "claude-code", "gemini-cli", "codex", "qwen-code", "kimi-code", "copilot",
})


def _parse_tiers(raw: object) -> tuple[tuple[int, float], ...] | None:
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ValueError(f"throttle.tiers must be a list, got {type(raw).__name__}")
    tiers: list[tuple[int, float]] = []
    for entry in raw:
        if not isinstance(entry, (list, tuple)) or len(entry) != 2:
            raise ValueError(
                f"throttle.tiers entries must be [chars, seconds], got {entry!r}"
            )
        tiers.append((int(entry[0]), float(entry[1])))
    return tuple(sorted(tiers))


def _parse_tool_commands(raw: object) -> dict[str, str]:
    commands: dict[str, str] = {}
    if not isinstance(raw, dict):
        return commands
    for tool_id, cfg in raw.items():
        if tool_id not in KNOWN_TOOL_IDS:
            logger.warning(
                "load_yaml_config: unknown tool '%s' in tools section, ignoring",
                tool_id,
            )
            continue
        command = cfg.get("command") if isinstance(cfg, dict) else None
        if command:
            commands[tool_id] = str(command)
    return commands


def load_yaml_config(
    path: str | Path, base: EngineConfig | None = None,
) -> EngineConfig:
    """Load and parse a YAML config file into an EngineConfig.

    Values not present in the file keep those of *base* (defaults
    when omitted).
    """
    path = Path(path)
    logger.info(
        "load_yaml_config: attempting to load config from %s (exists=%s)",
        path, path.exists(),
    )
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        logger.info("load_yaml_config: successfully read and parsed %s", path)
    except FileNotFoundError:
        logger.error(
            "load_yaml_config: config file not found at %s (absolute path: %s)",
            path, path.absolute(),
        )
        raise
    except yaml.YAMLError as exc:
        logger.error(
            "load_yaml_config: YAML parse error in %s: %s", path, exc,
        )
        raise

    if not isinstance(raw, dict):
        raise ValueError(f"{path}: top level must be a mapping")

    base = base or EngineConfig()
    top_sections = sorted(raw.keys())
    logger.info(
        "Parsed YAML config %s, sections: %s",
        path.name, ", ".join(top_sections) if top_sections else "(empty)",
    )

    engine_raw = raw.get("engine") or {}
    throttle_raw = raw.get("throttle") or {}

    tool_commands = dict(base.tool_commands)
    tool_commands.update(_parse_tool_commands(raw.get("tools")))

    config = EngineConfig(
        shell=str(engine_raw.get("shell", base.shell)),
        login_shell=bool(engine_raw.get("login_shell", base.login_shell)),
        read_chunk_size=int(engine_raw.get(
            "read_chunk_size", base.read_chunk_size
        )),
        detect_timeout_seconds=float(engine_raw.get(
            "detect_timeout_seconds", base.detect_timeout_seconds
        )),
        render_delay_tiers=(
            _parse_tiers(throttle_raw.get("tiers")) or base.render_delay_tiers
        ),
        render_max_delay=float(throttle_raw.get(
            "max_delay", base.render_max_delay
        )),
        tool_commands=tool_commands,
        log_level=str(engine_raw.get("log_level", base.log_level)),
        claude_home=engine_raw.get("claude_home", base.claude_home),
    )
    logger.info(
        "load_yaml_config: shell=%s tiers=%s max_delay=%.2f tool overrides=%s",
        config.shell, config.render_delay_tiers, config.render_max_delay,
        ", ".join(sorted(tool_commands)) or "none",
    )
    return config
