"""Tests for the tool registry and profile metadata."""
import pytest

from opencoding.engine.errors import ToolNotFoundError
from opencoding.engine.tools import (
    ClaudeCodeProfile,
    CodexProfile,
    GeminiCliProfile,
    ToolRegistry,
    build_default_registry,
)
from opencoding.engine.tools.generic import copilot, kimi_code, qwen_code


class TestToolRegistry:
    def test_register_and_get(self):
        registry = ToolRegistry()
        profile = ClaudeCodeProfile()
        registry.register(profile)
        assert registry.get("claude-code") is profile
        assert registry.get("codex") is None
        assert "claude-code" in registry
        assert registry.count == 1

    def test_get_or_raise(self):
        registry = ToolRegistry()
        registry.register(CodexProfile())
        registry.register(GeminiCliProfile())
        with pytest.raises(ToolNotFoundError) as exc_info:
            registry.get_or_raise("cursor")
        err = exc_info.value
        assert err.tool_id == "cursor"
        assert err.available == ["codex", "gemini-cli"]
        assert str(err) == "Tool 'cursor' not found. Available: codex, gemini-cli"

    def test_get_or_raise_empty(self):
        with pytest.raises(ToolNotFoundError, match="Available: none"):
            ToolRegistry().get_or_raise("x")

    def test_re_register_replaces(self):
        registry = ToolRegistry()
        registry.register(CodexProfile())
        registry.register(CodexProfile(command="codex-beta"))
        assert registry.count == 1
        assert registry.get("codex").command == "codex-beta"

    def test_list_available(self):
        registry = ToolRegistry()
        registry.register(qwen_code(command="sh"))
        registry.register(kimi_code(command="opencoding-missing-tool-xyz"))
        assert registry.list_available() == ["qwen-code"]


class TestDefaultRegistry:
    def test_builtin_ids_in_order(self):
        registry = build_default_registry()
        assert registry.list_ids() == [
            "claude-code", "gemini-cli", "codex", "qwen-code", "kimi-code", "copilot",
        ]

    def test_structured_and_plain_tools(self):
        registry = build_default_registry()
        structured = {
            p.id for p in registry.profiles() if p.uses_structured_events
        }
        assert structured == {"claude-code", "gemini-cli", "codex"}


class TestProfileInfo:
    @pytest.mark.parametrize("profile,name,icon,command", [
        (ClaudeCodeProfile(), "Claude Code", "claude", "claude"),
        (GeminiCliProfile(), "Gemini CLI", "gemini", "gemini"),
        (CodexProfile(), "Codex", "codex", "codex"),
        (qwen_code(), "Qwen Code", "qwen", "qwen-code"),
        (kimi_code(), "Kimi Code", "kimi", "kimi"),
        (copilot(), "GitHub Copilot", "copilot", "copilot"),
    ])
    def test_info(self, profile, name, icon, command):
        info = profile.info()
        assert info.id == profile.id
        assert info.name == name
        assert info.icon == icon
        assert info.command == command
        assert info.detect_command == f"{command} --version"

    def test_command_override_keeps_grammar(self):
        profile = ClaudeCodeProfile(command="/usr/local/bin/claude")
        assert profile.command == "/usr/local/bin/claude"
        assert profile.grammar.output_format_args == (
            "--output-format", "stream-json", "--verbose",
        )
        assert ClaudeCodeProfile().command == "claude"
