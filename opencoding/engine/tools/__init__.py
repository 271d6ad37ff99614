"""Tool profiles for the supported command-line coding assistants."""
from .base import CommandGrammar, ToolProfile
from .claude_code import ClaudeCodeProfile
from .codex import CodexProfile
from .command import build_command, shell_escape
from .gemini_cli import GeminiCliProfile
from .generic import PlainTextProfile
from .registry import ToolRegistry, build_default_registry

__all__ = [
    "ClaudeCodeProfile",
    "CodexProfile",
    "CommandGrammar",
    "GeminiCliProfile",
    "PlainTextProfile",
    "ToolProfile",
    "ToolRegistry",
    "build_command",
    "build_default_registry",
    "shell_escape",
]
