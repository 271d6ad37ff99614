"""Abstract base for tool profiles.

Each profile describes one external command-line coding assistant
(Claude Code, Gemini CLI, Codex, ...): how to invoke it for a turn
and how to decode one line of its streamed output. The runner calls
build_command() once per send and decode_line() once per complete
output line.
"""
from __future__ import annotations

import abc
import json
from dataclasses import dataclass, replace
import shutil
from typing import TYPE_CHECKING

from ..models import BuiltCommand, StreamEvent, ToolInfo, TurnOptions

if TYPE_CHECKING:
    from ..process import FileSystem


@dataclass(frozen=True)
class CommandGrammar:
    """Argument groups for one tool's command line.

    Empty groups are simply not emitted by the command builder.
    """
    command: str
    default_args: tuple[str, ...] = ()
    print_mode_args: tuple[str, ...] = ()
    skip_confirm_args: tuple[str, ...] = ()
    continue_args: tuple[str, ...] = ()
    resume_args: tuple[str, ...] = ()
    output_format_args: tuple[str, ...] = ()
    input_format_args: tuple[str, ...] = ()
    model_args: tuple[str, ...] = ()
    image_path_args: tuple[str, ...] = ()
    thinking_args: tuple[str, ...] = ()
    # Codex style: `codex exec resume <id> <prompt>`
    resume_before_message: bool = False


class ToolProfile(abc.ABC):
    """Abstract tool profile.

    Implementations supply a CommandGrammar and a line decoder:
    - ClaudeCodeProfile: stream-json with tool-call blocks and usage
    - GeminiCliProfile / CodexProfile: JSONL text + session id
    - PlainTextProfile: no decoder, output filtered as plain text
    """

    def __init__(self, command: str | None = None) -> None:
        grammar = self.default_grammar()
        if command:
            grammar = replace(grammar, command=command)
        self._grammar = grammar

    @property
    @abc.abstractmethod
    def id(self) -> str:
        """Registry key (e.g. 'claude-code', 'codex')."""

    @property
    @abc.abstractmethod
    def display_name(self) -> str:
        """Human-readable tool name."""

    @property
    def icon(self) -> str:
        return self.id

    @abc.abstractmethod
    def default_grammar(self) -> CommandGrammar:
        """Argument groups used when no command override is configured."""

    @property
    def grammar(self) -> CommandGrammar:
        return self._grammar

    @property
    def command(self) -> str:
        return self._grammar.command

    @property
    def uses_structured_events(self) -> bool:
        """True when output lines are decoded with decode_line()."""
        return True

    @property
    def detect_command(self) -> str:
        return f"{self.command} --version"

    @abc.abstractmethod
    def decode_line(self, line: str) -> StreamEvent | None:
        """Decode one non-blank output line into at most one event.

        Must never raise: lines that are not this tool's structured
        format, or carry no recognized discriminator, return None.
        """

    def build_command(
        self,
        message: str,
        options: TurnOptions,
        fs: FileSystem | None = None,
    ) -> BuiltCommand:
        """Assemble the shell command line for one turn."""
        from .command import build_command

        return build_command(self._grammar, message, options, fs)

    def is_available(self) -> bool:
        """Check if the tool's executable is on PATH."""
        return shutil.which(self.command) is not None

    def info(self) -> ToolInfo:
        return ToolInfo(
            id=self.id,
            name=self.display_name,
            icon=self.icon,
            command=self.command,
            detect_command=self.detect_command,
            default_args=self._grammar.default_args,
        )


def parse_record(line: str) -> dict | None:
    """Parse one output line as a JSON object, or None."""
    stripped = line.strip()
    if not stripped:
        return None
    try:
        record = json.loads(stripped)
    except (json.JSONDecodeError, ValueError):
        return None
    if not isinstance(record, dict):
        return None
    return record


def token_count(mapping: dict, key: str) -> int:
    """Read a token counter, treating missing or malformed values as 0."""
    try:
        return max(0, int(mapping.get(key, 0) or 0))
    except (TypeError, ValueError):
        return 0
