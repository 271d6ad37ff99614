"""Plain-text tool profiles.

Tools without a structured output grammar. Their output is passed
through as text (after the thinking-span filter in stream.py) and
never decoded line by line.
"""
from __future__ import annotations

from ..models import StreamEvent
from .base import CommandGrammar, ToolProfile


class PlainTextProfile(ToolProfile):
    """Profile built from a fixed grammar with no event decoder."""

    def __init__(
        self,
        tool_id: str,
        display_name: str,
        grammar: CommandGrammar,
        *,
        icon: str | None = None,
        command: str | None = None,
    ) -> None:
        self._tool_id = tool_id
        self._display_name = display_name
        self._icon = icon or tool_id
        self._base_grammar = grammar
        super().__init__(command)

    @property
    def id(self) -> str:
        return self._tool_id

    @property
    def display_name(self) -> str:
        return self._display_name

    @property
    def icon(self) -> str:
        return self._icon

    def default_grammar(self) -> CommandGrammar:
        return self._base_grammar

    @property
    def uses_structured_events(self) -> bool:
        return False

    def decode_line(self, line: str) -> StreamEvent | None:
        return None


def qwen_code(command: str | None = None) -> PlainTextProfile:
    return PlainTextProfile(
        "qwen-code", "Qwen Code",
        CommandGrammar(
            command="qwen-code",
            print_mode_args=("-p",),
            continue_args=("-c",),
            skip_confirm_args=("--yes",),
            model_args=("--model",),
        ),
        icon="qwen",
        command=command,
    )


def kimi_code(command: str | None = None) -> PlainTextProfile:
    return PlainTextProfile(
        "kimi-code", "Kimi Code",
        CommandGrammar(
            command="kimi",
            print_mode_args=("-p",),
            continue_args=("-c",),
            skip_confirm_args=("--yes",),
            model_args=("--model",),
        ),
        icon="kimi",
        command=command,
    )


def copilot(command: str | None = None) -> PlainTextProfile:
    return PlainTextProfile(
        "copilot", "GitHub Copilot",
        CommandGrammar(
            command="copilot",
            print_mode_args=("-p",),
            continue_args=("--continue",),
            skip_confirm_args=("--yolo",),
            model_args=("--model",),
            resume_args=("--resume",),
        ),
        command=command,
    )
