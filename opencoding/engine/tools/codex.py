"""OpenAI Codex CLI profile.

Runs ``codex exec [resume <thread>] '<message>' --full-auto
--skip-git-repo-check --json`` and decodes its JSONL events:
  thread.started: thread_id (native session id)
  message.output_text.delta: streamed text
  item.completed (agent_message): complete text item
  turn.completed: token usage
"""
from __future__ import annotations

from ..models import NativeSessionId, StreamEvent, TextFragment, UsageReport
from .base import CommandGrammar, ToolProfile, parse_record, token_count


class CodexProfile(ToolProfile):
    """Profile for the ``codex`` CLI.

    The resume subcommand precedes the prompt, and images are passed
    as ``-i <path>`` arguments instead of a stdin document.
    """

    @property
    def id(self) -> str:
        return "codex"

    @property
    def display_name(self) -> str:
        return "Codex"

    def default_grammar(self) -> CommandGrammar:
        return CommandGrammar(
            command="codex",
            default_args=("exec",),
            skip_confirm_args=("--full-auto", "--skip-git-repo-check"),
            resume_args=("resume",),
            model_args=("-m",),
            image_path_args=("-i",),
            output_format_args=("--json",),
            resume_before_message=True,
        )

    def decode_line(self, line: str) -> StreamEvent | None:
        record = parse_record(line)
        if record is None:
            return None

        etype = record.get("type", "")

        if etype == "message.output_text.delta":
            delta = record.get("delta")
            if isinstance(delta, str) and delta:
                return TextFragment(delta)
            return None

        if etype == "item.completed":
            item = record.get("item") or {}
            if isinstance(item, dict) and item.get("type") == "agent_message":
                text = item.get("text")
                if isinstance(text, str) and text:
                    return TextFragment(text + "\n")
            return None

        if etype == "turn.completed":
            usage = record.get("usage")
            if isinstance(usage, dict):
                return UsageReport(
                    input_tokens=token_count(usage, "input_tokens"),
                    output_tokens=token_count(usage, "output_tokens"),
                    cache_read_input_tokens=token_count(
                        usage, "cached_input_tokens",
                    ),
                )
            return None

        if etype == "thread.started":
            thread_id = record.get("thread_id")
            if isinstance(thread_id, str) and thread_id:
                return NativeSessionId(thread_id)

        return None
