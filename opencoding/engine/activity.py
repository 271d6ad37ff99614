"""File and command activity recognized in plain-text tool output.

Tools without structured events report their work only as prose.
Each tool id maps to a list of regex rules; unknown tools fall back
to shell prompt lines (``$ cmd``).
"""
from __future__ import annotations

from dataclasses import dataclass
import re

from .models import ActivityItem, ActivityKind


@dataclass(frozen=True)
class ActivityRule:
    kind: ActivityKind
    pattern: re.Pattern[str]


_SHELL_PROMPT = ActivityRule(
    ActivityKind.COMMAND_RUN, re.compile(r"\$\s+(.+?)$", re.MULTILINE),
)

_RULES: dict[str, list[ActivityRule]] = {
    "claude-code": [
        ActivityRule(ActivityKind.FILE_READ, re.compile(r"Read\s+(\S+)")),
        ActivityRule(ActivityKind.FILE_WRITE, re.compile(r"(?:Write|Wrote)\s+(\S+)")),
        ActivityRule(ActivityKind.FILE_EDIT, re.compile(r"Edit\s+(\S+)")),
        ActivityRule(ActivityKind.TOOL_USE, re.compile(r"⏺\s+(\w+)")),
        ActivityRule(
            ActivityKind.COMMAND_RUN,
            re.compile(r"(?:Running|Executing|❯)\s*(.+?)$", re.MULTILINE),
        ),
    ],
    "gemini-cli": [
        ActivityRule(ActivityKind.FILE_READ, re.compile(r"Reading\s+file:\s*(\S+)")),
        ActivityRule(ActivityKind.FILE_WRITE, re.compile(r"Writing\s+to:\s*(\S+)")),
        ActivityRule(ActivityKind.TOOL_USE, re.compile(r"Using\s+tool:\s*(\w+)")),
        _SHELL_PROMPT,
    ],
}

_DEFAULT_RULES = [_SHELL_PROMPT]


def rules_for(tool_id: str) -> list[ActivityRule]:
    return _RULES.get(tool_id, _DEFAULT_RULES)


def extract_activity(text: str, tool_id: str) -> list[ActivityItem]:
    """Items grouped by rule in rule order, each group in text order."""
    items: list[ActivityItem] = []
    for rule in rules_for(tool_id):
        for match in rule.pattern.finditer(text):
            label = match.group(1).strip()
            if label:
                items.append(ActivityItem(rule.kind, label))
    return items
