"""Native session history written by the tools themselves.

Claude Code keeps one JSONL file per conversation under
``~/.claude/projects/<project dir>/<session id>.jsonl``, where the
project dir is the absolute project path with every ``/`` replaced
by ``-``. Listing those files is how a caller finds the native id
to pass back as ``TurnOptions.cli_session_id``.

Other tools do not expose a readable history; they list nothing.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
import re

from .models import HistoryMessage, NativeSession

logger = logging.getLogger(__name__)

CLAUDE_TOOL_ID = "claude-code"
UNTITLED = "Untitled"
TITLE_MAX_CHARS = 80

# The session header (id, timestamp, first prompt) sits in the first lines
_HEADER_SCAN_LINES = 10

_THINKING_BLOCK = re.compile(r"<thinking>[\s\S]*?</thinking>\s*")


def project_dir_name(project_path: str) -> str:
    return project_path.replace("/", "-")


class NativeSessionStore:
    """Reads the per-project session files of Claude Code."""

    def __init__(self, claude_home: Path | None = None) -> None:
        self.root = claude_home or (Path.home() / ".claude")

    def project_dir(self, project_path: str) -> Path:
        return self.root / "projects" / project_dir_name(project_path)

    def list_sessions(self, tool_id: str, project_path: str) -> list[NativeSession]:
        """Sessions of *tool_id* for *project_path*, most recently modified first."""
        if tool_id != CLAUDE_TOOL_ID:
            logger.debug("No readable session history for tool %s", tool_id)
            return []

        directory = self.project_dir(project_path)
        if not directory.is_dir():
            return []

        files = sorted(
            directory.glob("*.jsonl"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )
        sessions: list[NativeSession] = []
        for path in files:
            session = self._read_header(path, tool_id)
            if session is not None:
                sessions.append(session)
        logger.info(
            "Listed %d %s sessions in %s", len(sessions), tool_id, directory,
        )
        return sessions

    def load_messages(
        self, tool_id: str, project_path: str, session_id: str,
    ) -> list[HistoryMessage]:
        """User prompts and assistant text of one session, in file order.

        Tool results and tool calls are skipped, as are thinking spans
        inside assistant text.
        """
        if tool_id != CLAUDE_TOOL_ID:
            return []
        if not session_id or Path(session_id).name != session_id:
            logger.warning("Rejected session id %r", session_id)
            return []

        path = self.project_dir(project_path) / f"{session_id}.jsonl"
        if not path.is_file():
            return []
        try:
            lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
        except OSError as exc:
            logger.warning("Failed to read session file %s: %s", path, exc)
            return []

        messages: list[HistoryMessage] = []
        for raw in lines:
            row = _parse_row(raw)
            if row is None:
                continue
            message = _history_message(row)
            if message is not None:
                messages.append(message)
        return messages

    def _read_header(self, path: Path, tool_id: str) -> NativeSession | None:
        session_id = ""
        timestamp = ""
        title = ""
        try:
            with path.open(encoding="utf-8", errors="replace") as fh:
                for line_no, raw in enumerate(fh):
                    if line_no >= _HEADER_SCAN_LINES:
                        break
                    row = _parse_row(raw)
                    if row is None:
                        continue
                    if not session_id and isinstance(row.get("sessionId"), str):
                        session_id = row["sessionId"]
                    if not timestamp and isinstance(row.get("timestamp"), str):
                        timestamp = row["timestamp"]
                    if row.get("type") == "user":
                        title = _title_of(row)
                        if title:
                            break
        except OSError as exc:
            logger.warning("Failed to read session file %s: %s", path, exc)
            return None

        if not session_id:
            return None
        return NativeSession(
            session_id=session_id,
            title=title or UNTITLED,
            timestamp=timestamp,
            tool_id=tool_id,
        )


def _parse_row(raw: str) -> dict | None:
    if not raw.strip():
        return None
    try:
        row = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return row if isinstance(row, dict) else None


def _message_of(row: dict) -> dict:
    message = row.get("message")
    return message if isinstance(message, dict) else {}


def _title_of(row: dict) -> str:
    content = _message_of(row).get("content")
    if not content:
        return ""
    if not isinstance(content, str):
        content = json.dumps(content, ensure_ascii=False)
    return content[:TITLE_MAX_CHARS]


def _history_message(row: dict) -> HistoryMessage | None:
    timestamp = row.get("timestamp") or ""
    content = _message_of(row).get("content")

    if row.get("type") == "user":
        # A list here carries tool results, not a prompt
        if isinstance(content, str) and content:
            return HistoryMessage("user", content, timestamp)
        return None

    if row.get("type") == "assistant" and isinstance(content, list):
        parts = []
        for block in content:
            if not isinstance(block, dict) or block.get("type") != "text":
                continue
            text = _THINKING_BLOCK.sub("", block.get("text") or "").strip()
            if text:
                parts.append(text)
        if parts:
            return HistoryMessage("assistant", "\n".join(parts), timestamp)
    return None
