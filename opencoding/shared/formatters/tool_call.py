"""Tool call label and preview extraction with per-tool-type rules.

Provides a registry-based formatter system that turns a reassembled
tool call (name + parsed input) into a short display label and a
longer preview body. A Rich renderer converts the result to a
collapsed one-line markup string for terminal output.

Adding a new tool format requires only a single decorated function:

    @tool_formatter("MyTool")
    def _format_my_tool(name, args):
        return FormattedToolCall(icon="🔧", label=..., preview=...)
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Callable
from urllib.parse import urlparse

LABEL_MAX_CHARS = 60
PREVIEW_MAX_CHARS = 300

# Keys that hold the primary file of file-oriented tools, in priority order
PATH_KEYS: tuple[str, ...] = (
    "file_path", "path", "file", "filePath", "notebook_path",
)

# Free-text keys used for labels of tools without a dedicated formatter
TEXT_KEYS: tuple[str, ...] = (
    "description", "prompt", "query", "command", "pattern", "url", "text",
)


# ── Intermediate Representation ──


@dataclass
class FormattedToolCall:
    """Display form of a tool call."""

    icon: str = ""
    label: str = ""
    preview: str = ""
    file_path: str = ""  # Primary file path (for click-to-open)


# ── Argument Parsing ──


def parse_args(arguments: str) -> dict | None:
    """Parse accumulated tool input to a dict.

    Returns None when the text is not valid JSON. A valid JSON value
    that is not an object is wrapped as ``{"_raw": arguments}``. Empty
    input means the tool was called without arguments.
    """
    if not arguments.strip():
        return {}
    try:
        parsed = json.loads(arguments)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None
    if isinstance(parsed, dict):
        return parsed
    return {"_raw": arguments}


# ── Formatter Registry ──

_FORMATTERS: dict[str, Callable[[str, dict], FormattedToolCall]] = {}
_TOOL_NAME_ALIASES: dict[str, str] = {
    "read": "Read",
    "read_file": "Read",
    "file_read": "Read",
    "write": "Write",
    "write_file": "Write",
    "file_write": "Write",
    "edit": "Edit",
    "edit_file": "Edit",
    "file_edit": "Edit",
    "multiedit": "Edit",
    "replace": "Edit",
    "bash": "Bash",
    "shell": "Bash",
    "run_shell_command": "Bash",
    "glob": "Glob",
    "list_directory": "Glob",
    "grep": "Grep",
    "search_file_content": "Grep",
    "search_files": "Grep",
    "web_fetch": "WebFetch",
    "google_web_search": "WebSearch",
    "web_search": "WebSearch",
}


def tool_formatter(name: str):
    """Decorator to register a formatter for a given tool name."""

    def decorator(fn: Callable[[str, dict], FormattedToolCall]):
        _FORMATTERS[name] = fn
        return fn

    return decorator


def _normalize_tool_name(name: str) -> str:
    """Strip MCP server prefix and map tool aliases to canonical names.

    E.g. ``mcp__files__read_file`` → ``Read`` and
    ``run_shell_command`` → ``Bash``.
    """
    if name.startswith("mcp__") and name.count("__") >= 2:
        name = name.split("__", 2)[2]
    return _TOOL_NAME_ALIASES.get(name.lower(), name)


def format_tool_call(name: str, args: dict) -> FormattedToolCall:
    """Main entry point: dispatch to a registered formatter or the default.

    Labels are capped at LABEL_MAX_CHARS and previews at
    PREVIEW_MAX_CHARS.
    """
    formatter = _FORMATTERS.get(name)
    if formatter is None:
        formatter = _FORMATTERS.get(_normalize_tool_name(name), _format_default)
    fmt = formatter(name, args)
    fmt.label = _trunc(fmt.label, LABEL_MAX_CHARS)
    fmt.preview = _trunc(fmt.preview, PREVIEW_MAX_CHARS)
    return fmt


# ── Helpers ──


def _basename(path: str) -> str:
    """Extract a short display path (last 2 components)."""
    if not path:
        return ""
    parts = path.replace("\\", "/").rstrip("/").split("/")
    return "/".join(parts[-2:]) if len(parts) >= 2 else parts[-1]


def _trunc(text: str, length: int = LABEL_MAX_CHARS) -> str:
    """Truncate text with ellipsis."""
    if not text:
        return ""
    if len(text) <= length:
        return text
    return text[: length - 3] + "..."


def _first_line(text: str) -> str:
    return text.strip().splitlines()[0] if text.strip() else ""


def _str_arg(args: dict, *keys: str) -> str:
    """First non-empty string value among *keys*."""
    for key in keys:
        value = args.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def _path_arg(args: dict) -> str:
    return _str_arg(args, *PATH_KEYS)


def _json_preview(args: dict) -> str:
    display = {k: v for k, v in args.items() if not k.startswith("_")}
    if not display:
        return str(args.get("_raw", ""))
    return json.dumps(display, indent=2, ensure_ascii=False, default=str)


# ── File tools ──


@tool_formatter("Edit")
def _format_edit(name: str, args: dict) -> FormattedToolCall:
    file_path = _path_arg(args)
    old_string = _str_arg(args, "old_string", "old", "search", "oldString")
    new_string = _str_arg(args, "new_string", "new", "replacement", "newString")

    if old_string or new_string:
        preview_lines = [f"- {line}" for line in old_string.splitlines()]
        preview_lines += [f"+ {line}" for line in new_string.splitlines()]
        preview = "\n".join(preview_lines)
    else:
        edits = args.get("edits")
        preview = f"{len(edits)} edits" if isinstance(edits, list) else file_path

    return FormattedToolCall(
        icon="✏",
        label=_basename(file_path),
        preview=preview,
        file_path=file_path,
    )


@tool_formatter("Write")
def _format_write(name: str, args: dict) -> FormattedToolCall:
    file_path = _path_arg(args)
    return FormattedToolCall(
        icon="\U0001f4dd",
        label=_basename(file_path),
        preview=_str_arg(args, "content", "text") or file_path,
        file_path=file_path,
    )


@tool_formatter("Read")
def _format_read(name: str, args: dict) -> FormattedToolCall:
    file_path = _path_arg(args)
    offset = args.get("offset")
    limit = args.get("limit")
    line_info = ""
    if offset or limit:
        parts = []
        if offset:
            parts.append(f"L{offset}")
        if limit:
            parts.append(f"+{limit}")
        line_info = f" ({':'.join(parts)})"

    return FormattedToolCall(
        icon="\U0001f4c4",
        label=_basename(file_path) + line_info,
        preview=file_path + line_info,
        file_path=file_path,
    )


@tool_formatter("NotebookEdit")
def _format_notebook_edit(name: str, args: dict) -> FormattedToolCall:
    file_path = _path_arg(args)
    return FormattedToolCall(
        icon="\U0001f4d3",
        label=_basename(file_path),
        preview=_str_arg(args, "new_source") or file_path,
        file_path=file_path,
    )


# ── Shell and search ──


@tool_formatter("Bash")
def _format_bash(name: str, args: dict) -> FormattedToolCall:
    command = _str_arg(args, "command", "cmd", "_raw")
    description = _str_arg(args, "description")

    preview = f"$ {command}" if command else ""
    if description:
        preview = f"{preview}\n# {description}" if preview else f"# {description}"
    return FormattedToolCall(
        icon="$",
        label=_first_line(command),
        preview=preview,
    )


@tool_formatter("Glob")
def _format_glob(name: str, args: dict) -> FormattedToolCall:
    pattern = _str_arg(args, "pattern")
    path = _str_arg(args, "path", "dir_path")
    label = pattern or _basename(path)
    if pattern and path:
        label += f" in {_basename(path)}"
    return FormattedToolCall(
        icon="\U0001f4c2",
        label=label,
        preview=_json_preview(args),
        file_path=path,
    )


@tool_formatter("Grep")
def _format_grep(name: str, args: dict) -> FormattedToolCall:
    pattern = _str_arg(args, "pattern")
    glob_filter = _str_arg(args, "glob")
    path = _str_arg(args, "path")

    scope = glob_filter or _basename(path) or ""
    label = f'"{_trunc(pattern, 30)}"' if pattern else ""
    if scope:
        label = f"{label} in {scope}" if label else scope

    return FormattedToolCall(
        icon="\U0001f50e",
        label=label,
        preview=_json_preview(args),
        file_path=path,
    )


# ── Agent and web tools ──


@tool_formatter("Task")
def _format_task(name: str, args: dict) -> FormattedToolCall:
    description = _str_arg(args, "description")
    prompt = _str_arg(args, "prompt")
    return FormattedToolCall(
        icon="\U0001f500",
        label=description or _first_line(prompt),
        preview=prompt or description,
    )


@tool_formatter("TodoWrite")
def _format_todo_write(name: str, args: dict) -> FormattedToolCall:
    todos = args.get("todos")
    if not isinstance(todos, list):
        return _format_default(name, args)

    lines: list[str] = []
    done = 0
    for item in todos:
        if not isinstance(item, dict):
            continue
        status = item.get("status", "")
        if status == "completed":
            done += 1
        mark = "x" if status == "completed" else " "
        lines.append(f"[{mark}] {item.get('content', '')}")

    return FormattedToolCall(
        icon="☑",
        label=f"{done}/{len(todos)} done",
        preview="\n".join(lines),
    )


@tool_formatter("WebFetch")
def _format_web_fetch(name: str, args: dict) -> FormattedToolCall:
    url = _str_arg(args, "url")
    prompt = _str_arg(args, "prompt")

    domain = ""
    if url:
        try:
            domain = urlparse(url).netloc
        except ValueError:
            domain = ""
    return FormattedToolCall(
        icon="\U0001f310",
        label=domain or url,
        preview="\n".join(p for p in (url, prompt) if p),
    )


@tool_formatter("WebSearch")
def _format_web_search(name: str, args: dict) -> FormattedToolCall:
    query = _str_arg(args, "query")
    return FormattedToolCall(
        icon="\U0001f50d",
        label=query,
        preview=query,
    )


def _format_default(name: str, args: dict) -> FormattedToolCall:
    """Fallback formatter for unrecognised tool names."""
    file_path = _path_arg(args)
    if file_path:
        label = _basename(file_path)
    else:
        label = _first_line(_str_arg(args, *TEXT_KEYS, "_raw"))
    if not label:
        label = ", ".join(
            f"{k}={v}" for k, v in args.items()
            if not k.startswith("_") and isinstance(v, (str, int, float, bool))
        )

    return FormattedToolCall(
        icon="\U0001f527",
        label=label,
        preview=_json_preview(args),
        file_path=file_path,
    )


# ── Rich Markup Renderer ──


def _esc(text: str) -> str:
    """Escape Rich markup characters."""
    return text.replace("[", "\\[")


def render_collapsed_rich(
    name: str, label: str = "", icon: str = "", status: str = "done",
) -> str:
    """Render a collapsed one-liner as a Rich markup string.

    Args:
        name: Tool name as reported by the CLI.
        label: Short display label.
        icon: Optional icon glyph.
        status: One of "pending", "done", "error".
    """
    status_markup = {
        "pending": "[yellow]\\[pending][/yellow]",
        "done": "[green]done[/green]",
        "error": "[red]error[/red]",
    }.get(status, f"[dim]{_esc(status)}[/dim]")

    parts = ["[dim]▶[/dim]"]
    if icon:
        parts.append(_esc(icon))
    parts.append(f"[cyan]{_esc(name)}[/cyan]")
    if label:
        parts.append(f"[dim]{_esc(label)}[/dim]")
    parts.append(status_markup)

    return "  ".join(parts)
