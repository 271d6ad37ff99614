"""Command line assembly for a turn.

Two modes:
- Direct: ``<cmd> <default> <print> [resume id] '<message>' <skip>
  [model] [thinking] <output> [images] [resume id | continue]``
- Structured input: when images are attached and the tool reads a
  structured document on stdin, the message and base64 images are
  written to a temp file and piped in with ``cat``.
"""
from __future__ import annotations

import base64
import json
import logging
import os
import shlex
from typing import TYPE_CHECKING

from ..models import BuiltCommand, TurnOptions

if TYPE_CHECKING:
    from ..process import FileSystem
    from .base import CommandGrammar

logger = logging.getLogger(__name__)

TEMP_FILE_PREFIX = "opencoding_"
TEMP_FILE_SUFFIX = ".json"

IMAGE_MIME_TYPES: dict[str, str] = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
}
DEFAULT_IMAGE_MIME = "image/png"


def shell_escape(text: str) -> str:
    """Wrap *text* in POSIX single quotes.

    Embedded single quotes become ``'\\''`` (close, escaped quote, reopen).
    """
    return "'" + text.replace("'", "'\\''") + "'"


def image_mime_type(path: str) -> str:
    ext = os.path.splitext(path)[1].lower()
    return IMAGE_MIME_TYPES.get(ext, DEFAULT_IMAGE_MIME)


def _resume_or_continue(
    grammar: CommandGrammar, options: TurnOptions,
) -> list[str]:
    if options.cli_session_id and grammar.resume_args:
        return [*grammar.resume_args, shlex.quote(options.cli_session_id)]
    if not options.is_first and grammar.continue_args:
        return list(grammar.continue_args)
    return []


def _model_and_thinking(
    grammar: CommandGrammar, options: TurnOptions,
) -> list[str]:
    parts: list[str] = []
    if options.model and grammar.model_args:
        parts += [*grammar.model_args, shlex.quote(options.model)]
    if options.thinking and grammar.thinking_args:
        parts += grammar.thinking_args
    return parts


def build_command(
    grammar: CommandGrammar,
    message: str,
    options: TurnOptions,
    fs: FileSystem | None = None,
) -> BuiltCommand:
    """Build the command line for one turn of *grammar*'s tool."""
    if fs is None:
        from ..process import LocalFileSystem
        fs = LocalFileSystem()

    if options.image_paths and grammar.input_format_args:
        return _build_structured_input(grammar, message, options, fs)

    parts: list[str] = [
        grammar.command, *grammar.default_args, *grammar.print_mode_args,
    ]

    if (
        grammar.resume_before_message
        and options.cli_session_id
        and grammar.resume_args
    ):
        parts += [*grammar.resume_args, shlex.quote(options.cli_session_id)]

    parts.append(shell_escape(message))
    parts += grammar.skip_confirm_args
    parts += _model_and_thinking(grammar, options)
    parts += grammar.output_format_args

    if options.image_paths and grammar.image_path_args:
        for path in options.image_paths:
            if not fs.exists(path):
                logger.warning("Image file not found, skipping: %s", path)
                continue
            parts += [*grammar.image_path_args, shell_escape(path)]

    if not grammar.resume_before_message:
        parts += _resume_or_continue(grammar, options)

    return BuiltCommand(command=" ".join(parts))


def build_input_document(
    message: str, image_paths: list[str], fs: FileSystem,
) -> dict:
    """Build the ``{"role": "user", "content": [...]}`` stdin document.

    Image blocks come first, then one text block. Missing or
    unreadable images are skipped.
    """
    content: list[dict] = []
    for path in image_paths:
        if not fs.exists(path):
            logger.warning("Image file not found, skipping: %s", path)
            continue
        try:
            data = fs.read_bytes(path)
        except OSError as exc:
            logger.warning("Failed to read image %s: %s", path, exc)
            continue
        content.append({
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": image_mime_type(path),
                "data": base64.b64encode(data).decode("ascii"),
            },
        })
    content.append({"type": "text", "text": message})
    return {"role": "user", "content": content}


def _build_structured_input(
    grammar: CommandGrammar,
    message: str,
    options: TurnOptions,
    fs: FileSystem,
) -> BuiltCommand:
    document = build_input_document(message, options.image_paths, fs)
    temp_file = fs.write_temp(
        json.dumps(document), prefix=TEMP_FILE_PREFIX, suffix=TEMP_FILE_SUFFIX,
    )
    logger.debug(
        "Structured input written to %s (%d blocks)",
        temp_file, len(document["content"]),
    )

    # --print rather than the print-mode group, which may expect a prompt
    parts: list[str] = [
        "cat", shell_escape(temp_file), "|",
        grammar.command, *grammar.default_args,
        "--print",
        *grammar.skip_confirm_args,
        *grammar.input_format_args,
    ]
    parts += _model_and_thinking(grammar, options)
    parts += grammar.output_format_args
    parts += _resume_or_continue(grammar, options)

    return BuiltCommand(command=" ".join(parts), temp_file=temp_file)
