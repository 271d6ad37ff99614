"""CLI entry point for the turn engine.

Usage:
    opencoding "Explain the build setup"
    opencoding --tool codex --cwd ~/src/app "Fix the failing test"
    opencoding --tool claude-code --resume 0b5e... "And now the docs"
    opencoding --image screenshot.png "What is wrong in this UI?"
    opencoding --list-tools
    opencoding --tool claude-code --cwd ~/src/app --list-sessions
"""
from __future__ import annotations

import argparse
import asyncio
import logging
from logging.handlers import RotatingFileHandler
import os
import sys
import uuid

from rich.console import Console
from rich.markup import escape

from opencoding.shared.formatters.tool_call import render_collapsed_rich

from .config import EngineConfig
from .engine import OpenCodingEngine
from .errors import ToolNotFoundError
from .models import ToolCallRecord, TurnCallbacks, TurnOptions, UsageReport

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="opencoding",
        description=(
            "Talk to command-line coding assistants through one interface"
        ),
    )
    parser.add_argument(
        "message",
        nargs="?",
        default=None,
        help="The message to send",
    )
    parser.add_argument(
        "--tool", "-t",
        default="claude-code",
        help="Tool id (default: claude-code; see --list-tools)",
    )
    parser.add_argument(
        "--cwd",
        default=None,
        help="Working directory for the tool (default: current dir)",
    )
    parser.add_argument(
        "--model", "-m",
        default=None,
        help="Model override passed to the tool",
    )
    resume = parser.add_mutually_exclusive_group()
    resume.add_argument(
        "--resume",
        default=None,
        metavar="SESSION_ID",
        help="Resume the tool's native session",
    )
    resume.add_argument(
        "--continue",
        dest="continue_",
        action="store_true",
        help="Continue the tool's most recent conversation",
    )
    parser.add_argument(
        "--image",
        action="append",
        default=[],
        metavar="PATH",
        help="Attach an image (repeatable)",
    )
    parser.add_argument(
        "--thinking",
        action="store_true",
        help="Enable the tool's thinking mode, if it has one",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML config file",
    )
    parser.add_argument(
        "--list-tools",
        action="store_true",
        help="List registered tools and whether they are installed",
    )
    parser.add_argument(
        "--list-sessions",
        action="store_true",
        help="List the tool's saved sessions for --cwd (ids usable with --resume)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write logs to a rotating file",
    )
    return parser


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _bootstrap_level(verbose: bool) -> int:
    if verbose:
        return logging.DEBUG
    return _level(os.getenv("OPENCODING_LOG_LEVEL", EngineConfig.log_level))


def _configure_logging(level: int, log_file: str | None) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )
    if log_file:
        file_handler = RotatingFileHandler(
            log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
        )
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s [pid=%(process)d] %(message)s"
        ))
        logging.getLogger().addHandler(file_handler)


def _load_config(config_path: str | None) -> EngineConfig:
    config = EngineConfig.from_env()
    if config_path:
        from .yaml_config import load_yaml_config
        config = load_yaml_config(config_path, base=config)
    return config


async def _list_tools(engine: OpenCodingEngine, console: Console) -> int:
    results = {r.id: r for r in await engine.detect_tools()}
    for info in engine.list_tools():
        result = results.get(info.id)
        if result is not None and result.installed:
            status = f"[green]installed[/green] [dim]{result.version}[/dim]"
        else:
            status = "[red]not installed[/red]"
        console.print(f"[cyan]{info.id:<12}[/cyan] {info.name:<16} {status}")
    return 0


def _list_sessions(
    engine: OpenCodingEngine, args: argparse.Namespace, console: Console,
) -> int:
    project_path = os.path.abspath(args.cwd or os.getcwd())
    sessions = engine.list_sessions(args.tool, project_path)
    if not sessions:
        console.print(f"[dim]No {args.tool} sessions for {escape(project_path)}[/dim]")
        return 0
    for session in sessions:
        console.print(
            f"[cyan]{session.session_id}[/cyan] [dim]{session.timestamp}[/dim] "
            f"{escape(session.title)}"
        )
    return 0


def _print_activity(
    engine: OpenCodingEngine, tool_id: str, text: str, console: Console,
) -> None:
    for item in engine.extract_activity(tool_id, text):
        console.print(f"[dim]{item.kind.value:<12}[/dim] {escape(item.label)}")


async def _run_turn(
    engine: OpenCodingEngine,
    args: argparse.Namespace,
    console: Console,
) -> int:
    exit_code = 1
    usage_reports: list[UsageReport] = []
    fragments: list[str] = []

    def on_text(fragment: str) -> None:
        fragments.append(fragment)
        sys.stdout.write(fragment)
        sys.stdout.flush()

    def on_session_id(session_id: str) -> None:
        console.print(f"[dim]session: {session_id}[/dim]")

    def on_tool_call(record: ToolCallRecord) -> None:
        sys.stdout.write("\n")
        console.print(render_collapsed_rich(record.name, record.label, record.icon))

    def on_done(code: int) -> None:
        nonlocal exit_code
        exit_code = code

    def on_error(message: str) -> None:
        console.print(f"[red]Error:[/red] {message}")

    options = TurnOptions(
        is_first=not args.continue_,
        cli_session_id=args.resume,
        image_paths=[os.path.abspath(p) for p in args.image],
        model=args.model,
        thinking=args.thinking,
    )
    callbacks = TurnCallbacks(
        on_text=on_text,
        on_native_session_id=on_session_id,
        on_tool_call=on_tool_call,
        on_usage=usage_reports.append,
        on_done=on_done,
        on_error=on_error,
    )

    task = await engine.send_message(
        f"cli-{uuid.uuid4().hex[:8]}",
        args.tool,
        args.message,
        cwd=args.cwd or os.getcwd(),
        options=options,
        callbacks=callbacks,
    )
    if task is None:
        return 1
    try:
        await task
    finally:
        await engine.shutdown()

    sys.stdout.write("\n")
    if not engine.registry.get_or_raise(args.tool).uses_structured_events:
        _print_activity(engine, args.tool, "".join(fragments), console)
    if usage_reports:
        usage = usage_reports[-1]
        console.print(
            f"[dim]tokens: in={usage.input_tokens} out={usage.output_tokens} "
            f"cache_write={usage.cache_creation_input_tokens} "
            f"cache_read={usage.cache_read_input_tokens}[/dim]"
        )
    return exit_code


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not (args.list_tools or args.list_sessions or args.message):
        parser.error("a message is required (or use --list-tools / --list-sessions)")

    level = _bootstrap_level(args.verbose)
    _configure_logging(level, args.log_file)
    config = _load_config(args.config)
    if not args.verbose and _level(config.log_level) != level:
        logging.getLogger().setLevel(_level(config.log_level))

    console = Console(stderr=True)
    engine = OpenCodingEngine(config=config)

    if args.list_tools:
        sys.exit(asyncio.run(_list_tools(engine, console)))

    if args.list_sessions:
        try:
            sys.exit(_list_sessions(engine, args, console))
        except ToolNotFoundError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            sys.exit(2)

    try:
        code = asyncio.run(_run_turn(engine, args, console))
    except ToolNotFoundError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(130)
    sys.exit(code)


if __name__ == "__main__":
    main()
