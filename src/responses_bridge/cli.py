"""Command-line entry point.

Examples:
- responses-bridge                      # serve MCP over stdio
- responses-bridge ask "What changed in Python 3.13?"
- responses-bridge ask -l "Plan a migration"   # large model
- responses-bridge models gpt-5
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import TYPE_CHECKING

from responses_bridge import __version__
from responses_bridge.config import Settings
from responses_bridge.dispatcher import ToolDispatcher
from responses_bridge.errors import ConfigurationError
from responses_bridge.server import serve

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from responses_bridge.result import ToolResult

logger = logging.getLogger(__name__)

DEFAULT_SMALL_MODEL = "gpt-4o-mini"
DEFAULT_LARGE_MODEL = "o3"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def select_model(*, large: bool, environ: Mapping[str, str] | None = None) -> str:
    """Pick the small or large model, honoring OPENAI_SMALL/LARGE_MODEL."""
    env = os.environ if environ is None else environ
    if large:
        return env.get("OPENAI_LARGE_MODEL") or DEFAULT_LARGE_MODEL
    return env.get("OPENAI_SMALL_MODEL") or DEFAULT_SMALL_MODEL


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="responses-bridge",
        description="MCP bridge to the OpenAI Responses API.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        default=os.environ.get("RESPONSES_BRIDGE_LOG_LEVEL", "INFO"),
        help="Logging level for stderr output (default: INFO).",
    )
    parser.add_argument(
        "--policy",
        choices=("strict", "permissive"),
        help="Unknown-argument policy (overrides RESPONSES_BRIDGE_POLICY).",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Serve the tools over MCP stdio (default).")

    ask = sub.add_parser("ask", help="Run one generation and print the text.")
    ask.add_argument("-l", "--large", action="store_true", help="Use the large model.")
    ask.add_argument("text", nargs="+", help="Input text.")

    models = sub.add_parser("models", help="List model ids with a prefix.")
    models.add_argument("prefix", nargs="?", default=None)
    return parser


def _emit(result: ToolResult) -> int:
    stream = sys.stderr if result.is_error else sys.stdout
    print(result.text, file=stream)
    return 1 if result.is_error else 0


async def _run_once(dispatcher: ToolDispatcher, args: argparse.Namespace) -> ToolResult:
    try:
        if args.command == "ask":
            return await dispatcher.generate_text(
                {"model": select_model(large=args.large), "input": " ".join(args.text)}
            )
        return await dispatcher.list_models(args.prefix)
    finally:
        await dispatcher.aclose()


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = args.log_level.upper()
    if level not in _LOG_LEVELS:
        parser.error(
            f"invalid log level: {args.log_level!r} (choose from {', '.join(_LOG_LEVELS)})"
        )

    # stdout carries the protocol; all logging goes to stderr.
    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    env = dict(os.environ)
    if args.policy:
        env["RESPONSES_BRIDGE_POLICY"] = args.policy
    try:
        settings = Settings.from_env(env)
    except ConfigurationError as e:
        print(f"Error: {e}" + (f" ({e.hint})" if e.hint else ""), file=sys.stderr)
        return 2

    if args.command in (None, "serve"):
        asyncio.run(serve(settings, version=__version__))
        return 0

    return _emit(asyncio.run(_run_once(ToolDispatcher(settings), args)))
