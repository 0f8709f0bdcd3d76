"""CodeBrief command-line interface."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from loguru import logger

from codebrief.core.config.config import Config
from codebrief.core.exceptions import CodeBriefError
from codebrief.version import __version__

from .parsers.analyze_parser import add_analyze_subparser
from .parsers.cache_parser import add_cache_subparser
from .parsers.check_parser import add_check_subparser
from .parsers.tree_parser import add_tree_subparser


def configure_logging(verbose: bool = False, debug: bool = False) -> None:
    """Route loguru to stderr at a level chosen by the global flags."""
    level = "DEBUG" if debug else "INFO" if verbose else "WARNING"
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<level>{level: <8}</level> | {message}",
        backtrace=debug,
        diagnose=debug,
    )


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codebrief",
        description="Summarize a codebase and draw its main features as a diagram.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show pipeline progress logs"
    )
    parser.add_argument("--debug", action="store_true", help="Show debug logs")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    add_analyze_subparser(subparsers)
    add_tree_subparser(subparsers)
    add_cache_subparser(subparsers)
    add_check_subparser(subparsers)
    return parser


async def _run_command(args: argparse.Namespace, config: Config) -> None:
    if args.command == "analyze":
        from .commands.analyze import analyze_command

        await analyze_command(args, config)
    elif args.command == "tree":
        from .commands.tree import tree_command

        await tree_command(args, config)
    elif args.command == "cache":
        from .commands.cache import cache_command

        await cache_command(args, config)
    elif args.command == "check":
        from .commands.check import check_command

        await check_command(args, config)
    else:
        raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> None:
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose, debug=args.debug)

    if args.command is None:
        parser.print_help()
        sys.exit(2)

    try:
        config = Config.load(Path(args.path), args)
        asyncio.run(_run_command(args, config))
    except CodeBriefError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
