"""Cache command argument parser for CodeBrief CLI."""

import argparse
from pathlib import Path
from typing import Any, cast


def add_cache_subparser(subparsers: Any) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "cache",
        help="Inspect or clear the analysis cache",
        description="Inspect or clear the cached first-stage analysis of a workspace.",
    )

    parser.add_argument(
        "action",
        choices=["show", "clear"],
        help="show: print the cached record; clear: delete it",
    )

    parser.add_argument(
        "path",
        nargs="?",
        type=Path,
        default=Path("."),
        help="Workspace whose cache to use (default: current directory)",
    )

    return cast(argparse.ArgumentParser, parser)


__all__: list[str] = ["add_cache_subparser"]
