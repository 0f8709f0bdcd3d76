"""Tree command argument parser for CodeBrief CLI."""

import argparse
from pathlib import Path
from typing import Any, cast


def add_tree_subparser(subparsers: Any) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "tree",
        help="Print the formatted directory tree and its hash",
        description=(
            "Print the directory tree exactly as it is sent to the model, "
            "followed by the codebase hash used as the cache key."
        ),
    )

    parser.add_argument(
        "path",
        nargs="?",
        type=Path,
        default=Path("."),
        help="Workspace to scan (default: current directory)",
    )

    return cast(argparse.ArgumentParser, parser)


__all__: list[str] = ["add_tree_subparser"]
