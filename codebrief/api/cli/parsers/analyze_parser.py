"""Analyze command argument parser for CodeBrief CLI."""

import argparse
from pathlib import Path
from typing import Any, cast

from codebrief.core.config.llm_config import LLMConfig


def add_analyze_subparser(subparsers: Any) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "analyze",
        help="Summarize a codebase with a feature diagram",
        description=(
            "Scan the workspace, run the two-stage analysis and print the "
            "resulting markdown. The first stage is cached per codebase structure."
        ),
    )

    parser.add_argument(
        "path",
        nargs="?",
        type=Path,
        default=Path("."),
        help="Workspace to analyze (default: current directory)",
    )

    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Ignore and do not update the analysis cache",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output a JSON report instead of markdown",
    )

    LLMConfig.add_cli_arguments(parser)

    return cast(argparse.ArgumentParser, parser)


__all__: list[str] = ["add_analyze_subparser"]
