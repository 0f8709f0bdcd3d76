"""Check command argument parser for CodeBrief CLI."""

import argparse
from pathlib import Path
from typing import Any, cast

from codebrief.core.config.llm_config import LLMConfig


def add_check_subparser(subparsers: Any) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "check",
        help="Verify the LLM endpoint answers",
        description=(
            "Send a tiny completion to the configured endpoint and report "
            "whether it answered. Exits non-zero when no key is configured "
            "or the endpoint is unhealthy."
        ),
    )

    parser.add_argument(
        "path",
        nargs="?",
        type=Path,
        default=Path("."),
        help="Workspace whose configuration to use (default: current directory)",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output the health report as JSON",
    )

    LLMConfig.add_cli_arguments(parser)

    return cast(argparse.ArgumentParser, parser)


__all__: list[str] = ["add_check_subparser"]
