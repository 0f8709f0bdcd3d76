"""Tree command: print the formatted tree and the codebase hash."""

from __future__ import annotations

import argparse

from codebrief.core.config.config import Config
from codebrief.services.analysis_cache import compute_codebase_hash
from codebrief.services.tree_scanner import TreeScanner


async def tree_command(args: argparse.Namespace, config: Config) -> None:
    scanner = TreeScanner(
        config.workspace, config.scan, cache_filename=config.cache.filename
    )
    snapshot = scanner.scan_and_format()

    print(snapshot.text)
    print()
    print(f"Entries: {len(snapshot.entries)}")
    print(f"Hash: {compute_codebase_hash(snapshot.text)}")
