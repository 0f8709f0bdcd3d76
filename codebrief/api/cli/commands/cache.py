"""Cache command: show or clear the stored Stage 1 analysis."""

from __future__ import annotations

import argparse

from codebrief.core.config.config import Config
from codebrief.services.analysis_cache import CacheRepository, compute_codebase_hash
from codebrief.services.tree_scanner import TreeScanner


async def cache_command(args: argparse.Namespace, config: Config) -> None:
    repository = CacheRepository(config.cache_path)

    if args.action == "clear":
        if repository.clear():
            print(f"Removed {config.cache_path}")
        else:
            print(f"No cache file at {config.cache_path}")
        return

    record = repository.peek()
    if record is None:
        print(f"No cached analysis at {config.cache_path}")
        return

    scanner = TreeScanner(
        config.workspace, config.scan, cache_filename=config.cache.filename
    )
    current_hash = compute_codebase_hash(scanner.scan_and_format().text)
    state = "current" if record.codebase_hash == current_hash else "stale"

    print(f"Cache: {config.cache_path}")
    print(f"Status: {state}")
    print(f"Saved: {record.timestamp or 'unknown'}")
    print(f"Features: {', '.join(record.features) or '-'}")
    print(f"Files read: {len(record.file_contents)}")
    for path in sorted(record.file_contents):
        print(f" - {path}")
