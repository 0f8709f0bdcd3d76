"""Workspace tree scanning and formatting.

The formatted tree is the basis of the cache key, so both the entry order
produced by ``scan_tree`` and the text produced by ``format_tree`` must be
stable for an unchanged directory.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable
from pathlib import Path

from loguru import logger

from codebrief.core.config.scan_config import (
    DEFAULT_CACHE_FILENAME,
    DEFAULT_SKIP_DIRS,
    ScanConfig,
)
from codebrief.core.exceptions import WorkspaceScanError
from codebrief.core.types.tree import EntryKind, ScanProgress, TreeEntry, TreeSnapshot
from codebrief.utils.ignore_engine import IgnoreEngine

EMPTY_WORKSPACE_TEXT = "The workspace directory is empty."

DIR_ICON = "📁"
FILE_ICON = "📄"

ProgressCallback = Callable[[ScanProgress], None]


def _sort_key(entry: os.DirEntry[str]) -> tuple[bool, str, str]:
    return (not _is_dir(entry), entry.name.casefold(), entry.name)


def _is_dir(entry: os.DirEntry[str]) -> bool:
    try:
        return entry.is_dir()
    except OSError:
        return False


class _Walker:
    def __init__(
        self,
        root: Path,
        ignore: IgnoreEngine,
        max_depth: int,
        skip_dirs: frozenset[str],
        cache_filename: str,
        progress_callback: ProgressCallback | None,
        progress_interval: int,
    ) -> None:
        self.root = root
        self.ignore = ignore
        self.max_depth = max_depth
        self.skip_dirs = skip_dirs
        self.cache_filename = cache_filename
        self.progress_callback = progress_callback
        self.progress_interval = max(1, progress_interval)
        self.entries: list[TreeEntry] = []

    def _notify(self, path: str, done: bool = False) -> None:
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(
                ScanProgress(total=len(self.entries), path=path, done=done)
            )
        except Exception as e:
            logger.debug(f"Progress callback failed: {e}")

    def _list(self, directory: Path, depth: int) -> list[os.DirEntry[str]]:
        try:
            with os.scandir(directory) as it:
                return sorted(it, key=_sort_key)
        except OSError as e:
            if depth == 0:
                raise WorkspaceScanError(
                    f"Unable to read workspace root {directory}: {e.strerror or e}"
                ) from e
            logger.warning(f"Skipping {directory}: {e}")
            return []

    def walk(self, directory: Path, rel_prefix: str, depth: int) -> None:
        if depth > self.max_depth:
            return
        if depth > 0 and directory.name in self.skip_dirs:
            return

        for dir_entry in self._list(directory, depth):
            name = dir_entry.name
            if name == self.cache_filename:
                continue
            rel_path = f"{rel_prefix}/{name}" if rel_prefix else name
            is_dir = _is_dir(dir_entry)
            if self.ignore.matches(rel_path, is_dir=is_dir):
                continue

            kind = EntryKind.DIRECTORY if is_dir else EntryKind.FILE
            self.entries.append(TreeEntry(name=name, path=rel_path, kind=kind, depth=depth))
            if len(self.entries) % self.progress_interval == 0:
                self._notify(rel_path)

            if is_dir:
                self.walk(directory / name, rel_path, depth + 1)


def scan_tree(
    root: Path,
    patterns: Iterable[str] | None = None,
    *,
    max_depth: int = 5,
    skip_dirs: Iterable[str] = DEFAULT_SKIP_DIRS,
    cache_filename: str = DEFAULT_CACHE_FILENAME,
    progress_callback: ProgressCallback | None = None,
    progress_interval: int = 50,
) -> list[TreeEntry]:
    """Walk ``root`` depth-first and return its entries in pre-order.

    Within each directory, subdirectories come before files and both are
    ordered by name. Denylisted directories below the root are listed but not
    descended. Unreadable subdirectories are skipped.

    Raises:
        WorkspaceScanError: If the root itself cannot be read
    """
    root = Path(root)
    walker = _Walker(
        root=root,
        ignore=IgnoreEngine(patterns or ()),
        max_depth=max_depth,
        skip_dirs=frozenset(skip_dirs),
        cache_filename=cache_filename,
        progress_callback=progress_callback,
        progress_interval=progress_interval,
    )
    walker.walk(root, "", 0)
    walker._notify("", done=True)
    logger.debug(f"Scanned {len(walker.entries)} entries under {root}")
    return walker.entries


def _has_later_sibling(entries: list[TreeEntry], index: int, depth: int) -> bool:
    for later in entries[index + 1 :]:
        if later.depth < depth:
            return False
        if later.depth == depth:
            return True
    return False


def format_tree(entries: Iterable[TreeEntry], root_path: Path | str) -> str:
    """Render entries as a box-drawing tree inside a fenced block."""
    items = list(entries)
    if not items:
        return EMPTY_WORKSPACE_TEXT

    root_name = Path(root_path).name or str(root_path)
    lines = [f"{DIR_ICON} **{root_name}**", "```"]
    for i, item in enumerate(items):
        prefix = "".join(
            "│   " if _has_later_sibling(items, i, d) else "    "
            for d in range(item.depth)
        )
        prefix += "├── " if _has_later_sibling(items, i, item.depth) else "└── "
        icon = DIR_ICON if item.is_dir else FILE_ICON
        lines.append(f"{prefix}{icon} {item.name}")
    lines.append("```")
    return "\n".join(lines)


class TreeScanner:
    """Scanner bound to a workspace root and its scan configuration."""

    def __init__(
        self,
        root: Path,
        config: ScanConfig | None = None,
        cache_filename: str = DEFAULT_CACHE_FILENAME,
    ):
        self.root = Path(root)
        self.config = config or ScanConfig()
        self.cache_filename = cache_filename

    def read_patterns(self) -> list[str]:
        return list(IgnoreEngine.from_root(self.root, self.config.ignore_files).patterns)

    def scan(self, progress_callback: ProgressCallback | None = None) -> list[TreeEntry]:
        return scan_tree(
            self.root,
            self.read_patterns(),
            max_depth=self.config.max_depth,
            skip_dirs=self.config.skip_dirs,
            cache_filename=self.cache_filename,
            progress_callback=progress_callback,
            progress_interval=self.config.progress_interval,
        )

    def scan_and_format(
        self, progress_callback: ProgressCallback | None = None
    ) -> TreeSnapshot:
        entries = self.scan(progress_callback)
        return TreeSnapshot(entries=tuple(entries), text=format_tree(entries, self.root))
