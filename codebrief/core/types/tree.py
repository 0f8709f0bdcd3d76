"""Tree entries produced by the workspace scanner."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class TreeEntry:
    """One file or directory discovered during a scan.

    ``path`` is POSIX-style and relative to the workspace root; ``depth`` is 0
    for direct children of the root.
    """

    name: str
    path: str
    kind: EntryKind
    depth: int

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


@dataclass(frozen=True)
class ScanProgress:
    """Progress notification emitted while scanning."""

    total: int
    path: str
    done: bool = False


@dataclass(frozen=True)
class TreeSnapshot:
    """Scanner output paired with its formatted text."""

    entries: tuple[TreeEntry, ...]
    text: str

    @property
    def is_empty(self) -> bool:
        return not self.entries
