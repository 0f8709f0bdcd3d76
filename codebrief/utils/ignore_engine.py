"""Gitignore-style path exclusion.

Patterns are evaluated one at a time with gitwildmatch semantics via the
`pathspec` library. Negation patterns (``!pattern``) are recognised but never
match: a negated line does not re-include anything excluded by an earlier
line. Patterns that pathspec refuses to compile fall back to a literal
comparison against the full path or any single path segment.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from loguru import logger
from pathspec import PathSpec

DEFAULT_IGNORE_FILES: tuple[str, ...] = (".gitignore", ".codebriefignore")


@dataclass(frozen=True)
class PatternInfo:
    """Classification of a raw ignore line."""

    raw: str
    negated: bool
    directory_only: bool
    root_anchored: bool

    @property
    def body(self) -> str:
        body = self.raw[1:] if self.negated else self.raw
        if self.directory_only:
            body = body[:-1]
        if self.root_anchored:
            body = body[1:]
        return body


def classify_pattern(pattern: str) -> PatternInfo:
    negated = pattern.startswith("!")
    rest = pattern[1:] if negated else pattern
    return PatternInfo(
        raw=pattern,
        negated=negated,
        directory_only=rest.endswith("/"),
        root_anchored=rest.startswith("/"),
    )


@lru_cache(maxsize=1024)
def _compile(pattern: str) -> PathSpec | None:
    try:
        return PathSpec.from_lines("gitwildmatch", [pattern])
    except ValueError as e:
        # GitWildMatchPatternError derives from ValueError
        logger.debug(f"Unparseable ignore pattern {pattern!r}: {e}")
        return None


def _literal_match(path: str, segments: Sequence[str], info: PatternInfo) -> bool:
    body = info.body
    if not body:
        return False
    literal = re.compile(f"^{re.escape(body)}$")
    if literal.match(path):
        return True
    if info.root_anchored:
        return False
    return any(literal.match(segment) for segment in segments)


def matches_pattern(
    path: str, segments: Sequence[str], pattern: str, is_dir: bool = False
) -> bool:
    """Return True if ``pattern`` excludes the root-relative ``path``.

    Root-anchored patterns only match from the workspace root; unanchored
    patterns match at any depth. Directory entries are also tested with a
    trailing slash so ``dist/`` matches the ``dist`` directory itself.
    """
    pattern = pattern.strip()
    if not pattern or pattern.startswith("#"):
        return False

    info = classify_pattern(pattern)
    if info.negated:
        return False

    spec = _compile(pattern)
    if spec is None:
        return _literal_match(path, segments, info)

    if spec.match_file(path):
        return True
    return is_dir and spec.match_file(path + "/")


def should_ignore(
    relative_path: str, patterns: Iterable[str], is_dir: bool = False
) -> bool:
    normalized = relative_path.replace("\\", "/").strip("/")
    if not normalized:
        return False
    segments = normalized.split("/")
    return any(
        matches_pattern(normalized, segments, pattern, is_dir) for pattern in patterns
    )


def parse_ignore_lines(lines: Iterable[str]) -> list[str]:
    out: list[str] = []
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        out.append(line)
    return out


def read_ignore_patterns(
    root: Path, filenames: Iterable[str] = DEFAULT_IGNORE_FILES
) -> list[str]:
    """Collect patterns from the ignore files present at the workspace root."""
    patterns: list[str] = []
    for name in filenames:
        ignore_file = root / name
        if not ignore_file.is_file():
            continue
        try:
            text = ignore_file.read_text(encoding="utf-8", errors="ignore")
        except OSError as e:
            logger.warning(f"Could not read {ignore_file}: {e}")
            continue
        patterns.extend(parse_ignore_lines(text.splitlines()))
    return patterns


class IgnoreEngine:
    """Ordered pattern list bound to a workspace root."""

    def __init__(self, patterns: Iterable[str] = ()):
        self.patterns: tuple[str, ...] = tuple(parse_ignore_lines(patterns))

    @classmethod
    def from_root(
        cls, root: Path, filenames: Iterable[str] = DEFAULT_IGNORE_FILES
    ) -> IgnoreEngine:
        return cls(read_ignore_patterns(root, filenames))

    def matches(self, relative_path: str, is_dir: bool = False) -> bool:
        if not self.patterns:
            return False
        return should_ignore(relative_path, self.patterns, is_dir)

    def __len__(self) -> int:
        return len(self.patterns)


__all__ = [
    "DEFAULT_IGNORE_FILES",
    "IgnoreEngine",
    "PatternInfo",
    "classify_pattern",
    "matches_pattern",
    "parse_ignore_lines",
    "read_ignore_patterns",
    "should_ignore",
]
