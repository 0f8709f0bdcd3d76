"""Deterministic mermaid diagrams for when the model does not supply one."""

from __future__ import annotations

import re
from collections.abc import Sequence

MAX_FEATURE_NODES = 5
MAX_DIRECTORY_NODES = 4
MAX_LABEL_CHARS = 30

# (keywords in a directory name, feature label)
DIRECTORY_FEATURES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("auth", "login", "user"), "Authentication"),
    (("api", "route"), "API"),
    (("page", "view", "component"), "UI Components"),
    (("db", "database", "model"), "Database"),
)

_DIR_LINE = re.compile(r"[├└│─\s]*📁\s*(.+)")


def _clean_label(label: str) -> str:
    label = label.replace('"', "'").replace("[", "(").replace("]", ")")
    return label[:MAX_LABEL_CHARS]


def _subgraphs(labels: Sequence[str], node_suffix: str) -> list[str]:
    lines: list[str] = []
    for idx, label in enumerate(labels):
        feature_id = f"Feature{idx}"
        lines.extend(
            [
                "",
                f'    subgraph {feature_id}["{label}"]',
                "        direction TB",
                f"        {feature_id}_A[{label} {node_suffix}]",
                "    end",
            ]
        )
    for idx in range(len(labels) - 1):
        lines.append(f"    Feature{idx} --> Feature{idx + 1}")
    return lines


def infer_directory_features(tree_text: str) -> list[str]:
    found: list[str] = []
    for line in tree_text.splitlines():
        match = _DIR_LINE.match(line)
        if not match:
            continue
        dir_name = match.group(1).strip().strip("*").lower()
        for keywords, label in DIRECTORY_FEATURES:
            if label not in found and any(keyword in dir_name for keyword in keywords):
                found.append(label)
    return found


def generate_simple_mermaid(tree_text: str, features: Sequence[str] | None = None) -> str:
    """Build a feature diagram from features, directory names, or a placeholder."""
    lines = ["graph TD"]

    if features:
        labels = [_clean_label(str(f)) for f in features[:MAX_FEATURE_NODES]]
        lines.extend(_subgraphs(labels, "Component"))
        return "\n".join(lines) + "\n"

    inferred = infer_directory_features(tree_text)[:MAX_DIRECTORY_NODES]
    if inferred:
        lines.extend(_subgraphs(inferred, "Module"))
        return "\n".join(lines) + "\n"

    lines.extend(
        [
            '    subgraph App["Application"]',
            "        direction TB",
            "        A[Main Module]",
            "    end",
        ]
    )
    return "\n".join(lines) + "\n"


def diagram_section(mermaid: str) -> str:
    return f"## Architecture Diagram\n\n```mermaid\n{mermaid.rstrip()}\n```"
