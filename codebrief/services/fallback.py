"""Heuristic, model-free analysis used when the remote service is unusable."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

# dependency name -> feature label
DEPENDENCY_FEATURES: tuple[tuple[str, str], ...] = (
    ("react", "React"),
    ("vue", "Vue.js"),
    ("express", "Express.js"),
    ("next", "Next.js"),
    ("typescript", "TypeScript"),
    ("tailwindcss", "Tailwind CSS"),
    ("@supabase/supabase-js", "Supabase"),
    ("mongodb", "MongoDB"),
    ("mongoose", "MongoDB"),
    ("pg", "PostgreSQL"),
    ("postgresql", "PostgreSQL"),
    ("psycopg2", "PostgreSQL"),
    ("psycopg", "PostgreSQL"),
    ("django", "Django"),
    ("flask", "Flask"),
    ("fastapi", "FastAPI"),
    ("sqlalchemy", "SQLAlchemy"),
    ("pydantic", "Pydantic"),
    ("pytest", "pytest"),
    ("tokio", "Tokio"),
    ("serde", "Serde"),
    ("actix-web", "Actix Web"),
    ("github.com/gin-gonic/gin", "Gin"),
)

_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9_.@/-]+)")


@dataclass(frozen=True)
class Manifest:
    """A dependency manifest found at the workspace root."""

    name: str
    content: str


def read_manifest(root: Path, candidates: list[str] | tuple[str, ...]) -> Manifest | None:
    """Return the first readable manifest among ``candidates``."""
    for name in candidates:
        path = root / name
        if not path.is_file():
            continue
        try:
            return Manifest(name=name, content=path.read_text(encoding="utf-8", errors="replace"))
        except OSError as e:
            logger.warning(f"Could not read manifest {path}: {e}")
    return None


def _package_json(content: str) -> dict[str, Any] | None:
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, RecursionError):
        return None
    return data if isinstance(data, dict) else None


def _dependency_names(manifest: Manifest) -> set[str]:
    if manifest.name == "package.json":
        pkg = _package_json(manifest.content) or {}
        names: set[str] = set()
        for key in ("dependencies", "devDependencies", "peerDependencies"):
            deps = pkg.get(key)
            if isinstance(deps, dict):
                names.update(str(name).lower() for name in deps)
        return names

    names = set()
    for line in manifest.content.splitlines():
        stripped = line.strip().strip("\"',")
        if not stripped or stripped.startswith(("#", "[", "//")):
            continue
        match = _REQUIREMENT_NAME.match(stripped)
        if match:
            names.add(match.group(1).lower())
    return names


def detect_manifest_features(manifest: Manifest | None) -> list[str]:
    """Map well-known dependency names to feature labels."""
    if manifest is None or not manifest.content.strip():
        return []
    names = _dependency_names(manifest)
    features: list[str] = []
    for dependency, label in DEPENDENCY_FEATURES:
        if dependency in names and label not in features:
            features.append(label)
    return features


def generate_fallback_description(tree_text: str, manifest: Manifest | None) -> str:
    description = "This is a codebase project."

    if manifest is not None and manifest.name == "package.json":
        pkg = _package_json(manifest.content) or {}
        if pkg.get("name"):
            description = f"This is a {pkg['name']} project."
        if pkg.get("description"):
            description += f" {pkg['description']}"
    elif manifest is not None:
        match = re.search(r'^\s*name\s*=\s*"([^"]+)"', manifest.content, re.MULTILINE)
        if match:
            description = f"This is a {match.group(1)} project."

    if "node_modules" in tree_text:
        description += " It uses Node.js and npm dependencies."
    if re.search(r"📁 (?:src|components|lib|app)\n", tree_text + "\n"):
        description += " The project has a structured source code organization."

    return description


def build_fallback_analysis(tree_text: str, manifest: Manifest | None, features: list[str]) -> str:
    """JSON analysis handed to Stage 2 when Stage 1 produced nothing."""
    return json.dumps(
        {
            "description": generate_fallback_description(tree_text, manifest),
            "features": list(features),
            "technologies": detect_manifest_features(manifest),
            "note": "Analysis generated from directory structure and manifest",
        },
        indent=2,
    )
