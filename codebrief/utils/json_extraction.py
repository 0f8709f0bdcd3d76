"""Helpers for pulling JSON and fenced blocks out of free-form model output."""

from __future__ import annotations

import json
import re
from typing import Any

_JSON_FENCE = re.compile(r"```json\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[A-Za-z0-9_-]*\s*\n?(.*?)\n?```", re.DOTALL)
_MERMAID_FENCE = re.compile(r"```mermaid\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)


def extract_fenced_blocks(content: str) -> list[str]:
    """Return fenced block bodies, ```json blocks first, then any others."""
    blocks: list[str] = []
    for match in _JSON_FENCE.findall(content):
        if match.strip():
            blocks.append(match.strip())
    for match in _ANY_FENCE.findall(content):
        body = match.strip()
        if body and body not in blocks:
            blocks.append(body)
    return blocks


def loads_object(text: str) -> dict[str, Any] | None:
    """Parse ``text`` as a JSON object; anything else yields None."""
    try:
        parsed = json.loads(text.strip())
    except (json.JSONDecodeError, ValueError, RecursionError):
        return None
    return parsed if isinstance(parsed, dict) else None


def outermost_object_span(content: str) -> str | None:
    """Slice from the first ``{`` to the last ``}``, if both exist in order."""
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end <= start:
        return None
    return content[start : end + 1]


def extract_mermaid(content: str) -> str | None:
    """Return the body of the first ```mermaid block, or None."""
    match = _MERMAID_FENCE.search(content)
    if not match:
        return None
    body = match.group(1).strip()
    return body or None


__all__ = [
    "extract_fenced_blocks",
    "extract_mermaid",
    "loads_object",
    "outermost_object_span",
]
