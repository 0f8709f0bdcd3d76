"""Turn free-text model output into structured analysis.

Resolution order:

1. A fenced JSON block (```json first, then any fence)
2. The whole text as JSON, then the outermost ``{...}`` span
3. ``description:`` / ``features:`` label lines, assembled into a degraded
   object
4. The raw text with features from a fixed keyword list

Each step only narrows to the next one on failure; nothing here raises.
"""

from __future__ import annotations

import json
import re
from typing import Any

from loguru import logger

from codebrief.core.types.analysis import (
    Empty,
    FreeText,
    ResolvedResponse,
    Stage1Result,
    StructuredJson,
)
from codebrief.utils.json_extraction import (
    extract_fenced_blocks,
    loads_object,
    outermost_object_span,
)

DEGRADED_NOTE = "Parsed from text response (not JSON)"

# (feature label, pattern) evaluated against lower-cased text
FEATURE_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("React", r"\breact\b"),
    ("Vue.js", r"\bvue(?:\.?js)?\b"),
    ("Angular", r"\bangular\b"),
    ("Svelte", r"\bsvelte(?:kit)?\b"),
    ("Express.js", r"\bexpress(?:\.?js)?\b"),
    ("Next.js", r"\bnext\.?js\b"),
    ("TypeScript", r"\btypescript\b"),
    ("Node.js", r"\bnode\.?js\b"),
    ("Python", r"\bpython\b"),
    ("Django", r"\bdjango\b"),
    ("Flask", r"\bflask\b"),
    ("FastAPI", r"\bfastapi\b"),
    ("Tailwind CSS", r"\btailwind(?:\s?css)?\b"),
    ("GraphQL", r"\bgraphql\b"),
    ("MongoDB", r"\bmongo(?:db|ose)\b"),
    ("PostgreSQL", r"\bpostgres(?:ql)?\b"),
    ("Supabase", r"\bsupabase\b"),
    ("Docker", r"\bdocker\b"),
)

_DESCRIPTION_LABEL = re.compile(
    r"^[ \t>*#-]*\**(?:description|summary)\**[ \t]*:[ \t]*\**[ \t]*(.+?)[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)
_FEATURES_LABEL = re.compile(
    r"^[ \t>*#-]*\**(?:features?|technologies|tech stack)\**[ \t]*:[ \t]*\**[ \t]*(.*?)[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)
_BULLET = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+(.+?)\s*$")


def extract_features_from_text(text: str) -> list[str]:
    lowered = text.lower()
    return [label for label, pattern in FEATURE_KEYWORDS if re.search(pattern, lowered)]


def _dedupe(items: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        key = item.casefold()
        if item and key not in seen:
            seen.add(key)
            out.append(item)
    return out


def _labelled_features(text: str) -> list[str]:
    features: list[str] = []
    lines = text.splitlines()
    for match in _FEATURES_LABEL.finditer(text):
        inline = match.group(1).strip()
        if inline:
            features.extend(
                part.strip(" .*`") for part in re.split(r"[,;]", inline) if part.strip(" .*`")
            )
            continue
        # Label on its own line: collect the bullet list that follows it
        line_index = text.count("\n", 0, match.start())
        for line in lines[line_index + 1 :]:
            bullet = _BULLET.match(line)
            if not bullet:
                if line.strip():
                    break
                continue
            features.append(bullet.group(1).strip(" .*`"))
    return _dedupe(features)


def _from_json(content: str) -> dict[str, Any] | None:
    for block in extract_fenced_blocks(content):
        parsed = loads_object(block)
        if parsed is not None:
            return parsed

    parsed = loads_object(content)
    if parsed is not None:
        return parsed

    span = outermost_object_span(content)
    if span is not None:
        return loads_object(span)
    return None


def _from_labels(content: str) -> dict[str, Any] | None:
    description_match = _DESCRIPTION_LABEL.search(content)
    labelled = _labelled_features(content)
    if description_match is None and not labelled:
        return None
    keyword_features = extract_features_from_text(content)
    return {
        "description": (
            description_match.group(1).strip()
            if description_match
            else content.strip()[:200]
        ),
        "features": labelled or keyword_features,
        "note": DEGRADED_NOTE,
    }


def resolve_response(raw: str | None) -> ResolvedResponse:
    """Classify model output as structured JSON, free text, or empty."""
    if raw is None or not raw.strip():
        return Empty()

    parsed = _from_json(raw)
    if parsed is not None:
        return StructuredJson(data=parsed)

    logger.debug("Model output is not JSON; trying label lines")
    assembled = _from_labels(raw)
    if assembled is not None:
        return StructuredJson(data=assembled, degraded=True)

    logger.debug("No labels found; keeping raw text with keyword features")
    return FreeText(text=raw.strip(), features=extract_features_from_text(raw))


def extract_structured(raw: str | None) -> dict[str, Any] | str:
    """Return the parsed object when one can be recovered, else the raw text."""
    resolved = resolve_response(raw)
    if isinstance(resolved, StructuredJson):
        return resolved.data
    if isinstance(resolved, FreeText):
        return resolved.text
    return ""


def to_stage1_result(
    resolved: ResolvedResponse, file_contents: dict[str, str] | None = None
) -> Stage1Result:
    """Convert a resolved response into the Stage 1 payload."""
    contents = dict(file_contents or {})
    if isinstance(resolved, StructuredJson):
        return Stage1Result(
            detailed_analysis=json.dumps(resolved.data, indent=2, ensure_ascii=False),
            features=_dedupe(resolved.features),
            file_contents=contents,
        )
    if isinstance(resolved, FreeText):
        return Stage1Result(
            detailed_analysis=resolved.text,
            features=list(resolved.features),
            file_contents=contents,
        )
    return Stage1Result(file_contents=contents)


__all__ = [
    "DEGRADED_NOTE",
    "FEATURE_KEYWORDS",
    "extract_features_from_text",
    "extract_structured",
    "resolve_response",
    "to_stage1_result",
]
