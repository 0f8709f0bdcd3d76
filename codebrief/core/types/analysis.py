"""Analysis pipeline data model.

The cache record is a pydantic model so that any stored document whose shape
does not match is rejected as a whole. The remaining types are transient and
use plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class AnalysisCacheRecord(BaseModel):
    """Persisted Stage 1 result keyed by the codebase hash."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    codebase_hash: StrictStr = Field(alias="codebaseHash")
    detailed_analysis: StrictStr = Field(alias="detailedAnalysis", min_length=1)
    features: list[StrictStr] = Field(default_factory=list)
    file_contents: dict[StrictStr, StrictStr] = Field(
        default_factory=dict, alias="fileContents"
    )
    timestamp: StrictStr = ""

    def same_payload(self, other: AnalysisCacheRecord) -> bool:
        """True when both records carry identical data, ignoring timestamps."""
        return (
            self.codebase_hash == other.codebase_hash
            and self.detailed_analysis == other.detailed_analysis
            and self.features == other.features
            and self.file_contents == other.file_contents
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


@dataclass
class Stage1Result:
    """Structured extraction produced by Stage 1 (or its fallback)."""

    detailed_analysis: str = ""
    features: list[str] = field(default_factory=list)
    file_contents: dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.detailed_analysis.strip()


@dataclass
class AnalysisResult:
    """Final output of one pipeline invocation. Never persisted."""

    markdown: str
    features: list[str]
    from_cache: bool
    detailed_analysis: str = ""
    codebase_hash: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "markdown": self.markdown,
            "features": list(self.features),
            "fromCache": self.from_cache,
            "detailedAnalysis": self.detailed_analysis,
            "codebaseHash": self.codebase_hash,
        }


@dataclass(frozen=True)
class StructuredJson:
    """Model output that yielded a JSON object.

    ``degraded`` marks objects assembled from label lines rather than parsed.
    """

    data: dict[str, Any]
    degraded: bool = False

    @property
    def features(self) -> list[str]:
        raw = self.data.get("features")
        if not isinstance(raw, list):
            return []
        return [str(item) for item in raw if isinstance(item, (str, int, float))]


@dataclass(frozen=True)
class FreeText:
    """Unstructured model output with a best-effort feature list."""

    text: str
    features: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Empty:
    """Model output carried no usable content."""


ResolvedResponse = Union[StructuredJson, FreeText, Empty]


@dataclass(frozen=True)
class ToolLoopState:
    """Immutable state of the Stage 1 tool-calling conversation.

    A new instance is produced for every round; ``iteration`` counts the
    re-prompt rounds taken so far.
    """

    messages: tuple[dict[str, Any], ...]
    iteration: int = 0
    content: str = ""
    file_contents: tuple[tuple[str, str], ...] = ()
    finished: bool = False

    def file_contents_dict(self) -> dict[str, str]:
        return dict(self.file_contents)
