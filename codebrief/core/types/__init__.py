"""Domain types shared across CodeBrief services."""

from .analysis import (
    AnalysisCacheRecord,
    AnalysisResult,
    Empty,
    FreeText,
    ResolvedResponse,
    Stage1Result,
    StructuredJson,
    ToolLoopState,
)
from .tree import EntryKind, ScanProgress, TreeEntry, TreeSnapshot

__all__ = [
    "AnalysisCacheRecord",
    "AnalysisResult",
    "Empty",
    "EntryKind",
    "FreeText",
    "ResolvedResponse",
    "ScanProgress",
    "Stage1Result",
    "StructuredJson",
    "ToolLoopState",
    "TreeEntry",
    "TreeSnapshot",
]
