"""Prompts for the two-stage codebase analysis.

Stage 1 asks the extraction model to read key files through the
``read_file_content`` tool and answer with a JSON analysis. Stage 2 asks the
polish model for markdown with a simple feature diagram.
"""

from __future__ import annotations

import json
from collections.abc import Sequence

from codebrief.services.fallback import Manifest

STAGE1_TREE_CHARS = 4000
STAGE1_MANIFEST_CHARS = 3000
STAGE2_TREE_CHARS = 3000
STAGE2_MANIFEST_CHARS = 2000
STAGE2_FILE_CHARS = 1500

STAGE1_SYSTEM_MESSAGE = (
    "You are a codebase analysis assistant. You MUST use the read_file_content "
    "tool to read actual code files before providing analysis. Do not provide "
    "analysis based only on file names - read the file contents using tools "
    "first. After reading files with tools, always provide a complete JSON "
    "analysis with all the information you gathered."
)

AFTER_TOOLS_FOLLOW_UP = (
    "Now that you have read the files, please provide the complete detailed "
    "structured analysis in JSON format as requested. Include all the "
    "information you gathered from the files. The response must be valid JSON."
)

BRIEF_REPLY_FOLLOW_UP = (
    "Please provide the complete detailed structured analysis in JSON format "
    "now. Include all the information you gathered."
)

STAGE2_SYSTEM_MESSAGE = (
    "You are an expert at creating polished codebase summaries and SIMPLE "
    "mermaid diagrams. Create well-formatted markdown responses with SIMPLE "
    "mermaid diagrams that show main features or pages. Use ONLY basic mermaid "
    "syntax: graph TD/LR, simple node labels like A[Label], and simple "
    "connections like A --> B. NO subgraphs, NO special characters, NO complex "
    "styling. DO NOT create directory tree structures. Always format mermaid "
    'diagrams in markdown code blocks with language "mermaid".'
)

_STAGE1_JSON_SHAPE = """{
  "description": "A detailed 2-3 sentence description of what this project is",
  "features": ["feature1", "feature2", ...],
  "keyFiles": ["file1", "file2", ...],
  "technologies": ["tech1", "tech2", ...],
  "architecture": "Brief description of architecture patterns",
  "mainComponents": ["component1", "component2", ...],
  "fileContents": {
    "file1": "summary of what this file does",
    "file2": "summary of what this file does"
  }
}"""

_STAGE2_INSTRUCTIONS = """You are analyzing a codebase. Below is information about the codebase structure, files, and dependencies.

YOUR TASK: Create a polished markdown response based on this information that includes:
1. A polished, concise description (2-3 sentences) of what type of project this is
2. A SIMPLE feature-based mermaid diagram showing the main features or pages

IMPORTANT:
- Create a FEATURE-BASED diagram (NOT a directory tree). Show main features or pages.
- Respond in MARKDOWN format (not JSON)
- Include the mermaid diagram in a markdown code block with language "mermaid"
- KEEP THE MERMAID DIAGRAM SIMPLE - use basic syntax only

MERMAID RULES:
- Use simple graph syntax: graph TD or graph LR
- Use simple node labels: A[Label] or B[Feature Name]
- Use simple connections: A --> B
- NO special characters in labels (no quotes, no nested brackets, no line breaks)
- NO subgraphs, NO styling
- Maximum 10-15 nodes total

Example markdown structure:
# Project Analysis

[Polished description]

## Features

- Feature 1
- Feature 2

## Architecture Diagram

```mermaid
graph TD
    A[Home Page]
    B[Admin Page]
    A --> B
```"""


def _manifest_block(manifest: Manifest | None, limit: int) -> str:
    if manifest is None or not manifest.content.strip():
        return ""
    return f"{manifest.name}:\n{manifest.content[:limit]}"


def get_stage1_prompt(tree_text: str, manifest: Manifest | None) -> str:
    manifest_block = _manifest_block(manifest, STAGE1_MANIFEST_CHARS)
    return f"""You are analyzing a codebase. Follow these steps EXACTLY:

STEP 1: USE TOOLS TO READ FILES
- Use the read_file_content tool to read 3-5 key files from the codebase
- Pick important files from the directory tree below (entry points, config files, components, API routes)

STEP 2: ANALYZE WHAT YOU READ
- Identify technologies, frameworks, features, and architecture patterns

STEP 3: PROVIDE JSON ANALYSIS
- Provide a complete detailed structured analysis in JSON format

Directory Tree:
{tree_text[:STAGE1_TREE_CHARS]}

{manifest_block}

After reading files, your final response MUST be in this JSON format:
{_STAGE1_JSON_SHAPE}

Remember: Use tools FIRST, then provide the JSON analysis."""


def get_stage2_prompt(
    detailed_analysis: str,
    features: Sequence[str],
    tree_text: str,
    manifest: Manifest | None,
) -> str:
    if not detailed_analysis.strip():
        detailed_analysis = (
            "No detailed analysis available from Stage 1. Please analyze the "
            "codebase structure from the directory tree and manifest below."
        )

    parts = [
        _STAGE2_INSTRUCTIONS,
        "=== DETAILED CODEBASE ANALYSIS FROM STAGE 1 ===\n\n"
        f"{detailed_analysis}\n\n=== END OF STAGE 1 ANALYSIS ===",
    ]

    if tree_text.strip():
        parts.append(
            "=== DIRECTORY TREE STRUCTURE ===\n\n"
            f"{tree_text[:STAGE2_TREE_CHARS]}\n\n=== END OF DIRECTORY TREE ==="
        )

    manifest_block = _manifest_block(manifest, STAGE2_MANIFEST_CHARS)
    if manifest_block:
        parts.append(f"=== MANIFEST ===\n\n{manifest_block}\n\n=== END OF MANIFEST ===")

    if features:
        parts.append(f"Detected Features: {', '.join(features)}")

    file_contents = _file_contents_from_analysis(detailed_analysis)
    if file_contents:
        files = "\n".join(
            f"\nFile: {path}\n{content[:STAGE2_FILE_CHARS]}"
            for path, content in file_contents.items()
        )
        parts.append(
            f"=== KEY FILES READ DURING ANALYSIS ===\n{files}\n\n=== END OF KEY FILES ==="
        )

    parts.append(
        "Now create your polished markdown response based on ALL the information "
        "above. Respond in MARKDOWN format (not JSON)."
    )
    return "\n\n".join(parts)


def _file_contents_from_analysis(detailed_analysis: str) -> dict[str, str]:
    try:
        parsed = json.loads(detailed_analysis)
    except (json.JSONDecodeError, ValueError, RecursionError):
        return {}
    if not isinstance(parsed, dict):
        return {}
    contents = parsed.get("fileContents")
    if not isinstance(contents, dict):
        return {}
    return {str(k): str(v) for k, v in contents.items()}
