"""Local tools the model may call during Stage 1.

Only ``read_file_content`` is declared to the model in Stage 1. The executor
also answers ``get_directory_tree`` by re-running the scanner, since models
occasionally ask for the tree again mid-conversation.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger

from codebrief.core.exceptions import WorkspaceScanError
from codebrief.services.tree_scanner import TreeScanner

READ_FILE_TOOL_NAME = "read_file_content"
DIRECTORY_TREE_TOOL_NAME = "get_directory_tree"

DEFAULT_MAX_FILE_CHARS = 20000
BINARY_SNIFF_BYTES = 8192

BINARY_EXTENSIONS = frozenset(
    {
        ".pdf", ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".webp",
        ".zip", ".tar", ".gz", ".tgz", ".bz2", ".xz", ".7z", ".rar",
        ".exe", ".dll", ".so", ".dylib", ".bin", ".class", ".jar", ".pyc",
        ".woff", ".woff2", ".ttf", ".otf", ".mp3", ".mp4", ".mov", ".wav",
        ".docx", ".pptx", ".xlsx", ".sqlite", ".db",
    }
)

READ_FILE_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": READ_FILE_TOOL_NAME,
        "description": (
            "Read the text content of a file in the workspace. Use this to inspect "
            "entry points, configuration files, components and API routes before "
            "writing the analysis. Paths are relative to the workspace root."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "file_path": {
                    "type": "string",
                    "description": (
                        "Path of the file relative to the workspace root "
                        "(e.g. 'src/index.js'); absolute paths inside the "
                        "workspace are also accepted"
                    ),
                }
            },
            "required": ["file_path"],
        },
    },
}

DIRECTORY_TREE_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": DIRECTORY_TREE_TOOL_NAME,
        "description": (
            "Get the directory tree structure of the current workspace as a "
            "formatted tree view of files and directories."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "reason": {
                    "type": "string",
                    "description": "Brief reason why the tree is needed",
                }
            },
            "required": ["reason"],
        },
    },
}


def stage1_tools() -> list[dict[str, Any]]:
    """Tool schemas declared to the model in Stage 1."""
    return [READ_FILE_TOOL]


class ToolErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    BINARY_FILE = "binary_file"
    OUTSIDE_WORKSPACE = "outside_workspace"
    NOT_A_FILE = "not_a_file"
    READ_FAILED = "read_failed"
    INVALID_ARGUMENTS = "invalid_arguments"
    UNKNOWN_TOOL = "unknown_tool"


@dataclass(frozen=True)
class ToolResult:
    success: bool
    result: str = ""
    error: str | None = None
    error_kind: ToolErrorKind | None = None

    @classmethod
    def ok(cls, result: str) -> ToolResult:
        return cls(success=True, result=result)

    @classmethod
    def fail(cls, kind: ToolErrorKind, message: str) -> ToolResult:
        return cls(success=False, error=message, error_kind=kind)

    def as_message_content(self) -> str:
        return self.result if self.success else f"Error: {self.error}"


class WorkspaceToolExecutor:
    """Executes tool calls against one workspace root."""

    def __init__(
        self,
        root: Path,
        scanner: TreeScanner | None = None,
        max_file_chars: int = DEFAULT_MAX_FILE_CHARS,
    ):
        self.root = Path(root).resolve()
        self.scanner = scanner or TreeScanner(self.root)
        self.max_file_chars = max_file_chars

    async def execute(self, name: str, arguments: str | dict[str, Any] | None) -> ToolResult:
        """Run one tool call. Never raises; failures become error results."""
        if isinstance(arguments, dict):
            args = arguments
        else:
            try:
                args = json.loads(arguments) if arguments and arguments.strip() else {}
            except json.JSONDecodeError as e:
                logger.warning(f"Malformed arguments for {name}: {e}")
                return ToolResult.fail(
                    ToolErrorKind.INVALID_ARGUMENTS, f"Invalid JSON arguments: {e.msg}"
                )
            except RecursionError:
                return ToolResult.fail(
                    ToolErrorKind.INVALID_ARGUMENTS, "Arguments are nested too deeply"
                )
            if not isinstance(args, dict):
                return ToolResult.fail(
                    ToolErrorKind.INVALID_ARGUMENTS, "Arguments must be a JSON object"
                )

        logger.debug(f"Executing tool {name} with {args}")
        if name == READ_FILE_TOOL_NAME:
            file_path = args.get("file_path")
            if not isinstance(file_path, str) or not file_path.strip():
                return ToolResult.fail(
                    ToolErrorKind.INVALID_ARGUMENTS, "file_path is required"
                )
            return await asyncio.to_thread(self.read_file_content, file_path)
        if name == DIRECTORY_TREE_TOOL_NAME:
            return await asyncio.to_thread(self.get_directory_tree, args.get("reason"))
        return ToolResult.fail(ToolErrorKind.UNKNOWN_TOOL, f"Unknown function: {name}")

    def _resolve(self, file_path: str) -> Path | None:
        candidate = Path(file_path.strip())
        if not candidate.is_absolute():
            candidate = self.root / candidate
        resolved = candidate.resolve()
        try:
            resolved.relative_to(self.root)
        except ValueError:
            return None
        return resolved

    def read_file_content(self, file_path: str) -> ToolResult:
        if "\x00" in file_path:
            return ToolResult.fail(
                ToolErrorKind.INVALID_ARGUMENTS, "file_path contains a NUL byte"
            )
        try:
            resolved = self._resolve(file_path)
            if resolved is None:
                return ToolResult.fail(
                    ToolErrorKind.OUTSIDE_WORKSPACE,
                    f"Access denied: {file_path} is outside the workspace",
                )
            exists = resolved.exists()
            is_file = exists and resolved.is_file()
        except (OSError, ValueError) as e:
            logger.debug(f"Unusable path {file_path[:100]!r}: {e}")
            return ToolResult.fail(ToolErrorKind.NOT_FOUND, f"File not found: {file_path[:200]}")
        if not exists:
            return ToolResult.fail(ToolErrorKind.NOT_FOUND, f"File not found: {file_path}")
        if not is_file:
            return ToolResult.fail(ToolErrorKind.NOT_A_FILE, f"Not a file: {file_path}")
        if resolved.suffix.lower() in BINARY_EXTENSIONS:
            return ToolResult.fail(
                ToolErrorKind.BINARY_FILE, f"Binary file not supported: {file_path}"
            )

        try:
            with resolved.open("rb") as fh:
                head = fh.read(BINARY_SNIFF_BYTES)
            if b"\x00" in head:
                return ToolResult.fail(
                    ToolErrorKind.BINARY_FILE, f"Binary file not supported: {file_path}"
                )
            text = resolved.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            return ToolResult.fail(
                ToolErrorKind.READ_FAILED, f"Failed to read {file_path}: {e}"
            )

        if len(text) > self.max_file_chars:
            total = len(text)
            text = (
                text[: self.max_file_chars]
                + f"\n\n[... truncated: showing first {self.max_file_chars} of {total} characters]"
            )
        logger.debug(f"Read {len(text)} characters from {file_path}")
        return ToolResult.ok(text)

    def get_directory_tree(self, reason: str | None = None) -> ToolResult:
        if reason:
            logger.debug(f"Directory tree requested: {reason}")
        try:
            snapshot = self.scanner.scan_and_format()
        except WorkspaceScanError as e:
            return ToolResult.fail(
                ToolErrorKind.READ_FAILED, f"Error reading directory tree: {e}"
            )
        return ToolResult.ok(snapshot.text)
