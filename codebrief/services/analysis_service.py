"""Two-stage codebase analysis.

Stage 1 lets the extraction model read key files through workspace tools and
returns a structured JSON analysis, which is cached against the hash of the
formatted tree. Stage 2 always runs and turns that analysis into polished
markdown with a feature diagram; its output is never cached.

Remote failures never abort an analysis: they are logged and replaced by the
local fallbacks. Only an unreadable workspace root reaches the caller.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import Any

from loguru import logger

from codebrief.core.config.config import Config
from codebrief.core.types.analysis import AnalysisResult, Stage1Result, ToolLoopState
from codebrief.core.types.tree import TreeSnapshot
from codebrief.interfaces.llm_provider import LLMProvider, ToolCall
from codebrief.services.analysis_cache import CacheRepository, compute_codebase_hash
from codebrief.services.diagram_generator import diagram_section, generate_simple_mermaid
from codebrief.services.fallback import (
    Manifest,
    build_fallback_analysis,
    detect_manifest_features,
    generate_fallback_description,
    read_manifest,
)
from codebrief.services.prompts.analysis import (
    AFTER_TOOLS_FOLLOW_UP,
    BRIEF_REPLY_FOLLOW_UP,
    STAGE1_SYSTEM_MESSAGE,
    STAGE2_SYSTEM_MESSAGE,
    get_stage1_prompt,
    get_stage2_prompt,
)
from codebrief.services.response_resolver import resolve_response, to_stage1_result
from codebrief.services.tree_scanner import ProgressCallback, TreeScanner
from codebrief.services.workspace_tools import (
    READ_FILE_TOOL_NAME,
    ToolResult,
    WorkspaceToolExecutor,
    stage1_tools,
)
from codebrief.utils.json_extraction import extract_mermaid

StepCallback = Callable[[str], None]

STEP_READING_TREE = "Reading directory tree from codebase..."
STEP_CHECKING_CACHE = "Checking for cached analysis..."
STEP_LOADING_CACHE = "Loading cached analysis..."
STEP_READING_FILES = "Reading and analyzing key project files..."
STEP_DETAILED_ANALYSIS = "Performing detailed codebase analysis..."
STEP_SAVING_CACHE = "Saving analysis to cache..."
STEP_POLISHING = "Polishing analysis and generating feature diagram..."

BRIEF_REPLY_CHARS = 200
FALLBACK_MARKDOWN_CHARS = 500
CACHED_FILE_EXCERPT_CHARS = 1000

# Remote failures that degrade to the local fallbacks
REMOTE_ERRORS = (RuntimeError, asyncio.TimeoutError)


def is_brief_reply(text: str) -> bool:
    """A short reply with no JSON object in it, i.e. not yet an analysis."""
    has_json = "{" in text and "}" in text
    return len(text) < BRIEF_REPLY_CHARS and not has_json


def _read_file_path(call: ToolCall) -> str:
    try:
        args = json.loads(call.arguments) if call.arguments else {}
    except (json.JSONDecodeError, RecursionError):
        return "unknown"
    if isinstance(args, dict) and isinstance(args.get("file_path"), str):
        return args["file_path"]
    return "unknown"


def advance_tool_loop(
    state: ToolLoopState,
    text: str,
    tool_calls: Sequence[ToolCall],
    tool_results: Sequence[ToolResult],
    max_iterations: int,
) -> ToolLoopState:
    """Compute the next conversation state from one model reply.

    ``tool_results`` are aligned with ``tool_calls``. Every round that does not
    finish increments ``iteration``; reaching ``max_iterations`` finishes the
    loop with the latest content available.
    """
    if tool_calls:
        messages = list(state.messages)
        messages.append(
            {
                "role": "assistant",
                "content": text,
                "tool_calls": [call.to_message() for call in tool_calls],
            }
        )
        captured = list(state.file_contents)
        for call, result in zip(tool_calls, tool_results):
            messages.append(
                {
                    "role": "tool",
                    "tool_call_id": call.id,
                    "name": call.name,
                    "content": result.as_message_content(),
                }
            )
            if call.name == READ_FILE_TOOL_NAME and result.success:
                captured.append((_read_file_path(call), result.result))

        iteration = state.iteration + 1
        finished = iteration >= max_iterations
        if not finished:
            messages.append({"role": "user", "content": AFTER_TOOLS_FOLLOW_UP})
        return ToolLoopState(
            messages=tuple(messages),
            iteration=iteration,
            content=text if text.strip() else state.content,
            file_contents=tuple(captured),
            finished=finished,
        )

    if not text.strip():
        return replace(state, content="", finished=True)

    if is_brief_reply(text):
        iteration = state.iteration + 1
        finished = iteration >= max_iterations
        messages = state.messages + ({"role": "assistant", "content": text},)
        if not finished:
            messages += ({"role": "user", "content": BRIEF_REPLY_FOLLOW_UP},)
        return replace(
            state,
            messages=messages,
            iteration=iteration,
            content=text,
            finished=finished,
        )

    return replace(state, content=text, finished=True)


def merge_cached_file_contents(detailed_analysis: str, file_contents: dict[str, str]) -> str:
    """Fold cached file contents back into the analysis handed to Stage 2."""
    if not file_contents:
        return detailed_analysis
    try:
        parsed = json.loads(detailed_analysis)
    except (json.JSONDecodeError, RecursionError):
        parsed = None
    if isinstance(parsed, dict):
        parsed["fileContents"] = file_contents
        return json.dumps(parsed, indent=2, ensure_ascii=False)

    parts = [detailed_analysis, "\n\n=== Files Read During Analysis ===\n"]
    for path, content in file_contents.items():
        parts.append(f"\nFile: {path}\n{content[:CACHED_FILE_EXCERPT_CHARS]}...\n")
    return "".join(parts)


def fallback_markdown(detailed_analysis: str, tree_text: str, features: Sequence[str]) -> str:
    mermaid = generate_simple_mermaid(tree_text, features)
    return f"{detailed_analysis[:FALLBACK_MARKDOWN_CHARS]}\n\n{diagram_section(mermaid)}"


class AnalysisService:
    """Runs the scan, cache lookup, Stage 1 and Stage 2 for one workspace."""

    def __init__(
        self,
        config: Config,
        llm_provider: LLMProvider | None,
        cache: CacheRepository | None = None,
        scanner: TreeScanner | None = None,
        tools: WorkspaceToolExecutor | None = None,
        step_callback: StepCallback | None = None,
    ):
        """Initialize the analysis service.

        Args:
            config: Resolved configuration for the workspace
            llm_provider: Provider for both stages; None runs local fallbacks only
            cache: Stage 1 cache (defaults to the workspace cache file)
            scanner: Tree scanner (defaults to one built from ``config.scan``)
            tools: Tool executor for Stage 1 (defaults to one over the workspace)
            step_callback: Receives a short description of each pipeline step
        """
        self._config = config
        self._llm = llm_provider
        self._cache = cache or CacheRepository(config.cache_path)
        self._scanner = scanner or TreeScanner(
            config.workspace, config.scan, cache_filename=config.cache.filename
        )
        self._tools = tools or WorkspaceToolExecutor(
            config.workspace, self._scanner, max_file_chars=config.scan.max_file_chars
        )
        self._step_callback = step_callback

    def _step(self, description: str) -> None:
        logger.info(description)
        if self._step_callback is None:
            return
        try:
            self._step_callback(description)
        except Exception as e:
            logger.debug(f"Step callback failed: {e}")

    async def analyze(
        self,
        use_cache: bool = True,
        progress_callback: ProgressCallback | None = None,
    ) -> AnalysisResult:
        """Analyze the workspace.

        Raises:
            WorkspaceScanError: If the workspace root cannot be read
        """
        self._step(STEP_READING_TREE)
        snapshot = self._scanner.scan_and_format(progress_callback)
        tree_text = snapshot.text
        codebase_hash = compute_codebase_hash(tree_text)
        logger.debug(f"Codebase hash {codebase_hash} ({len(snapshot.entries)} entries)")

        manifest = read_manifest(self._config.workspace, self._config.scan.manifest_files)
        cache_enabled = use_cache and self._config.cache.enabled

        stage1: Stage1Result | None = None
        from_cache = False
        if cache_enabled:
            self._step(STEP_CHECKING_CACHE)
            record = self._cache.get(codebase_hash)
            if record is not None:
                self._step(STEP_LOADING_CACHE)
                stage1 = Stage1Result(
                    detailed_analysis=merge_cached_file_contents(
                        record.detailed_analysis, record.file_contents
                    ),
                    features=list(record.features),
                    file_contents=dict(record.file_contents),
                )
                from_cache = True

        if stage1 is None:
            self._step(STEP_READING_FILES)
            self._step(STEP_DETAILED_ANALYSIS)
            stage1 = await self._stage1_or_fallback(snapshot, manifest)
            if stage1 is None:
                stage1 = Stage1Result(
                    detailed_analysis=generate_fallback_description(tree_text, manifest),
                    features=detect_manifest_features(manifest),
                )
            elif not stage1.is_empty and cache_enabled:
                self._step(STEP_SAVING_CACHE)
                self._cache.save(
                    codebase_hash,
                    stage1.detailed_analysis,
                    stage1.features,
                    stage1.file_contents,
                )

        detailed_analysis, features = self._stage2_inputs(
            stage1.detailed_analysis, stage1.features, tree_text, manifest
        )

        self._step(STEP_POLISHING)
        markdown = await self.run_stage2(detailed_analysis, features, tree_text, manifest)

        return AnalysisResult(
            markdown=markdown,
            features=features,
            from_cache=from_cache,
            detailed_analysis=detailed_analysis,
            codebase_hash=codebase_hash,
        )

    async def _stage1_or_fallback(
        self, snapshot: TreeSnapshot, manifest: Manifest | None
    ) -> Stage1Result | None:
        """Run Stage 1, or return None when the fallback must be used."""
        if snapshot.is_empty:
            logger.info("Workspace is empty; skipping remote analysis")
            return None
        if self._llm is None:
            return None
        try:
            return await self.run_stage1(snapshot.text, manifest)
        except REMOTE_ERRORS as e:
            logger.error(f"Detailed analysis failed, using fallback: {str(e) or type(e).__name__}")
            return None
        except Exception as e:
            logger.error(
                f"Unexpected error during detailed analysis, using fallback: "
                f"{type(e).__name__}: {e}"
            )
            return None

    @staticmethod
    def _stage2_inputs(
        detailed_analysis: str,
        features: Sequence[str],
        tree_text: str,
        manifest: Manifest | None,
    ) -> tuple[str, list[str]]:
        features = list(features)
        if not detailed_analysis.strip():
            logger.warning("Detailed analysis is empty, using fallback")
            detailed_analysis = build_fallback_analysis(tree_text, manifest, features)
        if not features:
            features = detect_manifest_features(manifest)
        return detailed_analysis, features

    async def _call_with_timeout(self, coro: Any) -> Any:
        return await asyncio.wait_for(coro, timeout=self._config.llm.timeout)

    async def run_stage1(self, tree_text: str, manifest: Manifest | None) -> Stage1Result:
        """Tool-calling extraction pass.

        Raises:
            RuntimeError: If no provider is configured or the completion fails
            asyncio.TimeoutError: If a completion exceeds the configured timeout
        """
        if self._llm is None:
            raise RuntimeError("No LLM provider configured")

        llm_config = self._config.llm
        prompt = get_stage1_prompt(tree_text, manifest)
        logger.debug(f"Stage 1 prompt is ~{self._llm.estimate_tokens(prompt)} tokens")
        state = ToolLoopState(
            messages=(
                {"role": "system", "content": STAGE1_SYSTEM_MESSAGE},
                {"role": "user", "content": prompt},
            )
        )

        while not state.finished:
            response = await self._call_with_timeout(
                self._llm.chat(
                    list(state.messages),
                    tools=stage1_tools(),
                    max_completion_tokens=llm_config.extraction_max_tokens,
                    timeout=llm_config.timeout,
                    model=llm_config.extraction_model,
                )
            )

            results: list[ToolResult] = []
            for call in response.tool_calls:
                result = await self._tools.execute(call.name, call.arguments)
                if not result.success:
                    logger.debug(f"Tool {call.name} failed: {result.error}")
                results.append(result)

            state = advance_tool_loop(
                state,
                response.text,
                response.tool_calls,
                results,
                llm_config.max_tool_iterations,
            )
            logger.debug(
                f"Stage 1 round {state.iteration}: {len(response.tool_calls)} tool call(s), "
                f"{len(response.text)} chars"
            )

        resolved = resolve_response(state.content)
        result = to_stage1_result(resolved, state.file_contents_dict())
        if result.is_empty:
            logger.warning("Extraction model returned no content")
        return result

    async def run_stage2(
        self,
        detailed_analysis: str,
        features: Sequence[str],
        tree_text: str,
        manifest: Manifest | None,
    ) -> str:
        """Polish the analysis into markdown. Never raises."""
        detailed_analysis, features = self._stage2_inputs(
            detailed_analysis, features, tree_text, manifest
        )
        if self._llm is None:
            return fallback_markdown(detailed_analysis, tree_text, features)

        llm_config = self._config.llm
        prompt = get_stage2_prompt(detailed_analysis, features, tree_text, manifest)
        logger.debug(f"Stage 2 prompt is ~{self._llm.estimate_tokens(prompt)} tokens")
        try:
            response = await self._call_with_timeout(
                self._llm.complete(
                    prompt,
                    system=STAGE2_SYSTEM_MESSAGE,
                    max_completion_tokens=llm_config.polish_max_tokens,
                    timeout=llm_config.timeout,
                    model=llm_config.polish_model,
                )
            )
        except REMOTE_ERRORS as e:
            logger.error(f"Polishing failed, using fallback: {str(e) or type(e).__name__}")
            return fallback_markdown(detailed_analysis, tree_text, features)

        markdown = response.content.strip()
        if not markdown:
            logger.warning("Polish model returned no content, using fallback")
            return fallback_markdown(detailed_analysis, tree_text, features)

        if not extract_mermaid(markdown) and "```mermaid" not in markdown:
            logger.debug("No mermaid diagram in polished markdown; appending one")
            mermaid = generate_simple_mermaid(tree_text, features)
            markdown = f"{markdown}\n\n{diagram_section(mermaid)}"
        return markdown
