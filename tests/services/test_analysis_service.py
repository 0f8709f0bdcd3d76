"""Tests for the two-stage analysis pipeline."""

import asyncio
import json
from pathlib import Path

import pytest

from codebrief.core.config import Config, LLMConfig
from codebrief.core.exceptions import WorkspaceScanError
from codebrief.core.types.analysis import ToolLoopState
from codebrief.services.analysis_service import (
    STEP_CHECKING_CACHE,
    STEP_LOADING_CACHE,
    STEP_POLISHING,
    STEP_READING_TREE,
    STEP_SAVING_CACHE,
    AnalysisService,
    advance_tool_loop,
    is_brief_reply,
    merge_cached_file_contents,
)
from codebrief.services.prompts.analysis import AFTER_TOOLS_FOLLOW_UP, BRIEF_REPLY_FOLLOW_UP
from codebrief.services.workspace_tools import ToolResult
from tests.fixtures.fake_providers import FakeLLMProvider, read_call, reply

ANALYSIS_JSON = json.dumps(
    {
        "description": "A todo list web app built with React.",
        "features": ["Todo List", "Filters"],
        "technologies": ["React"],
    }
)

POLISHED = (
    "# Project Analysis\n\nA todo app.\n\n## Architecture Diagram\n\n"
    "```mermaid\ngraph TD\n    A[Todos] --> B[Filters]\n```"
)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "App.jsx").write_text("export default function App() {}\n")
    (tmp_path / "package.json").write_text(
        json.dumps({"name": "todo", "dependencies": {"react": "^18.0.0"}})
    )
    return tmp_path


def _config(workspace: Path, **llm) -> Config:
    return Config(workspace=workspace, llm=LLMConfig(api_key="sk-test", **llm))


def _service(workspace: Path, provider, steps=None, **llm) -> AnalysisService:
    return AnalysisService(
        _config(workspace, **llm),
        provider,
        step_callback=steps.append if steps is not None else None,
    )


class TestAdvanceToolLoop:
    def _initial(self) -> ToolLoopState:
        return ToolLoopState(messages=({"role": "user", "content": "analyze"},))

    def test_tool_round_appends_results_and_nudge(self):
        call = read_call("src/App.jsx")

        state = advance_tool_loop(
            self._initial(), "", [call], [ToolResult.ok("code")], max_iterations=3
        )

        roles = [m["role"] for m in state.messages]
        assert roles == ["user", "assistant", "tool", "user"]
        assert state.messages[2]["tool_call_id"] == call.id
        assert state.messages[-1]["content"] == AFTER_TOOLS_FOLLOW_UP
        assert state.iteration == 1
        assert not state.finished
        assert state.file_contents_dict() == {"src/App.jsx": "code"}

    def test_failed_read_is_reported_but_not_captured(self):
        state = advance_tool_loop(
            self._initial(),
            "",
            [read_call("missing.js")],
            [ToolResult(success=False, error="File not found: missing.js")],
            max_iterations=3,
        )

        assert state.messages[2]["content"] == "Error: File not found: missing.js"
        assert state.file_contents == ()

    def test_ceiling_finishes_without_nudge(self):
        state = ToolLoopState(messages=(), iteration=2, content="earlier text")

        state = advance_tool_loop(
            state, "", [read_call("a.js")], [ToolResult.ok("x")], max_iterations=3
        )

        assert state.finished
        assert state.iteration == 3
        assert state.content == "earlier text"
        assert state.messages[-1]["role"] == "tool"

    def test_brief_reply_reprompts(self):
        state = advance_tool_loop(self._initial(), "Let me check.", [], [], max_iterations=3)

        assert not state.finished
        assert state.iteration == 1
        assert state.messages[-2] == {"role": "assistant", "content": "Let me check."}
        assert state.messages[-1]["content"] == BRIEF_REPLY_FOLLOW_UP

    def test_substantial_reply_finishes(self):
        state = advance_tool_loop(self._initial(), ANALYSIS_JSON, [], [], max_iterations=3)

        assert state.finished
        assert state.content == ANALYSIS_JSON
        assert state.iteration == 0

    def test_empty_reply_finishes_empty(self):
        state = advance_tool_loop(self._initial(), "", [], [], max_iterations=3)

        assert state.finished
        assert state.content == ""

    def test_previous_state_is_untouched(self):
        initial = self._initial()

        advance_tool_loop(initial, "", [read_call("a.js")], [ToolResult.ok("x")], 3)

        assert len(initial.messages) == 1
        assert initial.iteration == 0


def test_is_brief_reply():
    assert is_brief_reply("Reading files now.")
    assert not is_brief_reply('{"a": 1}')
    assert not is_brief_reply("x" * 250)


def test_merge_cached_file_contents():
    merged = json.loads(merge_cached_file_contents('{"description": "d"}', {"a.js": "x"}))
    assert merged == {"description": "d", "fileContents": {"a.js": "x"}}

    text = merge_cached_file_contents("plain analysis", {"a.js": "y" * 2000})
    assert text.startswith("plain analysis\n\n=== Files Read During Analysis ===")
    assert "File: a.js\n" + "y" * 1000 + "...\n" in text

    assert merge_cached_file_contents("same", {}) == "same"


def test_merge_cached_file_contents_with_deeply_nested_analysis():
    nested = '{"a":' * 50000 + "1" + "}" * 50000

    merged = merge_cached_file_contents(nested, {"main.py": "print()"})

    assert merged.startswith(nested)
    assert "File: main.py" in merged


class TestAnalysisService:
    @pytest.mark.asyncio
    async def test_full_pipeline_with_tool_call(self, workspace):
        provider = FakeLLMProvider(
            chat_script=[
                reply(tool_calls=[read_call("src/App.jsx")]),
                reply(ANALYSIS_JSON),
            ],
            complete_script=[reply(POLISHED)],
        )
        steps: list[str] = []
        service = _service(workspace, provider, steps, extraction_model="ex", polish_model="po")

        result = await service.analyze()

        assert result.markdown == POLISHED
        assert result.features == ["Todo List", "Filters"]
        assert result.from_cache is False
        assert len(result.codebase_hash) == 64

        first, second = provider.chat_calls
        assert first["model"] == "ex"
        assert [t["function"]["name"] for t in first["tools"]] == ["read_file_content"]
        tool_messages = [m for m in second["messages"] if m["role"] == "tool"]
        assert tool_messages[0]["content"] == "export default function App() {}\n"
        assert second["messages"][-1]["content"] == AFTER_TOOLS_FOLLOW_UP

        assert provider.complete_calls[0]["model"] == "po"
        assert "A todo list web app" in provider.complete_calls[0]["prompt"]

        cached = json.loads((workspace / ".codebrief-analysis-cache.json").read_text())
        assert cached["features"] == ["Todo List", "Filters"]
        assert cached["fileContents"] == {"src/App.jsx": "export default function App() {}\n"}
        assert steps[0] == STEP_READING_TREE
        assert STEP_SAVING_CACHE in steps
        assert steps[-1] == STEP_POLISHING

    @pytest.mark.asyncio
    async def test_tool_loop_terminates_at_ceiling(self, workspace):
        provider = FakeLLMProvider(
            chat_script=[
                reply(tool_calls=[read_call("src/App.jsx", f"call_{i}")]) for i in range(10)
            ],
            complete_script=[reply(POLISHED)],
        )

        result = await _service(workspace, provider).analyze()

        assert len(provider.chat_calls) == 3
        # No content was ever produced, so the fallback is used and nothing is cached
        assert not (workspace / ".codebrief-analysis-cache.json").exists()
        assert result.markdown == POLISHED

    @pytest.mark.asyncio
    async def test_brief_reply_is_reprompted(self, workspace):
        provider = FakeLLMProvider(
            chat_script=[reply("I will read some files."), reply(ANALYSIS_JSON)],
            complete_script=[reply(POLISHED)],
        )

        result = await _service(workspace, provider).analyze()

        assert len(provider.chat_calls) == 2
        assert provider.chat_calls[1]["messages"][-1]["content"] == BRIEF_REPLY_FOLLOW_UP
        assert result.features == ["Todo List", "Filters"]

    @pytest.mark.asyncio
    async def test_reasoning_used_when_content_empty(self, workspace):
        provider = FakeLLMProvider(
            chat_script=[reply("", reasoning=ANALYSIS_JSON)],
            complete_script=[reply(POLISHED)],
        )

        result = await _service(workspace, provider).analyze()

        assert result.features == ["Todo List", "Filters"]

    @pytest.mark.asyncio
    async def test_cache_hit_skips_stage1(self, workspace):
        provider = FakeLLMProvider(
            chat_script=[
                reply(tool_calls=[read_call("src/App.jsx")]),
                reply(ANALYSIS_JSON),
            ],
            complete_script=[reply(POLISHED), reply(POLISHED)],
        )
        service = _service(workspace, provider)
        await service.analyze()

        steps: list[str] = []
        second = await _service(workspace, provider, steps).analyze()

        assert second.from_cache is True
        assert len(provider.chat_calls) == 2
        assert len(provider.complete_calls) == 2
        assert STEP_CHECKING_CACHE in steps
        assert STEP_LOADING_CACHE in steps
        assert STEP_SAVING_CACHE not in steps
        merged = json.loads(second.detailed_analysis)
        assert merged["fileContents"] == {"src/App.jsx": "export default function App() {}\n"}

    @pytest.mark.asyncio
    async def test_structure_change_invalidates_cache(self, workspace):
        provider = FakeLLMProvider(
            chat_script=[reply(ANALYSIS_JSON), reply(ANALYSIS_JSON)],
            complete_script=[reply(POLISHED), reply(POLISHED)],
        )
        await _service(workspace, provider).analyze()

        (workspace / "src" / "Filters.jsx").write_text("export {}\n")
        result = await _service(workspace, provider).analyze()

        assert result.from_cache is False
        assert len(provider.chat_calls) == 2

    @pytest.mark.asyncio
    async def test_use_cache_false_bypasses_cache(self, workspace):
        provider = FakeLLMProvider(
            chat_script=[reply(ANALYSIS_JSON), reply(ANALYSIS_JSON)],
            complete_script=[reply(POLISHED), reply(POLISHED)],
        )
        await _service(workspace, provider).analyze()

        result = await _service(workspace, provider).analyze(use_cache=False)

        assert result.from_cache is False
        assert len(provider.chat_calls) == 2

    @pytest.mark.asyncio
    async def test_stage1_failure_uses_fallback(self, workspace):
        provider = FakeLLMProvider(
            chat_script=[RuntimeError("LLM completion failed: 503")],
            complete_script=[RuntimeError("LLM completion failed: 503")],
        )

        result = await _service(workspace, provider).analyze()

        assert result.markdown.startswith("This is a todo project.")
        assert "## Architecture Diagram" in result.markdown
        assert "```mermaid\ngraph TD" in result.markdown
        assert result.features == ["React"]
        assert not (workspace / ".codebrief-analysis-cache.json").exists()

    @pytest.mark.asyncio
    async def test_timeout_scripted_maps_to_fallback(self, workspace):
        provider = FakeLLMProvider(
            chat_script=[asyncio.TimeoutError()],
            complete_script=[reply(POLISHED)],
        )

        result = await _service(workspace, provider).analyze()

        assert result.markdown == POLISHED
        assert result.detailed_analysis.startswith("This is a todo project.")

    @pytest.mark.asyncio
    async def test_slow_provider_times_out(self, workspace):
        provider = FakeLLMProvider(
            chat_script=[reply(ANALYSIS_JSON)],
            complete_script=[reply(POLISHED)],
            delay=5,
        )

        result = await _service(workspace, provider, timeout=1).analyze()

        assert result.detailed_analysis.startswith("This is a todo project.")
        assert "## Architecture Diagram" in result.markdown

    @pytest.mark.asyncio
    async def test_unusable_tool_path_is_reported_to_model(self, workspace):
        provider = FakeLLMProvider(
            chat_script=[
                reply(tool_calls=[read_call("a" * 5000)]),
                reply(ANALYSIS_JSON),
            ],
            complete_script=[reply(POLISHED)],
        )

        result = await _service(workspace, provider).analyze()

        assert result.features == ["Todo List", "Filters"]
        tool_messages = [
            m for m in provider.chat_calls[1]["messages"] if m["role"] == "tool"
        ]
        assert tool_messages[0]["content"].startswith("Error: File not found")

    @pytest.mark.asyncio
    async def test_unexpected_stage1_error_uses_fallback(self, workspace):
        provider = FakeLLMProvider(
            chat_script=[ValueError("unexpected payload")],
            complete_script=[reply(POLISHED)],
        )

        result = await _service(workspace, provider).analyze()

        assert result.markdown == POLISHED
        assert result.detailed_analysis.startswith("This is a todo project.")
        assert not (workspace / ".codebrief-analysis-cache.json").exists()

    @pytest.mark.asyncio
    async def test_deeply_nested_reply_does_not_abort(self, workspace):
        nested = '{"a":' * 50000 + "1" + "}" * 50000
        provider = FakeLLMProvider(
            chat_script=[reply(nested)],
            complete_script=[reply(POLISHED)],
        )

        result = await _service(workspace, provider).analyze()

        assert result.markdown == POLISHED
        assert result.features == ["React"]

    @pytest.mark.asyncio
    async def test_empty_workspace_makes_no_remote_stage1_call(self, tmp_path):
        provider = FakeLLMProvider(complete_script=[reply("")])

        result = await _service(tmp_path, provider).analyze()

        assert provider.chat_calls == []
        assert result.detailed_analysis == "This is a codebase project."
        assert result.markdown.startswith("This is a codebase project.")
        assert 'subgraph App["Application"]' in result.markdown
        prompt = provider.complete_calls[0]["prompt"]
        assert "The workspace directory is empty." in prompt

    @pytest.mark.asyncio
    async def test_no_provider_runs_locally(self, workspace):
        service = AnalysisService(Config(workspace=workspace), None)

        result = await service.analyze()

        assert result.markdown.startswith("This is a todo project.")
        assert "Feature0_A[React Component]" in result.markdown

    @pytest.mark.asyncio
    async def test_missing_diagram_is_appended(self, workspace):
        provider = FakeLLMProvider(
            chat_script=[reply(ANALYSIS_JSON)],
            complete_script=[reply("# Project Analysis\n\nA todo app.")],
        )

        result = await _service(workspace, provider).analyze()

        assert result.markdown.startswith("# Project Analysis\n\nA todo app.\n\n## Architecture Diagram")
        assert 'subgraph Feature0["Todo List"]' in result.markdown

    @pytest.mark.asyncio
    async def test_unreadable_root_propagates(self, tmp_path):
        service = AnalysisService(Config(workspace=tmp_path / "missing"), FakeLLMProvider())

        with pytest.raises(WorkspaceScanError):
            await service.analyze()

    @pytest.mark.asyncio
    async def test_failing_step_callback_is_ignored(self, workspace):
        def boom(step: str) -> None:
            raise RuntimeError("ui gone")

        service = AnalysisService(Config(workspace=workspace), None, step_callback=boom)

        result = await service.analyze()

        assert result.markdown
