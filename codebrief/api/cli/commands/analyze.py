"""Analyze command: run the two-stage analysis and print the result."""

from __future__ import annotations

import argparse
import json

from rich.console import Console

from codebrief.core.config.config import Config
from codebrief.core.types.tree import ScanProgress
from codebrief.llm_manager import create_llm_provider
from codebrief.services.analysis_service import STEP_READING_TREE, AnalysisService


async def analyze_command(args: argparse.Namespace, config: Config) -> None:
    # Status goes to stderr so stdout carries only the markdown or JSON report
    console = Console(stderr=True)
    provider = create_llm_provider(config.llm)

    with console.status(STEP_READING_TREE) as status:

        def on_step(description: str) -> None:
            status.update(description)

        def on_progress(progress: ScanProgress) -> None:
            if not progress.done:
                status.update(f"{STEP_READING_TREE} ({progress.total} entries)")

        service = AnalysisService(config, provider, step_callback=on_step)
        result = await service.analyze(
            use_cache=config.cache.enabled, progress_callback=on_progress
        )

    if getattr(args, "json", False):
        report = result.to_dict()
        if provider is not None:
            report["usage"] = provider.get_usage_stats()
        print(json.dumps(report, indent=2, ensure_ascii=False))
    else:
        print(result.markdown)

    if result.from_cache:
        console.print("[dim]Stage 1 analysis loaded from cache[/dim]")
