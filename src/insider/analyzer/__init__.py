"""Analyzer — enrichment session, merge engine, and the analyze stage.

Example::

    session = EnrichmentSession(["gemini-2.0-flash", "gemini-1.5-pro"])
    engine = MergeEngine(Enricher(generator, session))
    catalog = await engine.run_pass(batch, PipelineSettings(), Catalog())
"""

from insider.analyzer.enrichment import (
    Enricher,
    EnrichmentSession,
    build_prompt,
    parse_annotation,
)
from insider.analyzer.generation import ScriptedGenerator, TextGenerator
from insider.analyzer.merge import (
    MergeEngine,
    PassStats,
    apply_retention,
    reconcile,
    resolve_status,
)
from insider.analyzer.stage import run_analysis

__all__ = [
    "Enricher",
    "EnrichmentSession",
    "build_prompt",
    "parse_annotation",
    "ScriptedGenerator",
    "TextGenerator",
    "MergeEngine",
    "PassStats",
    "apply_retention",
    "reconcile",
    "resolve_status",
    "run_analysis",
]
