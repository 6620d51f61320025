"""
Enrichment — turn one source record into an :class:`Annotation`.

The enricher walks an ordered list of model identifiers.  The position in
that list is held by an :class:`EnrichmentSession`, an explicit value the
caller creates once and passes into every pass it runs.  When a model is
reported unavailable the session advances, *stickily*: every later call
in the same session starts from the new model, and the failed one is
never tried again.

ARCHITECTURE
────────────
::

    Enricher.enrich(record)
      │
      ├── prompt = build_prompt(record)
      │
      └── loop while session not exhausted:
            model = session.current_model
            text  = await generator.generate(prompt, model)
              ├── ModelUnavailableError → session.advance(); retry same record
              ├── other error           → propagate (caller skips the record)
              └── ok → parse_annotation(text)
          exhausted → ModelExhaustedError

Tags:
    insider, analyzer, enrichment, model-fallback
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from insider.analyzer.generation import TextGenerator
from insider.core.errors import EnrichmentError, ModelExhaustedError, ModelUnavailableError
from insider.core.logging import get_logger
from insider.core.models import Annotation, SourceRecord

logger = get_logger(__name__)

CATEGORIES = ("Database", "Search", "API", "Utility", "Automation", "DevTools", "Communication")
SAFETY_LEVELS = ("Safe", "Caution", "Unknown")

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


@dataclass
class EnrichmentSession:
    """Sticky pointer into the ordered model fallback list.

    Attributes:
        models: Model identifiers, most preferred first.
        index: Position of the model currently in use.
        retired: Models given up on, with the reason, in order.
    """

    models: Sequence[str]
    index: int = 0
    retired: list[tuple[str, str]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.models = tuple(self.models)
        if not self.models:
            raise ValueError("EnrichmentSession needs at least one model")

    @property
    def exhausted(self) -> bool:
        return self.index >= len(self.models)

    @property
    def current_model(self) -> str:
        if self.exhausted:
            raise ModelExhaustedError("No enrichment models left to try")
        return self.models[self.index]

    def advance(self, reason: str = "") -> str | None:
        """Retire the current model; return the next one, or ``None`` when exhausted."""
        if not self.exhausted:
            self.retired.append((self.models[self.index], reason))
            self.index += 1
        return None if self.exhausted else self.models[self.index]


def build_prompt(record: SourceRecord) -> str:
    """Prompt asking for the annotation JSON for one repository."""
    return f"""You are an engineer and tech writer who follows developer tooling closely.
Analyse the following Model Context Protocol (MCP) server repository and write
an introduction that makes developers want to try it.

Repository: {record.name}
Description: {record.description or "(none)"}
Language: {record.language or "unknown"}
Stars: {record.stars}
URL: {record.url}

Return a single JSON object with these keys:
1. summary: an engaging overview, about 140 characters.
2. catchphrase: a one-line hook.
3. wow_factor: what is technically unique about it (one sentence).
4. dev_utility: how much it improves developer productivity, integer 1-10.
5. category: one or more of {list(CATEGORIES)}.
6. safety_level: one of {list(SAFETY_LEVELS)} ('Safe' for read-only, 'Caution' when write or exec access is needed).
7. use_cases: 2-3 concrete scenarios, as a list of strings.

Output only the JSON object, no Markdown code fences.
"""


def parse_annotation(text: str) -> Annotation:
    """Parse model output into an :class:`Annotation`.

    Markdown fences are stripped and the outermost ``{...}`` is decoded.
    """
    cleaned = _FENCE_RE.sub("", text).strip()
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end <= start:
        raise EnrichmentError("Model output contains no JSON object")
    try:
        data = json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError as exc:
        raise EnrichmentError(f"Model output is not valid JSON: {exc}", cause=exc) from exc
    if not isinstance(data, dict):
        raise EnrichmentError("Model output JSON is not an object")
    return Annotation.from_dict(data)


class Enricher:
    """Enrich records one at a time with sticky model fallback."""

    def __init__(self, generator: TextGenerator, session: EnrichmentSession) -> None:
        self.generator = generator
        self.session = session

    async def enrich(self, record: SourceRecord) -> Annotation:
        """Return an annotation for ``record``.

        Raises:
            ModelExhaustedError: every model in the session is unavailable.
            EnrichmentError / TransientUpstreamError: this record failed.
        """
        prompt = build_prompt(record)
        while not self.session.exhausted:
            model = self.session.current_model
            try:
                text = await self.generator.generate(prompt, model)
            except ModelUnavailableError as exc:
                next_model = self.session.advance(exc.message)
                logger.warning(
                    "model_unavailable",
                    model=model,
                    next_model=next_model,
                    url=record.url,
                )
                continue
            try:
                return parse_annotation(text)
            except EnrichmentError as exc:
                exc.with_context(model=model, url=record.url)
                raise
        raise ModelExhaustedError("No working models found").with_context(url=record.url)
