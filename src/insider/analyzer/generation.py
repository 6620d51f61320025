"""Text generation capability — the seam between the merge engine and an LLM.

ARCHITECTURE
────────────
::

    TextGenerator (Protocol)
      └── await .generate(prompt, model) → str

    Failure contract (raised, never returned):
      ModelUnavailableError   model id unknown / not served → try next model
      TransientUpstreamError  throttled or 5xx → skip this record
      EnrichmentError         anything else wrong with this call → skip

Implementations:
    gemini.py           GeminiGenerator over google-genai
    ScriptedGenerator   deterministic generator for tests and dry runs

Example::

    generator = ScriptedGenerator(unavailable_models={"model-a"})
    await generator.generate("describe x", "model-b")

Tags:
    insider, analyzer, llm, protocol, mock
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from insider.core.errors import ModelUnavailableError


@runtime_checkable
class TextGenerator(Protocol):
    """Capability: generate text for a prompt with a named model."""

    async def generate(self, prompt: str, model: str) -> str:
        ...


DEFAULT_SCRIPTED_RESPONSE = json.dumps(
    {
        "summary": "Scripted summary",
        "catchphrase": "Scripted catchphrase",
        "wow_factor": "Scripted wow factor",
        "dev_utility": 7,
        "category": ["Utility"],
        "safety_level": "Safe",
        "use_cases": ["Scripted use case"],
    }
)


@dataclass
class ScriptedGenerator:
    """Deterministic generator for tests.

    Resolution order for each call:
    1. ``unavailable_models``: raise :class:`ModelUnavailableError`
    2. ``errors``: first substring found in the prompt → raise that exception
    3. ``responses``: first substring found in the prompt → return that text
    4. ``default_response``

    Attributes:
        calls: ``(model, prompt)`` for every call, in order.
    """

    default_response: str = DEFAULT_SCRIPTED_RESPONSE
    responses: dict[str, str] = field(default_factory=dict)
    errors: dict[str, Exception] = field(default_factory=dict)
    unavailable_models: set[str] = field(default_factory=set)

    calls: list[tuple[str, str]] = field(default_factory=list, repr=False)

    async def generate(self, prompt: str, model: str) -> str:
        self.calls.append((model, prompt))
        if model in self.unavailable_models:
            raise ModelUnavailableError(f"models/{model} is not found").with_context(model=model)
        for needle, error in self.errors.items():
            if needle in prompt:
                raise error
        for needle, response in self.responses.items():
            if needle in prompt:
                return response
        return self.default_response

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def models_called(self) -> list[str]:
        return [model for model, _ in self.calls]

    def reset(self) -> None:
        self.calls.clear()

    def to_dict(self) -> dict[str, Any]:
        return {"call_count": self.call_count, "models": sorted(set(self.models_called()))}
