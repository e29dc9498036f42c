"""Run settings shared by the artifact and summary stages."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from project_genie.constants import (
    DEFAULT_MAX_CONTEXT_CHARS,
    DEFAULT_TEMPERATURE,
    FENCE_STRATEGIES,
    SUMMARY_ARTIFACT_NAME,
)
from project_genie.generation.budget import ContextBudget
from project_genie.generation.sanitizer import FenceStrategy
from project_genie.utils.fs import check_relative_path


@dataclass(frozen=True, slots=True)
class GenerationSettings:
    """Sampling, budget and output options for one generation run."""

    temperature: float = DEFAULT_TEMPERATURE
    model: str | None = None
    summary_model: str | None = None
    budget: ContextBudget = field(default_factory=ContextBudget)
    fence_strategy: FenceStrategy = "heuristic"
    summary_artifact: str = SUMMARY_ARTIFACT_NAME

    def __post_init__(self) -> None:
        if isinstance(self.temperature, bool) or not isinstance(self.temperature, (int, float)):
            raise TypeError("GenerationSettings.temperature must be a number")
        if not 0.0 <= float(self.temperature) <= 2.0:
            raise ValueError("GenerationSettings.temperature must be within [0, 2]")
        object.__setattr__(self, "temperature", float(self.temperature))
        if self.fence_strategy not in FENCE_STRATEGIES:
            raise ValueError(
                f"GenerationSettings.fence_strategy must be one of {list(FENCE_STRATEGIES)}"
            )
        check_relative_path(self.summary_artifact)

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, object],
        *,
        model: str | None = None,
    ) -> GenerationSettings:
        """Build settings from an effective config mapping.

        ``model`` overrides the configured provider model (the ``--model`` option).
        """

        generation = _section(config, "generation")
        provider = _section(config, "provider")
        provider_section = _section(provider, str(provider.get("default", "")))

        raw_max_chars = generation.get("max_context_chars", DEFAULT_MAX_CONTEXT_CHARS)
        max_chars = None if raw_max_chars in (None, 0) else int(str(raw_max_chars))
        budget = ContextBudget(
            max_chars=max_chars,
            overflow=str(generation.get("context_overflow", "fail")),  # type: ignore[arg-type]
        )

        configured_model = _optional_str(provider_section.get("model"))
        summary_model = _optional_str(provider_section.get("summary_model"))
        return cls(
            temperature=float(str(generation.get("temperature", DEFAULT_TEMPERATURE))),
            model=model or configured_model,
            summary_model=summary_model or model or configured_model,
            budget=budget,
            fence_strategy=str(  # type: ignore[arg-type]
                generation.get("fence_strategy", "heuristic")
            ),
            summary_artifact=str(generation.get("summary_artifact", SUMMARY_ARTIFACT_NAME)),
        )


def _section(mapping: Mapping[str, object], key: str) -> Mapping[str, object]:
    value = mapping.get(key, {})
    return value if isinstance(value, Mapping) else {}


def _optional_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


__all__ = ["GenerationSettings"]
