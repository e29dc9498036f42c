"""
project-genie — context budget

File: src/project_genie/generation/budget.py
Last updated: 2026-10-19

Purpose
- Bounds the size of prompts that embed previously generated artifacts.

Functional requirements
- Size is the character count of the system instruction plus the user prompt.
- ``fail`` raises ``ContextBudgetExceededError`` before the service is called.
- ``truncate`` replaces the oldest embedded bodies with an omission marker until
  the prompt fits, logs which artifacts were omitted, and fails only when the
  prompt still does not fit with every body omitted.
- ``max_chars=None`` disables the cap.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Literal, TypeAlias

from project_genie.constants import CONTEXT_OVERFLOW_MODES, DEFAULT_MAX_CONTEXT_CHARS
from project_genie.domain.errors import ContextBudgetExceededError
from project_genie.domain.models import CompletedArtifact
from project_genie.generation.prompts import RenderedPrompt, omit_body

logger = logging.getLogger(__name__)

OverflowMode: TypeAlias = Literal["fail", "truncate"]
PromptRenderer: TypeAlias = Callable[[Sequence[CompletedArtifact]], RenderedPrompt]


@dataclass(frozen=True, slots=True)
class ContextBudget:
    """Maximum prompt size and what to do when a prompt would exceed it."""

    max_chars: int | None = DEFAULT_MAX_CONTEXT_CHARS
    overflow: OverflowMode = "fail"

    def __post_init__(self) -> None:
        if self.max_chars is not None:
            if isinstance(self.max_chars, bool) or not isinstance(self.max_chars, int):
                raise TypeError("ContextBudget.max_chars must be an integer or None")
            if self.max_chars <= 0:
                raise ValueError("ContextBudget.max_chars must be > 0")
        if self.overflow not in CONTEXT_OVERFLOW_MODES:
            raise ValueError(
                f"ContextBudget.overflow must be one of {list(CONTEXT_OVERFLOW_MODES)}"
            )

    @property
    def unlimited(self) -> bool:
        return self.max_chars is None

    def fits(self, prompt: RenderedPrompt) -> bool:
        return self.max_chars is None or prompt.prompt_chars <= self.max_chars

    def fit(
        self,
        render: PromptRenderer,
        completed: Sequence[CompletedArtifact],
        *,
        stage: str,
        artifact_path: str,
        written_paths: Sequence[str] = (),
    ) -> RenderedPrompt:
        """Render a prompt over ``completed`` that respects this budget."""

        prompt = render(completed)
        max_chars = self.max_chars
        if max_chars is None or prompt.prompt_chars <= max_chars:
            return prompt

        if self.overflow == "truncate":
            records = list(completed)
            omitted: list[str] = []
            for index, record in enumerate(records):
                records[index] = omit_body(record)
                omitted.append(record.path)
                prompt = render(records)
                if self.fits(prompt):
                    logger.warning(
                        "context truncated to fit budget",
                        extra={
                            "omitted_paths": omitted,
                            "prompt_chars": prompt.prompt_chars,
                            "max_chars": max_chars,
                        },
                    )
                    return prompt

        raise ContextBudgetExceededError(
            stage=stage,
            artifact_path=artifact_path,
            prompt_chars=prompt.prompt_chars,
            max_chars=max_chars,
            written_paths=written_paths,
        )


__all__ = ["ContextBudget", "OverflowMode", "PromptRenderer"]
