"""Unit tests for the context budget."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import pytest

from project_genie.domain.errors import ContextBudgetExceededError
from project_genie.domain.models import CompletedArtifact, ProjectSpec
from project_genie.generation.budget import ContextBudget
from project_genie.generation.prompts import (
    OMITTED_BODY_MARKER,
    RenderedPrompt,
    build_artifact_messages,
)

_SPEC = ProjectSpec(
    name="demo",
    framework="FastAPI",
    artifacts={"a.py": "first", "b.py": "second", "c.py": "third"},
    description="demo project",
)
_COMPLETED = (
    CompletedArtifact("a.py", "A" * 500),
    CompletedArtifact("b.py", "B" * 500),
)


def _render(records: Sequence[CompletedArtifact]) -> RenderedPrompt:
    return build_artifact_messages(_SPEC, "c.py", records)


@pytest.mark.parametrize(
    ("kwargs", "error"),
    [
        ({"max_chars": 0}, ValueError),
        ({"max_chars": -5}, ValueError),
        ({"max_chars": True}, TypeError),
        ({"max_chars": "100"}, TypeError),
        ({"overflow": "drop"}, ValueError),
    ],
)
def test_budget_rejects_invalid_settings(kwargs: dict[str, object], error: type[Exception]) -> None:
    with pytest.raises(error):
        ContextBudget(**kwargs)  # type: ignore[arg-type]


def test_prompt_within_budget_is_returned_unchanged() -> None:
    full = _render(_COMPLETED)

    prompt = ContextBudget(max_chars=full.prompt_chars).fit(
        _render, _COMPLETED, stage="artifact", artifact_path="c.py"
    )

    assert prompt == full


def test_unlimited_budget_never_fails() -> None:
    budget = ContextBudget(max_chars=None)

    assert budget.unlimited
    assert budget.fit(_render, _COMPLETED, stage="artifact", artifact_path="c.py") == _render(
        _COMPLETED
    )


def test_fail_mode_raises_before_any_call() -> None:
    full = _render(_COMPLETED)

    with pytest.raises(ContextBudgetExceededError) as excinfo:
        ContextBudget(max_chars=full.prompt_chars - 1).fit(
            _render,
            _COMPLETED,
            stage="artifact",
            artifact_path="c.py",
            written_paths=("a.py", "b.py"),
        )

    error = excinfo.value
    assert error.artifact_path == "c.py"
    assert error.prompt_chars == full.prompt_chars
    assert error.max_chars == full.prompt_chars - 1
    assert error.written_paths == ("a.py", "b.py")


def test_truncate_mode_omits_oldest_bodies_first(caplog: pytest.LogCaptureFixture) -> None:
    full = _render(_COMPLETED)
    budget = ContextBudget(max_chars=full.prompt_chars - 400, overflow="truncate")

    with caplog.at_level(logging.WARNING, logger="project_genie"):
        prompt = budget.fit(_render, _COMPLETED, stage="artifact", artifact_path="c.py")

    assert budget.fits(prompt)
    assert "A" * 500 not in prompt.user_prompt
    assert "B" * 500 in prompt.user_prompt
    assert f"a.py:\n```\n{OMITTED_BODY_MARKER}\n```" in prompt.user_prompt
    warnings = [r for r in caplog.records if r.getMessage() == "context truncated to fit budget"]
    assert len(warnings) == 1
    assert warnings[0].omitted_paths == ["a.py"]  # type: ignore[attr-defined]


def test_truncate_mode_fails_when_omitting_everything_is_not_enough() -> None:
    budget = ContextBudget(max_chars=50, overflow="truncate")

    with pytest.raises(ContextBudgetExceededError) as excinfo:
        budget.fit(_render, _COMPLETED, stage="summary", artifact_path="README.md")

    assert excinfo.value.stage == "summary"
    assert excinfo.value.prompt_chars > 50
