"""
project-genie — unit tests for the artifact pipeline

File: tests/unit/generation/test_pipeline.py
Last updated: 2026-10-19

Purpose
- Validate ordering, context propagation, failure attribution and partial output
  of the sequential artifact pipeline against offline fakes.
"""

from __future__ import annotations

import asyncio

import pytest

from project_genie.domain.errors import (
    ArtifactWriteError,
    ContextBudgetExceededError,
    ServiceError,
    ValidationError,
)
from project_genie.domain.models import GenerationContext, ProjectSpec
from project_genie.generation import pipeline as pipeline_module
from project_genie.generation.budget import ContextBudget
from project_genie.generation.pipeline import (
    GenerationEvent,
    generate_artifacts,
    validate_artifact_paths,
)
from project_genie.generation.settings import GenerationSettings
from project_genie.utils.concurrency import CancellationToken


def _spec(**artifacts: str) -> ProjectSpec:
    files = artifacts or {"b.txt": "second file", "a.txt": "first file", "src/c.py": "module"}
    return ProjectSpec(
        name="demo",
        kind="cli",
        framework="Typer",
        artifacts=files,
        description="demo project",
    )


async def test_generates_every_artifact_once_in_lexicographic_order(
    scripted_client, memory_store
) -> None:
    client = scripted_client("```\nA body\n```", "B body", "```python\nprint('héllo')\n```")

    context = await generate_artifacts(_spec(), memory_store, client)

    assert len(client.calls) == 3
    assert memory_store.writes == ["a.txt", "b.txt", "src/c.py"]
    assert context.paths == ("a.txt", "b.txt", "src/c.py")
    assert memory_store.text("a.txt") == "A body"
    assert memory_store.files["src/c.py"] == "print('héllo')".encode()
    assert memory_store.containers[0] == ""
    assert "src" in memory_store.containers


async def test_later_prompts_embed_earlier_bodies_only(scripted_client, memory_store) -> None:
    client = scripted_client("ALPHA-BODY", "BETA-BODY", "GAMMA-BODY")

    await generate_artifacts(_spec(), memory_store, client)

    first, second, third = client.user_prompts()
    assert "a.txt" in first
    assert "b.txt" not in first
    assert "Previously generated files" not in first
    assert "a.txt:\n```\nALPHA-BODY\n```" in second
    assert "BETA-BODY" not in second
    assert third.index("ALPHA-BODY") < third.index("BETA-BODY")


async def test_failure_at_kth_artifact_keeps_earlier_writes(scripted_client, memory_store) -> None:
    client = scripted_client("A", ServiceError("upstream 503", stage="service"), "C")

    with pytest.raises(ServiceError) as excinfo:
        await generate_artifacts(_spec(), memory_store, client)

    error = excinfo.value
    assert error.stage == "artifact"
    assert error.artifact_path == "b.txt"
    assert error.written_paths == ("a.txt",)
    assert "artifact=b.txt" in str(error)
    assert list(memory_store.files) == ["a.txt"]
    assert len(client.calls) == 2


async def test_unsafe_path_fails_before_any_service_call(scripted_client, memory_store) -> None:
    client = scripted_client("A", "B")
    spec = _spec(**{"a.txt": "fine", "../../etc/passwd": "nope"})

    with pytest.raises(ValidationError) as excinfo:
        await generate_artifacts(spec, memory_store, client)

    assert excinfo.value.artifact_path == "../../etc/passwd"
    assert client.calls == []
    assert memory_store.writes == []
    assert memory_store.containers == []


@pytest.mark.parametrize("path", ["/etc/passwd", "a//b.txt", "./a.txt", "dir\\file.txt", " "])
def test_validate_artifact_paths_rejects_unsafe_paths(path: str) -> None:
    with pytest.raises(ValidationError):
        validate_artifact_paths(ProjectSpec(name="demo", artifacts={path: "x"}))


async def test_file_and_directory_clash_fails_before_any_service_call(
    scripted_client, memory_store
) -> None:
    client = scripted_client("A", "B")
    spec = _spec(**{"src": "a file", "src/main.py": "a module below it"})

    with pytest.raises(ValidationError, match="also a directory") as excinfo:
        await generate_artifacts(spec, memory_store, client)

    assert excinfo.value.artifact_path == "src"
    assert client.calls == []
    assert memory_store.writes == []


def test_nested_directory_clash_is_detected() -> None:
    spec = ProjectSpec(name="demo", artifacts={"a/b": "file", "a/b/c/d.txt": "deep", "a.txt": "x"})

    with pytest.raises(ValidationError) as excinfo:
        validate_artifact_paths(spec)

    assert excinfo.value.artifact_path == "a/b"


def test_sibling_prefixes_are_not_a_clash() -> None:
    spec = ProjectSpec(name="demo", artifacts={"src.py": "file", "src/main.py": "module"})

    assert validate_artifact_paths(spec) == ("src.py", "src/main.py")


def test_validate_artifact_paths_rejects_unsafe_project_name() -> None:
    with pytest.raises(ValidationError, match="unsafe project name"):
        validate_artifact_paths(ProjectSpec(name="../escape", artifacts={"a.txt": "x"}))


async def test_write_failure_is_reported_with_progress(scripted_client, memory_store) -> None:
    memory_store.fail_on.add("b.txt")
    client = scripted_client("A", "B", "C")

    with pytest.raises(ArtifactWriteError) as excinfo:
        await generate_artifacts(_spec(), memory_store, client)

    assert excinfo.value.artifact_path == "b.txt"
    assert excinfo.value.written_paths == ("a.txt",)
    assert isinstance(excinfo.value.__cause__, OSError)
    assert len(client.calls) == 2


async def test_budget_overflow_fails_before_the_call(scripted_client, memory_store) -> None:
    client = scripted_client("A" * 5000, "B", "C")
    settings = GenerationSettings(budget=ContextBudget(max_chars=3000))

    with pytest.raises(ContextBudgetExceededError) as excinfo:
        await generate_artifacts(_spec(), memory_store, client, settings=settings)

    assert excinfo.value.artifact_path == "b.txt"
    assert excinfo.value.written_paths == ("a.txt",)
    assert len(client.calls) == 1


async def test_cancellation_stops_before_next_artifact(scripted_client, memory_store) -> None:
    client = scripted_client("A", "B", "C")
    token = CancellationToken()

    def cancel_after_first(event: GenerationEvent) -> None:
        if event.kind == "artifact_written":
            token.cancel()

    with pytest.raises(asyncio.CancelledError):
        await generate_artifacts(
            _spec(), memory_store, client, cancel_token=token, on_event=cancel_after_first
        )

    assert len(client.calls) == 1
    assert memory_store.writes == ["a.txt"]


async def test_events_report_progress(scripted_client, memory_store) -> None:
    client = scripted_client("A", "B")
    events: list[GenerationEvent] = []

    await generate_artifacts(
        _spec(**{"y.txt": "y", "x.txt": "x"}), memory_store, client, on_event=events.append
    )

    assert events == [
        GenerationEvent("artifact_started", "x.txt", 1, 2),
        GenerationEvent("artifact_written", "x.txt", 1, 2),
        GenerationEvent("artifact_started", "y.txt", 2, 2),
        GenerationEvent("artifact_written", "y.txt", 2, 2),
    ]


async def test_settings_flow_into_every_call(scripted_client, memory_store) -> None:
    client = scripted_client("A\n```", "B\n```", "C\n```")
    settings = GenerationSettings(temperature=0.7, model="gpt-test", fence_strategy="strict")

    await generate_artifacts(_spec(), memory_store, client, settings=settings)

    assert client.temperatures == [0.7, 0.7, 0.7]
    assert client.models == ["gpt-test"] * 3
    assert memory_store.text("a.txt") == "A\n```"


async def test_context_grows_by_one_sanitized_record_per_artifact(
    scripted_client, memory_store, monkeypatch: pytest.MonkeyPatch
) -> None:
    created: list[GenerationContext] = []

    class _RecordingContext(GenerationContext):
        def __init__(self) -> None:
            super().__init__()
            created.append(self)

    monkeypatch.setattr(pipeline_module, "GenerationContext", _RecordingContext)
    client = scripted_client("```\nA body\n```", "```python\nB = 1\n```", "  C body\n")
    snapshots: list[tuple[tuple[str, str], ...]] = []

    def on_event(event: GenerationEvent) -> None:
        if event.kind == "artifact_written":
            snapshots.append(tuple((record.path, record.body) for record in created[0].completed))

    context = await generate_artifacts(_spec(), memory_store, client, on_event=on_event)

    expected = (("a.txt", "A body"), ("b.txt", "B = 1"), ("src/c.py", "C body"))
    assert context is created[0]
    assert snapshots == [expected[:1], expected[:2], expected[:3]]
    for path, body in expected:
        assert memory_store.text(path) == body
