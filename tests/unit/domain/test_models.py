"""
project-genie — unit tests for domain models

File: tests/unit/domain/test_models.py
Last updated: 2026-10-19

Purpose
- Validate ProjectSpec construction and wire mapping, artifact records, and the
  ordered generation context.
"""

from __future__ import annotations

import pytest

from project_genie.domain.models import (
    CompletedArtifact,
    GeneratedArtifact,
    GenerationContext,
    ProjectSpec,
)


def _payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "name": "todo-api",
        "type": "web",
        "framework": "Flask",
        "components": ["api", "storage"],
        "files": {"app.py": "entrypoint", "models.py": "ORM models"},
        "description": "A tiny todo API",
    }
    payload.update(overrides)
    return payload


def test_from_mapping_reads_wire_keys() -> None:
    spec = ProjectSpec.from_mapping(_payload())

    assert spec.name == "todo-api"
    assert spec.kind == "web"
    assert spec.framework == "Flask"
    assert spec.components == ("api", "storage")
    assert dict(spec.artifacts) == {"app.py": "entrypoint", "models.py": "ORM models"}
    assert spec.description == "A tiny todo API"


def test_from_mapping_accepts_artifacts_alias_and_optional_fields() -> None:
    spec = ProjectSpec.from_mapping({"name": "x", "artifacts": {"main.go": ""}})

    assert spec.sorted_artifact_paths() == ("main.go",)
    assert spec.kind == ""
    assert spec.framework == ""
    assert spec.components == ()
    assert spec.description == ""


@pytest.mark.parametrize(
    "payload",
    [
        [],
        "not a mapping",
        {"files": {"a.py": "x"}},
        {"name": "x"},
        {"name": "", "files": {"a.py": "x"}},
        {"name": "x", "files": {}},
        {"name": "x", "files": ["a.py"]},
        {"name": "x", "files": {"a.py": "x"}, "components": "api"},
        {"name": "x", "files": {"a.py": "x"}, "components": [1]},
        {"name": 7, "files": {"a.py": "x"}},
        {"name": "x", "files": {"a.py": 3}},
    ],
)
def test_from_mapping_rejects_malformed_documents(payload: object) -> None:
    with pytest.raises(ValueError):
        ProjectSpec.from_mapping(payload)


def test_artifact_paths_keep_exact_spelling_and_sort_lexicographically() -> None:
    spec = ProjectSpec.from_mapping(
        _payload(files={"src/z.py": "", "README.txt": "", "src/a.py": "", " b.py": ""})
    )

    assert spec.sorted_artifact_paths() == (" b.py", "README.txt", "src/a.py", "src/z.py")


def test_spec_is_read_only() -> None:
    spec = ProjectSpec.from_mapping(_payload())

    with pytest.raises(AttributeError):
        spec.name = "other"  # type: ignore[misc]
    with pytest.raises(TypeError):
        spec.artifacts["new.py"] = "x"  # type: ignore[index]


def test_to_dict_round_trips_through_from_mapping() -> None:
    spec = ProjectSpec.from_mapping(_payload())

    payload = spec.to_dict()
    assert list(payload["files"]) == ["app.py", "models.py"]  # type: ignore[arg-type]
    assert payload["type"] == "web"
    assert ProjectSpec.from_mapping(payload) == spec


def test_generated_artifact_hides_raw_response_from_repr() -> None:
    artifact = GeneratedArtifact(path="a.py", body="print(1)", raw_response="```py\nprint(1)\n```")

    assert "raw_response" not in repr(artifact)
    assert artifact.completed() == CompletedArtifact(path="a.py", body="print(1)")


def test_generation_context_preserves_append_order_and_lookups() -> None:
    context = GenerationContext()
    context.append(CompletedArtifact("b.py", "B"))
    context.append(CompletedArtifact("a.py", "A"))

    assert context.paths == ("b.py", "a.py")
    assert [record.body for record in context] == ["B", "A"]
    assert context.get("a.py") == "A"
    assert context.get("missing.py") is None
    assert "b.py" in context
    assert len(context) == 2
    assert context.total_body_chars == 2


def test_generation_context_rejects_duplicates_and_foreign_records() -> None:
    context = GenerationContext()
    context.append(CompletedArtifact("a.py", "A"))

    with pytest.raises(ValueError, match="already recorded"):
        context.append(CompletedArtifact("a.py", "again"))
    with pytest.raises(TypeError):
        context.append(("b.py", "B"))  # type: ignore[arg-type]
    assert context.completed == (CompletedArtifact("a.py", "A"),)


def test_generation_context_snapshot_is_detached() -> None:
    context = GenerationContext()
    context.append(CompletedArtifact("a.py", "A"))
    snapshot = context.completed

    context.append(CompletedArtifact("b.py", "B"))

    assert len(snapshot) == 1
    assert len(context.completed) == 2
