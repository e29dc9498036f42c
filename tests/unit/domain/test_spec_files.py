"""Unit tests for saving and loading project spec files."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from project_genie.domain.errors import SpecParseError
from project_genie.domain.models import ProjectSpec
from project_genie.domain.spec_files import dump_project_spec, load_project_spec


def _spec() -> ProjectSpec:
    return ProjectSpec(
        name="notes",
        kind="cli",
        framework="Click",
        components=("parser", "storage"),
        artifacts={"notes/cli.py": "entrypoint", "pyproject.toml": "packaging"},
        description="Take notes in a café",
    )


def test_dump_then_load_preserves_spec(tmp_path: Path) -> None:
    target = dump_project_spec(_spec(), tmp_path / "specs" / "notes.yaml")

    assert target.exists()
    text = target.read_text(encoding="utf-8")
    assert text.startswith("name: notes")
    assert "café" in text
    assert load_project_spec(target) == _spec()


def test_json_documents_load(tmp_path: Path) -> None:
    path = tmp_path / "spec.json"
    path.write_text(json.dumps(_spec().to_dict()), encoding="utf-8")

    assert load_project_spec(path) == _spec()


def test_missing_file_is_reported(tmp_path: Path) -> None:
    with pytest.raises(SpecParseError, match="not found"):
        load_project_spec(tmp_path / "absent.yaml")


def test_invalid_yaml_is_reported(tmp_path: Path) -> None:
    path = tmp_path / "broken.yaml"
    path.write_text("name: [unterminated\n", encoding="utf-8")

    with pytest.raises(SpecParseError, match="not valid YAML"):
        load_project_spec(path)


def test_wrong_shape_is_reported(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(SpecParseError, match="invalid"):
        load_project_spec(path)
