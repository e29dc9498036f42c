"""Unit tests for the filesystem artifact store."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from project_genie.domain.errors import ArtifactWriteError, ValidationError
from project_genie.domain.models import ProjectSpec
from project_genie.store.artifact_store import ArtifactStore, FilesystemArtifactStore


def test_for_project_roots_store_at_project_name(tmp_path: Path) -> None:
    spec = ProjectSpec(name="demo", artifacts={"a.txt": ""})

    store = FilesystemArtifactStore.for_project(tmp_path, spec)

    assert store.root == tmp_path / "demo"
    assert isinstance(store, ArtifactStore)


def test_for_project_rejects_unsafe_name(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        FilesystemArtifactStore.for_project(
            tmp_path, ProjectSpec(name="../outside", artifacts={"a.txt": ""})
        )


def test_write_creates_bytes_beneath_root(tmp_path: Path) -> None:
    store = FilesystemArtifactStore(tmp_path / "demo")
    store.ensure_container("")
    store.ensure_container("src/pkg")

    store.write("src/pkg/mod.py", "x = 'é'\n".encode())
    store.write("src/pkg/mod.py", b"x = 2\n")

    assert (tmp_path / "demo" / "src" / "pkg" / "mod.py").read_bytes() == b"x = 2\n"
    assert os.listdir(tmp_path / "demo" / "src" / "pkg") == ["mod.py"]


def test_write_requires_bytes(tmp_path: Path) -> None:
    store = FilesystemArtifactStore(tmp_path)

    with pytest.raises(TypeError):
        store.write("a.txt", "text")  # type: ignore[arg-type]


@pytest.mark.parametrize("path", ["../escape.txt", "/abs.txt", "a/../../b.txt", "a\\b.txt"])
def test_write_rejects_unsafe_paths(tmp_path: Path, path: str) -> None:
    store = FilesystemArtifactStore(tmp_path / "demo")
    store.ensure_container("")

    with pytest.raises(ValidationError):
        store.write(path, b"x")
    assert not (tmp_path / "escape.txt").exists()


def test_write_refuses_symlinked_escape(tmp_path: Path) -> None:
    outside = tmp_path / "outside"
    outside.mkdir()
    root = tmp_path / "demo"
    root.mkdir()
    (root / "link").symlink_to(outside, target_is_directory=True)
    store = FilesystemArtifactStore(root)

    with pytest.raises(ValidationError, match="escapes"):
        store.write("link/secret.txt", b"x")
    assert not (outside / "secret.txt").exists()


def test_write_into_missing_container_is_a_write_error(tmp_path: Path) -> None:
    store = FilesystemArtifactStore(tmp_path / "demo")
    store.ensure_container("")

    with pytest.raises(ArtifactWriteError) as excinfo:
        store.write("missing/a.txt", b"x")

    assert excinfo.value.artifact_path == "missing/a.txt"


def test_ensure_container_over_a_file_is_a_write_error(tmp_path: Path) -> None:
    store = FilesystemArtifactStore(tmp_path)
    (tmp_path / "taken").write_text("file", encoding="utf-8")

    with pytest.raises(ArtifactWriteError):
        store.ensure_container("taken/sub")
