"""Unit tests for filesystem helpers."""

from __future__ import annotations

from pathlib import Path, PurePosixPath

import pytest

from project_genie.utils.fs import atomic_write, check_relative_path, is_within


@pytest.mark.parametrize(
    "path",
    ["main.py", "src/app/main.py", "README.md", ".env.example", "a b/c d.txt", "..hidden"],
)
def test_check_relative_path_accepts_safe_paths(path: str) -> None:
    assert check_relative_path(path) == PurePosixPath(path)


@pytest.mark.parametrize(
    ("path", "message"),
    [
        ("", "empty"),
        ("   ", "empty"),
        ("a\x00b", "NUL"),
        ("src\\main.py", "backslash"),
        ("/etc/passwd", "absolute"),
        ("C:/Windows/system.ini", "absolute"),
        ("../escape.txt", "forbidden segment"),
        ("src/../../escape.txt", "forbidden segment"),
        ("./main.py", "forbidden segment"),
        ("src//main.py", "forbidden segment"),
        ("src/", "forbidden segment"),
    ],
)
def test_check_relative_path_rejects_unsafe_paths(path: str, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        check_relative_path(path)


def test_check_relative_path_requires_string() -> None:
    with pytest.raises(TypeError):
        check_relative_path(PurePosixPath("a.txt"))  # type: ignore[arg-type]


def test_atomic_write_replaces_content_and_cleans_temp_files(tmp_path: Path) -> None:
    target = tmp_path / "out.txt"

    atomic_write(target, "first")
    atomic_write(target, b"second")

    assert target.read_bytes() == b"second"
    assert [item.name for item in tmp_path.iterdir()] == ["out.txt"]


def test_atomic_write_requires_existing_parent(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        atomic_write(tmp_path / "missing" / "out.txt", "x")


def test_is_within_follows_symlinks(tmp_path: Path) -> None:
    root = tmp_path / "root"
    outside = tmp_path / "outside"
    root.mkdir()
    outside.mkdir()
    (root / "inner").mkdir()
    (root / "link").symlink_to(outside, target_is_directory=True)

    assert is_within(root / "inner" / "new.txt", root)
    assert not is_within(root / "link" / "new.txt", root)
    assert not is_within(tmp_path / "other.txt", root)
    assert not is_within(root / "x", tmp_path / "does-not-exist")
