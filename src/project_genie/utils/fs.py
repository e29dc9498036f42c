"""
project-genie — filesystem utilities

File: src/project_genie/utils/fs.py
Last updated: 2026-10-19

Purpose
- Provide safe, minimal filesystem helpers for atomic writes and relative path checks.

Functional requirements
- Atomic writes use temp files in the destination directory and replace in a single step.
- Relative paths supplied by the generative service never resolve outside their root.

Non-functional requirements
- Standard library only and cross-platform behavior where feasible.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path, PurePosixPath, PureWindowsPath

PathLike = str | os.PathLike[str]

__all__ = [
    "atomic_write",
    "check_relative_path",
    "is_within",
]

_FORBIDDEN_SEGMENTS = frozenset({"", ".", ".."})


def atomic_write(path: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    """
    Atomically write ``data`` to ``path``.

    The write strategy is:
    1. create temp file in the same directory,
    2. write + flush + fsync file data,
    3. replace target via ``os.replace``.
    """

    target = Path(path)
    target_parent = target.parent.resolve(strict=True)
    if not target_parent.is_dir():
        raise NotADirectoryError(f"{target_parent!s} is not a directory")

    fd, temp_name = tempfile.mkstemp(
        prefix=f".{target.name}.",
        suffix=".tmp",
        dir=str(target_parent),
    )
    temp_path = Path(temp_name)

    try:
        payload = data if isinstance(data, bytes) else data.encode(encoding)
        with os.fdopen(fd, "wb") as file_handle:
            file_handle.write(payload)
            file_handle.flush()
            os.fsync(file_handle.fileno())

        os.replace(temp_path, target)
        _fsync_directory(target_parent)
    except Exception:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise


def check_relative_path(path: str) -> PurePosixPath:
    """
    Return ``path`` as a ``PurePosixPath`` if it is a safe relative path.

    Rejects empty paths, absolute paths (POSIX or drive-qualified), backslash
    separators, NUL bytes, and any empty, ``.`` or ``..`` segment. Raises
    ``ValueError`` naming the first violated rule.
    """

    if not isinstance(path, str):
        raise TypeError(f"path must be a string, got {type(path).__name__}")
    if not path.strip():
        raise ValueError("path is empty")
    if "\x00" in path:
        raise ValueError("path contains a NUL byte")
    if "\\" in path:
        raise ValueError("path uses backslash separators")
    if path.startswith("/") or PureWindowsPath(path).drive:
        raise ValueError("path is absolute")
    for segment in path.split("/"):
        if segment in _FORBIDDEN_SEGMENTS:
            raise ValueError(f"path has a forbidden segment {segment!r}")
    return PurePosixPath(path)


def is_within(child: PathLike, parent: PathLike) -> bool:
    """Return ``True`` if ``child`` resolves (symlinks included) inside ``parent``."""

    try:
        resolved_parent = Path(parent).resolve(strict=True)
    except FileNotFoundError:
        return False
    if not resolved_parent.is_dir():
        return False

    # Non-strict: the child may not exist yet.
    resolved_child = Path(child).resolve(strict=False)
    return _is_relative_to(resolved_child, resolved_parent)


def _is_relative_to(child: Path, parent: Path) -> bool:
    try:
        child.relative_to(parent)
    except ValueError:
        return False
    return True


def _fsync_directory(path: Path) -> None:
    """
    Best-effort directory fsync for metadata durability after ``os.replace``.

    Some platforms/filesystems do not support fsync on directories.
    """

    if os.name == "nt":
        return

    flags = os.O_RDONLY
    if hasattr(os, "O_DIRECTORY"):
        flags |= os.O_DIRECTORY

    try:
        dir_fd = os.open(path, flags)
    except OSError:
        return

    try:
        os.fsync(dir_fd)
    except OSError:
        return
    finally:
        os.close(dir_fd)
