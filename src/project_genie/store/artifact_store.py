"""
project-genie — artifact store

File: src/project_genie/store/artifact_store.py
Last updated: 2026-10-19

Purpose
- Persist generated artifact bodies under a per-project root.

Functional requirements
- ``write`` stores bytes at a relative path; ``ensure_container`` creates the
  directory that will hold a path (``""`` is the project root itself).
- Every path is checked again here so no store write can land outside the root,
  including through a symlinked directory.
- Writes are atomic: a failed write never leaves a truncated artifact behind.
- ``OSError`` is reported as ``ArtifactWriteError`` naming the artifact.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from project_genie.domain.errors import ArtifactWriteError, ValidationError
from project_genie.domain.models import ProjectSpec
from project_genie.utils.fs import atomic_write, check_relative_path, is_within
from project_genie.utils.hashing import sha256_bytes

logger = logging.getLogger(__name__)

PROJECT_ROOT = ""


@runtime_checkable
class ArtifactStore(Protocol):
    """Destination for artifact bodies addressed by relative path."""

    def write(self, path: str, body: bytes) -> None:
        """Persist ``body`` at ``path``, replacing any previous content."""

    def ensure_container(self, path: str) -> None:
        """Make sure the container ``path`` exists; ``""`` is the root."""


class FilesystemArtifactStore:
    """``ArtifactStore`` writing files beneath one root directory."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @classmethod
    def for_project(cls, base_dir: str | Path, spec: ProjectSpec) -> FilesystemArtifactStore:
        """Store rooted at ``base_dir / spec.name``."""

        try:
            check_relative_path(spec.name)
        except ValueError as exc:
            raise ValidationError(f"unsafe project name {spec.name!r}: {exc}") from exc
        return cls(Path(base_dir) / spec.name)

    @property
    def root(self) -> Path:
        return self._root

    def ensure_container(self, path: str) -> None:
        try:
            if path == PROJECT_ROOT:
                self._root.mkdir(parents=True, exist_ok=True)
                return
            target = self._resolve(path)
            target.mkdir(parents=True, exist_ok=True)
            # mkdir may have walked through a symlinked component.
            self._require_within(target, path)
        except OSError as exc:
            raise ArtifactWriteError(
                f"unable to create container: {exc}", artifact_path=path
            ) from exc

    def write(self, path: str, body: bytes) -> None:
        if not isinstance(body, bytes):
            raise TypeError("body must be bytes")
        target = self._resolve(path)
        try:
            self._require_within(target.parent, path)
            atomic_write(target, body)
        except OSError as exc:
            raise ArtifactWriteError(
                f"unable to write artifact: {exc}", artifact_path=path
            ) from exc
        logger.debug(
            "artifact persisted",
            extra={"artifact_path": path, "bytes": len(body), "sha256": sha256_bytes(body)},
        )

    def _resolve(self, path: str) -> Path:
        try:
            relative = check_relative_path(path)
        except ValueError as exc:
            raise ValidationError(f"unsafe artifact path: {exc}", artifact_path=path) from exc
        return self._root.joinpath(*relative.parts)

    def _require_within(self, target: Path, path: str) -> None:
        if not is_within(target, self._root):
            raise ValidationError("artifact path escapes the project root", artifact_path=path)


__all__ = ["PROJECT_ROOT", "ArtifactStore", "FilesystemArtifactStore"]
