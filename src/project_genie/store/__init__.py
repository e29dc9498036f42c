"""Artifact persistence."""

from project_genie.store.artifact_store import PROJECT_ROOT, ArtifactStore, FilesystemArtifactStore

__all__ = ["PROJECT_ROOT", "ArtifactStore", "FilesystemArtifactStore"]
