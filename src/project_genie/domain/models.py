"""
project-genie — domain models

File: src/project_genie/domain/models.py
Last updated: 2026-10-19

Purpose
- Typed records for the project spec, generated artifacts, and the ordered
  generation context shared by the artifact and summary stages.

Functional requirements
- ``ProjectSpec`` is read-only after construction and validates its shape.
- ``GenerationContext`` keeps an explicit ordered record list; prompt rendering
  iterates that list, and the path index exists only for point lookups.
- The context grows by one record per successful artifact and never shrinks.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TypeAlias

JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

# Wire keys used by the structured spec document.
_KEY_NAME = "name"
_KEY_KIND = "type"
_KEY_FRAMEWORK = "framework"
_KEY_COMPONENTS = "components"
_KEY_ARTIFACTS = "files"
_KEY_ARTIFACTS_ALIAS = "artifacts"
_KEY_DESCRIPTION = "description"


def _validate_non_empty_str(value: object, field_name: str, *, strip: bool = True) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string")
    normalized = value.strip() if strip else value
    if not normalized:
        raise ValueError(f"{field_name} cannot be empty")
    return normalized


def _optional_text(value: object, field_name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string")
    return value.strip()


@dataclass(frozen=True, slots=True)
class ProjectSpec:
    """Structured description of the project to generate."""

    name: str
    artifacts: Mapping[str, str]
    kind: str = ""
    framework: str = ""
    components: tuple[str, ...] = ()
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _validate_non_empty_str(self.name, "ProjectSpec.name"))
        object.__setattr__(self, "kind", _optional_text(self.kind, "ProjectSpec.kind"))
        object.__setattr__(
            self, "framework", _optional_text(self.framework, "ProjectSpec.framework")
        )
        object.__setattr__(
            self, "description", _optional_text(self.description, "ProjectSpec.description")
        )

        if isinstance(self.components, (str, bytes)) or not isinstance(
            self.components, Sequence
        ):
            raise TypeError("ProjectSpec.components must be a list of strings")
        components: list[str] = []
        for index, item in enumerate(self.components):
            components.append(_validate_non_empty_str(item, f"ProjectSpec.components[{index}]"))
        object.__setattr__(self, "components", tuple(components))

        if not isinstance(self.artifacts, Mapping):
            raise TypeError("ProjectSpec.artifacts must be a mapping of path to description")
        if not self.artifacts:
            raise ValueError("ProjectSpec.artifacts cannot be empty")
        artifacts: dict[str, str] = {}
        for path, description in self.artifacts.items():
            # Paths keep their exact spelling; safety checks happen before generation.
            key = _validate_non_empty_str(path, "ProjectSpec.artifacts key", strip=False)
            artifacts[key] = _optional_text(description, f"ProjectSpec.artifacts[{key!r}]")
        object.__setattr__(self, "artifacts", MappingProxyType(artifacts))

    @classmethod
    def from_mapping(cls, payload: object) -> ProjectSpec:
        """Build a spec from the decoded structured document; raises ``ValueError``."""

        if not isinstance(payload, Mapping):
            raise ValueError("spec document must be an object")
        artifacts = payload.get(_KEY_ARTIFACTS)
        if artifacts is None:
            artifacts = payload.get(_KEY_ARTIFACTS_ALIAS)
        if artifacts is None:
            raise ValueError(f"spec document is missing {_KEY_ARTIFACTS!r}")
        name = payload.get(_KEY_NAME)
        if name is None:
            raise ValueError(f"spec document is missing {_KEY_NAME!r}")
        components = payload.get(_KEY_COMPONENTS)
        try:
            return cls(
                name=name,
                kind=payload.get(_KEY_KIND),
                framework=payload.get(_KEY_FRAMEWORK),
                components=() if components is None else components,
                artifacts=artifacts,
                description=payload.get(_KEY_DESCRIPTION),
            )
        except TypeError as exc:
            raise ValueError(str(exc)) from exc

    def sorted_artifact_paths(self) -> tuple[str, ...]:
        """Artifact paths in lexicographic order: the generation order."""

        return tuple(sorted(self.artifacts))

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            _KEY_NAME: self.name,
            _KEY_KIND: self.kind,
            _KEY_FRAMEWORK: self.framework,
            _KEY_COMPONENTS: list(self.components),
            _KEY_ARTIFACTS: {path: self.artifacts[path] for path in self.sorted_artifact_paths()},
            _KEY_DESCRIPTION: self.description,
        }


@dataclass(frozen=True, slots=True)
class CompletedArtifact:
    """One successfully generated and persisted artifact."""

    path: str
    body: str

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "path", _validate_non_empty_str(self.path, "CompletedArtifact.path", strip=False)
        )
        if not isinstance(self.body, str):
            raise TypeError("CompletedArtifact.body must be a string")


@dataclass(frozen=True, slots=True)
class GeneratedArtifact:
    """Result of one service call: sanitized body plus the raw response for diagnostics."""

    path: str
    body: str
    raw_response: str = field(repr=False, default="")

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "path", _validate_non_empty_str(self.path, "GeneratedArtifact.path", strip=False)
        )
        if not isinstance(self.body, str):
            raise TypeError("GeneratedArtifact.body must be a string")
        if not isinstance(self.raw_response, str):
            raise TypeError("GeneratedArtifact.raw_response must be a string")

    def completed(self) -> CompletedArtifact:
        return CompletedArtifact(path=self.path, body=self.body)


@dataclass(slots=True)
class GenerationContext:
    """Append-only, ordered record of artifacts completed so far in one run."""

    _records: list[CompletedArtifact] = field(default_factory=list, init=False, repr=False)
    _by_path: dict[str, str] = field(default_factory=dict, init=False, repr=False)

    def append(self, artifact: CompletedArtifact) -> None:
        if not isinstance(artifact, CompletedArtifact):
            raise TypeError("artifact must be a CompletedArtifact")
        if artifact.path in self._by_path:
            raise ValueError(f"artifact already recorded: {artifact.path}")
        self._records.append(artifact)
        self._by_path[artifact.path] = artifact.body

    @property
    def completed(self) -> tuple[CompletedArtifact, ...]:
        return tuple(self._records)

    @property
    def paths(self) -> tuple[str, ...]:
        return tuple(record.path for record in self._records)

    @property
    def total_body_chars(self) -> int:
        return sum(len(record.body) for record in self._records)

    def get(self, path: str) -> str | None:
        return self._by_path.get(path)

    def __contains__(self, path: object) -> bool:
        return path in self._by_path

    def __iter__(self) -> Iterator[CompletedArtifact]:
        return iter(tuple(self._records))

    def __len__(self) -> int:
        return len(self._records)


__all__ = [
    "CompletedArtifact",
    "GeneratedArtifact",
    "GenerationContext",
    "JSONValue",
    "ProjectSpec",
]
