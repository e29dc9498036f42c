"""
project-genie — artifact generation pipeline

File: src/project_genie/generation/pipeline.py
Last updated: 2026-10-19

Purpose
- Generates every artifact named by a ``ProjectSpec``, one service call per
  artifact, feeding each completed artifact into the prompts that follow it.

Functional requirements
- Every artifact path is validated before the first service call, including
  paths that would have to be both a file and a directory.
- Artifacts are generated strictly sequentially in lexicographic path order.
- For each artifact: check cancellation, build the prompt from the ordered
  context, enforce the context budget, call the service, sanitize, ensure the
  container, write the body as UTF-8, then append it to the context.
- The first failure aborts the run. Artifacts already written stay in the store;
  the raised error names the failing artifact and lists what was written.
- No retry.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Literal, TypeAlias

from project_genie.domain.errors import (
    STAGE_ARTIFACT,
    ArtifactWriteError,
    GenerationError,
    ValidationError,
)
from project_genie.domain.models import (
    CompletedArtifact,
    GeneratedArtifact,
    GenerationContext,
    ProjectSpec,
)
from project_genie.generation.prompts import build_artifact_messages
from project_genie.generation.sanitizer import sanitize
from project_genie.generation.settings import GenerationSettings
from project_genie.observability.logging import correlation_scope
from project_genie.service.client import ServiceClient
from project_genie.store.artifact_store import PROJECT_ROOT, ArtifactStore
from project_genie.utils.concurrency import CancellationToken
from project_genie.utils.fs import check_relative_path
from project_genie.utils.hashing import sha256_text

logger = logging.getLogger(__name__)

EventKind: TypeAlias = Literal[
    "artifact_started",
    "artifact_written",
    "summary_started",
    "summary_written",
]


@dataclass(frozen=True, slots=True)
class GenerationEvent:
    """Progress notification emitted while a run advances."""

    kind: EventKind
    path: str
    index: int
    total: int


EventCallback: TypeAlias = Callable[[GenerationEvent], None]


def validate_artifact_paths(spec: ProjectSpec) -> tuple[str, ...]:
    """Check every artifact path and return them in generation order."""

    try:
        check_relative_path(spec.name)
    except ValueError as exc:
        raise ValidationError(f"unsafe project name {spec.name!r}: {exc}") from exc
    ordered = spec.sorted_artifact_paths()
    for path in ordered:
        try:
            check_relative_path(path)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"unsafe artifact path: {exc}", artifact_path=path) from exc

    # A path cannot be both a file and the directory of another file.
    directories = {
        parent.as_posix() for path in ordered for parent in PurePosixPath(path).parents
    }
    for path in ordered:
        if path in directories:
            raise ValidationError(
                "artifact path is also a directory of another artifact", artifact_path=path
            )
    return ordered


async def generate_artifacts(
    spec: ProjectSpec,
    store: ArtifactStore,
    client: ServiceClient,
    *,
    settings: GenerationSettings | None = None,
    cancel_token: CancellationToken | None = None,
    on_event: EventCallback | None = None,
) -> GenerationContext:
    """Generate and persist every artifact of ``spec`` in lexicographic order."""

    run_settings = settings or GenerationSettings()
    ordered = validate_artifact_paths(spec)
    context = GenerationContext()
    total = len(ordered)

    with correlation_scope(stage=STAGE_ARTIFACT):
        _ensure_container(store, PROJECT_ROOT, artifact_path=PROJECT_ROOT, written=())
        logger.info(
            "artifact generation started",
            extra={"project": spec.name, "artifact_count": total},
        )

        for index, path in enumerate(ordered, start=1):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            with correlation_scope(artifact_path=path):
                _emit(on_event, GenerationEvent("artifact_started", path, index, total))
                try:
                    artifact = await _generate_one(spec, path, context, client, run_settings)
                    _persist(store, artifact, written=context.paths)
                except GenerationError as exc:
                    logger.error(
                        "artifact generation failed",
                        extra={"error_code": exc.code, "written_count": len(context)},
                    )
                    raise exc.with_progress(artifact_path=path, written_paths=context.paths)
                context.append(artifact.completed())
                _emit(on_event, GenerationEvent("artifact_written", path, index, total))

        logger.info(
            "artifact generation completed",
            extra={"artifact_count": total, "context_chars": context.total_body_chars},
        )
    return context


async def _generate_one(
    spec: ProjectSpec,
    path: str,
    context: GenerationContext,
    client: ServiceClient,
    settings: GenerationSettings,
) -> GeneratedArtifact:
    prompt = settings.budget.fit(
        lambda records: build_artifact_messages(spec, path, records),
        context.completed,
        stage=STAGE_ARTIFACT,
        artifact_path=path,
        written_paths=context.paths,
    )
    raw = await client.complete(
        prompt.messages,
        temperature=settings.temperature,
        model=settings.model,
    )
    body = sanitize(raw, strategy=settings.fence_strategy)
    logger.debug(
        "artifact body generated",
        extra={
            "prompt_chars": prompt.prompt_chars,
            "prompt_hash": prompt.prompt_hash,
            "response_chars": len(raw),
            "body_chars": len(body),
            "body_sha256": sha256_text(body),
        },
    )
    return GeneratedArtifact(path=path, body=body, raw_response=raw)


def _persist(store: ArtifactStore, artifact: GeneratedArtifact, *, written: Sequence[str]) -> None:
    parent = PurePosixPath(artifact.path).parent.as_posix()
    container = PROJECT_ROOT if parent == "." else parent
    _ensure_container(store, container, artifact_path=artifact.path, written=written)
    try:
        store.write(artifact.path, artifact.body.encode("utf-8"))
    except OSError as exc:
        raise ArtifactWriteError(
            f"unable to write artifact: {exc}",
            artifact_path=artifact.path,
            written_paths=written,
        ) from exc


def _ensure_container(
    store: ArtifactStore,
    container: str,
    *,
    artifact_path: str,
    written: Sequence[str],
) -> None:
    try:
        store.ensure_container(container)
    except OSError as exc:
        raise ArtifactWriteError(
            f"unable to create container {container or '.'!r}: {exc}",
            artifact_path=artifact_path,
            written_paths=written,
        ) from exc


def _emit(callback: EventCallback | None, event: GenerationEvent) -> None:
    if callback is not None:
        callback(event)


__all__ = [
    "EventCallback",
    "EventKind",
    "GenerationEvent",
    "generate_artifacts",
    "validate_artifact_paths",
]
