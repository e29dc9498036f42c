"""
project-genie — summary artifact generator

File: src/project_genie/generation/summary.py
Last updated: 2026-10-19

Purpose
- Produces the project README from the spec and every completed artifact.

Functional requirements
- Runs once, after the artifact pipeline has completed every artifact.
- The prompt embeds each completed artifact's path and body in generation order.
- The body is sanitized with the summary fence rules and written at the project
  root under the configured name. A failure here never removes artifacts.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath

from project_genie.domain.errors import STAGE_SUMMARY, ArtifactWriteError, GenerationError
from project_genie.domain.models import GeneratedArtifact, GenerationContext, ProjectSpec
from project_genie.generation.pipeline import EventCallback, GenerationEvent
from project_genie.generation.prompts import build_summary_messages
from project_genie.generation.sanitizer import sanitize_summary
from project_genie.generation.settings import GenerationSettings
from project_genie.observability.logging import correlation_scope
from project_genie.service.client import ServiceClient
from project_genie.store.artifact_store import PROJECT_ROOT, ArtifactStore
from project_genie.utils.concurrency import CancellationToken
from project_genie.utils.hashing import sha256_text

logger = logging.getLogger(__name__)


async def generate_summary(
    spec: ProjectSpec,
    context: GenerationContext,
    store: ArtifactStore,
    client: ServiceClient,
    *,
    settings: GenerationSettings | None = None,
    cancel_token: CancellationToken | None = None,
    on_event: EventCallback | None = None,
) -> GeneratedArtifact:
    """Generate and persist the summary artifact for a completed run."""

    run_settings = settings or GenerationSettings()
    path = run_settings.summary_artifact
    written = context.paths

    with correlation_scope(stage=STAGE_SUMMARY, artifact_path=path):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        if path in context:
            logger.warning("summary replaces a generated artifact of the same name")
        if on_event is not None:
            on_event(GenerationEvent("summary_started", path, 1, 1))

        try:
            prompt = run_settings.budget.fit(
                lambda records: build_summary_messages(spec, records),
                context.completed,
                stage=STAGE_SUMMARY,
                artifact_path=path,
                written_paths=written,
            )
            raw = await client.complete(
                prompt.messages,
                temperature=run_settings.temperature,
                model=run_settings.summary_model or run_settings.model,
            )
            body = sanitize_summary(raw)
            parent = PurePosixPath(path).parent.as_posix()
            store.ensure_container(PROJECT_ROOT if parent == "." else parent)
            store.write(path, body.encode("utf-8"))
        except GenerationError as exc:
            logger.error("summary generation failed", extra={"error_code": exc.code})
            raise exc.with_progress(stage=STAGE_SUMMARY, artifact_path=path, written_paths=written)
        except OSError as exc:
            raise ArtifactWriteError(
                f"unable to write summary: {exc}",
                artifact_path=path,
                stage=STAGE_SUMMARY,
                written_paths=written,
            ) from exc

        logger.info(
            "summary written",
            extra={"body_chars": len(body), "body_sha256": sha256_text(body)},
        )
        if on_event is not None:
            on_event(GenerationEvent("summary_written", path, 1, 1))
        return GeneratedArtifact(path=path, body=body, raw_response=raw)


__all__ = ["generate_summary"]
