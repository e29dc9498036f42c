"""
project-genie — generation runner

File: src/project_genie/generation/runner.py
Last updated: 2026-10-19

Purpose
- Sequences one full run: synthesis on request, then the artifact pipeline, then
  the summary artifact.

Functional requirements
- The summary stage starts only after every artifact was generated and written.
- The result reports every path written, in write order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from project_genie.domain.models import GeneratedArtifact, GenerationContext, ProjectSpec
from project_genie.generation.pipeline import EventCallback, generate_artifacts
from project_genie.generation.settings import GenerationSettings
from project_genie.generation.summary import generate_summary
from project_genie.generation.synthesizer import synthesize
from project_genie.service.client import ServiceClient
from project_genie.store.artifact_store import ArtifactStore
from project_genie.utils.concurrency import CancellationToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GenerationResult:
    """Everything one completed run produced."""

    spec: ProjectSpec
    context: GenerationContext
    summary: GeneratedArtifact

    @property
    def written_paths(self) -> tuple[str, ...]:
        paths = list(self.context.paths)
        if self.summary.path not in paths:
            paths.append(self.summary.path)
        return tuple(paths)


class ProjectGenerator:
    """Runs the generation stages against one service client."""

    def __init__(self, client: ServiceClient, settings: GenerationSettings | None = None) -> None:
        self._client = client
        self._settings = settings or GenerationSettings()

    @property
    def settings(self) -> GenerationSettings:
        return self._settings

    async def synthesize(
        self,
        request_text: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> ProjectSpec:
        return await synthesize(
            request_text,
            self._client,
            temperature=self._settings.temperature,
            model=self._settings.model,
            cancel_token=cancel_token,
        )

    async def generate(
        self,
        spec: ProjectSpec,
        store: ArtifactStore,
        *,
        cancel_token: CancellationToken | None = None,
        on_event: EventCallback | None = None,
    ) -> GenerationResult:
        context = await generate_artifacts(
            spec,
            store,
            self._client,
            settings=self._settings,
            cancel_token=cancel_token,
            on_event=on_event,
        )
        summary = await generate_summary(
            spec,
            context,
            store,
            self._client,
            settings=self._settings,
            cancel_token=cancel_token,
            on_event=on_event,
        )
        result = GenerationResult(spec=spec, context=context, summary=summary)
        logger.info(
            "project generated",
            extra={"project": spec.name, "written_count": len(result.written_paths)},
        )
        return result


__all__ = ["GenerationResult", "GenerationSettings", "ProjectGenerator"]
