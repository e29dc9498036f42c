"""
project-genie — generation error taxonomy

File: src/project_genie/domain/errors.py
Last updated: 2026-10-19

Purpose
- Typed errors raised by every generation stage and reported by the command surface.

Functional requirements
- Every error names the stage it came from and, where one applies, the artifact path.
- Errors raised mid-run carry the artifact paths already written so callers can report
  partial output instead of silently dropping it.
- Message format is deterministic: ``stage=... artifact=... detail=...``.
"""

from __future__ import annotations

from collections.abc import Sequence

STAGE_SYNTHESIS = "synthesis"
STAGE_VALIDATION = "validation"
STAGE_ARTIFACT = "artifact"
STAGE_SUMMARY = "summary"


class GenerationError(RuntimeError):
    """Base error for one failed generation stage."""

    code = "generation"

    def __init__(
        self,
        detail: str,
        *,
        stage: str,
        artifact_path: str | None = None,
        written_paths: Sequence[str] = (),
    ) -> None:
        self.detail = _normalize_detail(detail)
        self.stage = stage
        self.artifact_path = artifact_path
        self.written_paths: tuple[str, ...] = tuple(written_paths)
        super().__init__(self._render())

    def _render(self) -> str:
        parts = [f"stage={self.stage}", f"code={self.code}"]
        if self.artifact_path is not None:
            parts.append(f"artifact={self.artifact_path}")
        parts.append(f"detail={self.detail}")
        return " ".join(parts)

    def with_progress(
        self,
        *,
        stage: str | None = None,
        artifact_path: str | None = None,
        written_paths: Sequence[str] | None = None,
    ) -> GenerationError:
        """Attach run progress in place and return ``self`` for ``raise ... from``."""

        if stage is not None:
            self.stage = stage
        if artifact_path is not None:
            self.artifact_path = artifact_path
        if written_paths is not None:
            self.written_paths = tuple(written_paths)
        self.args = (self._render(),)
        return self

    def to_dict(self) -> dict[str, object]:
        return {
            "code": self.code,
            "stage": self.stage,
            "artifact_path": self.artifact_path,
            "detail": self.detail,
            "written_paths": list(self.written_paths),
        }


class ServiceError(GenerationError):
    """The generative service failed or returned no usable content."""

    code = "service"

    def __init__(
        self,
        detail: str,
        *,
        stage: str,
        artifact_path: str | None = None,
        written_paths: Sequence[str] = (),
        provider: str | None = None,
        provider_code: str | None = None,
    ) -> None:
        self.provider = provider
        self.provider_code = provider_code
        super().__init__(
            detail,
            stage=stage,
            artifact_path=artifact_path,
            written_paths=written_paths,
        )

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["provider"] = self.provider
        payload["provider_code"] = self.provider_code
        return payload


class SpecParseError(GenerationError):
    """The synthesis response did not decode into a valid project spec."""

    code = "spec_parse"

    def __init__(self, detail: str, *, excerpt: str = "") -> None:
        self.excerpt = excerpt
        super().__init__(detail, stage=STAGE_SYNTHESIS)


class ArtifactWriteError(GenerationError):
    """Persisting an artifact body or creating its container failed."""

    code = "artifact_write"

    def __init__(
        self,
        detail: str,
        *,
        artifact_path: str,
        stage: str = STAGE_ARTIFACT,
        written_paths: Sequence[str] = (),
    ) -> None:
        super().__init__(
            detail,
            stage=stage,
            artifact_path=artifact_path,
            written_paths=written_paths,
        )


class ValidationError(GenerationError):
    """A spec value (usually an artifact path) is unsafe or malformed."""

    code = "validation"

    def __init__(self, detail: str, *, artifact_path: str | None = None) -> None:
        super().__init__(detail, stage=STAGE_VALIDATION, artifact_path=artifact_path)


class ContextBudgetExceededError(GenerationError):
    """A prompt would exceed the configured context budget."""

    code = "context_budget"

    def __init__(
        self,
        *,
        stage: str,
        artifact_path: str,
        prompt_chars: int,
        max_chars: int,
        written_paths: Sequence[str] = (),
    ) -> None:
        self.prompt_chars = prompt_chars
        self.max_chars = max_chars
        super().__init__(
            f"prompt of {prompt_chars} chars exceeds context budget of {max_chars} chars",
            stage=stage,
            artifact_path=artifact_path,
            written_paths=written_paths,
        )


def _normalize_detail(value: object) -> str:
    text = str(value).strip()
    if not text:
        return "unknown error"
    return " ".join(text.split())


__all__ = [
    "STAGE_ARTIFACT",
    "STAGE_SUMMARY",
    "STAGE_SYNTHESIS",
    "STAGE_VALIDATION",
    "ArtifactWriteError",
    "ContextBudgetExceededError",
    "GenerationError",
    "ServiceError",
    "SpecParseError",
    "ValidationError",
]
