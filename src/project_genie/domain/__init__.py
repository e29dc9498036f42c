"""Domain models and errors for project generation."""

from project_genie.domain.errors import (
    ArtifactWriteError,
    ContextBudgetExceededError,
    GenerationError,
    ServiceError,
    SpecParseError,
    ValidationError,
)
from project_genie.domain.models import (
    CompletedArtifact,
    GeneratedArtifact,
    GenerationContext,
    ProjectSpec,
)

__all__ = [
    "ArtifactWriteError",
    "CompletedArtifact",
    "ContextBudgetExceededError",
    "GeneratedArtifact",
    "GenerationContext",
    "GenerationError",
    "ProjectSpec",
    "ServiceError",
    "SpecParseError",
    "ValidationError",
]
