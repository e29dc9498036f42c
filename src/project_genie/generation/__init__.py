"""Generation stages: spec synthesis, artifact pipeline, and summary."""

from project_genie.generation.budget import ContextBudget
from project_genie.generation.pipeline import (
    GenerationEvent,
    generate_artifacts,
    validate_artifact_paths,
)
from project_genie.generation.runner import GenerationResult, ProjectGenerator
from project_genie.generation.sanitizer import sanitize, sanitize_summary, strip_structured_fence
from project_genie.generation.settings import GenerationSettings
from project_genie.generation.summary import generate_summary
from project_genie.generation.synthesizer import parse_spec_response, synthesize

__all__ = [
    "ContextBudget",
    "GenerationEvent",
    "GenerationResult",
    "GenerationSettings",
    "ProjectGenerator",
    "generate_artifacts",
    "generate_summary",
    "parse_spec_response",
    "sanitize",
    "sanitize_summary",
    "strip_structured_fence",
    "synthesize",
]
