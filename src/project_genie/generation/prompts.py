"""
project-genie — prompt construction

File: src/project_genie/generation/prompts.py
Last updated: 2026-10-19

Purpose
- Renders the synthesis, artifact, and summary prompts from strict templates.

Functional requirements
- Must render prompts deterministically for the same inputs.
- Previously completed artifacts are rendered in the order they were generated,
  never in mapping order.
- Every rendered prompt carries a sha256 hash so logs can correlate prompts
  without recording their content.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final

from jinja2 import Environment, StrictUndefined

from project_genie.domain.models import CompletedArtifact, ProjectSpec
from project_genie.service.providers.base import ChatMessage
from project_genie.utils.hashing import sha256_text

SPEC_SYSTEM_INSTRUCTION: Final[str] = (
    "Think through this step by step:\n"
    "1. Understand the core requirements\n"
    "2. Identify the best framework and technologies\n"
    "3. Break down the components needed\n"
    "4. Plan the file structure\n"
    "5. Create a comprehensive project specification\n"
    "\n"
    "Generate a JSON project specification that includes:\n"
    "- Project name\n"
    "- Project type (web, mobile, cli, etc.)\n"
    "- Framework recommendation\n"
    "- List of required components\n"
    "- File structure (provide all the files and their descriptions required for "
    "production ready code)\n"
    "- Project description\n"
    "\n"
    "Respond only with valid JSON in the following structure:\n"
    "{\n"
    '  "name": "project-name",\n'
    '  "type": "project-type",\n'
    '  "framework": "framework-name",\n'
    '  "components": ["component1", "component2"],\n'
    '  "files": {\n'
    '    "path/to/file": "description and prompt to generate the file, including import chains"\n'
    "  },\n"
    '  "description": "project description"\n'
    "}"
)

ARTIFACT_SYSTEM_INSTRUCTION: Final[str] = (
    "You are an expert programmer. Generate only the code, no explanations or markdown."
)

SUMMARY_SYSTEM_INSTRUCTION: Final[str] = (
    "Generate a comprehensive README.md file in markdown format."
)

OMITTED_BODY_MARKER: Final[str] = "[content omitted to fit the context budget]"

_ARTIFACT_TEMPLATE: Final[str] = """\
Generate the complete code for the file {{ path }} in the {{ project_name }} project.
Project Description: {{ description }}
File Purpose: {{ purpose }}

Requirements:
- Use {{ framework }} framework
- Follow best practices
- Include necessary imports
- Add helpful comments
- Make sure the code is complete and functional
- Ensure compatibility with other project files
{{ context_block }}
Generate only the code, no explanations."""

_SUMMARY_TEMPLATE: Final[str] = """\
Generate a comprehensive README.md for the {{ project_name }} project.
Description: {{ description }}
Framework: {{ framework }}
Components: {{ components }}

Project Structure:{{ context_block }}

Include:
1. Project overview
2. Setup instructions
3. Usage examples
4. Component descriptions
5. Dependencies
"""

_ENVIRONMENT = Environment(
    undefined=StrictUndefined,
    autoescape=False,
    trim_blocks=False,
    lstrip_blocks=False,
    newline_sequence="\n",
    keep_trailing_newline=True,
)
_ARTIFACT = _ENVIRONMENT.from_string(_ARTIFACT_TEMPLATE)
_SUMMARY = _ENVIRONMENT.from_string(_SUMMARY_TEMPLATE)


@dataclass(frozen=True, slots=True)
class RenderedPrompt:
    """Ordered messages for one service call plus a deterministic hash."""

    messages: tuple[ChatMessage, ...]
    prompt_hash: str

    @property
    def prompt_chars(self) -> int:
        """Size counted against the context budget: instruction plus user prompt."""

        return sum(len(message.content) for message in self.messages)

    @property
    def user_prompt(self) -> str:
        return "\n".join(message.content for message in self.messages if message.role == "user")


def build_spec_messages(request_text: str) -> RenderedPrompt:
    """Synthesis prompt: the fixed instruction plus the user's request verbatim."""

    return _assemble(SPEC_SYSTEM_INSTRUCTION, request_text)


def build_artifact_messages(
    spec: ProjectSpec,
    path: str,
    completed: Iterable[CompletedArtifact],
) -> RenderedPrompt:
    """Prompt for one artifact, embedding every artifact completed before it."""

    prompt = _ARTIFACT.render(
        path=path,
        project_name=spec.name,
        description=spec.description,
        purpose=spec.artifacts.get(path, ""),
        framework=spec.framework,
        context_block=_context_block(completed, heading="\nPreviously generated files:\n"),
    )
    return _assemble(ARTIFACT_SYSTEM_INSTRUCTION, prompt)


def build_summary_messages(
    spec: ProjectSpec,
    completed: Iterable[CompletedArtifact],
) -> RenderedPrompt:
    """Prompt for the project summary, embedding every completed artifact."""

    prompt = _SUMMARY.render(
        project_name=spec.name,
        description=spec.description,
        framework=spec.framework,
        components=", ".join(spec.components),
        context_block=_context_block(completed, heading=""),
    )
    return _assemble(SUMMARY_SYSTEM_INSTRUCTION, prompt)


def omit_body(artifact: CompletedArtifact) -> CompletedArtifact:
    """Copy of ``artifact`` whose body is replaced by the omission marker."""

    return CompletedArtifact(path=artifact.path, body=OMITTED_BODY_MARKER)


def _context_block(completed: Iterable[CompletedArtifact], *, heading: str) -> str:
    sections = [f"\n{record.path}:\n```\n{record.body}\n```\n" for record in completed]
    if not sections:
        return ""
    return heading + "".join(sections)


def _assemble(system: str, user: str) -> RenderedPrompt:
    messages = (
        ChatMessage(role="system", content=system),
        ChatMessage(role="user", content=_normalize_newlines(user)),
    )
    digest = sha256_text("\n\n".join(f"{m.role}:{m.content}" for m in messages))
    return RenderedPrompt(messages=messages, prompt_hash=digest)


def _normalize_newlines(value: str) -> str:
    return value.replace("\r\n", "\n").replace("\r", "\n")


__all__ = [
    "ARTIFACT_SYSTEM_INSTRUCTION",
    "OMITTED_BODY_MARKER",
    "SPEC_SYSTEM_INSTRUCTION",
    "SUMMARY_SYSTEM_INSTRUCTION",
    "RenderedPrompt",
    "build_artifact_messages",
    "build_spec_messages",
    "build_summary_messages",
    "omit_body",
]
