"""
project-genie — specification synthesizer

File: src/project_genie/generation/synthesizer.py
Last updated: 2026-10-19

Purpose
- Turns a free-form project request into a validated ``ProjectSpec`` with one
  service call.

Functional requirements
- The response may be wrapped in a JSON or YAML code fence; the fence is removed
  before decoding.
- JSON is tried first, then YAML, so a YAML answer still decodes.
- Decoding or shape failures raise ``SpecParseError`` with a short excerpt of the
  response; service failures are attributed to the synthesis stage.
- One attempt, no retry.
"""

from __future__ import annotations

import json
import logging

import yaml

from project_genie.constants import DEFAULT_TEMPERATURE
from project_genie.domain.errors import STAGE_SYNTHESIS, ServiceError, SpecParseError
from project_genie.domain.models import ProjectSpec
from project_genie.generation.prompts import build_spec_messages
from project_genie.generation.sanitizer import strip_structured_fence
from project_genie.observability.logging import correlation_scope
from project_genie.service.client import ServiceClient
from project_genie.utils.concurrency import CancellationToken

logger = logging.getLogger(__name__)

_EXCERPT_CHARS = 200


async def synthesize(
    request_text: str,
    client: ServiceClient,
    *,
    temperature: float = DEFAULT_TEMPERATURE,
    model: str | None = None,
    cancel_token: CancellationToken | None = None,
) -> ProjectSpec:
    """Ask the service for a project spec describing ``request_text``."""

    with correlation_scope(stage=STAGE_SYNTHESIS, artifact_path=None):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        prompt = build_spec_messages(request_text)
        logger.info(
            "synthesizing project spec",
            extra={"request_chars": len(request_text), "prompt_hash": prompt.prompt_hash},
        )
        try:
            raw = await client.complete(prompt.messages, temperature=temperature, model=model)
        except ServiceError as exc:
            raise exc.with_progress(stage=STAGE_SYNTHESIS)

        spec = parse_spec_response(raw)
        logger.info(
            "project spec synthesized",
            extra={"project": spec.name, "artifact_count": len(spec.artifacts)},
        )
        return spec


def parse_spec_response(raw: str) -> ProjectSpec:
    """Decode a (possibly fenced) JSON or YAML spec document."""

    cleaned = strip_structured_fence(raw)
    payload = _decode(cleaned)
    try:
        return ProjectSpec.from_mapping(payload)
    except ValueError as exc:
        raise SpecParseError(f"invalid project spec: {exc}", excerpt=_excerpt(cleaned)) from exc


def _decode(text: str) -> object:
    try:
        return json.loads(text)
    except ValueError as json_exc:
        # Covers JSONDecodeError and the integer-digit limit of int().
        try:
            payload = yaml.safe_load(text)
        except (yaml.YAMLError, ValueError):
            payload = None
        if not isinstance(payload, dict):
            raise SpecParseError(
                f"response is not valid JSON: {_describe_json_error(json_exc)}",
                excerpt=_excerpt(text),
            ) from json_exc
        return payload


def _describe_json_error(exc: ValueError) -> str:
    if isinstance(exc, json.JSONDecodeError):
        return f"{exc.msg} at line {exc.lineno}"
    return str(exc)


def _excerpt(text: str) -> str:
    if len(text) <= _EXCERPT_CHARS:
        return text
    return text[:_EXCERPT_CHARS] + "..."


__all__ = ["parse_spec_response", "synthesize"]
