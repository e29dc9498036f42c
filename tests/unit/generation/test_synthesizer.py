"""Unit tests for project spec synthesis."""

from __future__ import annotations

import asyncio
import json

import pytest

from project_genie.domain.errors import ServiceError, SpecParseError
from project_genie.generation.prompts import SPEC_SYSTEM_INSTRUCTION
from project_genie.generation.synthesizer import parse_spec_response, synthesize
from project_genie.utils.concurrency import CancellationToken

_SPEC_JSON = json.dumps(
    {
        "name": "word-count",
        "type": "cli",
        "framework": "Click",
        "components": ["cli"],
        "files": {"wc/cli.py": "entrypoint", "README.txt": "notes"},
        "description": "Counts words",
    }
)


async def test_synthesize_returns_spec_and_sends_fixed_instruction(scripted_client) -> None:
    client = scripted_client(f"```json\n{_SPEC_JSON}\n```")

    spec = await synthesize("count words in files", client, temperature=0.5, model="gpt-x")

    assert spec.name == "word-count"
    assert spec.sorted_artifact_paths() == ("README.txt", "wc/cli.py")
    assert client.system_prompts() == [SPEC_SYSTEM_INSTRUCTION]
    assert client.user_prompts() == ["count words in files"]
    assert client.temperatures == [0.5]
    assert client.models == ["gpt-x"]


async def test_service_failure_is_attributed_to_synthesis(scripted_client) -> None:
    client = scripted_client(ServiceError("rate limited", stage="service", provider="openai"))

    with pytest.raises(ServiceError) as excinfo:
        await synthesize("anything", client)

    assert excinfo.value.stage == "synthesis"
    assert excinfo.value.provider == "openai"


async def test_unparseable_response_raises_spec_parse_error(scripted_client) -> None:
    client = scripted_client("I cannot help with that.")

    with pytest.raises(SpecParseError, match="not valid JSON"):
        await synthesize("anything", client)
    assert len(client.calls) == 1


async def test_cancelled_token_stops_before_the_call(scripted_client) -> None:
    client = scripted_client(_SPEC_JSON)
    token = CancellationToken()
    token.cancel()

    with pytest.raises(asyncio.CancelledError):
        await synthesize("anything", client, cancel_token=token)
    assert client.calls == []


def test_parse_accepts_yaml_documents() -> None:
    spec = parse_spec_response("```yaml\nname: notes\nfiles:\n  main.py: entrypoint\n```")

    assert spec.name == "notes"
    assert dict(spec.artifacts) == {"main.py": "entrypoint"}


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ("[1, 2, 3]", "invalid project spec"),
        ('{"name": "x", "files": {}}', "invalid project spec"),
        ('{"name": "x"}', "invalid project spec"),
        ("just some prose", "not valid JSON"),
        ("key: [unclosed", "not valid JSON"),
    ],
)
def test_parse_rejects_bad_documents(raw: str, message: str) -> None:
    with pytest.raises(SpecParseError, match=message) as excinfo:
        parse_spec_response(raw)

    assert excinfo.value.stage == "synthesis"


@pytest.mark.parametrize(
    "raw",
    ["9" * 5000, '{"name": "x", "files": {"a.txt": "a"}, "size": ' + "9" * 5000],
)
def test_oversized_integers_become_spec_parse_errors(raw: str) -> None:
    with pytest.raises(SpecParseError, match="not valid JSON"):
        parse_spec_response(raw)


def test_parse_error_excerpt_is_truncated() -> None:
    with pytest.raises(SpecParseError) as excinfo:
        parse_spec_response("x" * 500 + " {")

    assert excinfo.value.excerpt.endswith("...")
    assert len(excinfo.value.excerpt) == 203
