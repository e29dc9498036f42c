"""
Unit tests for provider models and the OpenAI/Anthropic adapters.

Coverage:
- Request/response models and the deterministic error taxonomy.
- Adapter payload shape and response normalization against scripted SDK clients.
- API key resolution without touching the network.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

import pytest

from project_genie.service.providers.anthropic_adapter import AnthropicProvider
from project_genie.service.providers.base import (
    ChatMessage,
    ProviderAuthenticationError,
    ProviderContextLengthError,
    ProviderError,
    ProviderInvalidRequestError,
    ProviderRateLimitError,
    ProviderRegistry,
    ProviderRequest,
    ProviderResponseError,
    ProviderServiceError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    classify_exception,
    derive_idempotency_key,
    normalize_usage,
)
from project_genie.service.providers.openai_adapter import OpenAIProvider


@dataclass(slots=True)
class _ScriptedCreate:
    outcomes: deque[object | Exception]
    calls: list[dict[str, object]] = field(default_factory=list)

    async def create(self, **kwargs: object) -> object:
        self.calls.append(dict(kwargs))
        if not self.outcomes:
            raise RuntimeError("scripted sdk outcomes exhausted")
        outcome = self.outcomes.popleft()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@dataclass(slots=True)
class _FakeOpenAIChat:
    completions: _ScriptedCreate


@dataclass(slots=True)
class _FakeOpenAIClient:
    chat: _FakeOpenAIChat


@dataclass(slots=True)
class _FakeAnthropicClient:
    messages: _ScriptedCreate


class RateLimitError(Exception):
    status_code = 429


class AuthenticationError(Exception):
    status_code = 401


class APITimeoutError(Exception):
    pass


class BadRequestError(Exception):
    status_code = 400


class InternalServerError(Exception):
    status_code = 503


def _request(**overrides: object) -> ProviderRequest:
    values: dict[str, object] = {
        "model": "model-x",
        "messages": (
            ChatMessage("system", "You are an expert programmer."),
            ChatMessage("user", "Generate main.py"),
        ),
        "temperature": 0.2,
        "max_tokens": 512,
    }
    values.update(overrides)
    return ProviderRequest(**values)  # type: ignore[arg-type]


def _openai(*outcomes: object | Exception) -> tuple[OpenAIProvider, _ScriptedCreate]:
    create = _ScriptedCreate(outcomes=deque(outcomes))
    client = _FakeOpenAIClient(chat=_FakeOpenAIChat(completions=create))
    return OpenAIProvider(model="model-x", client=client), create


def _anthropic(*outcomes: object | Exception) -> tuple[AnthropicProvider, _ScriptedCreate]:
    create = _ScriptedCreate(outcomes=deque(outcomes))
    return AnthropicProvider(model="model-y", client=_FakeAnthropicClient(messages=create)), create


def test_chat_message_rejects_unknown_role() -> None:
    with pytest.raises(ValueError):
        ChatMessage("tool", "x")  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "overrides",
    [
        {"model": "  "},
        {"messages": ()},
        {"temperature": 2.5},
        {"max_tokens": 0},
    ],
)
def test_provider_request_validation(overrides: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        _request(**overrides)


def test_idempotency_key_is_stable_and_content_sensitive() -> None:
    first = derive_idempotency_key(_request(), provider="openai")

    assert first == derive_idempotency_key(_request(), provider="openai")
    assert first != derive_idempotency_key(_request(), provider="anthropic")
    assert first != derive_idempotency_key(_request(temperature=0.3), provider="openai")


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (RateLimitError("slow down"), ProviderRateLimitError),
        (AuthenticationError("bad key"), ProviderAuthenticationError),
        (APITimeoutError("timed out"), ProviderTimeoutError),
        (TimeoutError(), ProviderTimeoutError),
        (BadRequestError("maximum context length exceeded"), ProviderContextLengthError),
        (BadRequestError("unknown parameter"), ProviderInvalidRequestError),
        (InternalServerError("overloaded"), ProviderServiceError),
        (RuntimeError("connection reset"), ProviderServiceError),
    ],
)
def test_classify_exception(exc: Exception, expected: type[ProviderError]) -> None:
    error = classify_exception(exc, provider="openai")

    assert isinstance(error, expected)
    assert error.provider == "openai"


def test_normalize_usage_reads_both_field_spellings() -> None:
    chat = normalize_usage({"usage": {"prompt_tokens": 3, "completion_tokens": 4}})
    messages = normalize_usage({"usage": {"input_tokens": 5, "output_tokens": 6}}, latency_ms=9)

    assert (chat.input_tokens, chat.output_tokens, chat.total_tokens) == (3, 4, 7)
    assert messages.to_dict() == {
        "input_tokens": 5,
        "output_tokens": 6,
        "total_tokens": 11,
        "latency_ms": 9,
    }


def test_registry_lookup_and_errors() -> None:
    registry = ProviderRegistry()
    registry.register("OpenAI", lambda: OpenAIProvider(model="m", api_key="k"))

    assert registry.names() == ("openai",)
    assert registry.is_registered("openai")
    assert isinstance(registry.get("openai"), OpenAIProvider)
    with pytest.raises(ValueError, match="already registered"):
        registry.register("openai", lambda: OpenAIProvider(model="m", api_key="k"))
    with pytest.raises(ProviderUnavailableError):
        registry.get("mistral")


async def test_openai_sends_ordered_messages_and_returns_first_choice() -> None:
    provider, create = _openai(
        {
            "id": "req-1",
            "model": "model-x-2024",
            "choices": [
                {"message": {"content": "print(1)"}, "finish_reason": "stop"},
                {"message": {"content": "ignored"}},
            ],
            "usage": {"prompt_tokens": 10, "completion_tokens": 2},
        }
    )

    response = await provider.send(_request())

    assert response.raw_text == "print(1)"
    assert response.model == "model-x-2024"
    assert response.finish_reason == "stop"
    assert response.request_id == "req-1"
    assert response.usage.total_tokens == 12
    payload = create.calls[0]
    assert payload["model"] == "model-x"
    assert payload["messages"] == [
        {"role": "system", "content": "You are an expert programmer."},
        {"role": "user", "content": "Generate main.py"},
    ]
    assert payload["temperature"] == 0.2
    assert payload["max_tokens"] == 512
    assert "Idempotency-Key" in payload["extra_headers"]  # type: ignore[operator]


async def test_openai_maps_sdk_errors_without_retrying() -> None:
    provider, create = _openai(RateLimitError("slow down"), {"choices": []})

    with pytest.raises(ProviderRateLimitError):
        await provider.send(_request())
    assert len(create.calls) == 1


async def test_openai_rejects_response_without_choices() -> None:
    provider, _ = _openai({"choices": []})

    with pytest.raises(ProviderResponseError):
        await provider.send(_request())


async def test_anthropic_moves_system_prompt_and_joins_text_blocks() -> None:
    provider, create = _anthropic(
        {
            "model": "model-y",
            "content": [
                {"type": "text", "text": "part one, "},
                {"type": "tool_use", "id": "t1"},
                {"type": "text", "text": "part two"},
            ],
            "stop_reason": "end_turn",
            "usage": {"input_tokens": 7, "output_tokens": 3},
        }
    )

    response = await provider.send(_request(temperature=1.6))

    assert response.raw_text == "part one, part two"
    assert response.finish_reason == "end_turn"
    payload = create.calls[0]
    assert payload["system"] == "You are an expert programmer."
    assert payload["messages"] == [{"role": "user", "content": "Generate main.py"}]
    assert payload["temperature"] == 1.0
    assert payload["max_tokens"] == 512


async def test_anthropic_without_text_blocks_is_a_response_error() -> None:
    provider, _ = _anthropic({"content": [{"type": "tool_use"}]})

    with pytest.raises(ProviderResponseError):
        await provider.send(_request())


async def test_missing_api_key_is_an_authentication_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("GENIE_TEST_KEY", raising=False)
    provider = OpenAIProvider(model="model-x", api_key_env="GENIE_TEST_KEY")

    with pytest.raises(ProviderAuthenticationError, match="GENIE_TEST_KEY"):
        await provider.send(_request())


def test_api_key_resolution_prefers_explicit_then_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ANTHROPIC_API_KEY", " env-key ")

    assert AnthropicProvider(model="m", api_key="cli-key")._resolve_api_key() == "cli-key"
    assert AnthropicProvider(model="m")._resolve_api_key() == "env-key"


@pytest.mark.parametrize("provider_type", [OpenAIProvider, AnthropicProvider])
def test_adapters_validate_constructor_fields(provider_type: type) -> None:
    assert provider_type(model="  model-x  ").model == "model-x"
    with pytest.raises(ValueError, match="model cannot be empty"):
        provider_type(model="   ")
    with pytest.raises(TypeError, match="model must be a string"):
        provider_type(model=42)
    with pytest.raises(ValueError, match="api_key cannot be empty"):
        provider_type(model="m", api_key=" ")
