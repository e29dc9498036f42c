"""
project-genie — OpenAI provider adapter

File: src/project_genie/service/providers/openai_adapter.py
Last updated: 2026-10-19

Purpose
- OpenAI chat-completions adapter (GPT-class models).

What should be included in this file
- API client wrapper with lazy SDK import and injected-client support for tests.
- Response normalization into ``ProviderResponse``.

Functional requirements
- One attempt per request; failures surface as normalized ``ProviderError``s.

Non-functional requirements
- Must be configurable and safe; do not hardcode endpoints/keys.
"""

from __future__ import annotations

import importlib
import os
import time
from typing import Protocol, cast

from project_genie.service.providers.base import (
    BaseProvider,
    ProviderAuthenticationError,
    ProviderError,
    ProviderRequest,
    ProviderResponse,
    ProviderResponseError,
    ProviderUnavailableError,
    derive_idempotency_key,
    normalize_usage,
    read_sequence,
    read_str,
    read_value,
    validate_non_empty_str,
    validate_optional_str,
)


class _OpenAICompletionsAPI(Protocol):
    async def create(self, **kwargs: object) -> object: ...


class _OpenAIChatAPI(Protocol):
    completions: _OpenAICompletionsAPI


class _OpenAIClient(Protocol):
    chat: _OpenAIChatAPI


class OpenAIProvider(BaseProvider):
    """OpenAI chat-completions adapter with lazy SDK import and injected client support."""

    provider_name = "openai"

    def __init__(
        self,
        *,
        model: str,
        api_key: str | None = None,
        api_key_env: str | None = None,
        base_url: str | None = None,
        organization: str | None = None,
        timeout_seconds: float | None = None,
        max_tokens: int | None = None,
        client: _OpenAIClient | None = None,
    ) -> None:
        self.model = validate_non_empty_str(model, "model")
        self._api_key = validate_optional_str(api_key, "api_key")
        self._api_key_env = validate_optional_str(api_key_env, "api_key_env")
        self._base_url = validate_optional_str(base_url, "base_url")
        self._organization = validate_optional_str(organization, "organization")

        if timeout_seconds is not None and timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self._timeout_seconds = timeout_seconds
        if max_tokens is not None and max_tokens <= 0:
            raise ValueError("max_tokens must be > 0")
        self._max_tokens = max_tokens

        self._client = client

    async def send(self, request: ProviderRequest) -> ProviderResponse:
        idempotency_key = derive_idempotency_key(request, provider=self.provider_name)
        payload = self._build_payload(request, idempotency_key=idempotency_key)

        try:
            client = self._ensure_client()
            started = time.perf_counter()
            raw_response = await client.chat.completions.create(**payload)
            latency_ms = int((time.perf_counter() - started) * 1000)
        except ProviderError:
            raise
        except Exception as exc:
            raise self.map_exception(exc) from exc

        return self._normalize_response(
            raw_response,
            request=request,
            idempotency_key=idempotency_key,
            latency_ms=latency_ms,
        )

    def _ensure_client(self) -> _OpenAIClient:
        if self._client is not None:
            return self._client
        self._client = self._create_default_client()
        return self._client

    def _create_default_client(self) -> _OpenAIClient:
        try:
            openai_module = importlib.import_module("openai")
        except ImportError as exc:
            raise ProviderUnavailableError(
                provider=self.provider_name,
                detail="openai SDK is not installed",
            ) from exc

        async_openai = getattr(openai_module, "AsyncOpenAI", None)
        if async_openai is None:
            raise ProviderUnavailableError(
                provider=self.provider_name,
                detail="openai SDK does not expose AsyncOpenAI",
            )

        init_kwargs: dict[str, object] = {"api_key": self._resolve_api_key()}
        if self._base_url is not None:
            init_kwargs["base_url"] = self._base_url
        if self._organization is not None:
            init_kwargs["organization"] = self._organization
        if self._timeout_seconds is not None:
            init_kwargs["timeout"] = self._timeout_seconds
        # Retries are the caller's decision; the SDK must not add its own.
        init_kwargs["max_retries"] = 0

        return cast("_OpenAIClient", async_openai(**init_kwargs))

    def _resolve_api_key(self) -> str:
        if self._api_key is not None:
            return self._api_key

        if self._api_key_env is not None:
            configured = os.getenv(self._api_key_env)
            if configured is not None and configured.strip():
                return configured.strip()
            if self._api_key_env != "OPENAI_API_KEY":
                raise ProviderAuthenticationError(
                    provider=self.provider_name,
                    detail=f"missing OpenAI API key in configured env var {self._api_key_env}",
                    http_status=401,
                )

        fallback_key = os.getenv("OPENAI_API_KEY")
        if fallback_key is None or not fallback_key.strip():
            raise ProviderAuthenticationError(
                provider=self.provider_name,
                detail="missing OpenAI API key; pass --api-key or set OPENAI_API_KEY",
                http_status=401,
            )
        return fallback_key.strip()

    def _build_payload(
        self, request: ProviderRequest, *, idempotency_key: str
    ) -> dict[str, object]:
        payload: dict[str, object] = {
            "model": request.model,
            "messages": [message.to_dict() for message in request.messages],
            "extra_headers": {"Idempotency-Key": idempotency_key},
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        max_tokens = request.max_tokens if request.max_tokens is not None else self._max_tokens
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        return payload

    def _normalize_response(
        self,
        raw_response: object,
        *,
        request: ProviderRequest,
        idempotency_key: str,
        latency_ms: int,
    ) -> ProviderResponse:
        choices = read_sequence(raw_response, "choices")
        if not choices:
            raise ProviderResponseError(
                provider=self.provider_name,
                detail="response contained no choices",
            )
        first = choices[0]
        message = read_value(first, "message")
        content = read_value(message, "content") if message is not None else None
        if not isinstance(content, str):
            raise ProviderResponseError(
                provider=self.provider_name,
                detail="first choice has no text content",
            )

        return ProviderResponse(
            model=read_str(raw_response, "model") or request.model,
            raw_text=content,
            usage=normalize_usage(raw_response, latency_ms=latency_ms),
            finish_reason=read_str(first, "finish_reason"),
            request_id=read_str(raw_response, "id"),
            idempotency_key=idempotency_key,
        )


__all__ = ["OpenAIProvider"]
