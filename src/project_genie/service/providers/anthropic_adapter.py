"""
project-genie — Anthropic provider adapter

File: src/project_genie/service/providers/anthropic_adapter.py
Last updated: 2026-10-19

Purpose
- Anthropic messages adapter (Claude-class models) as an alternative generative service.

Functional requirements
- The system instruction travels in the top-level ``system`` field, not as a message.
- One attempt per request; failures surface as normalized ``ProviderError``s.
"""

from __future__ import annotations

import importlib
import os
import time
from typing import Protocol, cast

from project_genie.constants import DEFAULT_MAX_OUTPUT_TOKENS
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
    validate_non_empty_str,
    validate_optional_str,
)


class _AnthropicMessagesAPI(Protocol):
    async def create(self, **kwargs: object) -> object: ...


class _AnthropicClient(Protocol):
    messages: _AnthropicMessagesAPI


class AnthropicProvider(BaseProvider):
    """Anthropic messages adapter with lazy SDK import and injected client support."""

    provider_name = "anthropic"

    def __init__(
        self,
        *,
        model: str,
        api_key: str | None = None,
        api_key_env: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        max_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
        client: _AnthropicClient | None = None,
    ) -> None:
        self.model = validate_non_empty_str(model, "model")
        self._api_key = validate_optional_str(api_key, "api_key")
        self._api_key_env = validate_optional_str(api_key_env, "api_key_env")
        self._base_url = validate_optional_str(base_url, "base_url")

        if timeout_seconds is not None and timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self._timeout_seconds = timeout_seconds
        if max_tokens <= 0:
            raise ValueError("max_tokens must be > 0")
        self._max_tokens = max_tokens

        self._client = client

    async def send(self, request: ProviderRequest) -> ProviderResponse:
        idempotency_key = derive_idempotency_key(request, provider=self.provider_name)
        payload = self._build_payload(request, idempotency_key=idempotency_key)

        try:
            client = self._ensure_client()
            started = time.perf_counter()
            raw_response = await client.messages.create(**payload)
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

    def _ensure_client(self) -> _AnthropicClient:
        if self._client is not None:
            return self._client
        self._client = self._create_default_client()
        return self._client

    def _create_default_client(self) -> _AnthropicClient:
        try:
            anthropic_module = importlib.import_module("anthropic")
        except ImportError as exc:
            raise ProviderUnavailableError(
                provider=self.provider_name,
                detail="anthropic SDK is not installed",
            ) from exc

        async_anthropic = getattr(anthropic_module, "AsyncAnthropic", None)
        if async_anthropic is None:
            raise ProviderUnavailableError(
                provider=self.provider_name,
                detail="anthropic SDK does not expose AsyncAnthropic",
            )

        init_kwargs: dict[str, object] = {"api_key": self._resolve_api_key(), "max_retries": 0}
        if self._base_url is not None:
            init_kwargs["base_url"] = self._base_url
        if self._timeout_seconds is not None:
            init_kwargs["timeout"] = self._timeout_seconds

        return cast("_AnthropicClient", async_anthropic(**init_kwargs))

    def _resolve_api_key(self) -> str:
        if self._api_key is not None:
            return self._api_key

        if self._api_key_env is not None:
            configured = os.getenv(self._api_key_env)
            if configured is not None and configured.strip():
                return configured.strip()
            if self._api_key_env != "ANTHROPIC_API_KEY":
                raise ProviderAuthenticationError(
                    provider=self.provider_name,
                    detail=f"missing Anthropic API key in configured env var {self._api_key_env}",
                    http_status=401,
                )

        fallback_key = os.getenv("ANTHROPIC_API_KEY")
        if fallback_key is None or not fallback_key.strip():
            raise ProviderAuthenticationError(
                provider=self.provider_name,
                detail="missing Anthropic API key; pass --api-key or set ANTHROPIC_API_KEY",
                http_status=401,
            )
        return fallback_key.strip()

    def _build_payload(
        self, request: ProviderRequest, *, idempotency_key: str
    ) -> dict[str, object]:
        max_tokens = request.max_tokens if request.max_tokens is not None else self._max_tokens
        payload: dict[str, object] = {
            "model": request.model,
            "messages": [message.to_dict() for message in request.conversation()],
            "max_tokens": max_tokens,
            "extra_headers": {"Idempotency-Key": idempotency_key},
        }
        system_prompt = request.system_prompt
        if system_prompt:
            payload["system"] = system_prompt
        if request.temperature is not None:
            # Messages API caps temperature at 1.0.
            payload["temperature"] = min(request.temperature, 1.0)
        return payload

    def _normalize_response(
        self,
        raw_response: object,
        *,
        request: ProviderRequest,
        idempotency_key: str,
        latency_ms: int,
    ) -> ProviderResponse:
        text_chunks: list[str] = []
        for item in read_sequence(raw_response, "content"):
            if (read_str(item, "type") or "").lower() != "text":
                continue
            text_value = read_str(item, "text")
            if text_value:
                text_chunks.append(text_value)

        if not text_chunks:
            raise ProviderResponseError(
                provider=self.provider_name,
                detail="response does not contain text blocks",
            )

        return ProviderResponse(
            model=read_str(raw_response, "model") or request.model,
            raw_text="".join(text_chunks),
            usage=normalize_usage(raw_response, latency_ms=latency_ms),
            finish_reason=read_str(raw_response, "stop_reason"),
            request_id=read_str(raw_response, "id"),
            idempotency_key=idempotency_key,
        )


__all__ = ["AnthropicProvider"]
