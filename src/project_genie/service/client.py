"""
project-genie — generative service client

File: src/project_genie/service/client.py
Last updated: 2026-10-19

Purpose
- The narrow interface the generation stages use to talk to a text-generation service,
  plus its adapter over the provider layer and a config-driven factory.

Functional requirements
- ``complete`` takes an ordered list of role-tagged messages and a temperature and
  returns the text of the first completion choice.
- Every provider failure, and an empty completion, becomes ``ServiceError``; error
  details are secret-redacted before they reach callers.
- Stage and artifact attribution is added by the caller, which knows where it is.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Protocol, runtime_checkable

from project_genie.constants import DEFAULT_MAX_OUTPUT_TOKENS
from project_genie.domain.errors import ServiceError
from project_genie.security.redaction import redact_text
from project_genie.service.providers.anthropic_adapter import AnthropicProvider
from project_genie.service.providers.base import (
    ChatMessage,
    ProviderError,
    ProviderProtocol,
    ProviderRegistry,
    ProviderRequest,
)
from project_genie.service.providers.openai_adapter import OpenAIProvider

logger = logging.getLogger(__name__)

_SERVICE_STAGE = "service"


@runtime_checkable
class ServiceClient(Protocol):
    """Chat-completion interface consumed by synthesis, artifact and summary stages."""

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        temperature: float,
        model: str | None = None,
    ) -> str:
        """Return the text of the first completion choice for ``messages``."""


class ProviderServiceClient:
    """``ServiceClient`` backed by one provider adapter."""

    def __init__(
        self,
        provider: ProviderProtocol,
        *,
        default_model: str,
        max_tokens: int | None = DEFAULT_MAX_OUTPUT_TOKENS,
    ) -> None:
        if not default_model or not default_model.strip():
            raise ValueError("default_model cannot be empty")
        self._provider = provider
        self._default_model = default_model.strip()
        self._max_tokens = max_tokens

    @property
    def provider_name(self) -> str:
        return self._provider.provider_name

    @property
    def default_model(self) -> str:
        return self._default_model

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        temperature: float,
        model: str | None = None,
    ) -> str:
        resolved_model = model or self._default_model
        try:
            request = ProviderRequest(
                model=resolved_model,
                messages=tuple(messages),
                temperature=temperature,
                max_tokens=self._max_tokens,
            )
        except (TypeError, ValueError) as exc:
            raise ServiceError(
                f"invalid service request: {exc}",
                stage=_SERVICE_STAGE,
                provider=self.provider_name,
            ) from exc

        try:
            response = await self._provider.send(request)
        except ProviderError as exc:
            raise ServiceError(
                redact_text(exc.detail),
                stage=_SERVICE_STAGE,
                provider=exc.provider,
                provider_code=exc.code,
            ) from exc

        logger.debug(
            "service call completed",
            extra={
                "provider": self.provider_name,
                "model": response.model,
                "prompt_chars": request.prompt_chars(),
                "response_chars": len(response.raw_text),
                "usage": response.usage.to_dict(),
                "finish_reason": response.finish_reason,
            },
        )

        if not response.raw_text.strip():
            raise ServiceError(
                "service returned an empty completion",
                stage=_SERVICE_STAGE,
                provider=self.provider_name,
                provider_code="empty_response",
            )
        return response.raw_text


def build_provider_registry(
    provider_config: Mapping[str, object],
    *,
    api_key: str | None = None,
) -> ProviderRegistry:
    """Register adapter factories for every supported provider from ``[provider]`` config."""

    registry = ProviderRegistry()
    openai_cfg = _section(provider_config, "openai")
    anthropic_cfg = _section(provider_config, "anthropic")

    registry.register(
        "openai",
        lambda: OpenAIProvider(
            model=str(openai_cfg["model"]),
            api_key=api_key,
            api_key_env=_optional_str(openai_cfg.get("api_key_env")),
            base_url=_optional_str(openai_cfg.get("base_url")),
            timeout_seconds=_optional_float(openai_cfg.get("timeout_seconds")),
        ),
    )
    registry.register(
        "anthropic",
        lambda: AnthropicProvider(
            model=str(anthropic_cfg["model"]),
            api_key=api_key,
            api_key_env=_optional_str(anthropic_cfg.get("api_key_env")),
            base_url=_optional_str(anthropic_cfg.get("base_url")),
            timeout_seconds=_optional_float(anthropic_cfg.get("timeout_seconds")),
            max_tokens=int(anthropic_cfg.get("max_tokens", DEFAULT_MAX_OUTPUT_TOKENS)),
        ),
    )
    return registry


def build_service_client(
    config: Mapping[str, object],
    *,
    api_key: str | None = None,
) -> ProviderServiceClient:
    """Create the service client for the configured default provider."""

    provider_config = _section(config, "provider")
    name = str(provider_config.get("default", "openai"))
    registry = build_provider_registry(provider_config, api_key=api_key)
    provider = registry.get(name)
    provider_section = _section(provider_config, name)
    return ProviderServiceClient(
        provider,
        default_model=str(provider_section["model"]),
        max_tokens=int(provider_section.get("max_tokens", DEFAULT_MAX_OUTPUT_TOKENS)),
    )


def _section(mapping: Mapping[str, object], key: str) -> Mapping[str, object]:
    value = mapping.get(key)
    if not isinstance(value, Mapping):
        raise ValueError(f"config section {key!r} is missing")
    return value


def _optional_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _optional_float(value: object) -> float | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


__all__ = [
    "ChatMessage",
    "ProviderServiceClient",
    "ServiceClient",
    "build_provider_registry",
    "build_service_client",
]
