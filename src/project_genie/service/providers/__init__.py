"""Provider adapters and the normalized request/response/error contract."""

from project_genie.service.providers.anthropic_adapter import AnthropicProvider
from project_genie.service.providers.base import (
    BaseProvider,
    ChatMessage,
    ProviderAuthenticationError,
    ProviderContextLengthError,
    ProviderError,
    ProviderFactory,
    ProviderInvalidRequestError,
    ProviderProtocol,
    ProviderRateLimitError,
    ProviderRegistry,
    ProviderRequest,
    ProviderResponse,
    ProviderResponseError,
    ProviderServiceError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    ProviderUsage,
    classify_exception,
    derive_idempotency_key,
)
from project_genie.service.providers.openai_adapter import OpenAIProvider

__all__ = [
    "AnthropicProvider",
    "BaseProvider",
    "ChatMessage",
    "OpenAIProvider",
    "ProviderAuthenticationError",
    "ProviderContextLengthError",
    "ProviderError",
    "ProviderFactory",
    "ProviderInvalidRequestError",
    "ProviderProtocol",
    "ProviderRateLimitError",
    "ProviderRegistry",
    "ProviderRequest",
    "ProviderResponse",
    "ProviderResponseError",
    "ProviderServiceError",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "ProviderUsage",
    "classify_exception",
    "derive_idempotency_key",
]
