"""
project-genie — provider base models and shared utilities

File: src/project_genie/service/providers/base.py
Last updated: 2026-10-19

Purpose
- Abstract provider interface and common request/response models for chat calls.

What should be included in this file
- Request fields: model, ordered role-tagged messages, temperature, output cap.
- Response fields: text content, token usage, latency, finish reason.
- Error taxonomy shared by every adapter, plus SDK exception classification.

Functional requirements
- One request maps to exactly one SDK call; adapters never retry.
- Identical requests derive identical idempotency keys.

Non-functional requirements
- Must make it easy to add new providers without touching generation logic.
"""

from __future__ import annotations

import abc
import asyncio
import hashlib
import json
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Literal, Protocol, TypeAlias, cast, runtime_checkable

JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

MessageRole: TypeAlias = Literal["system", "user", "assistant"]
_MESSAGE_ROLES: frozenset[str] = frozenset({"system", "user", "assistant"})


def validate_non_empty_str(value: str, field_name: str, *, strip: bool = True) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string")
    normalized = value.strip() if strip else value
    if not normalized:
        raise ValueError(f"{field_name} cannot be empty")
    return normalized


def validate_optional_str(value: str | None, field_name: str, *, strip: bool = True) -> str | None:
    if value is None:
        return None
    return validate_non_empty_str(value, field_name, strip=strip)


def _coerce_json_value(value: object, *, path: str) -> JSONValue:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Mapping):
        out: dict[str, JSONValue] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"{path} keys must be strings")
            out[key] = _coerce_json_value(item, path=f"{path}.{key}")
        return out
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [_coerce_json_value(item, path=f"{path}[]") for item in value]
    raise TypeError(f"{path} must be JSON-serializable")


def _canonical_json(value: JSONValue) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """One role-tagged message of a conversation sent to the service."""

    role: MessageRole
    content: str

    def __post_init__(self) -> None:
        if self.role not in _MESSAGE_ROLES:
            raise ValueError(f"ChatMessage.role must be one of {sorted(_MESSAGE_ROLES)}")
        if not isinstance(self.content, str):
            raise TypeError("ChatMessage.content must be a string")

    def to_dict(self) -> dict[str, JSONValue]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True, slots=True)
class ProviderUsage:
    """Token accounting for a provider response."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    latency_ms: int | None = None

    def __post_init__(self) -> None:
        if self.input_tokens < 0:
            raise ValueError("input_tokens must be >= 0")
        if self.output_tokens < 0:
            raise ValueError("output_tokens must be >= 0")
        if self.total_tokens < 0:
            raise ValueError("total_tokens must be >= 0")
        if self.latency_ms is not None and self.latency_ms < 0:
            raise ValueError("latency_ms must be >= 0")

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
        }
        if self.latency_ms is not None:
            payload["latency_ms"] = self.latency_ms
        return payload


@dataclass(frozen=True, slots=True)
class ProviderRequest:
    """Provider-agnostic chat request."""

    model: str
    messages: tuple[ChatMessage, ...]
    temperature: float | None = None
    max_tokens: int | None = None
    idempotency_key: str | None = None
    metadata: Mapping[str, JSONValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "model", validate_non_empty_str(self.model, "ProviderRequest.model")
        )

        messages = tuple(self.messages)
        if not messages:
            raise ValueError("ProviderRequest.messages cannot be empty")
        for index, message in enumerate(messages):
            if not isinstance(message, ChatMessage):
                raise TypeError(f"ProviderRequest.messages[{index}] must be ChatMessage")
        object.__setattr__(self, "messages", messages)

        if self.temperature is not None and not (0.0 <= self.temperature <= 2.0):
            raise ValueError("ProviderRequest.temperature must be between 0.0 and 2.0")
        if self.max_tokens is not None and self.max_tokens <= 0:
            raise ValueError("ProviderRequest.max_tokens must be > 0")
        object.__setattr__(
            self,
            "idempotency_key",
            validate_optional_str(self.idempotency_key, "ProviderRequest.idempotency_key"),
        )
        metadata = _coerce_json_value(dict(self.metadata), path="ProviderRequest.metadata")
        object.__setattr__(self, "metadata", metadata)

    @property
    def system_prompt(self) -> str:
        return "\n\n".join(m.content for m in self.messages if m.role == "system")

    def conversation(self) -> tuple[ChatMessage, ...]:
        """Messages without the system role, for APIs that take the system prompt apart."""

        return tuple(m for m in self.messages if m.role != "system")

    def prompt_chars(self) -> int:
        return sum(len(message.content) for message in self.messages)

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "model": self.model,
            "messages": [message.to_dict() for message in self.messages],
            "metadata": dict(cast("Mapping[str, JSONValue]", self.metadata)),
        }
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        if self.idempotency_key is not None:
            payload["idempotency_key"] = self.idempotency_key
        return payload


@dataclass(frozen=True, slots=True)
class ProviderResponse:
    """Provider-agnostic normalized response."""

    model: str
    raw_text: str
    usage: ProviderUsage = field(default_factory=ProviderUsage)
    finish_reason: str | None = None
    request_id: str | None = None
    idempotency_key: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "model", validate_non_empty_str(self.model, "ProviderResponse.model")
        )
        if not isinstance(self.raw_text, str):
            raise TypeError("ProviderResponse.raw_text must be a string")
        if not isinstance(self.usage, ProviderUsage):
            raise TypeError("ProviderResponse.usage must be ProviderUsage")

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "model": self.model,
            "raw_text": self.raw_text,
            "usage": self.usage.to_dict(),
        }
        if self.finish_reason is not None:
            payload["finish_reason"] = self.finish_reason
        if self.request_id is not None:
            payload["request_id"] = self.request_id
        if self.idempotency_key is not None:
            payload["idempotency_key"] = self.idempotency_key
        return payload


class BaseProvider(abc.ABC):
    """Provider-agnostic abstract adapter API."""

    provider_name: str = "provider"

    @abc.abstractmethod
    async def send(self, request: ProviderRequest) -> ProviderResponse:
        """Send one provider request and return a normalized response."""

    def map_exception(self, exc: Exception) -> ProviderError:
        return classify_exception(exc, provider=self.provider_name)


@runtime_checkable
class ProviderProtocol(Protocol):
    """Protocol implemented by concrete provider adapters."""

    provider_name: str

    async def send(self, request: ProviderRequest) -> ProviderResponse:
        """Send one provider request and return normalized response."""


ProviderFactory: TypeAlias = Callable[[], ProviderProtocol]


class ProviderError(RuntimeError):
    """Base normalized provider error with deterministic machine-readable fields."""

    def __init__(
        self,
        *,
        provider: str,
        code: str,
        detail: str,
        retryable: bool,
        http_status: int | None = None,
    ) -> None:
        self.provider = validate_non_empty_str(provider, "provider")
        self.code = validate_non_empty_str(code, "code")
        self.detail = _normalize_detail(detail)
        self.retryable = bool(retryable)
        self.http_status = http_status

        parts = [
            f"provider={self.provider}",
            f"code={self.code}",
            f"retryable={str(self.retryable).lower()}",
        ]
        if self.http_status is not None:
            parts.append(f"http_status={self.http_status}")
        parts.append(f"detail={self.detail}")
        super().__init__(" ".join(parts))


class ProviderUnavailableError(ProviderError):
    """Raised when the provider SDK is missing or the provider is not registered."""

    def __init__(self, detail: str, *, provider: str = "provider") -> None:
        super().__init__(provider=provider, code="unavailable", detail=detail, retryable=False)


class ProviderAuthenticationError(ProviderError):
    """Missing or rejected credentials."""

    def __init__(
        self,
        detail: str,
        *,
        provider: str = "provider",
        http_status: int | None = None,
    ) -> None:
        super().__init__(
            provider=provider,
            code="auth",
            detail=detail,
            retryable=False,
            http_status=http_status,
        )


class ProviderInvalidRequestError(ProviderError):
    """Request payload invalid for provider API."""

    def __init__(
        self,
        detail: str,
        *,
        provider: str = "provider",
        http_status: int | None = None,
    ) -> None:
        super().__init__(
            provider=provider,
            code="invalid_request",
            detail=detail,
            retryable=False,
            http_status=http_status,
        )


class ProviderContextLengthError(ProviderError):
    """Request exceeds the model's context window."""

    def __init__(
        self,
        detail: str,
        *,
        provider: str = "provider",
        http_status: int | None = None,
    ) -> None:
        super().__init__(
            provider=provider,
            code="context_length",
            detail=detail,
            retryable=False,
            http_status=http_status,
        )


class ProviderRateLimitError(ProviderError):
    """Provider rate-limit responses."""

    def __init__(
        self,
        detail: str,
        *,
        provider: str = "provider",
        http_status: int | None = 429,
    ) -> None:
        super().__init__(
            provider=provider,
            code="rate_limit",
            detail=detail,
            retryable=True,
            http_status=http_status,
        )


class ProviderTimeoutError(ProviderError):
    """Provider timeout failures."""

    def __init__(self, detail: str, *, provider: str = "provider") -> None:
        super().__init__(provider=provider, code="timeout", detail=detail, retryable=True)


class ProviderServiceError(ProviderError):
    """Provider API/service failures."""

    def __init__(
        self,
        detail: str,
        *,
        provider: str = "provider",
        retryable: bool = True,
        http_status: int | None = None,
    ) -> None:
        super().__init__(
            provider=provider,
            code="service",
            detail=detail,
            retryable=retryable,
            http_status=http_status,
        )


class ProviderResponseError(ProviderError):
    """Raised when a provider response has no usable text."""

    def __init__(self, detail: str, *, provider: str = "provider") -> None:
        super().__init__(provider=provider, code="response_invalid", detail=detail, retryable=False)


def classify_exception(exc: Exception, *, provider: str) -> ProviderError:
    """Map an SDK/transport exception to the normalized taxonomy.

    Classification relies on ``status_code`` attributes and exception class
    names so it works across SDK versions without importing them.
    """

    if isinstance(exc, ProviderError):
        return exc

    status_code = _read_status_code(exc)
    class_name = exc.__class__.__name__.lower()
    detail = _exception_detail(exc)
    detail_lower = detail.lower()

    if status_code in {401, 403} or "auth" in class_name or "permission" in class_name:
        return ProviderAuthenticationError(detail, provider=provider, http_status=status_code)

    if status_code == 429 or "ratelimit" in class_name:
        return ProviderRateLimitError(detail, provider=provider, http_status=status_code)

    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)) or "timeout" in class_name:
        return ProviderTimeoutError(detail, provider=provider)

    if (
        status_code in {400, 413, 422} and "context" in detail_lower and "length" in detail_lower
    ) or "contextlength" in class_name:
        return ProviderContextLengthError(detail, provider=provider, http_status=status_code)

    if status_code is not None and status_code in {400, 404, 409, 422}:
        return ProviderInvalidRequestError(detail, provider=provider, http_status=status_code)

    if "badrequest" in class_name or "invalidrequest" in class_name:
        return ProviderInvalidRequestError(detail, provider=provider)

    if status_code is not None and status_code >= 500:
        return ProviderServiceError(detail, provider=provider, http_status=status_code)

    return ProviderServiceError(detail, provider=provider)


class ProviderRegistry:
    """Registry for provider adapter factories."""

    def __init__(self) -> None:
        self._factories: dict[str, ProviderFactory] = {}

    def register(self, name: str, factory: ProviderFactory, *, overwrite: bool = False) -> None:
        normalized = validate_non_empty_str(name, "name").lower()
        if normalized in self._factories and not overwrite:
            raise ValueError(f"provider already registered: {normalized}")
        self._factories[normalized] = factory

    def is_registered(self, name: str) -> bool:
        return validate_non_empty_str(name, "name").lower() in self._factories

    def names(self) -> tuple[str, ...]:
        return tuple(sorted(self._factories))

    def get(self, name: str) -> ProviderProtocol:
        normalized = validate_non_empty_str(name, "name").lower()
        factory = self._factories.get(normalized)
        if factory is None:
            raise ProviderUnavailableError(
                provider=normalized,
                detail="provider is not registered",
            )
        adapter = factory()
        if not isinstance(adapter, ProviderProtocol):
            raise TypeError(f"provider factory returned invalid adapter for {normalized}")
        return adapter


def derive_idempotency_key(request: ProviderRequest, *, provider: str) -> str:
    """Return deterministic idempotency key for provider requests."""

    if request.idempotency_key is not None:
        return request.idempotency_key

    payload: dict[str, JSONValue] = {
        "provider": provider,
        "request": request.to_dict(),
    }
    return hashlib.sha256(_canonical_json(payload).encode("utf-8")).hexdigest()


def _normalize_detail(value: object) -> str:
    text = str(value).strip()
    if not text:
        return "unknown error"
    return " ".join(text.split())


def _exception_detail(exc: BaseException) -> str:
    text = str(exc).strip()
    if text:
        return " ".join(text.split())
    return exc.__class__.__name__


def _read_status_code(exc: BaseException) -> int | None:
    for key in ("status_code", "status", "http_status"):
        value = getattr(exc, key, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    if response is not None:
        nested = getattr(response, "status_code", None)
        if isinstance(nested, int):
            return nested
    return None


def read_value(value: object, key: str, *, default: object | None = None) -> object | None:
    """Read ``key`` from a mapping or an SDK response object."""

    if isinstance(value, Mapping):
        return cast("object | None", value.get(key, default))
    return cast("object | None", getattr(value, key, default))


def read_sequence(value: object, key: str) -> tuple[object, ...]:
    candidate = read_value(value, key)
    if isinstance(candidate, Sequence) and not isinstance(candidate, (str, bytes, bytearray)):
        return tuple(candidate)
    return ()


def read_str(value: object, key: str) -> str | None:
    candidate = read_value(value, key)
    if isinstance(candidate, str) and candidate.strip():
        return candidate
    return None


def read_int(value: object, key: str) -> int | None:
    candidate = read_value(value, key)
    if isinstance(candidate, int) and not isinstance(candidate, bool):
        return candidate
    return None


def normalize_usage(raw_response: object, *, latency_ms: int | None = None) -> ProviderUsage:
    """Read token usage under either the chat-completions or messages field names."""

    usage_payload = read_value(raw_response, "usage")
    if usage_payload is None:
        return ProviderUsage(latency_ms=latency_ms)

    input_tokens = read_int(usage_payload, "input_tokens")
    if input_tokens is None:
        input_tokens = read_int(usage_payload, "prompt_tokens") or 0

    output_tokens = read_int(usage_payload, "output_tokens")
    if output_tokens is None:
        output_tokens = read_int(usage_payload, "completion_tokens") or 0

    total_tokens = read_int(usage_payload, "total_tokens")
    if total_tokens is None:
        total_tokens = input_tokens + output_tokens

    return ProviderUsage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=total_tokens,
        latency_ms=latency_ms,
    )


__all__ = [
    "BaseProvider",
    "ChatMessage",
    "JSONValue",
    "MessageRole",
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
    "normalize_usage",
    "read_int",
    "read_sequence",
    "read_str",
    "read_value",
    "validate_non_empty_str",
    "validate_optional_str",
]
