"""
project-genie — secret redaction

File: src/project_genie/security/redaction.py
Last updated: 2026-10-19

Purpose
- Redaction rules applied to log records, provider error details, and config dumps.

Functional requirements
- Must ensure API keys and bearer tokens never reach logs or error output.
- Deterministic and idempotent: redacting redacted text is a no-op.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final

REDACTED_VALUE: Final[str] = "***REDACTED***"

DEFAULT_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset(
    {
        "access_token",
        "api_key",
        "apikey",
        "authorization",
        "bearer_token",
        "client_secret",
        "credential",
        "credentials",
        "password",
        "private_key",
        "refresh_token",
        "secret",
        "token",
    }
)

_SENSITIVE_KEY_SUFFIXES: Final[tuple[str, ...]] = (
    "_api_key",
    "_access_token",
    "_auth_token",
    "_client_secret",
    "_password",
    "_secret",
    "_token",
)

_CAMEL_CASE_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True, slots=True)
class _TextRule:
    name: str
    pattern: re.Pattern[str]
    sensitive_group: int | None = None


_TEXT_RULES: Final[tuple[_TextRule, ...]] = (
    _TextRule(
        name="private_key_block",
        pattern=re.compile(
            r"-----BEGIN(?: [A-Z0-9]+)* PRIVATE KEY-----"
            r"[\s\S]+?"
            r"-----END(?: [A-Z0-9]+)* PRIVATE KEY-----"
        ),
    ),
    _TextRule(
        name="authorization_bearer",
        pattern=re.compile(r"(?i)(\bauthorization\s*:\s*bearer\s+)([A-Za-z0-9\-._~+/=]{8,})"),
        sensitive_group=2,
    ),
    _TextRule(
        name="explicit_secret_assignment",
        pattern=re.compile(
            r"(?i)(\b(?:password|secret|api[_-]?key|client[_-]?secret|"
            r"access[_-]?token|refresh[_-]?token)\b\s*[:=]\s*[\"']?)"
            r"([A-Za-z0-9._~+/=-]{6,})"
        ),
        sensitive_group=2,
    ),
    _TextRule(name="anthropic_api_key", pattern=re.compile(r"\bsk-ant-[A-Za-z0-9_-]{20,255}\b")),
    _TextRule(name="openai_api_key", pattern=re.compile(r"\bsk-[A-Za-z0-9_-]{20,255}\b")),
    _TextRule(name="github_token", pattern=re.compile(r"\bgh[pousr]_[A-Za-z0-9]{20,255}\b")),
    _TextRule(
        name="jwt",
        pattern=re.compile(r"\beyJ[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}\b"),
    ),
)


def is_sensitive_key(key: str) -> bool:
    """Return whether a mapping key names a secret (``apiKey``, ``openai_api_key``...)."""

    normalized = _normalize_key(key)
    if not normalized:
        return False
    if normalized in DEFAULT_SENSITIVE_KEYS:
        return True
    return any(normalized.endswith(suffix) for suffix in _SENSITIVE_KEY_SUFFIXES)


def redact_text(text: str) -> str:
    """Redact secret-like substrings. Deterministic and idempotent."""

    if not isinstance(text, str):
        raise TypeError(f"text must be a string, got {type(text).__name__}")
    redacted = text
    for rule in _TEXT_RULES:
        redacted = _apply_rule(redacted, rule)
    return redacted


def redact_structure(value: object) -> object:
    """Return a deep-redacted copy of nested mappings, lists and tuples."""

    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, Mapping):
        out: dict[object, object] = {}
        for key, item in value.items():
            if isinstance(key, str) and is_sensitive_key(key):
                out[key] = REDACTED_VALUE
            else:
                out[key] = redact_structure(item)
        return out
    if isinstance(value, list):
        return [redact_structure(item) for item in value]
    if isinstance(value, tuple):
        return tuple(redact_structure(item) for item in value)
    return value


def _apply_rule(text: str, rule: _TextRule) -> str:
    if rule.sensitive_group is None:
        return rule.pattern.sub(REDACTED_VALUE, text)

    def _replace(match: re.Match[str]) -> str:
        full = match.group(0)
        start, end = match.span(rule.sensitive_group)
        offset = match.start(0)
        return f"{full[: start - offset]}{REDACTED_VALUE}{full[end - offset :]}"

    return rule.pattern.sub(_replace, text)


def _normalize_key(key: str) -> str:
    spaced = _CAMEL_CASE_BOUNDARY.sub(r"\1_\2", key)
    return _NON_ALNUM.sub("_", spaced.lower()).strip("_")


__all__ = [
    "DEFAULT_SENSITIVE_KEYS",
    "REDACTED_VALUE",
    "is_sensitive_key",
    "redact_structure",
    "redact_text",
]
