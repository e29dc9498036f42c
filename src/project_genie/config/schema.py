"""
project-genie — configuration schema and validation.

File: src/project_genie/config/schema.py
Last updated: 2026-10-19

Purpose
- Define authoritative configuration defaults and strict validation rules.

Functional requirements
- Validate config payloads and return structured errors (field path + message).
- Forbid embedded secrets: credentials are referenced by env var name only.
- Redacted dumps never print env var names or secret-looking values.
"""

from __future__ import annotations

import copy
import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, NotRequired, TypedDict

from project_genie.constants import (
    CONFIG_SCHEMA_VERSION,
    CONTEXT_OVERFLOW_MODES,
    DEFAULT_ANTHROPIC_MODEL,
    DEFAULT_ANTHROPIC_SUMMARY_MODEL,
    DEFAULT_MAX_CONTEXT_CHARS,
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_OPENAI_SUMMARY_MODEL,
    DEFAULT_PROVIDER,
    DEFAULT_TEMPERATURE,
    FENCE_STRATEGIES,
    SUMMARY_ARTIFACT_NAME,
    SUPPORTED_PROVIDERS,
)
from project_genie.utils.fs import check_relative_path

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION

_ENV_NAME_PATTERN = re.compile(r"^[A-Z_][A-Z0-9_]*$")
_CAMEL_CASE_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

_SENSITIVE_KEY_TOKENS: Final[frozenset[str]] = frozenset(
    {
        "secret",
        "token",
        "password",
        "passwd",
        "api",
        "key",
        "apikey",
        "private",
        "credential",
        "credentials",
        "auth",
    }
)
_SENSITIVE_KEY_PHRASES: Final[tuple[str, ...]] = (
    "api_key",
    "access_token",
    "client_secret",
    "private_key",
    "password",
    "secret",
)

_LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

# Config paths normalized relative to the config file location.
PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (
    ("generation", "output_dir"),
    ("observability", "log_dir"),
)


class MetaConfig(TypedDict):
    schema_version: int


class ProviderSettings(TypedDict):
    api_key_env: str
    model: str
    summary_model: str
    max_tokens: int
    timeout_seconds: NotRequired[float]
    base_url: NotRequired[str]


class ProviderConfig(TypedDict):
    default: Literal["openai", "anthropic"]
    openai: ProviderSettings
    anthropic: ProviderSettings


class GenerationConfig(TypedDict):
    temperature: float
    output_dir: str
    summary_artifact: str
    max_context_chars: int
    context_overflow: Literal["fail", "truncate"]
    fence_strategy: Literal["heuristic", "strict"]


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_dir: str
    log_to_stdout: bool
    redact_secrets: bool


class GenieConfig(TypedDict):
    meta: MetaConfig
    provider: ProviderConfig
    generation: GenerationConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[GenieConfig] = {
    "meta": {"schema_version": CONFIG_SCHEMA_VERSION},
    "provider": {
        "default": DEFAULT_PROVIDER,  # type: ignore[typeddict-item]
        "openai": {
            "api_key_env": "OPENAI_API_KEY",
            "model": DEFAULT_OPENAI_MODEL,
            "summary_model": DEFAULT_OPENAI_SUMMARY_MODEL,
            "max_tokens": DEFAULT_MAX_OUTPUT_TOKENS,
        },
        "anthropic": {
            "api_key_env": "ANTHROPIC_API_KEY",
            "model": DEFAULT_ANTHROPIC_MODEL,
            "summary_model": DEFAULT_ANTHROPIC_SUMMARY_MODEL,
            "max_tokens": DEFAULT_MAX_OUTPUT_TOKENS,
        },
    },
    "generation": {
        "temperature": DEFAULT_TEMPERATURE,
        "output_dir": ".",
        "summary_artifact": SUMMARY_ARTIFACT_NAME,
        "max_context_chars": DEFAULT_MAX_CONTEXT_CHARS,
        "context_overflow": "fail",
        "fence_strategy": "heuristic",
    },
    "observability": {
        "log_level": "INFO",
        "log_dir": ".genie/logs",
        "log_to_stdout": False,
        "redact_secrets": True,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> GenieConfig:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    """Return migration guidance for a schema version mismatch."""

    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade genie.toml to the current schema"
        )
    if found_version > ConfigSchemaVersion:
        return (
            f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
            "upgrade project-genie"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``."""

    merged = _deep_copy_mapping(base)
    _merge_into(merged, overlay)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Validate config and return structured issues with deterministic paths."""

    issues = _IssueCollector()
    root = _as_object(config, "<root>", issues)
    if root is None:
        return ConfigValidationResult(config=None, issues=issues.items())

    normalized = _validate_root(root, issues)
    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def dump_redacted(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Return a redacted representation safe for display and logs."""

    if not isinstance(config, Mapping):
        return {}
    redacted = _redact_value(config, parent_key=None)
    if isinstance(redacted, dict):
        return redacted
    return {}


def _validate_root(payload: Mapping[str, object], issues: _IssueCollector) -> dict[str, Any]:
    validators: dict[str, Callable[[Mapping[str, object], str, _IssueCollector], dict[str, Any]]]
    validators = {
        "meta": _validate_meta,
        "provider": _validate_provider,
        "generation": _validate_generation,
        "observability": _validate_observability,
    }
    _reject_unknown_keys(payload, set(validators), "", issues)
    _require_keys(payload, set(validators), "", issues)

    out: dict[str, Any] = {}
    for key in sorted(validators):
        raw = payload.get(key)
        if raw is None:
            continue
        section = _as_object(raw, key, issues)
        if section is None:
            continue
        out[key] = validators[key](section, key, issues)
    return out


def _validate_meta(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"schema_version"}, path, issues)
    _require_keys(payload, {"schema_version"}, path, issues)

    out: dict[str, Any] = {}
    if "schema_version" in payload:
        parsed = _as_int(
            payload["schema_version"], _join(path, "schema_version"), issues, minimum=1
        )
        if parsed is not None:
            out["schema_version"] = parsed
            if parsed != ConfigSchemaVersion:
                issues.add(_join(path, "schema_version"), migration_guidance(parsed))
    return out


def _validate_provider(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"default", *SUPPORTED_PROVIDERS}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "default" in payload:
        parsed_default = _as_enum(
            payload["default"],
            _join(path, "default"),
            issues,
            allowed_values=SUPPORTED_PROVIDERS,
        )
        if parsed_default is not None:
            out["default"] = parsed_default

    for provider_name in SUPPORTED_PROVIDERS:
        raw = payload.get(provider_name)
        if raw is None:
            continue
        section_path = _join(path, provider_name)
        section = _as_object(raw, section_path, issues)
        if section is None:
            continue
        out[provider_name] = _validate_provider_settings(section, section_path, issues)
    return out


def _validate_provider_settings(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    required = {"api_key_env", "model", "summary_model", "max_tokens"}
    _reject_unknown_keys(payload, required | {"timeout_seconds", "base_url"}, path, issues)
    _require_keys(payload, required, path, issues)

    out: dict[str, Any] = {}
    if "api_key_env" in payload:
        parsed_env = _as_env_name(payload["api_key_env"], _join(path, "api_key_env"), issues)
        if parsed_env is not None:
            out["api_key_env"] = parsed_env

    for key in ("model", "summary_model", "base_url"):
        if key in payload:
            parsed = _as_str(payload[key], _join(path, key), issues)
            if parsed is not None:
                out[key] = parsed

    if "max_tokens" in payload:
        parsed_tokens = _as_int(payload["max_tokens"], _join(path, "max_tokens"), issues, minimum=1)
        if parsed_tokens is not None:
            out["max_tokens"] = parsed_tokens

    if "timeout_seconds" in payload:
        parsed_timeout = _as_float(
            payload["timeout_seconds"], _join(path, "timeout_seconds"), issues, minimum=0.001
        )
        if parsed_timeout is not None:
            out["timeout_seconds"] = parsed_timeout
    return out


def _validate_generation(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {
        "temperature",
        "output_dir",
        "summary_artifact",
        "max_context_chars",
        "context_overflow",
        "fence_strategy",
    }
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "temperature" in payload:
        temperature_path = _join(path, "temperature")
        parsed_temperature = _as_float(payload["temperature"], temperature_path, issues, minimum=0)
        if parsed_temperature is not None:
            if parsed_temperature > 2.0:
                issues.add(temperature_path, "must be <= 2.0")
            else:
                out["temperature"] = parsed_temperature

    if "output_dir" in payload:
        parsed_output = _as_path_text(payload["output_dir"], _join(path, "output_dir"), issues)
        if parsed_output is not None:
            out["output_dir"] = parsed_output

    if "summary_artifact" in payload:
        summary_path = _join(path, "summary_artifact")
        parsed_summary = _as_str(payload["summary_artifact"], summary_path, issues)
        if parsed_summary is not None:
            try:
                check_relative_path(parsed_summary)
            except ValueError as exc:
                issues.add(summary_path, str(exc))
            else:
                out["summary_artifact"] = parsed_summary

    if "max_context_chars" in payload:
        # 0 disables the budget.
        parsed_max = _as_int(
            payload["max_context_chars"], _join(path, "max_context_chars"), issues, minimum=0
        )
        if parsed_max is not None:
            out["max_context_chars"] = parsed_max

    if "context_overflow" in payload:
        parsed_overflow = _as_enum(
            payload["context_overflow"],
            _join(path, "context_overflow"),
            issues,
            allowed_values=CONTEXT_OVERFLOW_MODES,
        )
        if parsed_overflow is not None:
            out["context_overflow"] = parsed_overflow

    if "fence_strategy" in payload:
        parsed_strategy = _as_enum(
            payload["fence_strategy"],
            _join(path, "fence_strategy"),
            issues,
            allowed_values=FENCE_STRATEGIES,
        )
        if parsed_strategy is not None:
            out["fence_strategy"] = parsed_strategy
    return out


def _validate_observability(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"log_level", "log_dir", "log_to_stdout", "redact_secrets"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "log_level" in payload:
        raw_level = payload["log_level"]
        level = raw_level.upper() if isinstance(raw_level, str) else raw_level
        parsed_log_level = _as_enum(
            level, _join(path, "log_level"), issues, allowed_values=_LOG_LEVELS
        )
        if parsed_log_level is not None:
            out["log_level"] = parsed_log_level

    if "log_dir" in payload:
        parsed_log_dir = _as_path_text(payload["log_dir"], _join(path, "log_dir"), issues)
        if parsed_log_dir is not None:
            out["log_dir"] = parsed_log_dir

    for key in ("log_to_stdout", "redact_secrets"):
        if key in payload:
            parsed_flag = _as_bool(payload[key], _join(path, key), issues)
            if parsed_flag is not None:
                out[key] = parsed_flag
    return out


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_str(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed:
        issues.add(path, "must not be empty")
        return None
    return parsed


def _as_path_text(value: object, path: str, issues: _IssueCollector) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    return parsed


def _as_env_name(value: object, path: str, issues: _IssueCollector) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if not _ENV_NAME_PATTERN.fullmatch(parsed):
        issues.add(path, "must be an env var name (example: OPENAI_API_KEY)")
        return None
    return parsed


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return value


def _as_float(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: float | None = None,
) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        issues.add(path, f"expected number, got {type(value).__name__}")
        return None
    parsed = float(value)
    if not math.isfinite(parsed):
        issues.add(path, "must be finite")
        return None
    if minimum is not None and parsed < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return parsed


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if parsed not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key in allowed:
            continue
        key_path = _join(path, key)
        if _looks_sensitive_key(key):
            issues.add(
                key_path,
                "embedded secret values are forbidden; use an *_env key with an env var name",
            )
        else:
            issues.add(key_path, "unknown field")


def _require_keys(
    payload: Mapping[str, object],
    required: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(required):
        if key not in payload:
            issues.add(_join(path, key), "missing required field")


def _looks_sensitive_key(key: str) -> bool:
    normalized = _normalize_key(key)
    if normalized.endswith("_env"):
        return False
    if any(phrase in normalized for phrase in _SENSITIVE_KEY_PHRASES):
        return True
    tokens = tuple(token for token in normalized.split("_") if token)
    return any(token in _SENSITIVE_KEY_TOKENS for token in tokens)


def _normalize_key(key: str) -> str:
    with_boundaries = _CAMEL_CASE_BOUNDARY.sub(r"\1_\2", key.strip())
    return _NON_ALNUM.sub("_", with_boundaries.lower()).strip("_")


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            if isinstance(existing, dict):
                _merge_into(existing, value)
            else:
                nested: dict[str, Any] = {}
                _merge_into(nested, value)
                target[key] = nested
        else:
            target[key] = copy.deepcopy(value)


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in sorted(value):
        item = value[key]
        out[key] = _deep_copy_mapping(item) if isinstance(item, Mapping) else copy.deepcopy(item)
    return out


def _redact_value(value: object, parent_key: str | None) -> object:
    if isinstance(value, Mapping):
        out: dict[str, object] = {}
        for key in sorted(value):
            item = value[key]
            if _key_is_sensitive_for_redaction(key):
                out[key] = "<redacted>"
            else:
                out[key] = _redact_value(item, key)
        return out
    if isinstance(value, (list, tuple)):
        return [_redact_value(item, parent_key) for item in value]
    return value


def _key_is_sensitive_for_redaction(key: str) -> bool:
    normalized = _normalize_key(key)
    if normalized.endswith("_env"):
        return True
    return _looks_sensitive_key(normalized)


__all__ = [
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "GenieConfig",
    "PATH_FIELDS",
    "assert_valid_config",
    "default_config",
    "dump_redacted",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
