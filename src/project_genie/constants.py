"""Stable constants shared across the generator stages."""

from __future__ import annotations

from typing import Final

# Schema version for genie.toml.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# Default config file discovered in the working directory.
DEFAULT_CONFIG_FILENAME: Final[str] = "genie.toml"

# Well-known summary artifact written at the project root.
SUMMARY_ARTIFACT_NAME: Final[str] = "README.md"

# Low temperature keeps generation close to deterministic.
DEFAULT_TEMPERATURE: Final[float] = 0.2

# Provider defaults.
DEFAULT_PROVIDER: Final[str] = "openai"
SUPPORTED_PROVIDERS: Final[tuple[str, ...]] = ("anthropic", "openai")
DEFAULT_OPENAI_MODEL: Final[str] = "gpt-4-turbo"
DEFAULT_OPENAI_SUMMARY_MODEL: Final[str] = "gpt-4o"
DEFAULT_ANTHROPIC_MODEL: Final[str] = "claude-3-5-sonnet-latest"
DEFAULT_ANTHROPIC_SUMMARY_MODEL: Final[str] = "claude-3-5-sonnet-latest"
DEFAULT_MAX_OUTPUT_TOKENS: Final[int] = 4096

# Prompt size cap in characters (system instruction + user prompt).
DEFAULT_MAX_CONTEXT_CHARS: Final[int] = 400_000
CONTEXT_OVERFLOW_MODES: Final[tuple[str, ...]] = ("fail", "truncate")

FENCE_STRATEGIES: Final[tuple[str, ...]] = ("heuristic", "strict")

# Interactive loop keyword that ends the session.
EXIT_COMMAND: Final[str] = "exit"

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "CONTEXT_OVERFLOW_MODES",
    "DEFAULT_ANTHROPIC_MODEL",
    "DEFAULT_ANTHROPIC_SUMMARY_MODEL",
    "DEFAULT_CONFIG_FILENAME",
    "DEFAULT_MAX_CONTEXT_CHARS",
    "DEFAULT_MAX_OUTPUT_TOKENS",
    "DEFAULT_OPENAI_MODEL",
    "DEFAULT_OPENAI_SUMMARY_MODEL",
    "DEFAULT_PROVIDER",
    "DEFAULT_TEMPERATURE",
    "EXIT_COMMAND",
    "FENCE_STRATEGIES",
    "SUMMARY_ARTIFACT_NAME",
    "SUPPORTED_PROVIDERS",
]
