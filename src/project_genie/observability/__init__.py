"""Observability: structured JSON-lines logging with correlation fields."""

from project_genie.observability.logging import (
    LoggingConfig,
    StructuredLoggingHandle,
    correlation_scope,
    setup_logging,
    setup_structured_logging,
    shutdown_logging,
)

__all__ = [
    "LoggingConfig",
    "StructuredLoggingHandle",
    "correlation_scope",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
