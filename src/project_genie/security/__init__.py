"""Security helpers: secret redaction for logs and error output."""

from project_genie.security.redaction import (
    REDACTED_VALUE,
    is_sensitive_key,
    redact_structure,
    redact_text,
)

__all__ = [
    "REDACTED_VALUE",
    "is_sensitive_key",
    "redact_structure",
    "redact_text",
]
