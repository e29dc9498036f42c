"""Utility exports for filesystem, hashing, and cancellation helpers."""

from project_genie.utils.concurrency import CancellationToken, cancel_on_interrupt
from project_genie.utils.fs import atomic_write, check_relative_path, is_within
from project_genie.utils.hashing import sha256_bytes, sha256_text

__all__ = [
    "CancellationToken",
    "atomic_write",
    "cancel_on_interrupt",
    "check_relative_path",
    "is_within",
    "sha256_bytes",
    "sha256_text",
]
