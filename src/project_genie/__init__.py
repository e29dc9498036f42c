"""
project-genie — package root

File: src/project_genie/__init__.py
Last updated: 2026-10-19

Purpose
- Package root for the project generator: a natural-language request becomes a
  structured project spec, then one artifact per spec entry, then a summary.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
- Keep the public surface small; heavy submodules are imported by callers.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
