"""
project-genie — output sanitizer

File: src/project_genie/generation/sanitizer.py
Last updated: 2026-10-19

Purpose
- Strip presentation wrapping (code fences and language tags) that models add
  around artifact bodies despite being asked not to.

Functional requirements
- Pure and total: any string in, a string out, never raises.
- Idempotent: ``sanitize(sanitize(x)) == sanitize(x)``. The single-pass rules are
  applied until nothing changes; every pass that changes the text shortens it.
- Best-effort normalization, not a guarantee. The ``heuristic`` strategy treats the
  rest of a fence-opener line as a language tag when it has no ``=`` or ``:`` and
  strips a dangling closing fence on its own. ``strict`` drops only a single
  tag-shaped token and only strips a closing fence paired with an opening one, so a
  markdown body that ends in its own code block survives.
- The first line is only treated as a tag when it is the remainder of a fence opener.
  Dropping any first line without ``=`` or ``:`` would strip a real line of code on
  every pass and break idempotence.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final, Literal, TypeAlias

FenceStrategy: TypeAlias = Literal["heuristic", "strict"]

FENCE: Final[str] = "```"

SUMMARY_FENCE_TAGS: Final[frozenset[str]] = frozenset({"", "markdown", "md"})
STRUCTURED_FENCE_TAGS: Final[frozenset[str]] = frozenset({"", "json", "yaml", "yml"})

_LANGUAGE_TAG_RE: Final[re.Pattern[str]] = re.compile(r"[A-Za-z0-9_+#.\-]*")


@dataclass(frozen=True, slots=True)
class _FenceRules:
    is_tag: Callable[[str], bool]
    # Leave a fence with an unrecognized tag untouched instead of unwrapping it.
    keep_unknown: bool = False
    # Only strip a closing fence when an opening fence was stripped in the same pass.
    paired_only: bool = False


def _looks_like_tag(candidate: str) -> bool:
    return "=" not in candidate and ":" not in candidate


def _is_language_tag(candidate: str) -> bool:
    return _LANGUAGE_TAG_RE.fullmatch(candidate.strip()) is not None


def _in_tags(tags: frozenset[str]) -> Callable[[str], bool]:
    return lambda candidate: candidate.strip().lower() in tags


_HEURISTIC_RULES: Final[_FenceRules] = _FenceRules(is_tag=_looks_like_tag)
_STRICT_RULES: Final[_FenceRules] = _FenceRules(is_tag=_is_language_tag, paired_only=True)
_SUMMARY_RULES: Final[_FenceRules] = _FenceRules(
    is_tag=_in_tags(SUMMARY_FENCE_TAGS), keep_unknown=True, paired_only=True
)
_STRUCTURED_RULES: Final[_FenceRules] = _FenceRules(
    is_tag=_in_tags(STRUCTURED_FENCE_TAGS), keep_unknown=True
)


def sanitize(raw: str, *, strategy: FenceStrategy = "heuristic") -> str:
    """Return ``raw`` with surrounding whitespace, fences and a language tag removed.

    >>> sanitize('```json\\n{"a":1}\\n```')
    '{"a":1}'
    """

    rules = _STRICT_RULES if strategy == "strict" else _HEURISTIC_RULES
    return _to_fixpoint(raw, rules)


def sanitize_summary(raw: str) -> str:
    """Sanitize a summary body, recognizing the generic and markdown fence tags."""

    return _to_fixpoint(raw, _SUMMARY_RULES)


def strip_structured_fence(raw: str) -> str:
    """Unwrap a fenced JSON/YAML document returned by the synthesis stage."""

    return _to_fixpoint(raw, _STRUCTURED_RULES)


def _to_fixpoint(raw: str, rules: _FenceRules) -> str:
    text = raw if isinstance(raw, str) else str(raw)
    while True:
        cleaned = _sanitize_once(text, rules)
        if cleaned == text:
            return cleaned
        text = cleaned


def _sanitize_once(text: str, rules: _FenceRules) -> str:
    stripped = text.strip()
    if stripped.startswith(FENCE):
        remainder = stripped[len(FENCE) :]
        opener, newline, rest = remainder.partition("\n")
        if newline and rules.is_tag(opener):
            body = rest
        elif newline and rules.keep_unknown:
            return stripped
        else:
            body = remainder
        body = body.rstrip()
        if body.endswith(FENCE):
            body = body[: -len(FENCE)]
        return body.strip()
    if stripped.endswith(FENCE) and not rules.paired_only:
        return stripped[: -len(FENCE)].strip()
    return stripped


__all__ = [
    "FENCE",
    "STRUCTURED_FENCE_TAGS",
    "SUMMARY_FENCE_TAGS",
    "FenceStrategy",
    "sanitize",
    "sanitize_summary",
    "strip_structured_fence",
]
