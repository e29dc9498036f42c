"""
project-genie — unit tests for output sanitization

File: tests/unit/generation/test_sanitizer.py
Last updated: 2026-10-19

Purpose
- Validate fence and language-tag stripping for artifact, summary and spec
  responses, including idempotence over arbitrary fence-heavy input.
"""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from project_genie.generation.sanitizer import sanitize, sanitize_summary, strip_structured_fence

_TOKENS = st.sampled_from(
    ["```", "`", "\n", " ", "\t", "json", "python", "md", "=", ":", "x", "{}", "\r\n"]
)
_FENCE_HEAVY_TEXT = st.lists(_TOKENS, max_size=40).map("".join)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('```json\n{"a":1}\n```', '{"a":1}'),
        ("```python\nprint('hi')\n```", "print('hi')"),
        ("```\nplain\n```", "plain"),
        ("  \n  body  \n ", "body"),
        ("```print(1)```", "print(1)"),
        ("print(1)\n```", "print(1)"),
        ("```\n```python\nx = 1\n```\n```", "x = 1"),
        ("no fences at all", "no fences at all"),
        ("", ""),
    ],
)
def test_heuristic_sanitize_examples(raw: str, expected: str) -> None:
    assert sanitize(raw) == expected


def test_heuristic_keeps_opener_with_assignment_as_code() -> None:
    assert sanitize("```a = 1\nb = 2\n```") == "a = 1\nb = 2"


@pytest.mark.parametrize("strategy", ["heuristic", "strict"])
def test_unfenced_first_line_is_never_treated_as_a_tag(strategy: str) -> None:
    body = "import os\nprint(os.sep)\nreturn_value"

    once = sanitize(body, strategy=strategy)  # type: ignore[arg-type]

    assert once == body
    assert sanitize(once, strategy=strategy) == body  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("```c++\nint x;\n```", "int x;"),
        ("```objective-c\n@end\n```", "@end"),
        ("```\nbody\n```", "body"),
        ("body\n```", "body\n```"),
    ],
)
def test_strict_sanitize_examples(raw: str, expected: str) -> None:
    assert sanitize(raw, strategy="strict") == expected


def test_summary_keeps_trailing_code_block_of_its_own() -> None:
    readme = "# Demo\n\nInstall:\n\n```bash\npip install demo\n```"

    assert sanitize_summary(readme) == readme


def test_summary_unwraps_markdown_fence_only() -> None:
    assert sanitize_summary("```markdown\n# Demo\n```") == "# Demo"
    assert sanitize_summary("```md\n# Demo\n```") == "# Demo"
    assert sanitize_summary("```python\nx = 1\n```") == "```python\nx = 1\n```"


def test_structured_fence_unwraps_json_and_yaml() -> None:
    assert strip_structured_fence('```json\n{"name": "x"}\n```') == '{"name": "x"}'
    assert strip_structured_fence("```yaml\nname: x\n```") == "name: x"
    assert strip_structured_fence('  {"name": "x"}  ') == '{"name": "x"}'


@settings(max_examples=300, deadline=None)
@given(_FENCE_HEAVY_TEXT)
def test_sanitize_is_idempotent(raw: str) -> None:
    for strategy in ("heuristic", "strict"):
        once = sanitize(raw, strategy=strategy)  # type: ignore[arg-type]
        assert sanitize(once, strategy=strategy) == once  # type: ignore[arg-type]


@settings(max_examples=200, deadline=None)
@given(_FENCE_HEAVY_TEXT)
def test_summary_and_structured_are_idempotent(raw: str) -> None:
    once = sanitize_summary(raw)
    assert sanitize_summary(once) == once
    unwrapped = strip_structured_fence(raw)
    assert strip_structured_fence(unwrapped) == unwrapped


@settings(max_examples=200, deadline=None)
@given(st.text())
def test_sanitize_is_total_and_never_grows(raw: str) -> None:
    cleaned = sanitize(raw)

    assert isinstance(cleaned, str)
    assert len(cleaned) <= len(raw)
