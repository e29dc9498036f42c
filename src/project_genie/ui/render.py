"""Output rendering for the project-genie CLI.

File: src/project_genie/ui/render.py
Last updated: 2026-10-19

Purpose
- Provide a thin rendering layer for CLI output built on ``rich``.
- Respect NO_COLOR environment variable and --no-color CLI flag.

Functional requirements
- Output written to a non-terminal stream carries no markup or ANSI codes.
- Error lines name the failing stage and artifact when the error carries them.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping, Sequence
from typing import IO

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule

from project_genie.domain.errors import GenerationError


def _color_allowed(no_color_flag: bool) -> bool:
    """Check whether color output should be attempted."""

    if no_color_flag:
        return False
    return not os.environ.get("NO_COLOR", "")


class CLIRenderer:
    """Console renderer shared by every command."""

    def __init__(
        self,
        *,
        no_color: bool = False,
        verbose: bool = False,
        file: IO[str] | None = None,
    ) -> None:
        self.verbose = verbose
        color = _color_allowed(no_color)
        self._console = Console(
            file=file,
            no_color=not color,
            highlight=False,
            soft_wrap=True,
        )
        self._err_console = Console(
            file=file,
            stderr=file is None,
            no_color=not color,
            highlight=False,
            soft_wrap=True,
        )

    @property
    def console(self) -> Console:
        return self._console

    def heading(self, text: str) -> None:
        """Print a heading line."""

        self._console.print(escape(text), style="bold")

    def rule(self) -> None:
        self._console.print(Rule(characters="-", style="dim"))

    def kv(self, key: str, value: object) -> None:
        """Print a key: value pair."""

        self._console.print(f"[bold]{escape(key)}:[/bold] {escape(str(value))}")

    def text(self, line: str) -> None:
        """Print a plain text line."""

        self._console.print(escape(line))

    def blank(self) -> None:
        self._console.print()

    def section(self, title: str) -> None:
        """Print a section header with a preceding blank line."""

        self._console.print()
        self._console.print(escape(title), style="bold cyan")

    def success(self, text: str) -> None:
        self._console.print(escape(text), style="bold green")

    def warning(self, text: str) -> None:
        self._err_console.print(f"Warning: {escape(text)}", style="yellow")

    def error(self, error: BaseException | str) -> None:
        """Print an error, including stage and artifact attribution when present."""

        self._err_console.print(f"Error: {escape(describe_error(error))}", style="bold red")
        if isinstance(error, GenerationError) and error.written_paths:
            self._err_console.print(
                f"Already written ({len(error.written_paths)}): "
                + escape(", ".join(error.written_paths)),
                style="red",
            )

    def items(self, entries: Sequence[str], *, prefix: str = "- ") -> None:
        """Print a bulleted list."""

        for entry in entries:
            self._console.print(f"  {escape(prefix)}{escape(entry)}")

    def json(self, payload: Mapping[str, object]) -> None:
        """Pretty-print a JSON document."""

        self._console.print_json(json.dumps(payload, ensure_ascii=False), indent=2)

    def debug(self, text: str) -> None:
        if self.verbose:
            self._console.print(escape(text), style="dim")

    def next_steps(self, steps: Sequence[str]) -> None:
        """Print actionable next-step hints."""

        if not steps:
            return
        self.section("Next steps:")
        for step in steps:
            self._console.print(f"  $ {escape(step)}")


def describe_error(error: BaseException | str) -> str:
    """One-line description of ``error`` suitable for display."""

    if isinstance(error, str):
        return error
    if isinstance(error, GenerationError):
        location = f"[{error.stage}]"
        if error.artifact_path:
            location += f" {error.artifact_path}"
        return f"{location} {error.detail}"
    return str(error).strip() or error.__class__.__name__


def create_renderer(
    *,
    no_color: bool = False,
    verbose: bool = False,
    file: IO[str] | None = None,
) -> CLIRenderer:
    """Create a CLI renderer with the given settings."""

    return CLIRenderer(no_color=no_color, verbose=verbose, file=file)


__all__ = ["CLIRenderer", "create_renderer", "describe_error"]
