"""UI package exports for the CLI and its renderer."""

from project_genie.ui.cli import CLIError, InteractiveSession, build_parser, main, run_cli
from project_genie.ui.render import CLIRenderer, create_renderer, describe_error

__all__ = [
    "CLIError",
    "CLIRenderer",
    "InteractiveSession",
    "build_parser",
    "create_renderer",
    "describe_error",
    "main",
    "run_cli",
]
