"""Command-line interface router for project-genie."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

from project_genie.config import (
    ConfigLoadError,
    ConfigValidationError,
    dump_redacted,
    load_config,
)
from project_genie.constants import EXIT_COMMAND, SUPPORTED_PROVIDERS
from project_genie.domain.errors import GenerationError, ServiceError, SpecParseError
from project_genie.domain.models import ProjectSpec
from project_genie.domain.spec_files import dump_project_spec, load_project_spec
from project_genie.generation import GenerationEvent, GenerationSettings, ProjectGenerator
from project_genie.generation.runner import GenerationResult
from project_genie.observability.logging import StructuredLoggingHandle, setup_logging
from project_genie.service.client import ServiceClient, build_service_client
from project_genie.store.artifact_store import FilesystemArtifactStore
from project_genie.ui.render import CLIRenderer, create_renderer
from project_genie.utils.concurrency import CancellationToken, cancel_on_interrupt

BANNER: Final[tuple[str, ...]] = (
    "🧞 AI Project Generator (Type 'exit' to quit)",
    "I'm your project assistant! Describe what you want to build and I'll make it happen.",
    "Example: 'Create a React dashboard with authentication, dark mode, and real-time charts'",
    "Let's get started!",
)
DESCRIPTION_PROMPT: Final[str] = "Project description: "
CONFIRM_PROMPT: Final[str] = "Proceed with generation? (y/n): "

EXIT_GENERATION_FAILED: Final[int] = 1
EXIT_USAGE: Final[int] = 2
EXIT_PROVIDER: Final[int] = 3
EXIT_CANCELLED: Final[int] = 130

InputReader = Callable[[str], str]
ClientFactory = Callable[[Mapping[str, object], str | None], ServiceClient]


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class _Runtime:
    """Per-invocation wiring: config, renderer, generator and logging."""

    config: dict[str, Any]
    renderer: CLIRenderer
    generator: ProjectGenerator
    output_dir: Path
    reader: InputReader
    logging_handle: StructuredLoggingHandle | None = None


@dataclass(slots=True)
class _Progress:
    """Collects written paths from generation events and echoes progress."""

    renderer: CLIRenderer
    written: list[str] = field(default_factory=list)

    def __call__(self, event: GenerationEvent) -> None:
        if event.kind in ("artifact_started", "summary_started"):
            self.renderer.text(f"⚙️  Generating {event.path}...")
        else:
            self.written.append(event.path)
            self.renderer.debug(f"wrote {event.path} ({event.index}/{event.total})")


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_common_options(parser: argparse.ArgumentParser, *, suppress_defaults: bool) -> None:
    # Subcommand copies suppress defaults so options given before the subcommand survive.
    def default(value: object) -> object:
        return argparse.SUPPRESS if suppress_defaults else value

    parser.add_argument(
        "--config",
        dest="config_path",
        default=default(None),
        help="Path to genie TOML config (default: ./genie.toml if present).",
    )
    parser.add_argument(
        "--api-key",
        dest="api_key",
        default=default(None),
        help="API key for the generative service (default: read from the environment).",
    )
    parser.add_argument(
        "--provider",
        choices=SUPPORTED_PROVIDERS,
        default=default(None),
        help="Service provider to use (default: provider.default from config).",
    )
    parser.add_argument(
        "--model",
        default=default(None),
        help="Model used for the spec and every artifact.",
    )
    parser.add_argument(
        "--output-dir",
        dest="output_dir",
        default=default(None),
        help="Directory the project folder is created in (default: generation.output_dir).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=default(False),
        help="Show detailed output and debug logs.",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        default=default(False),
        help="Disable colored output (also respects NO_COLOR env var).",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="genie",
        description=(
            "project-genie — turn a project description into a generated project.\n\n"
            "Common workflows:\n"
            "  genie                         Interactive session\n"
            '  genie plan "a todo CLI" --out spec.yaml\n'
            "  genie generate spec.yaml      Generate a project from a saved spec\n"
            "  genie config                  Show the effective configuration\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_common_options(parser, suppress_defaults=False)
    parser.set_defaults(handler=_cmd_shell)

    common = argparse.ArgumentParser(add_help=False)
    _add_common_options(common, suppress_defaults=True)
    subparsers = parser.add_subparsers(dest="command")

    shell_parser = subparsers.add_parser(
        "shell",
        parents=[common],
        help="Interactive session (the default command)",
    )
    shell_parser.set_defaults(handler=_cmd_shell)

    plan_parser = subparsers.add_parser(
        "plan",
        parents=[common],
        help="Synthesize a project spec from a description",
        description=(
            "Ask the service for a project spec and show or save it.\n\n"
            "Examples:\n"
            '  genie plan "Create a Flask todo API"\n'
            '  genie plan "Create a Flask todo API" --out todo.yaml\n'
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    plan_parser.add_argument("request", nargs="+", help="Project description.")
    plan_parser.add_argument("--out", default=None, help="Save the spec to this YAML file.")
    plan_parser.add_argument(
        "--json", action="store_true", default=False, help="Emit the spec as compact JSON."
    )
    plan_parser.set_defaults(handler=_cmd_plan)

    generate_parser = subparsers.add_parser(
        "generate",
        parents=[common],
        help="Generate a project from a saved spec file",
    )
    generate_parser.add_argument("spec_path", help="YAML or JSON spec file.")
    generate_parser.add_argument(
        "--yes", "-y", action="store_true", default=False, help="Skip the confirmation prompt."
    )
    generate_parser.set_defaults(handler=_cmd_generate)

    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Show the effective configuration (secrets redacted)",
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(
    argv: Sequence[str] | None = None,
    *,
    client_factory: ClientFactory | None = None,
    reader: InputReader | None = None,
    renderer: CLIRenderer | None = None,
) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = namespace.handler
    active_renderer = renderer or create_renderer(
        no_color=_flag(namespace, "no_color"), verbose=_flag(namespace, "verbose")
    )

    try:
        runtime = _build_runtime(
            namespace,
            renderer=active_renderer,
            client_factory=client_factory or _default_client_factory,
            reader=reader or input,
        )
    except CLIError as exc:
        active_renderer.error(exc.message)
        return exc.exit_code

    try:
        return int(handler(namespace, runtime))
    except CLIError as exc:
        active_renderer.error(exc.message)
        return exc.exit_code
    finally:
        if runtime.logging_handle is not None:
            runtime.logging_handle.shutdown()


def main(argv: Sequence[str] | None = None) -> int:
    """Compatibility wrapper for main-module wiring."""

    return run_cli(argv)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_shell(args: argparse.Namespace, runtime: _Runtime) -> int:
    return asyncio.run(InteractiveSession(runtime).run())


def _cmd_plan(args: argparse.Namespace, runtime: _Runtime) -> int:
    request = " ".join(args.request).strip()
    if not request:
        raise CLIError("a project description is required", exit_code=EXIT_USAGE)

    try:
        spec = asyncio.run(runtime.generator.synthesize(request))
    except GenerationError as exc:
        runtime.renderer.error(exc)
        return _exit_code_for(exc)

    if _flag(args, "json"):
        _emit_json(spec.to_dict())
    else:
        runtime.renderer.section("📋 Project Specification:")
        runtime.renderer.json(spec.to_dict())

    if args.out:
        saved = dump_project_spec(spec, Path(args.out))
        if not _flag(args, "json"):
            runtime.renderer.kv("Saved spec", saved)
            runtime.renderer.next_steps([f"genie generate {saved}"])
    return 0


def _cmd_generate(args: argparse.Namespace, runtime: _Runtime) -> int:
    try:
        spec = load_project_spec(Path(args.spec_path))
    except SpecParseError as exc:
        raise CLIError(f"invalid spec file: {exc.detail}", exit_code=EXIT_USAGE) from exc

    runtime.renderer.section("📋 Project Specification:")
    runtime.renderer.json(spec.to_dict())
    if not _flag(args, "yes") and not _confirm(runtime):
        runtime.renderer.text("Generation skipped.")
        return 0

    outcome = asyncio.run(_generate_project(runtime, spec))
    if isinstance(outcome, int):
        return outcome
    return 0


def _cmd_config(args: argparse.Namespace, runtime: _Runtime) -> int:
    runtime.renderer.json(dump_redacted(runtime.config))
    return 0


# ---------------------------------------------------------------------------
# Interactive session
# ---------------------------------------------------------------------------


class InteractiveSession:
    """Read-describe-confirm-generate loop of the ``shell`` command."""

    def __init__(self, runtime: _Runtime) -> None:
        self._runtime = runtime
        self._renderer = runtime.renderer

    async def run(self) -> int:
        self._renderer.heading(BANNER[0])
        self._renderer.rule()
        for line in BANNER[1:]:
            self._renderer.text(line)
        self._renderer.blank()

        while True:
            request = self._read(DESCRIPTION_PROMPT)
            if request is None:
                break
            request = request.strip()
            if request == EXIT_COMMAND:
                break
            if not request:
                continue
            await self._handle_request(request)
        return 0

    async def _handle_request(self, request: str) -> None:
        try:
            spec = await self._runtime.generator.synthesize(request)
        except GenerationError as exc:
            self._renderer.error(exc)
            return

        self._renderer.section("📋 Project Specification:")
        self._renderer.json(spec.to_dict())
        answer = self._read(CONFIRM_PROMPT)
        if answer is None or answer.strip().lower() != "y":
            return
        await _generate_project(self._runtime, spec)

    def _read(self, prompt: str) -> str | None:
        try:
            return self._runtime.reader(prompt)
        except (EOFError, KeyboardInterrupt):
            self._renderer.blank()
            return None


async def _generate_project(runtime: _Runtime, spec: ProjectSpec) -> GenerationResult | int:
    """Run one generation and report it; returns the result or an exit code."""

    renderer = runtime.renderer
    progress = _Progress(renderer)
    token = CancellationToken()
    try:
        store = FilesystemArtifactStore.for_project(runtime.output_dir, spec)
        with cancel_on_interrupt(token):
            result = await runtime.generator.generate(
                spec, store, cancel_token=token, on_event=progress
            )
    except GenerationError as exc:
        renderer.error(exc)
        return _exit_code_for(exc)
    except asyncio.CancelledError:
        if not token.is_cancelled:
            raise
        renderer.warning(
            f"generation cancelled after {len(progress.written)} file(s); "
            "files already written were kept"
        )
        return EXIT_CANCELLED

    renderer.blank()
    renderer.success("✨ Project generated successfully!")
    renderer.kv("Location", store.root)
    renderer.kv("Files", len(result.written_paths))
    return result


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _build_runtime(
    args: argparse.Namespace,
    *,
    renderer: CLIRenderer,
    client_factory: ClientFactory,
    reader: InputReader,
) -> _Runtime:
    config = _load_effective_config(args)
    generation = config["generation"]

    handle: StructuredLoggingHandle | None = None
    observability = dict(config["observability"])
    if _flag(args, "verbose"):
        observability["log_level"] = "DEBUG"
    try:
        handle = setup_logging(observability, run_id=_new_run_id())
    except (OSError, ValueError) as exc:
        renderer.warning(f"structured logging disabled: {exc}")

    try:
        client = client_factory(config, getattr(args, "api_key", None))
        settings = GenerationSettings.from_config(config, model=getattr(args, "model", None))
    except (KeyError, TypeError, ValueError) as exc:
        if handle is not None:
            handle.shutdown()
        raise CLIError(f"unable to configure the service client: {exc}", EXIT_USAGE) from exc

    return _Runtime(
        config=config,
        renderer=renderer,
        generator=ProjectGenerator(client, settings),
        output_dir=Path(str(generation["output_dir"])),
        reader=reader,
        logging_handle=handle,
    )


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, object] = {}
    provider = getattr(args, "provider", None)
    if provider:
        overrides["provider.default"] = provider
    output_dir = getattr(args, "output_dir", None)
    if output_dir:
        # Command-line paths are relative to the working directory, not the config file.
        overrides["generation.output_dir"] = Path(output_dir).expanduser().resolve().as_posix()

    try:
        return load_config(getattr(args, "config_path", None), cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=EXIT_USAGE) from exc


def _default_client_factory(config: Mapping[str, object], api_key: str | None) -> ServiceClient:
    return build_service_client(config, api_key=api_key)


def _confirm(runtime: _Runtime) -> bool:
    try:
        answer = runtime.reader(CONFIRM_PROMPT)
    except (EOFError, KeyboardInterrupt):
        return False
    return answer.strip().lower() == "y"


def _exit_code_for(error: GenerationError) -> int:
    if isinstance(error, ServiceError):
        return EXIT_PROVIDER
    return EXIT_GENERATION_FAILED


def _new_run_id() -> str:
    return f"run-{uuid.uuid4().hex[:12]}"


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))
    sys.stdout.flush()


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = ["CLIError", "InteractiveSession", "build_parser", "main", "run_cli"]
