"""
project-genie — project spec files

File: src/project_genie/domain/spec_files.py
Last updated: 2026-10-19

Purpose
- Save a synthesized spec for review and load it back for a later ``genie generate`` run.

Functional requirements
- Files are YAML; JSON documents load too because YAML is a superset.
- Load failures raise ``SpecParseError`` with an actionable message.
"""

from __future__ import annotations

from pathlib import Path

import yaml

from project_genie.domain.errors import SpecParseError
from project_genie.domain.models import ProjectSpec
from project_genie.utils.fs import atomic_write


def load_project_spec(path: str | Path) -> ProjectSpec:
    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise SpecParseError(f"spec file not found: {source}") from exc
    except OSError as exc:
        raise SpecParseError(f"unable to read spec file {source}: {exc}") from exc

    try:
        payload = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SpecParseError(f"spec file {source} is not valid YAML: {exc}") from exc

    try:
        return ProjectSpec.from_mapping(payload)
    except ValueError as exc:
        raise SpecParseError(f"spec file {source} is invalid: {exc}") from exc


def dump_project_spec(spec: ProjectSpec, path: str | Path) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    text = yaml.safe_dump(spec.to_dict(), sort_keys=False, allow_unicode=True)
    atomic_write(target, text)
    return target


__all__ = ["dump_project_spec", "load_project_spec"]
