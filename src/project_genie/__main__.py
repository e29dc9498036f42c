"""Module entrypoint for ``python -m project_genie``."""

from __future__ import annotations

from project_genie.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
