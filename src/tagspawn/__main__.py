"""Module entrypoint for ``python -m tagspawn``."""

from __future__ import annotations

from tagspawn.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
