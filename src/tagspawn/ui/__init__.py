"""UI package exports for the CLI and its plain-text renderer."""

from tagspawn.ui.cli import CLIError, build_parser, run_cli
from tagspawn.ui.render import CLIRenderer, create_renderer

__all__ = [
    "CLIError",
    "CLIRenderer",
    "build_parser",
    "create_renderer",
    "run_cli",
]
