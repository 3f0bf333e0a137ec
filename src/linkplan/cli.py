"""Shared CLI utilities for linkplan commands.

Provides common Typer options, config/probe helpers, and standardised
output / error helpers so every command reports errors and notes the
same way.

Usage in a command::

    import typer
    from linkplan.cli import RootOption, get_config, error_exit, json_print

    app = typer.Typer()

    @app.command()
    def main(root: Path | None = RootOption) -> None:
        cfg = get_config(root)
        ...
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from linkplan.config import ProjectConfig, load_config
from linkplan.errors import ConfigError
from linkplan.probe import SystemProbe

# Re-usable Typer option for --root
RootOption: Path | None = typer.Option(
    None,
    "--root",
    "-C",
    help="Project root containing linkplan.toml (default: search upward from cwd).",
)


def get_config(root: Path | None = None, *, json_mode: bool = False) -> ProjectConfig:
    """Load the project config, exiting with a readable error on failure."""
    try:
        return load_config(root=root)
    except ConfigError as exc:
        error_exit(exc.message, json_mode=json_mode, kind=exc.kind)


def get_probe(cfg: ProjectConfig) -> SystemProbe:
    """Probe the host toolchain, honouring a configured GCC root."""
    return SystemProbe(gcc_root=cfg.gcc_root)


# ---------------------------------------------------------------------------
# Standardised output helpers
# ---------------------------------------------------------------------------

_err_console = Console(stderr=True)


def error_exit(
    msg: str, *, json_mode: bool = False, code: int = 1, kind: str | None = None
) -> NoReturn:
    """Print *msg* as an error and ``raise typer.Exit(code)``."""
    if json_mode:
        payload: dict[str, str] = {"error": msg}
        if kind:
            payload["kind"] = kind
        print(json.dumps(payload, indent=2))
    else:
        label = f"error ({kind}):" if kind else "error:"
        _err_console.print(f"[red bold]{label}[/red bold] {escape(msg)}", highlight=False)
    raise typer.Exit(code=code)


def note(msg: str) -> None:
    """Print an informational note to stderr."""
    _err_console.print(f"[dim]--[/dim] {escape(msg)}", highlight=False)


def json_print(data: dict[str, Any] | list[Any]) -> None:
    """Print *data* as pretty-printed JSON to stdout."""
    print(json.dumps(data, indent=2))
