"""main.py – Umbrella CLI entry point for linkplan.

Lazily imports and registers all subcommand typer apps so that a broken
optional module doesn't prevent the entire CLI from loading.

Single-command modules are registered as flat ``app.command()`` entries;
only true multi-command modules (currently only ``cfg``) use
``add_typer()``.
"""

import importlib
import sys
from collections.abc import Callable

import typer

app = typer.Typer(
    help="Build-configuration resolver: flags, link mode, dependencies and test targets.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Typical workflow:[/bold]
  linkplan cfg init                 Write a starter linkplan.toml
  linkplan doctor                   Check compiler, linker and paths
  linkplan configure                Resolve and print the build plan
  linkplan configure --json -o p    Hand the plan to the build executor

[dim]All subcommands read project settings from linkplan.toml and the environment.
Run 'linkplan <cmd> --help' for details.[/dim]""",
)

# ---------------------------------------------------------------------------
# Subcommand registry
# ---------------------------------------------------------------------------

# Single-command modules – registered as flat commands via app.command().
_SINGLE_COMMANDS: list[tuple[str, str, str]] = [
    ("configure", "linkplan.configure", "Resolve flags, link mode, dependencies and tests."),
    ("doctor", "linkplan.doctor", "Diagnostic checks for the build toolchain."),
]

# Multi-command modules – registered as groups via app.add_typer().
_MULTI_COMMANDS: list[tuple[str, str, str]] = [
    ("cfg", "linkplan.cfg", "Read and edit linkplan.toml programmatically."),
]


def _make_stub_cmd(mod_name: str, err: ImportError) -> Callable[[], None]:
    """Create a stub command function that reports a missing dependency."""

    def _stub() -> None:
        print(f"Error: could not load '{mod_name}': {err}", file=sys.stderr)
        raise typer.Exit(code=1)

    return _stub


def _make_stub_app(mod_name: str, err: ImportError) -> typer.Typer:
    """Create a stub Typer app that reports a missing dependency."""
    stub = typer.Typer(help=f"[unavailable] {mod_name}")

    @stub.callback(invoke_without_command=True)
    def _stub_main() -> None:
        print(f"Error: could not load '{mod_name}': {err}", file=sys.stderr)
        raise typer.Exit(code=1)

    return stub


# Register single-command modules as flat commands.
for _name, _module, _help in _SINGLE_COMMANDS:
    try:
        _mod = importlib.import_module(_module)
        _epilog = getattr(_mod.app.info, "epilog", None)
        if not isinstance(_epilog, str):
            _epilog = None
        app.command(name=_name, help=_help, epilog=_epilog)(_mod.main)
    except ImportError as _exc:
        app.command(name=_name, help=f"[unavailable] {_help}")(_make_stub_cmd(_module, _exc))

# Register multi-command modules as groups (Typer sub-apps).
for _name, _module, _help in _MULTI_COMMANDS:
    try:
        _mod = importlib.import_module(_module)
        app.add_typer(_mod.app, name=_name, help=_help)
    except ImportError as _exc:
        app.add_typer(_make_stub_app(_module, _exc), name=_name, help=f"[unavailable] {_help}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
