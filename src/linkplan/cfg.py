"""linkplan cfg: Programmatic editor for linkplan.toml.

Uses tomlkit for format-preserving round-trip editing (comments,
ordering, and whitespace are retained).

Usage::

    linkplan cfg init
    linkplan cfg show [KEY]
    linkplan cfg set build.type release
    linkplan cfg set build.sanitizers address
    linkplan cfg add-test array-test --dir src/arrow --property TIMEOUT=300
    linkplan cfg remove-test array-test
    linkplan cfg path
"""

import contextlib
from pathlib import Path

import tomlkit
import typer

from linkplan.config import CONFIG_NAME
from linkplan.errors import ConfigError
from linkplan.linkmode import LinkRequest, LinkState, normalize_request
from linkplan.model import parse_build_type, parse_sanitizers
from linkplan.targets import target_name

DEFAULT_TOML = """\
# linkplan build configuration.  Environment variables override these values.

[build]
type = "debug"        # debug|fastdebug|release|profile_gen|profile_build
link = "auto"         # auto|dynamic|static
coverage = false
sanitizers = []       # address, thread
tests = true
with_parquet = false
compile_commands = false  # link compile_commands.json into the source root

[toolchain]
# gcc_root = "/opt/gcc"

[thirdparty]
# gtest_home = "thirdparty/googletest-release-1.7.0"
# parquet_home = "thirdparty/parquet"

[paths]
source_dir = "."
binary_dir = "."
build_support_dir = "build-support"
"""

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _find_root() -> Path:
    """Walk up from cwd to find linkplan.toml."""
    candidate = Path.cwd().resolve()
    while candidate != candidate.parent:
        if (candidate / CONFIG_NAME).exists():
            return candidate
        candidate = candidate.parent
    typer.secho(
        f"Error: Could not find {CONFIG_NAME} in any parent directory.\n"
        "Run this command from within a project, or use 'linkplan cfg init' first.",
        fg=typer.colors.RED,
        err=True,
    )
    raise typer.Exit(code=1)


def _load_toml(root: Path | None = None) -> tuple[tomlkit.TOMLDocument, Path]:
    """Load linkplan.toml as a tomlkit document, preserving formatting."""
    if root is None:
        root = _find_root()
    toml_path = root / CONFIG_NAME
    if not toml_path.exists():
        typer.secho(f"Error: {toml_path} not found.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    doc = tomlkit.parse(toml_path.read_text(encoding="utf-8"))
    return doc, toml_path


def _save_toml(doc: tomlkit.TOMLDocument, path: Path) -> None:
    """Write tomlkit document back, preserving formatting."""
    path.write_text(tomlkit.dumps(doc), encoding="utf-8")


def _coerce(key: str, value: str) -> str | int | float | bool | list[str]:
    """Convert a command-line string into the TOML value stored under *key*.

    Known build keys are validated with the same parsers the resolver uses,
    so a typo is rejected here instead of at the next configure.
    """
    if key == "build.type":
        parse_build_type(value)
        return value.lower()
    if key == "build.link":
        normalize_request(LinkState(request=LinkRequest(requested=value)))
        return value.lower()
    if key == "build.sanitizers":
        return sorted(parse_sanitizers(value))

    parsed: str | int | float | bool = value
    if value.lower() in ("true", "false"):
        parsed = value.lower() == "true"
    else:
        try:
            parsed = int(value)
        except ValueError:
            with contextlib.suppress(ValueError):
                parsed = float(value)
    return parsed


def _parse_properties(items: list[str]) -> dict[str, str]:
    props: dict[str, str] = {}
    for item in items:
        if "=" not in item:
            typer.secho(f"Error: property {item!r} must be KEY=VALUE.", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
        k, v = item.split("=", 1)
        props[k.strip()] = v.strip()
    return props


# ---------------------------------------------------------------------------
# Typer app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="Read and edit linkplan.toml programmatically.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]
  linkplan cfg init                          Write a starter linkplan.toml
  linkplan cfg show build.type               Read a config value
  linkplan cfg set build.link static         Set a config value
  linkplan cfg add-test array-test           Declare a test
  linkplan cfg path                          Print path to linkplan.toml

[dim]Supports dotted key paths for nested TOML tables (e.g. 'build.type').[/dim]""",
)


@app.command("init")
def init(
    force: bool = typer.Option(False, "--force", help="Overwrite an existing linkplan.toml."),
) -> None:
    """Write a starter linkplan.toml in the current directory."""
    toml_path = Path.cwd() / CONFIG_NAME
    if toml_path.exists() and not force:
        typer.secho(f"{toml_path} already exists (use --force).", fg=typer.colors.YELLOW)
        return
    toml_path.write_text(DEFAULT_TOML, encoding="utf-8")
    typer.secho(f"Wrote {toml_path}", fg=typer.colors.GREEN)


@app.command("path")
def path() -> None:
    """Print the path to linkplan.toml."""
    typer.echo(str(_find_root() / CONFIG_NAME))


@app.command("show")
def show(
    key: str | None = typer.Argument(None, help="Dot-separated key to show, e.g. 'build.type'"),
) -> None:
    """Show the current config, or a specific key."""
    doc, _ = _load_toml()

    if key is None:
        typer.echo(tomlkit.dumps(doc))
        return

    current = doc
    for part in key.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            typer.secho(f"Key '{key}' not found.", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)

    if isinstance(current, (dict, list)):
        typer.echo(tomlkit.dumps(current) if isinstance(current, dict) else str(current))
    else:
        typer.echo(str(current))


@app.command("set")
def set_value(
    key: str = typer.Argument(..., help="Dot-separated key, e.g. 'build.type'."),
    value: str = typer.Argument(..., help="Value to set."),
) -> None:
    """Set a config key."""
    doc, toml_path = _load_toml()

    try:
        parsed_value = _coerce(key, value)
    except ConfigError as exc:
        typer.secho(f"Error: {exc.message}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    parts = key.split(".")
    current = doc
    for part in parts[:-1]:
        if part not in current:
            current[part] = tomlkit.table()
        current = current[part]

    current[parts[-1]] = parsed_value
    _save_toml(doc, toml_path)
    typer.secho(f"Set {key} = {parsed_value!r}", fg=typer.colors.GREEN)


@app.command("add-test")
def add_test(
    name: str = typer.Argument(..., help="Test path relative to --dir, e.g. 'util/bit-util-test'."),
    test_dir: str = typer.Option("src/arrow", "--dir", "-d", help="Source directory of the test."),
    prop: list[str] = typer.Option([], "--property", "-p", help="KEY=VALUE test property."),
) -> None:
    """Declare a test in linkplan.toml (idempotent, unique by last path component)."""
    doc, toml_path = _load_toml()
    props = _parse_properties(prop)

    tests = doc.get("tests")
    ident = target_name(name)
    for entry in tests or []:
        if target_name(str(entry["name"])) == ident:
            if str(entry["name"]) == name:
                typer.secho(f"Test '{name}' already declared (no changes made).", fg=typer.colors.YELLOW)
                return
            typer.secho(
                f"Error: '{name}' collides with declared test '{entry['name']}'.",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)

    entry = tomlkit.table()
    entry["name"] = name
    entry["dir"] = test_dir
    if props:
        inline = tomlkit.inline_table()
        inline.update(props)
        entry["properties"] = inline
    if tests is None:
        tests = tomlkit.aot()
        tests.append(entry)
        doc["tests"] = tests
    else:
        tests.append(entry)
    _save_toml(doc, toml_path)
    typer.secho(f"Added test '{name}'", fg=typer.colors.GREEN)


@app.command("remove-test")
def remove_test(
    name: str = typer.Argument(..., help="Test name or path to remove."),
) -> None:
    """Remove a declared test (idempotent)."""
    doc, toml_path = _load_toml()
    tests = doc.get("tests")
    ident = target_name(name)
    if tests is not None:
        for i, entry in enumerate(tests):
            if target_name(str(entry["name"])) == ident:
                del tests[i]
                if not len(tests):
                    del doc["tests"]
                _save_toml(doc, toml_path)
                typer.secho(f"Removed test '{entry['name']}'", fg=typer.colors.GREEN)
                return
    typer.secho(f"Test '{name}' not declared (already removed).", fg=typer.colors.YELLOW)
