"""configure.py – Resolve the build configuration and print the plan.

Usage::

    linkplan configure
    BUILD_TYPE=release linkplan configure --json
    linkplan configure --link static --coverage --output plan.json
"""

import json
from pathlib import Path

import typer

from linkplan.cli import RootOption, error_exit, get_config, get_probe, json_print, note
from linkplan.errors import ConfigError
from linkplan.flags import flags_to_str
from linkplan.model import parse_sanitizers
from linkplan.plan import BuildPlan, configure
from linkplan.utils import atomic_write_text, point_latest_link

_EPILOG = """\
[bold]Examples:[/bold]

linkplan configure                          Resolve using linkplan.toml + environment

linkplan configure --build-type release     Override the build type

linkplan configure --link d                 Request dynamic linking (any prefix works)

linkplan configure --json                   Machine-readable plan

[dim]Environment: BUILD_TYPE, LINK_MODE_REQUEST, COVERAGE_ENABLED, SANITIZERS,
TESTS_ENABLED, WITH_PARQUET, GCC_TOOLCHAIN_ROOT, GTEST_HOME, PARQUET_HOME.
Command-line options win over the environment, which wins over linkplan.toml.[/dim]"""

app = typer.Typer(
    help="Resolve flags, link mode, dependencies and test targets.",
    rich_markup_mode="rich",
    epilog=_EPILOG,
)


def _print_plan(plan: BuildPlan) -> None:
    typer.echo(f"Build type:   {plan.build_type}")
    typer.echo(f"Compiler:     {plan.compiler_family} ({plan.compilers[1]})")
    typer.echo(f"Linker:       {plan.linker_family}")
    forced = f" (forced by {plan.resolution.forced_by})" if plan.resolution.forced_by else ""
    typer.echo(f"Link mode:    {plan.link_mode}{forced}")
    typer.echo(f"CXX flags:    {flags_to_str(plan.cxx_flags)}")
    typer.echo(f"Output dir:   {plan.output_dir}")
    if plan.latest_link is not None:
        typer.echo(f"Latest link:  {plan.latest_link}")
    typer.echo("Libraries:")
    for lib in plan.libraries:
        typer.echo(f"  {lib.name:<12} {lib.kind:<8} {lib.location}")
    typer.echo(f"Tests:        {len(plan.tests)}")
    for test in plan.tests:
        kind = "binary" if test.compiled else "script"
        typer.echo(f"  {test.name:<24} {kind:<7} {test.path}")
    if plan.tools:
        typer.echo(f"Tools:        {', '.join(t.name for t in plan.tools)}")


@app.callback(invoke_without_command=True)
def main(
    root: Path | None = RootOption,
    build_type: str | None = typer.Option(
        None, "--build-type", "-b", help="debug|fastdebug|release|profile_gen|profile_build"
    ),
    link: str | None = typer.Option(None, "--link", "-l", help="auto|dynamic|static"),
    coverage: bool | None = typer.Option(
        None, "--coverage/--no-coverage", help="Instrument for code coverage"
    ),
    sanitizers: str | None = typer.Option(
        None, "--sanitizers", "-s", help="Comma-separated: address,thread"
    ),
    tests: bool | None = typer.Option(None, "--tests/--no-tests", help="Register test targets"),
    json_output: bool = typer.Option(False, "--json", help="Output the plan as JSON"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Also write the JSON plan to this file"
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress informational notes"),
    create_dirs: bool = typer.Option(
        False, "--create-dirs", help="Create the output directory and the build/latest link"
    ),
) -> None:
    """Run one configuration pass and print the resulting build plan."""
    cfg = get_config(root, json_mode=json_output)

    try:
        if build_type is not None:
            cfg.build_type = build_type
        if link is not None:
            cfg.link = link
        if coverage is not None:
            cfg.coverage = coverage
        if sanitizers is not None:
            cfg.sanitizers = parse_sanitizers(sanitizers)
        if tests is not None:
            cfg.tests_enabled = tests
        plan = configure(cfg, get_probe(cfg))
    except ConfigError as exc:
        error_exit(exc.message, json_mode=json_output, kind=exc.kind)

    if not quiet and not json_output:
        for msg in plan.notes:
            note(msg)

    if create_dirs:
        if plan.latest_link is not None:
            point_latest_link(plan.latest_link, plan.output_dir)
        else:
            plan.output_dir.mkdir(parents=True, exist_ok=True)

    data = plan.to_dict()
    if output is not None:
        atomic_write_text(output, json.dumps(data, indent=2) + "\n")

    if json_output:
        json_print(data)
    else:
        _print_plan(plan)


def main_entry() -> None:
    """Run the Typer CLI application."""
    app()


if __name__ == "__main__":
    main_entry()
