"""doctor.py – Diagnostic command for the build toolchain.

Runs the same probes as ``linkplan configure`` and checks the paths the
plan will point at (test runner, googletest, declared test directories),
printing a checklist with fix suggestions.

Usage::

    linkplan doctor
    linkplan doctor --json
"""

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import typer

from linkplan.cli import RootOption, get_probe, json_print
from linkplan.config import ProjectConfig, load_config
from linkplan.deps import gtest_artifacts
from linkplan.errors import ConfigError
from linkplan.flags import wants_color_diagnostics
from linkplan.model import CLANG, GOLD, RELEASE, parse_build_type
from linkplan.probe import PlatformProbe
from linkplan.targets import RUN_TEST_SCRIPT

# ---------------------------------------------------------------------------
# Check result data
# ---------------------------------------------------------------------------

_PASS = "pass"
_FAIL = "fail"
_WARN = "warn"
_SKIP = "skip"


@dataclass
class CheckResult:
    """Result of a single diagnostic check."""

    name: str
    status: str  # "pass", "fail", "warn", "skip"
    message: str
    fix: str = ""

    def to_dict(self) -> dict[str, str]:
        """Serialize to a plain dict for JSON output."""
        d: dict[str, str] = {
            "name": self.name,
            "status": self.status,
            "message": self.message,
        }
        if self.fix:
            d["fix"] = self.fix
        return d


@dataclass
class DoctorReport:
    """Aggregated results from all diagnostic checks."""

    root: str = ""
    checks: list[CheckResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        """True if no checks failed."""
        return all(c.status != _FAIL for c in self.checks)

    @property
    def pass_count(self) -> int:
        return sum(1 for c in self.checks if c.status == _PASS)

    @property
    def fail_count(self) -> int:
        return sum(1 for c in self.checks if c.status == _FAIL)

    @property
    def warn_count(self) -> int:
        return sum(1 for c in self.checks if c.status == _WARN)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict for JSON output."""
        return {
            "root": self.root,
            "passed": self.passed,
            "summary": {
                "pass": self.pass_count,
                "fail": self.fail_count,
                "warn": self.warn_count,
            },
            "checks": [c.to_dict() for c in self.checks],
        }


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def check_config_parse(root: Path | None) -> tuple[CheckResult, ProjectConfig | None]:
    """Check that the configuration (file + environment) is valid."""
    try:
        cfg = load_config(root=root)
    except ConfigError as e:
        return (
            CheckResult(
                name="Configuration",
                status=_FAIL,
                message=e.message,
                fix="Fix the value in linkplan.toml or the environment and re-run.",
            ),
            None,
        )
    source = str(cfg.config_path) if cfg.config_path else "environment only"
    return CheckResult(name="Configuration", status=_PASS, message=f"Loaded ({source})"), cfg


def check_compiler(probe: PlatformProbe) -> CheckResult:
    """Check that the C++ compiler is on PATH (or at an absolute path)."""
    _, cxx = probe.compilers()
    exe = cxx.split()[0] if cxx.split() else ""
    found = shutil.which(exe) if exe else None
    if found is None:
        return CheckResult(
            name="Compiler",
            status=_FAIL,
            message=f"Executable '{cxx}' not found",
            fix="Install a C++ compiler, set CXX, or set GCC_TOOLCHAIN_ROOT.",
        )
    return CheckResult(
        name="Compiler",
        status=_PASS,
        message=f"{probe.compiler_family()} at {found}",
    )


def check_linker(cfg: ProjectConfig, probe: PlatformProbe) -> CheckResult:
    """Report the linker family and warn about gold in dynamic release builds."""
    if probe.is_apple():
        return CheckResult(name="Linker", status=_SKIP, message="Not probed on Apple platforms")
    family = probe.linker_family()
    if family != GOLD:
        return CheckResult(name="Linker", status=_PASS, message="ld")
    build_type = parse_build_type(cfg.build_type)
    link = (cfg.link or "auto").strip().lower()
    if build_type == RELEASE and link and "dynamic".startswith(link):
        return CheckResult(
            name="Linker",
            status=_WARN,
            message="gold detected; dynamic RELEASE builds will be rejected",
            fix="Use static linking for release builds or switch to the bfd linker.",
        )
    return CheckResult(name="Linker", status=_PASS, message="gold")


def check_coverage(cfg: ProjectConfig, probe: PlatformProbe) -> CheckResult:
    """Coverage builds need a GCC-like compiler."""
    if not cfg.coverage:
        return CheckResult(name="Coverage", status=_SKIP, message="Coverage disabled")
    if probe.compiler_family() == CLANG:
        return CheckResult(
            name="Coverage",
            status=_FAIL,
            message="Coverage is enabled but the compiler is clang",
            fix="Set GCC_TOOLCHAIN_ROOT or CXX to a GCC toolchain, or disable coverage.",
        )
    return CheckResult(name="Coverage", status=_PASS, message="Coverage with GCC")


def check_terminal(probe: PlatformProbe) -> CheckResult:
    """Report whether clang would get -fcolor-diagnostics."""
    if wants_color_diagnostics(probe):
        return CheckResult(name="Terminal", status=_PASS, message="Running in a controlling terminal")
    return CheckResult(
        name="Terminal",
        status=_PASS,
        message="Running without a controlling terminal or in a dumb terminal",
    )


def check_test_runner(cfg: ProjectConfig) -> CheckResult:
    """Check that the test runner wrapper exists."""
    runner = cfg.build_support_dir / RUN_TEST_SCRIPT
    if not cfg.tests_enabled:
        return CheckResult(name="Test runner", status=_SKIP, message="Tests disabled")
    if not runner.is_file():
        return CheckResult(
            name="Test runner",
            status=_WARN,
            message=f"Not found: {runner}",
            fix="Set paths.build_support_dir in linkplan.toml.",
        )
    return CheckResult(name="Test runner", status=_PASS, message=str(runner))


def check_gtest(cfg: ProjectConfig) -> CheckResult:
    """Check that googletest's static library is where the plan will look."""
    gtest = gtest_artifacts(cfg.root, cfg.home_overrides.get("gtest"))
    if not gtest["static_lib"].is_file():
        return CheckResult(
            name="googletest",
            status=_WARN,
            message=f"Not found: {gtest['static_lib']}",
            fix="Build googletest into thirdparty/ or set GTEST_HOME.",
        )
    return CheckResult(name="googletest", status=_PASS, message=str(gtest["home"]))


def check_test_dirs(cfg: ProjectConfig) -> CheckResult:
    """Check that every declared test directory exists."""
    if not cfg.tests:
        return CheckResult(name="Test declarations", status=_SKIP, message="No [[tests]] declared")
    missing = sorted({str(d.dir) for d in cfg.tests if not d.dir.is_dir()})
    if missing:
        return CheckResult(
            name="Test declarations",
            status=_WARN,
            message=f"Missing directories: {', '.join(missing)}",
            fix="Fix the 'dir' of the affected [[tests]] entries.",
        )
    return CheckResult(
        name="Test declarations", status=_PASS, message=f"{len(cfg.tests)} test(s) declared"
    )


# ---------------------------------------------------------------------------
# Main diagnostic runner
# ---------------------------------------------------------------------------


def run_doctor(root: Path | None = None, probe: PlatformProbe | None = None) -> DoctorReport:
    """Run all diagnostic checks and return a report."""
    report = DoctorReport()

    config_result, cfg = check_config_parse(root)
    report.checks.append(config_result)
    if cfg is None:
        report.root = str(root or Path.cwd())
        return report
    report.root = str(cfg.root)

    if probe is None:
        probe = get_probe(cfg)

    report.checks.append(check_compiler(probe))
    report.checks.append(check_linker(cfg, probe))
    report.checks.append(check_coverage(cfg, probe))
    report.checks.append(check_terminal(probe))
    report.checks.append(check_test_runner(cfg))
    report.checks.append(check_gtest(cfg))
    report.checks.append(check_test_dirs(cfg))
    return report


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

_EPILOG = """\
[bold]Example:[/bold]

linkplan doctor                  Check the current project

linkplan doctor --json           Machine-readable output

[dim]Validates: configuration, compiler, linker, coverage toolchain, test runner,
googletest location, and declared test directories.[/dim]"""

_STATUS_ICONS = {
    _PASS: "✅",
    _FAIL: "❌",
    _WARN: "⚠️",
    _SKIP: "⏭️",
}

app = typer.Typer(
    help="Diagnostic checks for the build toolchain.",
    rich_markup_mode="rich",
    epilog=_EPILOG,
)


@app.callback(invoke_without_command=True)
def main(
    root: Path | None = RootOption,
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
) -> None:
    """Run diagnostic checks on the build toolchain."""
    report = run_doctor(root=root)

    if json_output:
        json_print(report.to_dict())
    else:
        print(f"\nlinkplan doctor: root {report.root}")
        print("=" * 60)

        for check in report.checks:
            icon = _STATUS_ICONS.get(check.status, "?")
            print(f"  {icon}  {check.name}: {check.message}")
            if check.fix:
                print(f"       Fix: {check.fix}")

        print("=" * 60)
        parts = []
        if report.pass_count:
            parts.append(f"{report.pass_count} passed")
        if report.fail_count:
            parts.append(f"{report.fail_count} failed")
        if report.warn_count:
            parts.append(f"{report.warn_count} warnings")
        print(f"  {', '.join(parts)}")

        if report.passed:
            print("\n  Toolchain looks healthy!\n")
        else:
            print("\n  Issues found. Fix the failures above and re-run.\n")

    if not report.passed:
        raise typer.Exit(code=1)


def main_entry() -> None:
    """Run the Typer CLI application."""
    app()


if __name__ == "__main__":
    main_entry()
