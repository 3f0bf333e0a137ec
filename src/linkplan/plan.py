"""plan.py – Run one configuration pass and produce the build plan.

The pass is single-threaded and runs to completion in a fixed order:

1. parse the build type
2. detect the toolchain and build the mode-independent flags
3. resolve the link mode
4. finalize the flags (sanitizers, coverage for C++ only, PIC)
5. lay out output directories
6. register third-party dependencies
7. register tests and developer tools

Any ``ConfigError`` raised along the way propagates out of ``configure``
and no plan is returned.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from linkplan.config import ProjectConfig
from linkplan.deps import DependencyRegistry, register_default_dependencies
from linkplan.flags import build_flags, finalize_flags, flags_to_str
from linkplan.linkmode import LinkRequest, Resolution, resolve_link_mode
from linkplan.model import (
    ThirdPartyLibrary,
    TestTarget,
    ToolTarget,
    describe_sanitizers,
    parse_build_type,
)
from linkplan.probe import PlatformProbe
from linkplan.targets import TargetRegistry, register_default_tools


@dataclass
class BuildPlan:
    """Everything handed to the external toolchain and test harness."""

    build_type: str
    compiler_family: str
    linker_family: str
    compilers: tuple[str, str]
    resolution: Resolution
    cxx_flags: tuple[str, ...]
    c_flags: tuple[str, ...]
    output_dir: Path
    export_compile_commands: bool = False
    latest_link: Path | None = None
    include_dirs: list[str] = field(default_factory=list)
    libraries: list[ThirdPartyLibrary] = field(default_factory=list)
    test_link_line: list[str] = field(default_factory=list)
    tests: list[TestTarget] = field(default_factory=list)
    tools: list[ToolTarget] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def link_mode(self) -> str:
        return self.resolution.mode

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict for JSON output."""
        return {
            "build_type": self.build_type,
            "compiler": {
                "family": self.compiler_family,
                "cc": self.compilers[0],
                "cxx": self.compilers[1],
            },
            "linker": self.linker_family,
            "link": self.resolution.to_dict(),
            "cxx_flags": list(self.cxx_flags),
            "c_flags": list(self.c_flags),
            "export_compile_commands": self.export_compile_commands,
            "output_dir": str(self.output_dir),
            "latest_link": str(self.latest_link) if self.latest_link else None,
            "include_dirs": list(self.include_dirs),
            "libraries": [lib.to_dict() for lib in self.libraries],
            "test_link_line": list(self.test_link_line),
            "tests": [t.to_dict() for t in self.tests],
            "tools": [t.to_dict() for t in self.tools],
            "notes": list(self.notes),
        }


def output_layout(cfg: ProjectConfig, build_type: str) -> tuple[Path, Path | None]:
    """Return ``(output_dir, latest_link)`` for *build_type*.

    In-source builds go to ``build/<type>/`` with a ``build/latest`` link so
    nobody runs a stale debug binary while building release.  Out-of-source
    builds write straight into ``<binary_dir>/<type>/``.
    """
    subdir = build_type.lower()
    if cfg.in_source:
        build_root = cfg.binary_dir / "build"
        return build_root / subdir, build_root / "latest"
    return cfg.binary_dir / subdir, None


def configure(cfg: ProjectConfig, probe: PlatformProbe) -> BuildPlan:
    """Resolve *cfg* against *probe* into a complete ``BuildPlan``."""
    notes: list[str] = []

    build_type = parse_build_type(cfg.build_type)
    notes.append(f"Configured for {build_type} build")

    compiler_family = probe.compiler_family()
    base_flags = build_flags(build_type, compiler_family, probe)

    linker_family = probe.linker_family()
    request = LinkRequest(
        requested=cfg.link,
        build_type=build_type,
        sanitizers=cfg.sanitizers,
        coverage=cfg.coverage,
        compiler_family=compiler_family,
        linker_family=linker_family,
        is_apple=probe.is_apple(),
    )
    resolution = resolve_link_mode(request)
    notes.extend(resolution.notes)

    cxx_flags = finalize_flags(base_flags, resolution.mode, cfg.sanitizers, cfg.coverage)
    # C flags are captured before the coverage flags are appended
    c_flags = finalize_flags(base_flags, resolution.mode, cfg.sanitizers, coverage=False)

    output_dir, latest_link = output_layout(cfg, build_type)

    deps = DependencyRegistry(resolution.mode)
    include_dirs = register_default_dependencies(
        deps, cfg.root, cfg.home_overrides, with_parquet=cfg.with_parquet
    )
    notes.extend(deps.notes)

    targets = TargetRegistry(
        tests_enabled=cfg.tests_enabled,
        output_dir=output_dir,
        build_support_dir=cfg.build_support_dir,
    )
    for decl in cfg.tests:
        targets.register_test(decl.name, decl.dir, decl.properties)
        if decl.depends_on:
            targets.add_test_dependencies(decl.name, *decl.depends_on)
    if probe.is_unix():
        register_default_tools(
            targets,
            cfg.source_dir,
            cfg.build_support_dir,
            compile_db_dir=cfg.binary_dir if cfg.export_compile_commands else None,
        )

    if not cfg.tests_enabled and cfg.tests:
        notes.append(f"Tests disabled; skipped {len(cfg.tests)} test declaration(s)")
    notes.append(
        f"Flags: {flags_to_str(cxx_flags)} "
        f"(sanitizers={describe_sanitizers(cfg.sanitizers)}, "
        f"coverage={'on' if cfg.coverage else 'off'})"
    )

    return BuildPlan(
        build_type=build_type,
        compiler_family=compiler_family,
        linker_family=request.effective_linker,
        compilers=probe.compilers(),
        resolution=resolution,
        cxx_flags=cxx_flags,
        c_flags=c_flags,
        output_dir=output_dir,
        export_compile_commands=cfg.export_compile_commands,
        latest_link=latest_link,
        include_dirs=include_dirs,
        libraries=deps.libraries,
        test_link_line=deps.link_line(
            [*targets.test_link_libs, *(lib.name for lib in deps.libraries)]
        ),
        tests=targets.tests,
        tools=targets.tools,
        notes=notes,
    )
