"""Configuration inputs for a linkplan run.

Reads an optional ``linkplan.toml`` from the project root and overlays the
environment on top of it, so CI jobs can flip a single knob without
editing the file::

    BUILD_TYPE=release LINK_MODE_REQUEST=static linkplan configure

Recognised environment variables:

``BUILD_TYPE``          debug|fastdebug|release|profile_gen|profile_build
``LINK_MODE_REQUEST``   auto|dynamic|static (any prefix)
``COVERAGE_ENABLED``    boolean
``SANITIZERS``          comma-separated subset of address,thread
``TESTS_ENABLED``       boolean
``WITH_PARQUET``        boolean
``EXPORT_COMPILE_COMMANDS``  boolean; emit a compile_commands.json database
``GCC_TOOLCHAIN_ROOT``  directory containing ``bin/gcc`` and ``bin/g++``
``GTEST_HOME``          googletest home directory
``PARQUET_HOME``        parquet home directory

Example ``linkplan.toml``::

    [build]
    type = "release"
    link = "auto"
    sanitizers = ["address"]

    [thirdparty]
    gtest_home = "/opt/googletest"

    [[tests]]
    name = "array-test"
    dir = "src/arrow"
    properties = { TIMEOUT = "300" }
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import,no-redef]

from linkplan.errors import INVALID_INPUT, ConfigError
from linkplan.model import AUTO, parse_build_type, parse_sanitizers

CONFIG_NAME = "linkplan.toml"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}

# Environment variable → third-party dependency it overrides the home of
_HOME_OVERRIDE_VARS: dict[str, str] = {
    "GTEST_HOME": "gtest",
    "PARQUET_HOME": "parquet",
}


@dataclass
class TestDecl:
    """A test declared in ``linkplan.toml``."""

    __test__ = False

    name: str
    dir: Path
    properties: dict[str, str] = field(default_factory=dict)
    depends_on: list[str] = field(default_factory=list)


@dataclass
class ProjectConfig:
    """Raw configuration inputs, before any resolution happens."""

    # Root directory (where linkplan.toml lives, or cwd)
    root: Path
    config_path: Path | None = None

    # --- [build] ---
    build_type: str | None = None  # None = unset → debug
    link: str | None = AUTO
    coverage: bool = False
    sanitizers: frozenset[str] = frozenset()
    tests_enabled: bool = True
    with_parquet: bool = False
    export_compile_commands: bool = False

    # --- [toolchain] ---
    gcc_root: Path | None = None

    # --- [thirdparty] ---
    home_overrides: dict[str, str] = field(default_factory=dict)

    # --- [paths] ---
    source_dir: Path = field(default_factory=lambda: Path())
    binary_dir: Path = field(default_factory=lambda: Path())
    build_support_dir: Path = field(default_factory=lambda: Path())

    tests: list[TestDecl] = field(default_factory=list)

    @property
    def in_source(self) -> bool:
        """True when building inside the source tree."""
        return self.source_dir.resolve() == self.binary_dir.resolve()


def parse_bool(value: Any, name: str) -> bool:
    """Parse a TOML or environment boolean; anything unrecognised is fatal."""
    if isinstance(value, bool):
        return value
    token = str(value).strip().lower()
    if token in _TRUE:
        return True
    if token in _FALSE:
        return False
    raise ConfigError(INVALID_INPUT, f"Invalid boolean for {name}: {value!r}")


def _resolve(root: Path, rel: str | None) -> Path | None:
    """Resolve a path relative to project root."""
    if rel is None:
        return None
    p = Path(rel)
    if p.is_absolute():
        return p
    return root / p


def _find_root(start: Path | None = None) -> tuple[Path, Path | None]:
    """Walk up from *start* (or cwd) to find linkplan.toml.

    Returns ``(root, config_path)``; without a config file the root is the
    starting directory and ``config_path`` is ``None``.
    """
    if start is not None:
        candidate = start / CONFIG_NAME
        return start, candidate if candidate.exists() else None
    cwd = Path.cwd().resolve()
    candidate = cwd
    while candidate != candidate.parent:
        if (candidate / CONFIG_NAME).exists():
            return candidate, candidate / CONFIG_NAME
        candidate = candidate.parent
    return cwd, None


def _read_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(INVALID_INPUT, f"Cannot parse {path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Shape checks: a wrong TOML type is an input error, never a traceback
# ---------------------------------------------------------------------------


def _wrong_type(key: str, expected: str, value: Any) -> ConfigError:
    return ConfigError(
        INVALID_INPUT, f"{key} must be {expected}, got {type(value).__name__} {value!r}"
    )


def _table(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key, {})
    if not isinstance(value, dict):
        raise _wrong_type(f"[{key}]", "a table", value)
    return value


def _str(table: dict[str, Any], key: str, name: str, default: str | None = None) -> str | None:
    value = table.get(key, default)
    if value is not None and not isinstance(value, str):
        raise _wrong_type(name, "a string", value)
    return value


def _str_list(value: Any, name: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise _wrong_type(name, "an array of strings", value)
    return value


def _str_or_list(table: dict[str, Any], key: str, name: str) -> str | list[str] | None:
    value = table.get(key)
    if value is None or isinstance(value, str):
        return value
    return _str_list(value, name)


def _parse_tests(root: Path, raw: Any) -> list[TestDecl]:
    if not isinstance(raw, list) or not all(isinstance(e, dict) for e in raw):
        raise _wrong_type("tests", "an array of tables ([[tests]])", raw)
    decls = []
    for entry in raw:
        if "name" not in entry:
            raise ConfigError(INVALID_INPUT, f"[[tests]] entry without a name: {entry}")
        name = _str(entry, "name", "tests.name")
        properties = entry.get("properties", {})
        if not isinstance(properties, dict):
            raise _wrong_type(f"tests.properties of {name!r}", "a table", properties)
        depends_on = _str_list(entry.get("depends_on", []), f"tests.depends_on of {name!r}")
        decls.append(
            TestDecl(
                name=name,
                dir=_resolve(root, _str(entry, "dir", f"tests.dir of {name!r}", "src/arrow")),
                properties={str(k): str(v) for k, v in properties.items()},
                depends_on=list(depends_on),
            )
        )
    return decls


def load_config(
    root: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> ProjectConfig:
    """Load linkplan.toml (if any) and overlay environment variables.

    Args:
        root: Project root directory.  Auto-detected if ``None``.
        env: Environment mapping; defaults to ``os.environ``.
    """
    root, config_path = _find_root(root)
    env = os.environ if env is None else env
    raw = _read_toml(config_path) if config_path is not None else {}

    build = _table(raw, "build")
    toolchain = _table(raw, "toolchain")
    thirdparty = _table(raw, "thirdparty")
    paths = _table(raw, "paths")

    cfg = ProjectConfig(
        root=root,
        config_path=config_path,
        build_type=_str(build, "type", "build.type"),
        link=_str(build, "link", "build.link", AUTO),
        coverage=parse_bool(build.get("coverage", False), "build.coverage"),
        sanitizers=parse_sanitizers(_str_or_list(build, "sanitizers", "build.sanitizers")),
        tests_enabled=parse_bool(build.get("tests", True), "build.tests"),
        with_parquet=parse_bool(build.get("with_parquet", False), "build.with_parquet"),
        export_compile_commands=parse_bool(
            build.get("compile_commands", False), "build.compile_commands"
        ),
        gcc_root=_resolve(root, _str(toolchain, "gcc_root", "toolchain.gcc_root")),
        home_overrides={
            name: _str(thirdparty, f"{name}_home", f"thirdparty.{name}_home")
            for name in ("gtest", "parquet")
            if f"{name}_home" in thirdparty
        },
        source_dir=_resolve(root, _str(paths, "source_dir", "paths.source_dir", ".")),
        binary_dir=_resolve(root, _str(paths, "binary_dir", "paths.binary_dir", ".")),
        build_support_dir=_resolve(
            root, _str(paths, "build_support_dir", "paths.build_support_dir", "build-support")
        ),
        tests=_parse_tests(root, raw.get("tests", [])),
    )

    # --- environment overrides ---
    if env.get("BUILD_TYPE"):
        cfg.build_type = env["BUILD_TYPE"]
    if env.get("LINK_MODE_REQUEST"):
        cfg.link = env["LINK_MODE_REQUEST"]
    if "COVERAGE_ENABLED" in env:
        cfg.coverage = parse_bool(env["COVERAGE_ENABLED"], "COVERAGE_ENABLED")
    if "SANITIZERS" in env:
        cfg.sanitizers = parse_sanitizers(env["SANITIZERS"])
    if "TESTS_ENABLED" in env:
        cfg.tests_enabled = parse_bool(env["TESTS_ENABLED"], "TESTS_ENABLED")
    if "EXPORT_COMPILE_COMMANDS" in env:
        cfg.export_compile_commands = parse_bool(
            env["EXPORT_COMPILE_COMMANDS"], "EXPORT_COMPILE_COMMANDS"
        )
    if "WITH_PARQUET" in env:
        cfg.with_parquet = parse_bool(env["WITH_PARQUET"], "WITH_PARQUET")
    if env.get("GCC_TOOLCHAIN_ROOT"):
        cfg.gcc_root = Path(env["GCC_TOOLCHAIN_ROOT"])
    for var, dep in _HOME_OVERRIDE_VARS.items():
        if env.get(var):
            cfg.home_overrides[dep] = env[var]

    # Fail fast on an explicit but unknown build type.
    parse_build_type(cfg.build_type)
    return cfg
