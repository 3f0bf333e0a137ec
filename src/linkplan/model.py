"""model.py – Enumerated inputs and immutable records shared by the resolver.

Build types, compiler/linker families and link modes are plain string
constants.  ``parse_build_type`` and ``parse_sanitizers`` are the only
places where user-supplied tokens are turned into those constants.
"""

from dataclasses import dataclass, field

from linkplan.errors import INVALID_INPUT, ConfigError

# ---------------------------------------------------------------------------
# Build types
# ---------------------------------------------------------------------------

DEBUG = "DEBUG"
FASTDEBUG = "FASTDEBUG"
RELEASE = "RELEASE"
PROFILE_GEN = "PROFILE_GEN"
PROFILE_BUILD = "PROFILE_BUILD"

BUILD_TYPES: tuple[str, ...] = (DEBUG, FASTDEBUG, RELEASE, PROFILE_GEN, PROFILE_BUILD)
DEFAULT_BUILD_TYPE = DEBUG

# ---------------------------------------------------------------------------
# Toolchain families
# ---------------------------------------------------------------------------

GCC = "gcc"
CLANG = "clang"

GOLD = "gold"
LD = "ld"

# ---------------------------------------------------------------------------
# Link modes
# ---------------------------------------------------------------------------

AUTO = "auto"
DYNAMIC = "dynamic"
STATIC = "static"

LINK_REQUESTS: tuple[str, ...] = (AUTO, DYNAMIC, STATIC)

# ---------------------------------------------------------------------------
# Sanitizers
# ---------------------------------------------------------------------------

ASAN = "address"
TSAN = "thread"

SANITIZERS: tuple[str, ...] = (ASAN, TSAN)


def parse_build_type(value: str | None) -> str:
    """Normalize a build-type token.

    ``None`` or an empty string selects the debug default.  Anything that
    is set but not recognised is fatal; it is never coerced to a default.
    """
    if value is not None and not isinstance(value, str):
        raise ConfigError(INVALID_INPUT, f"Build type must be a string, got {value!r}")
    if value is None or not value.strip():
        return DEFAULT_BUILD_TYPE
    build_type = value.strip().upper()
    if build_type not in BUILD_TYPES:
        raise ConfigError(
            INVALID_INPUT,
            f"Unknown build type: {value!r} "
            f"(expected one of {', '.join(t.lower() for t in BUILD_TYPES)})",
        )
    return build_type


def parse_sanitizers(value: str | list[str] | tuple[str, ...] | None) -> frozenset[str]:
    """Parse a comma-separated string (or list) of sanitizer names."""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        raise ConfigError(INVALID_INPUT, f"Sanitizers must be a string or a list, got {value!r}")
    names = set()
    for item in items:
        if not isinstance(item, str):
            raise ConfigError(INVALID_INPUT, f"Unknown sanitizer: {item!r}")
        name = item.strip().lower()
        if not name:
            continue
        if name not in SANITIZERS:
            raise ConfigError(
                INVALID_INPUT,
                f"Unknown sanitizer: {item!r} (expected one of {', '.join(SANITIZERS)})",
            )
        names.add(name)
    return frozenset(names)


def describe_sanitizers(sanitizers: frozenset[str]) -> str:
    """Render a sanitizer set for error messages and notes."""
    return ",".join(sorted(sanitizers)) if sanitizers else "none"


@dataclass(frozen=True)
class ThirdPartyLibrary:
    """An imported third-party dependency and the artifact chosen for it."""

    name: str
    static_lib: str | None = None
    shared_lib: str | None = None
    deps: tuple[str, ...] = ()
    kind: str = ""  # STATIC or DYNAMIC once registered
    location: str = ""

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dict for JSON output."""
        return {
            "name": self.name,
            "kind": self.kind,
            "location": self.location,
            "deps": list(self.deps),
        }


@dataclass(frozen=True)
class TestTarget:
    """A registered test, either a compiled binary or a script."""

    __test__ = False  # not a pytest class

    name: str
    path: str
    command: tuple[str, ...]
    compiled: bool
    source: str | None = None
    link_libs: tuple[str, ...] = ()
    properties: dict[str, str] = field(default_factory=dict)
    depends_on: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dict for JSON output."""
        d: dict[str, object] = {
            "name": self.name,
            "path": self.path,
            "command": list(self.command),
            "compiled": self.compiled,
        }
        if self.source:
            d["source"] = self.source
        if self.link_libs:
            d["link_libs"] = list(self.link_libs)
        if self.properties:
            d["properties"] = dict(self.properties)
        if self.depends_on:
            d["depends_on"] = list(self.depends_on)
        return d


@dataclass(frozen=True)
class ToolTarget:
    """A declarative developer tool command (tags, lint, ...)."""

    name: str
    command: tuple[str, ...]
    depends_on: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dict for JSON output."""
        d: dict[str, object] = {"name": self.name, "command": list(self.command)}
        if self.depends_on:
            d["depends_on"] = list(self.depends_on)
        return d
