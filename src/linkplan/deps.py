"""deps.py – Import third-party libraries as static or shared artifacts.

Artifact choice is a small decision table evaluated top to bottom; the
first matching row wins:

====================  ================  ================  ===============
link mode             static artifact   shared artifact   choice
====================  ================  ================  ===============
static                present           any               static
any                   present           absent            static
any                   absent            absent            fatal
otherwise                                                 shared
====================  ================  ================  ===============

A static-mode build with only a shared artifact therefore still imports
the shared one; the absence of a static artifact is only fatal when the
shared artifact is missing too.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from linkplan.errors import MISSING_DEPENDENCY, ConfigError
from linkplan.model import DYNAMIC, STATIC, ThirdPartyLibrary

_FATAL = "fatal"


@dataclass(frozen=True)
class SelectionRule:
    """One row of the artifact decision table."""

    description: str
    matches: Callable[[str, bool, bool], bool]
    choice: str


SELECTION_RULES: tuple[SelectionRule, ...] = (
    SelectionRule(
        "static build with a static artifact",
        lambda mode, has_static, has_shared: mode == STATIC and has_static,
        STATIC,
    ),
    SelectionRule(
        "only a static artifact",
        lambda mode, has_static, has_shared: has_static and not has_shared,
        STATIC,
    ),
    SelectionRule(
        "no artifact at all",
        lambda mode, has_static, has_shared: not has_static and not has_shared,
        _FATAL,
    ),
    SelectionRule(
        "shared artifact available",
        lambda mode, has_static, has_shared: True,
        DYNAMIC,
    ),
)


def select_artifact(link_mode: str, has_static: bool, has_shared: bool) -> str:
    """Return STATIC, DYNAMIC, or ``"fatal"`` when no row matches or the row is fatal."""
    for rule in SELECTION_RULES:
        if rule.matches(link_mode, has_static, has_shared):
            return rule.choice
    return _FATAL


class DependencyRegistry:
    """Registered third-party libraries for one configuration run.

    Names are unique: registering a name again replaces the earlier entry.
    """

    def __init__(self, link_mode: str) -> None:
        self.link_mode = link_mode
        self._libs: dict[str, ThirdPartyLibrary] = {}
        self.notes: list[str] = []

    def register(
        self,
        name: str,
        static_lib: str | Path | None = None,
        shared_lib: str | Path | None = None,
        deps: list[str] | tuple[str, ...] = (),
    ) -> ThirdPartyLibrary:
        """Import *name*, choosing its artifact per ``SELECTION_RULES``."""
        static_path = str(static_lib) if static_lib else None
        shared_path = str(shared_lib) if shared_lib else None

        choice = select_artifact(self.link_mode, static_path is not None, shared_path is not None)
        if choice == STATIC and static_path is not None:
            location = static_path
        elif choice == DYNAMIC and shared_path is not None:
            location = shared_path
        else:
            raise ConfigError(
                MISSING_DEPENDENCY,
                f"No static or shared library provided for {name} (link mode={self.link_mode})",
            )

        lib = ThirdPartyLibrary(
            name=name,
            static_lib=static_path,
            shared_lib=shared_path,
            deps=tuple(deps),
            kind=choice,
            location=location,
        )
        if name in self._libs:
            self.notes.append(f"Redeclared library dependency {name}, replacing earlier entry")
        self._libs[name] = lib
        kind_label = "static" if choice == STATIC else "shared"
        self.notes.append(f"Added {kind_label} library dependency {name}: {location}")
        return lib

    def get(self, name: str) -> ThirdPartyLibrary | None:
        return self._libs.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._libs

    def __len__(self) -> int:
        return len(self._libs)

    @property
    def libraries(self) -> list[ThirdPartyLibrary]:
        """Registered libraries in registration order."""
        return list(self._libs.values())

    def link_line(self, names: list[str] | tuple[str, ...]) -> list[str]:
        """Expand *names* into link-line entries.

        Registered libraries become their chosen artifact path and pull in
        their transitive dependencies right after them.  Unregistered names
        (in-tree targets, system libraries) pass through unchanged.  Every
        entry appears once, at its first position.
        """
        out: list[str] = []
        seen: set[str] = set()

        def visit(name: str) -> None:
            if name in seen:
                return
            seen.add(name)
            lib = self._libs.get(name)
            if lib is None:
                out.append(name)
                return
            out.append(lib.location)
            for dep in lib.deps:
                visit(dep)

        for name in names:
            visit(name)
        return out


# ---------------------------------------------------------------------------
# Default dependencies
# ---------------------------------------------------------------------------

GTEST_DEFAULT_HOME = "thirdparty/googletest-release-1.7.0"
PARQUET_DEFAULT_HOME = "thirdparty/parquet"


def _home(root: Path, override: str | None, default: str) -> Path:
    p = Path(override) if override else Path(default)
    return p if p.is_absolute() else root / p


def gtest_artifacts(root: Path, gtest_home: str | None = None) -> dict[str, Path]:
    """Locate googletest under its home directory (static only)."""
    home = _home(root, gtest_home, GTEST_DEFAULT_HOME)
    return {
        "home": home,
        "include_dir": home / "include",
        "static_lib": home / "lib" / "libgtest.a",
    }


def parquet_artifacts(root: Path, parquet_home: str | None = None) -> dict[str, Path]:
    """Locate the parquet static and shared libraries under its home."""
    home = _home(root, parquet_home, PARQUET_DEFAULT_HOME)
    return {
        "home": home,
        "include_dir": home / "include",
        "static_lib": home / "lib" / "libparquet.a",
        "shared_lib": home / "lib" / "libparquet.so",
    }


def register_default_dependencies(
    registry: DependencyRegistry,
    root: Path,
    overrides: dict[str, str] | None = None,
    with_parquet: bool = False,
) -> list[str]:
    """Register gtest (and optionally parquet); return include dirs to add."""
    overrides = overrides or {}
    gtest = gtest_artifacts(root, overrides.get("gtest"))
    registry.register("gtest", static_lib=gtest["static_lib"])
    include_dirs = [str(gtest["include_dir"])]

    if with_parquet:
        parquet = parquet_artifacts(root, overrides.get("parquet"))
        registry.register(
            "parquet",
            static_lib=parquet["static_lib"],
            shared_lib=parquet["shared_lib"],
        )
        include_dirs.append(str(parquet["include_dir"]))
    return include_dirs
