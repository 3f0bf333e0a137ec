"""targets.py – Test and developer-tool target registration.

A test named ``util/bit-util-test`` is identified by its last path
component, ``bit-util-test``, which must be unique across the run.  If
``<source_dir>/util/bit-util-test.cc`` exists the test is a compiled
binary linked against the minimal test libraries; otherwise the path
itself is run as a script.  Either way the test runner wrapper is
invoked with the test path as its only argument.
"""

import shlex
from dataclasses import replace
from pathlib import Path, PurePosixPath

from linkplan.errors import DUPLICATE_TARGET, INVALID_INPUT, ConfigError
from linkplan.model import TestTarget, ToolTarget

MIN_TEST_LIBS: tuple[str, ...] = ("arrow", "arrow_test_main", "arrow_test_util")
TEST_SOURCE_EXT = ".cc"
RUN_TEST_SCRIPT = "run-test.sh"

SOURCE_PATTERNS: tuple[str, ...] = ("*.cc", "*.hh", "*.cpp", "*.h", "*.c", "*.f")
LINT_FILTERS = "-whitespace/comments,-readability/todo,-build/header_guard"


def target_name(rel_name: str) -> str:
    """Last path component of *rel_name* without its extension."""
    name = PurePosixPath(rel_name).name
    return name.split(".", 1)[0] if "." in name else name


class TargetRegistry:
    """Tests and tools registered during one configuration run.

    ``tests_enabled`` is fixed at construction.  With tests disabled,
    ``register_test`` and ``add_test_dependencies`` do nothing and return
    ``None``.
    """

    def __init__(
        self,
        tests_enabled: bool,
        output_dir: str | Path,
        build_support_dir: str | Path,
        base_libs: tuple[str, ...] = (),
    ) -> None:
        self.tests_enabled = tests_enabled
        self.output_dir = Path(output_dir)
        self.build_support_dir = Path(build_support_dir)
        self.test_link_libs = (*MIN_TEST_LIBS, *base_libs)
        self._tests: dict[str, TestTarget] = {}
        self._tools: dict[str, ToolTarget] = {}

    @property
    def runner(self) -> str:
        return str(self.build_support_dir / RUN_TEST_SCRIPT)

    def register_test(
        self,
        rel_name: str,
        source_dir: str | Path,
        properties: dict[str, str] | None = None,
    ) -> TestTarget | None:
        """Register a test, or do nothing when tests are disabled."""
        if not self.tests_enabled:
            return None

        name = target_name(rel_name)
        if name in self._tests:
            raise ConfigError(
                DUPLICATE_TARGET,
                f"Test name {name!r} from {rel_name!r} collides with an already "
                f"registered test; the last path component must be unique",
            )

        source_dir = Path(source_dir)
        source = source_dir / f"{rel_name}{TEST_SOURCE_EXT}"
        if source.is_file():
            path = str(self.output_dir / name)
            target = TestTarget(
                name=name,
                path=path,
                command=(self.runner, path),
                compiled=True,
                source=str(source),
                link_libs=self.test_link_libs,
                properties=dict(properties or {}),
            )
        else:
            path = str(source_dir / rel_name)
            target = TestTarget(
                name=name,
                path=path,
                command=(self.runner, path),
                compiled=False,
                properties=dict(properties or {}),
            )
        self._tests[name] = target
        return target

    def add_test_dependencies(self, rel_name: str, *deps: str) -> TestTarget | None:
        """Make the test built from *rel_name* depend on other targets."""
        if not self.tests_enabled:
            return None
        name = target_name(rel_name)
        target = self._tests.get(name)
        if target is None:
            raise ConfigError(INVALID_INPUT, f"No registered test {name!r} for {rel_name!r}")
        merged = tuple(dict.fromkeys((*target.depends_on, *deps)))
        updated = replace(target, depends_on=merged)
        self._tests[name] = updated
        return updated

    def register_tool(
        self, name: str, command: list[str] | tuple[str, ...], depends_on: tuple[str, ...] = ()
    ) -> ToolTarget:
        """Register a declarative tool command; never gated on tests."""
        tool = ToolTarget(name=name, command=tuple(command), depends_on=depends_on)
        self._tools[name] = tool
        return tool

    @property
    def tests(self) -> list[TestTarget]:
        return list(self._tests.values())

    @property
    def tools(self) -> list[ToolTarget]:
        return list(self._tools.values())


COMPILE_COMMANDS = "compile_commands.json"


def _find_sources(directory: Path, patterns: tuple[str, ...]) -> str:
    names = " -or ".join(f"-name {shlex.quote(p)}" for p in patterns)
    return f"find {shlex.quote(str(directory))} {names}"


def register_default_tools(
    registry: TargetRegistry,
    source_root: Path,
    build_support_dir: Path,
    compile_db_dir: Path | None = None,
) -> None:
    """Register the tag, cross-reference and lint targets (Unix hosts only).

    With *compile_db_dir* set, the compilation database the toolchain
    writes there is linked into *source_root* for editor tooling.
    """
    src = source_root / "src"
    registry.register_tool("ctags", ("ctags", "-R", "--languages=c++,c"))
    registry.register_tool(
        "tags",
        ("sh", "-c", f"etags --members --declarations `{_find_sources(src, SOURCE_PATTERNS)}`"),
    )
    registry.register_tool("etags", (), depends_on=("tags",))
    registry.register_tool(
        "cscope",
        (
            "sh",
            "-c",
            f"{_find_sources(source_root, SOURCE_PATTERNS)} > cscope.files && cscope -q -b",
        ),
    )
    if compile_db_dir is not None:
        registry.register_tool(
            "compile_commands",
            ("ln", "-sf", str(compile_db_dir / COMPILE_COMMANDS), str(source_root / COMPILE_COMMANDS)),
        )
    cpplint = shlex.quote(str(build_support_dir / "cpplint.py"))
    registry.register_tool(
        "lint",
        (
            "sh",
            "-c",
            f"{cpplint} --verbose=2 --linelength=90 --filter={LINT_FILTERS} "
            f"`{_find_sources(src, ('*.cc', '*.h'))}`",
        ),
    )
