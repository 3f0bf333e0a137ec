"""Tests for third-party dependency registration."""

from pathlib import Path

import pytest

from linkplan.deps import (
    GTEST_DEFAULT_HOME,
    SELECTION_RULES,
    DependencyRegistry,
    gtest_artifacts,
    parquet_artifacts,
    register_default_dependencies,
    select_artifact,
)
from linkplan.errors import MISSING_DEPENDENCY, ConfigError
from linkplan.model import DYNAMIC, STATIC

# ---------------------------------------------------------------------------
# Decision table
# ---------------------------------------------------------------------------


class TestSelectArtifact:
    @pytest.mark.parametrize(
        ("mode", "has_static", "has_shared", "expected"),
        [
            (STATIC, True, True, STATIC),
            (STATIC, True, False, STATIC),
            (STATIC, False, True, DYNAMIC),
            (STATIC, False, False, "fatal"),
            (DYNAMIC, True, True, DYNAMIC),
            (DYNAMIC, True, False, STATIC),
            (DYNAMIC, False, True, DYNAMIC),
            (DYNAMIC, False, False, "fatal"),
        ],
    )
    def test_rows(self, mode: str, has_static: bool, has_shared: bool, expected: str) -> None:
        assert select_artifact(mode, has_static, has_shared) == expected

    def test_last_row_is_catch_all(self) -> None:
        assert SELECTION_RULES[-1].matches(DYNAMIC, False, False) is True

    def test_no_matching_row_is_fatal(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("linkplan.deps.SELECTION_RULES", ())
        assert select_artifact(STATIC, True, True) == "fatal"


# ---------------------------------------------------------------------------
# DependencyRegistry.register()
# ---------------------------------------------------------------------------


class TestRegister:
    def test_static_mode_prefers_static(self) -> None:
        reg = DependencyRegistry(STATIC)
        lib = reg.register("parquet", static_lib="/l/libparquet.a", shared_lib="/l/libparquet.so")
        assert lib.kind == STATIC
        assert lib.location == "/l/libparquet.a"
        assert "Added static library dependency parquet: /l/libparquet.a" in reg.notes

    def test_dynamic_mode_prefers_shared(self) -> None:
        reg = DependencyRegistry(DYNAMIC)
        lib = reg.register("parquet", static_lib="/l/libparquet.a", shared_lib="/l/libparquet.so")
        assert lib.kind == DYNAMIC
        assert lib.location == "/l/libparquet.so"
        assert "Added shared library dependency parquet: /l/libparquet.so" in reg.notes

    def test_static_mode_with_only_shared(self) -> None:
        reg = DependencyRegistry(STATIC)
        lib = reg.register("snappy", shared_lib="/l/libsnappy.so")
        assert lib.kind == DYNAMIC
        assert lib.location == "/l/libsnappy.so"

    def test_dynamic_mode_with_only_static(self) -> None:
        reg = DependencyRegistry(DYNAMIC)
        lib = reg.register("gtest", static_lib=Path("/g/libgtest.a"))
        assert lib.kind == STATIC
        assert lib.location == "/g/libgtest.a"

    @pytest.mark.parametrize("mode", [STATIC, DYNAMIC])
    def test_no_artifact_is_fatal(self, mode: str) -> None:
        reg = DependencyRegistry(mode)
        with pytest.raises(ConfigError) as exc_info:
            reg.register("lz4")
        assert exc_info.value.kind == MISSING_DEPENDENCY
        assert "lz4" in exc_info.value.message
        assert "lz4" not in reg

    def test_unmatched_selection_is_missing_dependency(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("linkplan.deps.SELECTION_RULES", ())
        reg = DependencyRegistry(STATIC)
        with pytest.raises(ConfigError) as exc_info:
            reg.register("zlib", static_lib="/x/libz.a")
        assert exc_info.value.kind == MISSING_DEPENDENCY
        assert "zlib" not in reg

    def test_empty_string_counts_as_absent(self) -> None:
        reg = DependencyRegistry(STATIC)
        with pytest.raises(ConfigError):
            reg.register("lz4", static_lib="", shared_lib="")

    def test_records_transitive_deps(self) -> None:
        reg = DependencyRegistry(STATIC)
        lib = reg.register("parquet", static_lib="/p.a", deps=["thrift", "snappy"])
        assert lib.deps == ("thrift", "snappy")

    def test_redeclaration_replaces(self) -> None:
        reg = DependencyRegistry(STATIC)
        reg.register("gtest", static_lib="/old/libgtest.a")
        reg.register("gtest", static_lib="/new/libgtest.a")
        assert len(reg) == 1
        assert reg.get("gtest").location == "/new/libgtest.a"
        assert [lib.name for lib in reg.libraries] == ["gtest"]

    def test_to_dict(self) -> None:
        reg = DependencyRegistry(STATIC)
        d = reg.register("parquet", static_lib="/p.a", deps=["thrift"]).to_dict()
        assert d == {"name": "parquet", "kind": STATIC, "location": "/p.a", "deps": ["thrift"]}


# ---------------------------------------------------------------------------
# link_line()
# ---------------------------------------------------------------------------


class TestLinkLine:
    def test_expands_registered_and_passes_through_others(self) -> None:
        reg = DependencyRegistry(STATIC)
        reg.register("gtest", static_lib="/g/libgtest.a")
        assert reg.link_line(["arrow", "gtest", "pthread"]) == ["arrow", "/g/libgtest.a", "pthread"]

    def test_transitive_deps_follow_their_library(self) -> None:
        reg = DependencyRegistry(STATIC)
        reg.register("thrift", static_lib="/t/libthrift.a")
        reg.register("parquet", static_lib="/p/libparquet.a", deps=["thrift", "boost_regex"])
        assert reg.link_line(["parquet"]) == ["/p/libparquet.a", "/t/libthrift.a", "boost_regex"]

    def test_each_entry_once(self) -> None:
        reg = DependencyRegistry(STATIC)
        reg.register("a", static_lib="/a.a", deps=["c"])
        reg.register("b", static_lib="/b.a", deps=["c"])
        assert reg.link_line(["a", "b", "a"]) == ["/a.a", "c", "/b.a"]

    def test_cycle_terminates(self) -> None:
        reg = DependencyRegistry(STATIC)
        reg.register("a", static_lib="/a.a", deps=["b"])
        reg.register("b", static_lib="/b.a", deps=["a"])
        assert reg.link_line(["a"]) == ["/a.a", "/b.a"]


# ---------------------------------------------------------------------------
# Default dependencies
# ---------------------------------------------------------------------------


class TestDefaultDependencies:
    def test_gtest_default_home(self, tmp_path: Path) -> None:
        gtest = gtest_artifacts(tmp_path)
        assert gtest["home"] == tmp_path / GTEST_DEFAULT_HOME
        assert gtest["static_lib"] == tmp_path / GTEST_DEFAULT_HOME / "lib" / "libgtest.a"

    def test_gtest_absolute_override(self, tmp_path: Path) -> None:
        gtest = gtest_artifacts(tmp_path, "/opt/gtest")
        assert gtest["static_lib"] == Path("/opt/gtest/lib/libgtest.a")

    def test_parquet_relative_override(self, tmp_path: Path) -> None:
        parquet = parquet_artifacts(tmp_path, "vendor/parquet")
        assert parquet["shared_lib"] == tmp_path / "vendor" / "parquet" / "lib" / "libparquet.so"

    def test_registers_gtest_static(self, tmp_path: Path) -> None:
        reg = DependencyRegistry(DYNAMIC)
        includes = register_default_dependencies(reg, tmp_path)
        assert [lib.name for lib in reg.libraries] == ["gtest"]
        assert reg.get("gtest").kind == STATIC
        assert includes == [str(tmp_path / GTEST_DEFAULT_HOME / "include")]

    def test_parquet_follows_link_mode(self, tmp_path: Path) -> None:
        reg = DependencyRegistry(DYNAMIC)
        register_default_dependencies(reg, tmp_path, with_parquet=True)
        assert reg.get("parquet").kind == DYNAMIC

        reg = DependencyRegistry(STATIC)
        includes = register_default_dependencies(
            reg, tmp_path, {"parquet": "/opt/parquet"}, with_parquet=True
        )
        assert reg.get("parquet").location == "/opt/parquet/lib/libparquet.a"
        assert "/opt/parquet/include" in includes
