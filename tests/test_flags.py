"""Tests for the FlagSet builder."""

import pytest

from linkplan.errors import INVALID_INPUT, ConfigError
from linkplan.flags import (
    BUILD_TYPE_FLAGS,
    COLOR_DIAGNOSTICS_FLAG,
    COVERAGE_FLAGS,
    CXX_COMMON_FLAGS,
    PIC_FLAG,
    build_flags,
    build_type_flags,
    finalize_flags,
    flags_to_str,
    wants_color_diagnostics,
)
from linkplan.model import (
    ASAN,
    CLANG,
    DEBUG,
    DYNAMIC,
    FASTDEBUG,
    GCC,
    PROFILE_BUILD,
    PROFILE_GEN,
    RELEASE,
    STATIC,
    TSAN,
)
from linkplan.probe import StaticProbe

# ---------------------------------------------------------------------------
# Build-type table
# ---------------------------------------------------------------------------


class TestBuildTypeFlags:
    def test_debug(self) -> None:
        assert build_type_flags(DEBUG) == ("-ggdb",)

    def test_fastdebug(self) -> None:
        assert build_type_flags(FASTDEBUG) == ("-ggdb", "-O1")

    def test_release(self) -> None:
        assert build_type_flags(RELEASE) == ("-O3", "-g", "-DNDEBUG")

    def test_profile_gen_extends_release(self) -> None:
        flags = build_type_flags(PROFILE_GEN)
        assert flags[:3] == build_type_flags(RELEASE)
        assert flags[-1] == "-fprofile-generate"

    def test_profile_build_extends_release(self) -> None:
        flags = build_type_flags(PROFILE_BUILD)
        assert flags[:3] == build_type_flags(RELEASE)
        assert flags[-1] == "-fprofile-use"

    def test_every_build_type_has_an_entry(self) -> None:
        assert set(BUILD_TYPE_FLAGS) == {DEBUG, FASTDEBUG, RELEASE, PROFILE_GEN, PROFILE_BUILD}

    def test_unknown_is_fatal(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            build_type_flags("MINSIZEREL")
        assert exc_info.value.kind == INVALID_INPUT
        assert "MINSIZEREL" in str(exc_info.value)


# ---------------------------------------------------------------------------
# build_flags()
# ---------------------------------------------------------------------------


class TestBuildFlags:
    def test_common_flags_come_first(self) -> None:
        flags = build_flags(RELEASE, GCC, StaticProbe())
        assert flags[: len(CXX_COMMON_FLAGS)] == CXX_COMMON_FLAGS
        assert "-std=c++11" in flags
        assert "-fno-strict-aliasing" in flags

    def test_gcc_gets_no_clang_flags(self) -> None:
        flags = build_flags(DEBUG, GCC, StaticProbe(interactive=True, term="xterm"))
        assert "-Qunused-arguments" not in flags
        assert COLOR_DIAGNOSTICS_FLAG not in flags

    def test_clang_flags(self) -> None:
        flags = build_flags(DEBUG, CLANG, StaticProbe())
        assert flags[-2:] == ("-Qunused-arguments", "-stdlib=libstdc++")

    def test_clang_color_on_tty(self) -> None:
        flags = build_flags(DEBUG, CLANG, StaticProbe(interactive=True, term="xterm-256color"))
        assert flags[-3:] == ("-Qunused-arguments", COLOR_DIAGNOSTICS_FLAG, "-stdlib=libstdc++")

    def test_clang_no_color_in_dumb_terminal(self) -> None:
        flags = build_flags(DEBUG, CLANG, StaticProbe(interactive=True, term="dumb"))
        assert COLOR_DIAGNOSTICS_FLAG not in flags

    def test_clang_no_color_without_tty(self) -> None:
        flags = build_flags(DEBUG, CLANG, StaticProbe(interactive=False, term="xterm"))
        assert COLOR_DIAGNOSTICS_FLAG not in flags

    def test_pic_never_added_before_resolution(self) -> None:
        assert PIC_FLAG not in build_flags(DEBUG, GCC, StaticProbe())

    def test_deterministic(self) -> None:
        probe = StaticProbe(interactive=True, term="xterm")
        assert build_flags(RELEASE, CLANG, probe) == build_flags(RELEASE, CLANG, probe)

    def test_unknown_build_type_is_fatal(self) -> None:
        with pytest.raises(ConfigError):
            build_flags("BOGUS", GCC, StaticProbe())


class TestWantsColorDiagnostics:
    @pytest.mark.parametrize(
        ("interactive", "term", "expected"),
        [
            (True, "xterm", True),
            (True, "", True),
            (True, "dumb", False),
            (False, "xterm", False),
        ],
    )
    def test_matrix(self, interactive: bool, term: str, expected: bool) -> None:
        assert wants_color_diagnostics(StaticProbe(interactive=interactive, term=term)) is expected


# ---------------------------------------------------------------------------
# finalize_flags()
# ---------------------------------------------------------------------------


class TestFinalizeFlags:
    BASE = ("-std=c++11", "-O3")

    def test_static_has_no_pic(self) -> None:
        assert finalize_flags(self.BASE, STATIC) == self.BASE

    def test_dynamic_appends_pic_last(self) -> None:
        flags = finalize_flags(self.BASE, DYNAMIC)
        assert flags[-1] == PIC_FLAG
        assert flags.count(PIC_FLAG) == 1

    def test_coverage_flags(self) -> None:
        flags = finalize_flags(self.BASE, STATIC, coverage=True)
        assert flags == (*self.BASE, *COVERAGE_FLAGS)

    def test_sanitizer_flags(self) -> None:
        flags = finalize_flags(self.BASE, DYNAMIC, frozenset({ASAN}))
        assert "-fsanitize=address" in flags
        assert "-DADDRESS_SANITIZER" in flags
        assert flags[-1] == PIC_FLAG

    def test_thread_sanitizer_flags(self) -> None:
        flags = finalize_flags(self.BASE, STATIC, frozenset({TSAN}))
        assert "-fsanitize=thread" in flags
        assert "-DTHREAD_SANITIZER" in flags

    def test_base_is_not_mutated(self) -> None:
        base = ("-O3",)
        finalize_flags(base, DYNAMIC, coverage=True)
        assert base == ("-O3",)


def test_flags_to_str() -> None:
    assert flags_to_str(("-O3", "-g")) == "-O3 -g"
