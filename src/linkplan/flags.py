"""flags.py – Compiler flag tables and the FlagSet builder.

The flag set is an ordered tuple of tokens: later tokens may override
earlier ones for some toolchains, so the order below is part of the
contract.

    common flags  →  build-type flags  →  compiler-family flags
                  →  sanitizer flags   →  coverage flags  →  PIC (dynamic only)

``build_flags`` produces everything up to the compiler-family flags;
``finalize_flags`` appends what depends on the resolved link mode.
"""

from linkplan.errors import INVALID_INPUT, ConfigError
from linkplan.model import (
    ASAN,
    CLANG,
    DEBUG,
    DYNAMIC,
    FASTDEBUG,
    PROFILE_BUILD,
    PROFILE_GEN,
    RELEASE,
    TSAN,
)
from linkplan.probe import PlatformProbe

#  -fno-strict-aliasing: GCC cannot always prove aliasing rules hold
#  -D__STDC_FORMAT_MACROS: PRI* print format macros
CXX_COMMON_FLAGS: tuple[str, ...] = (
    "-std=c++11",
    "-fno-strict-aliasing",
    "-msse3",
    "-Wall",
    "-Wno-deprecated",
    "-pthread",
    "-D__STDC_FORMAT_MACROS",
)

CXX_FLAGS_DEBUG: tuple[str, ...] = ("-ggdb",)
CXX_FLAGS_FASTDEBUG: tuple[str, ...] = ("-ggdb", "-O1")
CXX_FLAGS_RELEASE: tuple[str, ...] = ("-O3", "-g", "-DNDEBUG")
CXX_FLAGS_PROFILE_GEN: tuple[str, ...] = (*CXX_FLAGS_RELEASE, "-fprofile-generate")
CXX_FLAGS_PROFILE_BUILD: tuple[str, ...] = (*CXX_FLAGS_RELEASE, "-fprofile-use")

BUILD_TYPE_FLAGS: dict[str, tuple[str, ...]] = {
    DEBUG: CXX_FLAGS_DEBUG,
    FASTDEBUG: CXX_FLAGS_FASTDEBUG,
    RELEASE: CXX_FLAGS_RELEASE,
    PROFILE_GEN: CXX_FLAGS_PROFILE_GEN,
    PROFILE_BUILD: CXX_FLAGS_PROFILE_BUILD,
}

# -Qunused-arguments silences spurious ccache+clang warnings.
# -stdlib=libstdc++: libc++ lacks tr1 on OS X.
CLANG_FLAGS: tuple[str, ...] = ("-Qunused-arguments",)
CLANG_STDLIB_FLAGS: tuple[str, ...] = ("-stdlib=libstdc++",)
COLOR_DIAGNOSTICS_FLAG = "-fcolor-diagnostics"

SANITIZER_FLAGS: dict[str, tuple[str, ...]] = {
    ASAN: ("-fsanitize=address", "-DADDRESS_SANITIZER"),
    TSAN: ("-fsanitize=thread", "-DTHREAD_SANITIZER"),
}

COVERAGE_FLAGS: tuple[str, ...] = ("--coverage", "-DCOVERAGE_BUILD")

PIC_FLAG = "-fPIC"


def build_type_flags(build_type: str) -> tuple[str, ...]:
    """Look up the flags for *build_type*; unknown types are fatal."""
    try:
        return BUILD_TYPE_FLAGS[build_type]
    except KeyError:
        raise ConfigError(INVALID_INPUT, f"Unknown build type: {build_type}") from None


def wants_color_diagnostics(probe: PlatformProbe) -> bool:
    """True if stderr is a controlling terminal that is not ``dumb``."""
    return probe.is_interactive_error_stream() and probe.terminal_type() != "dumb"


def build_flags(build_type: str, compiler_family: str, probe: PlatformProbe) -> tuple[str, ...]:
    """Assemble the mode-independent part of the C++ flag set."""
    flags = [*CXX_COMMON_FLAGS, *build_type_flags(build_type)]
    if compiler_family == CLANG:
        flags.extend(CLANG_FLAGS)
        if wants_color_diagnostics(probe):
            flags.append(COLOR_DIAGNOSTICS_FLAG)
        flags.extend(CLANG_STDLIB_FLAGS)
    return tuple(flags)


def finalize_flags(
    base: tuple[str, ...],
    link_mode: str,
    sanitizers: frozenset[str] = frozenset(),
    coverage: bool = False,
) -> tuple[str, ...]:
    """Append sanitizer, coverage and PIC flags once the link mode is known.

    Only shared objects need position-independent code, so ``-fPIC`` is
    added for dynamic links alone.
    """
    flags = list(base)
    for name in sorted(sanitizers):
        flags.extend(SANITIZER_FLAGS[name])
    if coverage:
        flags.extend(COVERAGE_FLAGS)
    if link_mode == DYNAMIC:
        flags.append(PIC_FLAG)
    return tuple(flags)


def flags_to_str(flags: tuple[str, ...] | list[str]) -> str:
    """Join a flag set the way CMAKE_CXX_FLAGS-style variables expect."""
    return " ".join(flags)
