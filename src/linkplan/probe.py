"""probe.py – Toolchain and terminal detection.

The resolver never shells out directly.  It asks a ``PlatformProbe`` for
the compiler family, the linker family, and whether stderr is an
interactive terminal.  ``SystemProbe`` answers by running the compiler;
``StaticProbe`` returns fixed answers and is what the tests use.
"""

import os
import shlex
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

from linkplan.model import CLANG, GCC, GOLD, LD

_PROBE_TIMEOUT = 10


class PlatformProbe:
    """Interface for everything the configuration run learns from the host."""

    def compiler_family(self) -> str:
        raise NotImplementedError

    def linker_family(self) -> str:
        raise NotImplementedError

    def is_interactive_error_stream(self) -> bool:
        raise NotImplementedError

    def terminal_type(self) -> str:
        raise NotImplementedError

    def is_apple(self) -> bool:
        raise NotImplementedError

    def is_unix(self) -> bool:
        raise NotImplementedError

    def compilers(self) -> tuple[str, str]:
        """Return the ``(cc, cxx)`` executables the toolchain will use."""
        raise NotImplementedError


def toolchain_compilers(gcc_root: str | Path | None, env: dict[str, str] | None = None) -> tuple[str, str]:
    """Pick the C and C++ compiler executables.

    A GCC toolchain root wins over ``CC``/``CXX``; otherwise the usual
    environment variables are honoured, falling back to ``cc``/``c++``.
    """
    if gcc_root:
        root = Path(gcc_root)
        return str(root / "bin" / "gcc"), str(root / "bin" / "g++")
    env = os.environ if env is None else env
    return env.get("CC", "cc"), env.get("CXX", "c++")


def _run_capture(cmd: list[str]) -> str:
    """Run *cmd* and return its combined stdout/stderr ("" if it cannot run)."""
    try:
        r = subprocess.run(cmd, capture_output=True, timeout=_PROBE_TIMEOUT)
    except (FileNotFoundError, OSError, subprocess.TimeoutExpired):
        return ""
    return (r.stdout + r.stderr).decode("utf-8", errors="replace")


class SystemProbe(PlatformProbe):
    """Probe the real host by invoking the configured C++ compiler."""

    def __init__(self, gcc_root: str | Path | None = None) -> None:
        self._cc, self._cxx = toolchain_compilers(gcc_root)
        self._compiler_family: str | None = None
        self._linker_family: str | None = None

    def compilers(self) -> tuple[str, str]:
        return self._cc, self._cxx

    def _cxx_command(self) -> list[str]:
        try:
            return shlex.split(self._cxx)
        except ValueError:
            return self._cxx.split()

    def compiler_family(self) -> str:
        if self._compiler_family is None:
            output = _run_capture([*self._cxx_command(), "--version"])
            is_clang = "clang" in output.lower() or "clang" in Path(self._cxx).name
            self._compiler_family = CLANG if is_clang else GCC
        return self._compiler_family

    def linker_family(self) -> str:
        # gold only produces ELF binaries; there is nothing to probe on macOS.
        if self.is_apple():
            return LD
        if self._linker_family is None:
            output = _run_capture([*self._cxx_command(), "-Wl,--version"])
            self._linker_family = GOLD if "gold" in output else LD
        return self._linker_family

    def is_interactive_error_stream(self) -> bool:
        try:
            return sys.stderr.isatty()
        except (AttributeError, ValueError):
            return False

    def terminal_type(self) -> str:
        return os.environ.get("TERM", "")

    def is_apple(self) -> bool:
        return sys.platform == "darwin"

    def is_unix(self) -> bool:
        return os.name == "posix"


@dataclass(frozen=True)
class StaticProbe(PlatformProbe):
    """Fixed probe answers, for tests and for reproducing a remote setup."""

    compiler: str = GCC
    linker: str = LD
    interactive: bool = False
    term: str = ""
    apple: bool = False
    unix: bool = True
    cc: str = "cc"
    cxx: str = "c++"

    def compiler_family(self) -> str:
        return self.compiler

    def linker_family(self) -> str:
        return LD if self.apple else self.linker

    def is_interactive_error_stream(self) -> bool:
        return self.interactive

    def terminal_type(self) -> str:
        return self.term

    def is_apple(self) -> bool:
        return self.apple

    def is_unix(self) -> bool:
        return self.unix

    def compilers(self) -> tuple[str, str]:
        return self.cc, self.cxx
