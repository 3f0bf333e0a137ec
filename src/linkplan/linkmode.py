"""linkmode.py – Resolve the requested link mode to exactly one of static/dynamic.

Resolution is an ordered pipeline of rules.  Each rule takes an immutable
``LinkState`` and returns a new one, or raises ``ConfigError``.  Later
rules rely on what earlier ones established (the auto rule never sees a
coverage build with an unresolved request, the gold check only ever sees a
resolved mode), so ``RULES`` must be applied in order.

Usage::

    from linkplan.linkmode import LinkRequest, resolve_link_mode

    resolution = resolve_link_mode(LinkRequest(requested="auto", build_type="RELEASE"))
    resolution.mode   # "static"
"""

from dataclasses import dataclass, replace
from typing import Callable

from linkplan.errors import INCOMPATIBLE, INVALID_INPUT, ConfigError
from linkplan.model import (
    ASAN,
    AUTO,
    CLANG,
    DEBUG,
    DYNAMIC,
    FASTDEBUG,
    GCC,
    GOLD,
    LD,
    LINK_REQUESTS,
    RELEASE,
    STATIC,
    TSAN,
    describe_sanitizers,
)


@dataclass(frozen=True)
class LinkRequest:
    """Everything the resolver is allowed to look at."""

    requested: str | None = AUTO
    build_type: str = DEBUG
    sanitizers: frozenset[str] = frozenset()
    coverage: bool = False
    compiler_family: str = GCC
    linker_family: str = LD
    is_apple: bool = False

    def describe(self) -> str:
        """One-line summary of the inputs, appended to every fatal message."""
        return (
            f"requested link={self.requested or AUTO}, build type={self.build_type}, "
            f"sanitizers={describe_sanitizers(self.sanitizers)}, "
            f"coverage={'on' if self.coverage else 'off'}, "
            f"compiler={self.compiler_family}, linker={self.effective_linker}"
        )

    @property
    def effective_linker(self) -> str:
        # The linker is never probed on Apple-like hosts.
        return LD if self.is_apple else self.linker_family


@dataclass(frozen=True)
class LinkState:
    """Intermediate resolver state threaded through ``RULES``."""

    request: LinkRequest
    mode: str = AUTO
    forced_by: str = ""
    notes: tuple[str, ...] = ()

    def note(self, message: str) -> "LinkState":
        return replace(self, notes=(*self.notes, message))


@dataclass(frozen=True)
class Resolution:
    """The single resolved link mode and how it was reached."""

    mode: str
    forced_by: str = ""
    using_gold: bool = False
    notes: tuple[str, ...] = ()

    @property
    def shared(self) -> bool:
        """True when produced libraries are shared objects."""
        return self.mode == DYNAMIC

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dict for JSON output."""
        return {
            "mode": self.mode,
            "forced_by": self.forced_by or None,
            "using_gold": self.using_gold,
        }


def _fail(state: LinkState, kind: str, message: str) -> ConfigError:
    return ConfigError(kind, f"{message} ({state.request.describe()})")


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def normalize_request(state: LinkState) -> LinkState:
    """Map the request token onto auto/dynamic/static.

    Any non-empty prefix is accepted (``d``, ``dyn``, ``STATIC``); an unset
    request means auto.
    """
    token = (state.request.requested or "").strip().lower()
    if not token:
        return replace(state, mode=AUTO)
    for mode in LINK_REQUESTS:
        if mode.startswith(token):
            return replace(state, mode=mode)
    raise _fail(
        state,
        INVALID_INPUT,
        f"Unknown value {state.request.requested!r} for link mode, must be auto|dynamic|static",
    )


def check_sanitizers(state: LinkState) -> LinkState:
    """Only one of ASAN and TSAN may be enabled at a time."""
    if {ASAN, TSAN} <= state.request.sanitizers:
        raise _fail(state, INCOMPATIBLE, "Can only enable one of ASAN or TSAN at a time")
    return state


def apply_coverage(state: LinkState) -> LinkState:
    """Coverage builds must link statically and cannot use clang.

    With dynamic linking ``__gcov_flush()`` does not flush every module.
    An auto request is forced to static and the override is recorded in
    ``forced_by``.  An explicit static request is left as it was.
    """
    if not state.request.coverage:
        return state
    if state.request.compiler_family == CLANG:
        raise _fail(state, INCOMPATIBLE, "Cannot currently generate coverage with clang")
    if state.mode == DYNAMIC:
        raise _fail(state, INCOMPATIBLE, "Cannot use coverage with dynamic linking")
    if state.mode == AUTO:
        state = state.note("Using static linking for coverage build")
        return replace(state, mode=STATIC, forced_by="coverage")
    return state


def resolve_auto(state: LinkState) -> LinkState:
    """Debug builds link dynamically for fast iteration; everything else statically."""
    if state.mode != AUTO:
        return state
    build_type = state.request.build_type
    if build_type in (DEBUG, FASTDEBUG):
        return replace(state, mode=DYNAMIC).note(f"Using dynamic linking for {build_type} builds")
    return replace(state, mode=STATIC).note(f"Using static linking for {build_type} builds")


def check_gold(state: LinkState) -> LinkState:
    """Reject gold + dynamic in a release build.

    gold does not override weak symbols when linking dynamically, so
    tcmalloc would silently be dropped from the release product.
    """
    if state.request.effective_linker != GOLD:
        return state.note("Using ld linker")
    if state.mode == DYNAMIC and state.request.build_type == RELEASE:
        raise _fail(
            state,
            INCOMPATIBLE,
            "Cannot use gold with dynamic linking in a RELEASE build "
            "as it would cause tcmalloc symbols to get dropped",
        )
    return state.note("Using gold linker")


Rule = Callable[[LinkState], LinkState]

RULES: tuple[Rule, ...] = (
    normalize_request,
    check_sanitizers,
    apply_coverage,
    resolve_auto,
    check_gold,
)


def resolve_link_mode(request: LinkRequest, rules: tuple[Rule, ...] = RULES) -> Resolution:
    """Run *request* through *rules* and freeze the result."""
    state = LinkState(request=request)
    for rule in rules:
        state = rule(state)
    if state.mode not in (STATIC, DYNAMIC):
        raise _fail(state, INVALID_INPUT, f"Link mode left unresolved: {state.mode}")
    return Resolution(
        mode=state.mode,
        forced_by=state.forced_by,
        using_gold=request.effective_linker == GOLD,
        notes=state.notes,
    )
