"""Fatal configuration errors.

Every failure aborts the whole configuration run.  The ``kind`` tag lets
callers (and tests) tell the failure classes apart without parsing the
message.
"""

INVALID_INPUT = "invalid-input"
INCOMPATIBLE = "incompatible"
MISSING_DEPENDENCY = "missing-dependency"
DUPLICATE_TARGET = "duplicate-target"


class ConfigError(Exception):
    """A configuration input or combination that cannot produce a plan."""

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def to_dict(self) -> dict[str, str]:
        """Serialize to a plain dict for JSON output."""
        return {"kind": self.kind, "error": self.message}
