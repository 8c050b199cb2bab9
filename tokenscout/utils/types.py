from typing import Any, NamedTuple, Optional


class OpResult(NamedTuple):
    """Outcome of a fail-soft operation: lets callers tell "empty" from "failed"."""
    ok: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> "OpResult":
        return cls(True, value, None)

    @classmethod
    def failure(cls, error: str, default: Any = None) -> "OpResult":
        return cls(False, default, error)
