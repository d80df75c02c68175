from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Result:
    """Explicit success/failure value returned by finalization services instead of raising."""

    value: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: Any = None) -> "Result":
        return cls(value=value, error=None)

    @classmethod
    def err(cls, error: str) -> "Result":
        return cls(value=None, error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None
