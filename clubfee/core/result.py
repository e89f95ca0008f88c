"""
Explicit success/failure result returned by mutating service operations.
"""
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar
import enum

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    """Failure categories surfaced to callers."""
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    PERSISTENCE = "persistence"


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """Outcome of a service call: either data or an error kind with a message."""
    ok: bool
    data: Optional[T] = None
    error_kind: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def success(cls, data: Any = None) -> "ServiceResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error_kind: ErrorKind, message: str) -> "ServiceResult":
        return cls(ok=False, error_kind=error_kind, message=message)

    @property
    def is_not_found(self) -> bool:
        return self.error_kind == ErrorKind.NOT_FOUND
