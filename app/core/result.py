# Result contract: domain success/failure envelope returned by every core operation.
# Routers translate a failed Result into an HTTP error; core code does not raise for domain failures.

from dataclasses import dataclass
from enum import IntEnum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorCode(IntEnum):
    """Failure kinds, valued with their HTTP-equivalent status."""

    PERSISTENCE_FAILURE = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    VALIDATION_FAILURE = 422


@dataclass(frozen=True)
class Result(Generic[T]):
    is_success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    code: int = 200

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(is_success=True, value=value)

    @classmethod
    def failure(cls, error: str, code: int = ErrorCode.PERSISTENCE_FAILURE) -> "Result[T]":
        return cls(is_success=False, error=error, code=int(code))

    @classmethod
    def not_found(cls, error: str) -> "Result[T]":
        return cls.failure(error, ErrorCode.NOT_FOUND)
