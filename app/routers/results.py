# Result → HTTP 변환 (라우터 공용)

from typing import TypeVar

from fastapi import HTTPException

from app.core.result import Result

T = TypeVar("T")


def unwrap(result: Result[T]) -> T:
    """성공이면 value, 실패면 Result의 code/error 그대로 HTTPException."""
    if not result.is_success:
        raise HTTPException(status_code=result.code, detail=result.error)
    return result.value
