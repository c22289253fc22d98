# 라우터 공용 의존성: 현재 사용자 식별, 호스트 권한 게이트

from typing import Optional

from fastapi import Depends, Header, HTTPException, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.result import ErrorCode
from app.crud.host_policy import is_host
from app.database import get_db
from app.models.user import User


async def get_current_user_id(
    x_user_id: Optional[int] = Header(None, alias="X-User-Id"),
    db: AsyncSession = Depends(get_db),
) -> int:
    """
    요청 주체의 user id. 로그인/세션 발급은 외부 인증 계층 소관이고,
    그 계층이 검증한 id를 X-User-Id 헤더로 넘겨준다고 가정.
    코어 함수에는 이 값을 인자로 명시적으로 전달한다.
    """
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    if await db.get(User, x_user_id) is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return x_user_id


async def require_activity_host(
    activity_id: str = Path(...),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> int:
    """호스트가 아니면 403. 통과 시 user id 반환."""
    if not await is_host(db, activity_id, user_id):
        raise HTTPException(status_code=ErrorCode.FORBIDDEN, detail="Not permitted")
    return user_id
