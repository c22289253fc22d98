# 호스트 권한 정책: 편집/삭제 앞단의 boolean 게이트 (참석 토글에는 적용하지 않음)

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity import ActivityAttendee

logger = logging.getLogger(__name__)


async def is_host(db: AsyncSession, activity_id: str, actor_id: int) -> bool:
    """
    (activity, actor) 참석 행의 is_host 컬럼만 조회.

    - 엔티티를 로드하지 않으므로 세션 identity map에 아무 것도 남지 않음
      → 같은 요청에서 이어지는 activity 재조회/저장이 이 조회에 가려지지 않는다.
    - 행이 없거나 is_host=False면 False (예외 없이 조용히 거부). 부작용 없음.
    """
    row = await db.execute(
        select(ActivityAttendee.is_host).where(
            ActivityAttendee.activity_id == activity_id,
            ActivityAttendee.user_id == actor_id,
        )
    )
    allowed = bool(row.scalar_one_or_none())
    if not allowed:
        logger.warning("host check denied (activity=%s, actor=%s)", activity_id, actor_id)
    return allowed
