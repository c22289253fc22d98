# 참석 토글 CRUD (activity 행 FOR UPDATE 잠금 후 한 트랜잭션으로 기록)

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.result import Result
from app.crud.activity_crud import load_activity
from app.database import save_changes
from app.models.activity import ActivityAttendee
from app.services.attendance import AttendanceAction, attendance_state, next_transition

logger = logging.getLogger(__name__)


async def toggle_attendance(db: AsyncSession, activity_id: str, actor_id: int) -> Result[None]:
    """
    모임 참석 토글.

    - 미참석 → 참석 행 추가 / 참석 → 참석 행 삭제 / 호스트 → is_cancelled 반전 (호스트 행은 절대 삭제 안 함).
    - FOR UPDATE로 activity 행 잠금 → 같은 모임에 대한 동시 토글은 DB에서 직렬화.
    - 참석 행 변경 + 플래그 반전 + commit이 하나의 원자적 쓰기. 0행이면 규칙 위반이 없어도 실패.
    - 커밋은 이 함수가 소유. 실패 시 rollback.
    """
    try:
        activity = await load_activity(db, activity_id, for_update=True)
        if activity is None:
            await db.rollback()
            return Result.not_found("Activity not found")

        attendance = next((a for a in activity.attendees if a.user_id == actor_id), None)
        state = attendance_state(attendance.is_host if attendance is not None else None)
        action, new_state = next_transition(state)

        if action is AttendanceAction.TOGGLE_CANCELLED:
            activity.is_cancelled = not activity.is_cancelled
        elif action is AttendanceAction.LEAVE:
            activity.attendees.remove(attendance)
        else:
            activity.attendees.append(ActivityAttendee(user_id=actor_id, is_host=False))

        written = await save_changes(db)
    except SQLAlchemyError:
        # 같은 user의 동시 join은 복합 PK 위반으로 여기로 옴
        logger.exception("attendance toggle failed (activity=%s, actor=%s)", activity_id, actor_id)
        await db.rollback()
        return Result.failure("Problem updating the DB", 400)

    if not written:
        await db.rollback()
        return Result.failure("Problem updating the DB", 400)

    logger.info("attendance %s: actor %s %s -> %s", activity_id, actor_id, state.value, new_state.value)
    return Result.success()
