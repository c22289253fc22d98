# 모임 조회/생성/수정/삭제 CRUD (피드는 keyset 커서 페이지네이션)

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.result import Result
from app.crud.projections import activity_to_dto, followed_ids
from app.database import save_changes
from app.models.activity import Activity, ActivityAttendee
from app.schemas.activity import ActivityCreate, ActivityDto, ActivityEdit, PagedActivities

logger = logging.getLogger(__name__)

FEED_DEFAULT_PAGE_SIZE = int(os.getenv("FEED_DEFAULT_PAGE_SIZE", "10"))
FEED_MAX_PAGE_SIZE = int(os.getenv("FEED_MAX_PAGE_SIZE", "50"))

FILTER_IS_GOING = "isGoing"
FILTER_IS_HOST = "isHost"

EDITABLE_FIELDS = ("title", "date", "description", "category", "city", "venue", "latitude", "longitude")


def _with_attendees():
    return selectinload(Activity.attendees).joinedload(ActivityAttendee.user)


def _apply_filter(stmt, filter_by: Optional[str], actor_id: int):
    """isGoing / isHost 외의 값(None 포함)은 필터 없이 그대로 — 요청을 실패시키지 않음."""
    if filter_by == FILTER_IS_GOING:
        return stmt.where(Activity.attendees.any(ActivityAttendee.user_id == actor_id))
    if filter_by == FILTER_IS_HOST:
        return stmt.where(
            Activity.attendees.any(and_(ActivityAttendee.user_id == actor_id, ActivityAttendee.is_host.is_(True)))
        )
    return stmt


def _as_stored(value: datetime, stored: Optional[datetime]) -> datetime:
    """SQLite처럼 tz 없는 값을 돌려주는 저장소면 같은 형태(UTC naive)로 맞춰 변경 여부를 비교."""
    if stored is not None and stored.tzinfo is None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _apply_window(stmt, cursor: Optional[datetime], cursor_id: Optional[str], start_date: datetime):
    """
    커서가 있으면 그 시점부터, 없으면 start_date부터.

    cursor_id까지 주어지면 (date, id) 튜플 비교로 같은 date의 이미 본 행을 건너뜀.
    """
    if cursor is None:
        return stmt.where(Activity.date >= start_date)
    if cursor_id is None:
        return stmt.where(Activity.date >= cursor)
    return stmt.where(
        or_(
            Activity.date > cursor,
            and_(Activity.date == cursor, Activity.id >= cursor_id),
        )
    )


async def get_feed(
    db: AsyncSession,
    actor_id: int,
    *,
    cursor: Optional[datetime],
    page_size: int,
    start_date: datetime,
    filter_by: Optional[str] = None,
    cursor_id: Optional[str] = None,
) -> Result[PagedActivities]:
    """
    피드 한 페이지 조회.

    - date 오름차순, 같은 date는 id 오름차순 (커서 안정성).
    - page_size + 1 행을 가져와서 넘치면 마지막 행을 잘라내고 그 date/id를 다음 커서로.
    - 결과 없음은 실패가 아니라 빈 items 성공.
    - 태스크가 취소되면 읽기 도중 CancelledError가 올라가고 세션은 rollback 외 부작용 없음.
    """
    stmt = select(Activity).options(_with_attendees()).order_by(Activity.date, Activity.id)
    stmt = _apply_window(stmt, cursor, cursor_id, start_date)
    stmt = _apply_filter(stmt, filter_by, actor_id).limit(page_size + 1)

    try:
        activities = list((await db.execute(stmt)).scalars().unique().all())
        following = await followed_ids(
            db, actor_id, (a.user_id for activity in activities for a in activity.attendees)
        )
    except SQLAlchemyError:
        logger.exception("feed query failed (actor=%s, cursor=%s)", actor_id, cursor)
        await db.rollback()
        return Result.failure("Failed to get activities", 400)

    next_cursor = None
    next_cursor_id = None
    if len(activities) > page_size:
        extra = activities.pop()
        next_cursor = extra.date
        next_cursor_id = extra.id

    return Result.success(
        PagedActivities(
            items=[activity_to_dto(a, following) for a in activities],
            next_cursor=next_cursor,
            next_cursor_id=next_cursor_id,
        )
    )


async def load_activity(db: AsyncSession, activity_id: str, *, for_update: bool = False) -> Optional[Activity]:
    """attendees(+user)까지 eager load. for_update=True면 activity 행을 잠근다 (PostgreSQL)."""
    stmt = select(Activity).options(_with_attendees()).where(Activity.id == activity_id)
    if for_update:
        stmt = stmt.with_for_update(of=Activity)
    return (await db.execute(stmt)).scalars().unique().first()


async def get_activity_details(db: AsyncSession, activity_id: str, actor_id: int) -> Result[ActivityDto]:
    try:
        activity = await load_activity(db, activity_id)
        if activity is None:
            return Result.not_found("Activity not found")
        following = await followed_ids(db, actor_id, (a.user_id for a in activity.attendees))
    except SQLAlchemyError:
        logger.exception("failed to load activity %s", activity_id)
        await db.rollback()
        return Result.failure("Failed to get activity", 400)
    return Result.success(activity_to_dto(activity, following))


async def create_activity(db: AsyncSession, actor_id: int, body: ActivityCreate) -> Result[str]:
    """모임 생성. 생성자는 같은 트랜잭션 안에서 host 참석 행을 갖는다."""
    activity = Activity(**body.model_dump(include=set(EDITABLE_FIELDS)))
    activity.attendees.append(ActivityAttendee(user_id=actor_id, is_host=True))
    db.add(activity)

    try:
        written = await save_changes(db)
    except SQLAlchemyError:
        logger.exception("failed to create activity for user %s", actor_id)
        return Result.failure("Failed to save the new activity in the DB", 400)
    if not written:
        return Result.failure("Failed to save the new activity in the DB", 400)

    logger.info("activity %s created by host %s", activity.id, actor_id)
    return Result.success(activity.id)


async def edit_activity(db: AsyncSession, activity_id: str, body: ActivityEdit) -> Result[None]:
    """
    호스트 권한 확인은 라우터 의존성에서 끝난 상태로 호출됨.

    변경된 필드가 하나도 없으면 0행 쓰기 → 실패로 반환.
    """
    try:
        activity = await db.get(Activity, activity_id)
        if activity is None:
            return Result.not_found("Activity not found")

        for field, value in body.model_dump(include=set(EDITABLE_FIELDS)).items():
            if field == "date":
                value = _as_stored(value, activity.date)
            setattr(activity, field, value)

        written = await save_changes(db)
    except SQLAlchemyError:
        logger.exception("failed to update activity %s", activity_id)
        await db.rollback()
        return Result.failure("Failed to update the activity", 400)
    if not written:
        return Result.failure("Failed to update the activity", 400)
    return Result.success()


async def delete_activity(db: AsyncSession, activity_id: str) -> Result[None]:
    """모임 삭제. attendees/comments는 ON DELETE CASCADE로 함께 삭제."""
    try:
        activity = await db.get(Activity, activity_id)
        if activity is None:
            return Result.not_found("Activity not found")

        await db.delete(activity)
        written = await save_changes(db)
    except SQLAlchemyError:
        logger.exception("failed to delete activity %s", activity_id)
        await db.rollback()
        return Result.failure("Failed to delete activity", 400)
    if not written:
        return Result.failure("Failed to delete activity", 400)

    logger.info("activity %s deleted", activity_id)
    return Result.success()
