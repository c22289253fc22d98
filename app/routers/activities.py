# 모임 피드/상세/생성/수정/삭제/참석 API
import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import Awaitable, Optional, TypeVar

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.result import Result
from app.crud.activity_crud import (
    FEED_DEFAULT_PAGE_SIZE,
    FEED_MAX_PAGE_SIZE,
    create_activity,
    delete_activity,
    edit_activity,
    get_activity_details,
    get_feed,
)
from app.crud.attendance_crud import toggle_attendance
from app.database import get_db
from app.dependencies import get_current_user_id, require_activity_host
from app.routers.results import unwrap
from app.schemas.activity import ActivityCreate, ActivityDto, ActivityEdit, CreatedActivity, PagedActivities, to_utc

logger = logging.getLogger(__name__)

# 클라이언트 연결 끊김 확인 주기(초)
FEED_DISCONNECT_POLL_SEC = float(os.getenv("FEED_DISCONNECT_POLL_SEC", "0.5"))

T = TypeVar("T")

router = APIRouter(prefix="/activities", tags=["Activities"])


async def run_until_disconnect(request: Request, query: Awaitable[Result[T]]) -> Result[T]:
    """
    피드 조회를 태스크로 돌리면서 클라이언트가 끊기면 취소.

    취소된 읽기는 부작용이 없고, 응답은 어차피 전달되지 않으므로 499 실패 Result로 마무리.
    """
    task = asyncio.ensure_future(query)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=FEED_DISCONNECT_POLL_SEC)
            if done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                logger.info("feed query cancelled: client disconnected")
                return Result.failure("Request cancelled", 499)
    finally:
        if not task.done():
            task.cancel()


@router.get("", response_model=PagedActivities)
async def get_activities(
    request: Request,
    cursor: Optional[datetime] = Query(None, description="이전 페이지의 nextCursor"),
    cursor_id: Optional[str] = Query(None, alias="cursorId", description="이전 페이지의 nextCursorId (같은 시각 tie-break)"),
    page_size: int = Query(FEED_DEFAULT_PAGE_SIZE, alias="pageSize", ge=1, le=FEED_MAX_PAGE_SIZE),
    filter: Optional[str] = Query(None, description="isGoing | isHost, 그 외 값은 무시"),
    start_date: Optional[datetime] = Query(None, alias="startDate", description="커서가 없을 때 시작 시각 (기본: 현재)"),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> PagedActivities:
    """keyset 커서 피드. date 오름차순, nextCursor가 null이면 끝."""
    start = to_utc(start_date) if start_date is not None else datetime.now(timezone.utc)
    result = await run_until_disconnect(
        request,
        get_feed(
            db,
            user_id,
            cursor=to_utc(cursor) if cursor is not None else None,
            cursor_id=cursor_id,
            page_size=page_size,
            start_date=start,
            filter_by=filter,
        ),
    )
    return unwrap(result)


@router.get("/{activity_id}", response_model=ActivityDto)
async def get_activity(
    activity_id: str,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ActivityDto:
    """id로 모임 조회. 없으면 404."""
    return unwrap(await get_activity_details(db, activity_id, user_id))


@router.post("", response_model=CreatedActivity, status_code=201)
async def post_activity(
    body: ActivityCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> CreatedActivity:
    """모임 생성. 요청자가 호스트가 된다."""
    return CreatedActivity(id=unwrap(await create_activity(db, user_id, body)))


@router.put("/{activity_id}")
async def put_activity(
    activity_id: str,
    body: ActivityEdit,
    _host_id: int = Depends(require_activity_host),
    db: AsyncSession = Depends(get_db),
):
    """모임 수정 (호스트 전용, 아니면 403)."""
    unwrap(await edit_activity(db, activity_id, body))
    return {"message": "updated"}


@router.delete("/{activity_id}")
async def remove_activity(
    activity_id: str,
    _host_id: int = Depends(require_activity_host),
    db: AsyncSession = Depends(get_db),
):
    """모임 삭제 (호스트 전용). 참석/댓글도 함께 삭제."""
    unwrap(await delete_activity(db, activity_id))
    return {"message": "deleted"}


@router.post("/{activity_id}/attend")
async def post_attend(
    activity_id: str,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """참석 토글. 호스트가 호출하면 모임 취소/재개."""
    unwrap(await toggle_attendance(db, activity_id, user_id))
    return {"message": "toggled"}
