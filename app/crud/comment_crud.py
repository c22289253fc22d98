# 댓글 CRUD: 실시간 채널의 history 로드 / publish 저장 경로

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.result import Result
from app.crud.projections import comment_to_dto
from app.database import save_changes
from app.models.activity import Activity
from app.models.comment import Comment
from app.models.user import User
from app.schemas.comment import CommentCreate, CommentDto

logger = logging.getLogger(__name__)


async def list_comments(db: AsyncSession, activity_id: str) -> Result[List[CommentDto]]:
    """생성 순서 (created_at, id) 그대로의 전체 댓글 이력."""
    try:
        rows = await db.execute(
            select(Comment)
            .where(Comment.activity_id == activity_id)
            .order_by(Comment.created_at, Comment.id)
        )
        comments = rows.scalars().unique().all()
    except SQLAlchemyError:
        logger.exception("failed to load comments for activity %s", activity_id)
        await db.rollback()
        return Result.failure("Failed to load comments", 400)
    return Result.success([comment_to_dto(c) for c in comments])


async def add_comment(db: AsyncSession, actor_id: int, body: CommentCreate) -> Result[CommentDto]:
    """
    댓글 생성 후 저장. 성공한 경우에만 DTO 반환 (브로드캐스트는 호출자 몫).
    """
    try:
        activity_exists = await db.scalar(select(Activity.id).where(Activity.id == body.activity_id))
        if activity_exists is None:
            return Result.not_found("Activity not found")
        user = await db.get(User, actor_id)
        if user is None:
            return Result.not_found("User not found")

        comment = Comment(body=body.body, activity_id=body.activity_id, user_id=actor_id, user=user)
        db.add(comment)
        written = await save_changes(db)
    except SQLAlchemyError:
        logger.exception("failed to save comment on activity %s", body.activity_id)
        await db.rollback()
        return Result.failure("Failed to add comment", 400)
    if not written:
        return Result.failure("Failed to add comment", 400)
    return Result.success(comment_to_dto(comment))
