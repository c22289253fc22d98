# 프로필/팔로우 CRUD

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.result import Result
from app.crud.projections import activity_to_user_activity, followed_ids, user_to_profile
from app.database import save_changes
from app.models.activity import Activity, ActivityAttendee
from app.models.following import UserFollowing
from app.models.user import User
from app.schemas.activity import ProfileDto, ProfileEdit, UserActivityDto, UserProfile

logger = logging.getLogger(__name__)

PREDICATE_FOLLOWERS = "followers"
PREDICATE_FOLLOWINGS = "followings"


async def toggle_follow(db: AsyncSession, observer_id: int, target_id: int) -> Result[None]:
    """팔로우 토글. 두 번 호출하면 원래대로."""
    if observer_id == target_id:
        return Result.failure("Cannot follow yourself", 400)

    try:
        target = await db.get(User, target_id)
        if target is None:
            return Result.failure("Target user not found", 400)

        following = await db.get(UserFollowing, (observer_id, target_id))
        if following is None:
            db.add(UserFollowing(observer_id=observer_id, target_id=target_id))
        else:
            await db.delete(following)

        written = await save_changes(db)
    except SQLAlchemyError:
        logger.exception("follow toggle failed (%s -> %s)", observer_id, target_id)
        await db.rollback()
        return Result.failure("Problem updating following", 400)
    if not written:
        return Result.failure("Problem updating following", 400)
    return Result.success()


async def list_followings(
    db: AsyncSession, user_id: int, predicate: str, actor_id: Optional[int]
) -> Result[List[UserProfile]]:
    """
    predicate=followers: user_id를 팔로우하는 사람들
    predicate=followings: user_id가 팔로우하는 사람들
    그 외 값은 빈 목록.
    """
    if predicate == PREDICATE_FOLLOWERS:
        stmt = select(User).join(UserFollowing, UserFollowing.observer_id == User.id).where(
            UserFollowing.target_id == user_id
        )
    elif predicate == PREDICATE_FOLLOWINGS:
        stmt = select(User).join(UserFollowing, UserFollowing.target_id == User.id).where(
            UserFollowing.observer_id == user_id
        )
    else:
        return Result.success([])

    try:
        users = (await db.execute(stmt.order_by(User.id))).scalars().all()
        following = await followed_ids(db, actor_id, (u.id for u in users))
    except SQLAlchemyError:
        logger.exception("failed to list %s of user %s", predicate, user_id)
        await db.rollback()
        return Result.failure("Failed to get followings", 400)
    return Result.success([user_to_profile(u, u.id in following) for u in users])


async def get_user_activities(
    db: AsyncSession, user_id: int, filter_by: Optional[str], now: datetime
) -> Result[List[UserActivityDto]]:
    """past: 지난 모임 / hosting: 호스트인 모임 / 그 외: 다가오는 모임. 모두 date 오름차순."""
    stmt = (
        select(Activity)
        .join(ActivityAttendee, ActivityAttendee.activity_id == Activity.id)
        .where(ActivityAttendee.user_id == user_id)
        .order_by(Activity.date, Activity.id)
    )
    if filter_by == "past":
        stmt = stmt.where(Activity.date <= now)
    elif filter_by == "hosting":
        stmt = stmt.where(ActivityAttendee.is_host.is_(True))
    else:
        stmt = stmt.where(Activity.date >= now)

    try:
        activities = (await db.execute(stmt)).scalars().all()
    except SQLAlchemyError:
        logger.exception("failed to load activities of user %s", user_id)
        await db.rollback()
        return Result.failure("Failed to get user activities", 400)
    return Result.success([activity_to_user_activity(a) for a in activities])


async def get_profile(db: AsyncSession, user_id: int, actor_id: Optional[int]) -> Result[ProfileDto]:
    try:
        user = await db.get(User, user_id)
        if user is None:
            return Result.not_found("Profile not found")

        followers_count = await db.scalar(
            select(func.count()).select_from(UserFollowing).where(UserFollowing.target_id == user_id)
        )
        followings_count = await db.scalar(
            select(func.count()).select_from(UserFollowing).where(UserFollowing.observer_id == user_id)
        )
        following = await followed_ids(db, actor_id, [user_id])
    except SQLAlchemyError:
        logger.exception("failed to load profile %s", user_id)
        await db.rollback()
        return Result.failure("Failed to get profile", 400)
    return Result.success(
        ProfileDto(
            **user_to_profile(user, user_id in following).model_dump(),
            followers_count=followers_count or 0,
            followings_count=followings_count or 0,
        )
    )


async def edit_profile(db: AsyncSession, actor_id: int, body: ProfileEdit) -> Result[None]:
    """
    본인 프로필의 display_name / bio 수정.

    - display_name이 비어 있으면 400 "Missing DisplayName parameter"
    - 바뀐 값이 없으면 0행 쓰기 → 400 "Problem editing profile"
    """
    if body.display_name is None or not body.display_name.strip():
        return Result.failure("Missing DisplayName parameter", 400)

    try:
        user = await db.get(User, actor_id)
        if user is None:
            return Result.not_found("Profile not found")

        user.display_name = body.display_name
        user.bio = body.bio
        written = await save_changes(db)
    except SQLAlchemyError:
        logger.exception("failed to edit profile %s", actor_id)
        await db.rollback()
        return Result.failure("Problem editing profile", 400)
    if not written:
        return Result.failure("Problem editing profile", 400)

    logger.info("profile %s edited", actor_id)
    return Result.success()
