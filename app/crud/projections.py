# 엔티티 → 평면 DTO 변환 (Activity ↔ Attendee ↔ User 역참조를 끊고 필요한 필드만 복사)

from typing import Iterable, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity import Activity, ActivityAttendee
from app.models.comment import Comment
from app.models.following import UserFollowing
from app.models.user import User
from app.schemas.activity import ActivityDto, UserActivityDto, UserProfile
from app.schemas.comment import CommentDto


async def followed_ids(db: AsyncSession, observer_id: Optional[int], candidate_ids: Iterable[int]) -> Set[int]:
    """candidate 중 observer가 팔로우 중인 user id 집합. 한 번의 쿼리로 처리."""
    ids = set(candidate_ids)
    if observer_id is None or not ids:
        return set()
    rows = await db.execute(
        select(UserFollowing.target_id).where(
            UserFollowing.observer_id == observer_id,
            UserFollowing.target_id.in_(ids),
        )
    )
    return set(rows.scalars().all())


def user_to_profile(user: User, following: bool = False) -> UserProfile:
    return UserProfile(
        id=user.id,
        display_name=user.display_name,
        bio=user.bio,
        image_url=user.image_url,
        following=following,
    )


def _host_of(activity: Activity) -> Optional[ActivityAttendee]:
    return next((a for a in activity.attendees if a.is_host), None)


def activity_to_dto(activity: Activity, following: Set[int]) -> ActivityDto:
    """attendees(+user)가 미리 로드된 Activity를 DTO로. following은 현재 사용자의 팔로우 대상 id 집합."""
    host = _host_of(activity)
    return ActivityDto(
        id=activity.id,
        title=activity.title,
        date=activity.date,
        description=activity.description,
        category=activity.category,
        is_cancelled=activity.is_cancelled,
        host_id=host.user_id if host else None,
        host_display_name=host.user.display_name if host else None,
        city=activity.city,
        venue=activity.venue,
        latitude=activity.latitude,
        longitude=activity.longitude,
        attendees=[user_to_profile(a.user, a.user_id in following) for a in activity.attendees],
    )


def activity_to_user_activity(activity: Activity) -> UserActivityDto:
    return UserActivityDto(
        id=activity.id,
        title=activity.title,
        category=activity.category,
        date=activity.date,
    )


def comment_to_dto(comment: Comment) -> CommentDto:
    return CommentDto(
        id=comment.id,
        body=comment.body,
        created_at=comment.created_at,
        user_id=comment.user_id,
        display_name=comment.user.display_name,
        image_url=comment.user.image_url,
    )
