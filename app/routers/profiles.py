# 프로필/팔로우 API
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.profile_crud import edit_profile, get_profile, get_user_activities, list_followings, toggle_follow
from app.database import get_db
from app.dependencies import get_current_user_id
from app.routers.results import unwrap
from app.schemas.activity import ProfileDto, ProfileEdit, UserActivityDto, UserProfile

router = APIRouter(prefix="/profiles", tags=["Profiles"])


@router.get("/{user_id}", response_model=ProfileDto)
async def get_user_profile(
    user_id: int,
    actor_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ProfileDto:
    return unwrap(await get_profile(db, user_id, actor_id))


@router.post("/{user_id}/follow")
async def post_follow(
    user_id: int,
    actor_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """팔로우 토글."""
    unwrap(await toggle_follow(db, actor_id, user_id))
    return {"message": "toggled"}


@router.get("/{user_id}/follow-list", response_model=List[UserProfile])
async def get_follow_list(
    user_id: int,
    predicate: str = Query("followers", description="followers | followings"),
    actor_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[UserProfile]:
    return unwrap(await list_followings(db, user_id, predicate, actor_id))


@router.get("/{user_id}/activities", response_model=List[UserActivityDto])
async def get_profile_activities(
    user_id: int,
    filter: Optional[str] = Query(None, description="past | hosting | (기본) 다가오는 모임"),
    _actor_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[UserActivityDto]:
    return unwrap(await get_user_activities(db, user_id, filter, datetime.now(timezone.utc)))


@router.put("")
async def put_profile(
    body: ProfileEdit,
    actor_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """본인 프로필 수정 (display_name, bio)."""
    unwrap(await edit_profile(db, actor_id, body))
    return {"message": "updated"}
