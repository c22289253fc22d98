# 모임 API 요청/응답 스키마 (엔티티를 직접 직렬화하지 않고 필드를 골라 담은 평면 DTO)

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def to_utc(value: datetime) -> datetime:
    """tz 없는 값은 UTC로 간주, 있으면 UTC로 변환 (저장값과 같은 기준으로 비교)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ActivityBase(BaseModel):
    """생성/수정 공통 필드."""

    title: str = Field(..., min_length=1, max_length=100)
    date: datetime
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=50)
    city: str = Field(..., min_length=1, max_length=100)
    venue: str = Field(..., min_length=1, max_length=200)
    latitude: float = Field(0.0, ge=-90, le=90)
    longitude: float = Field(0.0, ge=-180, le=180)

    @field_validator("title", "description", "category", "city", "venue")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("date")
    @classmethod
    def _utc_date(cls, v: datetime) -> datetime:
        return to_utc(v)


class ActivityCreate(ActivityBase):
    """모임 생성 요청. 과거 일시로는 만들 수 없음."""

    @field_validator("date")
    @classmethod
    def _in_future(cls, v: datetime) -> datetime:
        v = to_utc(v)
        if v <= datetime.now(timezone.utc):
            raise ValueError("date must be in the future")
        return v


class ActivityEdit(ActivityBase):
    """모임 수정 요청 (호스트 전용)."""


class UserProfile(BaseModel):
    """참석자/팔로워 목록에 쓰는 사용자 요약. following = 현재 사용자가 이 사람을 팔로우 중인지."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    display_name: str
    bio: Optional[str] = None
    image_url: Optional[str] = None
    following: bool = False


class ActivityDto(BaseModel):
    """피드/상세 응답."""

    id: str
    title: str
    date: datetime
    description: str
    category: str
    is_cancelled: bool
    host_id: Optional[int] = None
    host_display_name: Optional[str] = None
    city: str
    venue: str
    latitude: float
    longitude: float
    attendees: List[UserProfile] = Field(default_factory=list)


class PagedActivities(BaseModel):
    """커서 페이지. nextCursor가 null이면 피드 끝. 응답 키는 camelCase (nextCursor, nextCursorId)."""

    model_config = ConfigDict(populate_by_name=True)

    items: List[ActivityDto] = Field(default_factory=list)
    next_cursor: Optional[datetime] = Field(None, alias="nextCursor")
    # 같은 date가 여러 개일 때 정확히 이어받기 위한 보조 커서
    next_cursor_id: Optional[str] = Field(None, alias="nextCursorId")


class CreatedActivity(BaseModel):
    id: str


class UserActivityDto(BaseModel):
    """프로필 화면의 모임 목록 항목."""

    id: str
    title: str
    category: str
    date: datetime


class ProfileDto(UserProfile):
    followers_count: int = 0
    followings_count: int = 0


class ProfileEdit(BaseModel):
    """본인 프로필 수정 요청. display_name 공백 검사는 코어(edit_profile)에서 400으로 처리."""

    display_name: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
