# 댓글 스키마 (실시간 채널 메시지 본문)

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


class CommentCreate(BaseModel):
    """publishComment 명령 본문."""

    body: str = Field(..., min_length=1, max_length=2000)
    activity_id: str = Field(..., min_length=1, validation_alias=AliasChoices("activity_id", "activityId"))

    @field_validator("body")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("comment body must not be blank")
        return v


class CommentDto(BaseModel):
    id: int
    body: str
    created_at: datetime
    user_id: int
    display_name: str
    image_url: Optional[str] = None
