# Activity 모델: 시간이 정해진 모임 엔티티 + 참석(membership) 조인 테이블

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import expression, func

from app.models.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Activity(Base):
    """모임 테이블. 호스트 1명 + 참석자들(attendees), 댓글(comments)을 소유 (삭제 시 함께 삭제)."""

    __tablename__ = "activities"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(50), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False, index=True)  # 예정 일시 (피드 정렬·커서 기준)
    city = Column(String(100), nullable=False)
    venue = Column(String(200), nullable=False)
    latitude = Column(Float, nullable=False, default=0.0)
    longitude = Column(Float, nullable=False, default=0.0)
    is_cancelled = Column(Boolean, nullable=False, default=False, server_default=expression.false())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    attendees = relationship(
        "ActivityAttendee",
        back_populates="activity",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    comments = relationship(
        "Comment",
        back_populates="activity",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ActivityAttendee(Base):
    """
    참석 테이블 (activity × user).

    복합 PK로 (activity, user) 당 1행만 허용. is_host=True 행은 activity 생성과 같은 트랜잭션에서 1개만 만들어지고 재할당되지 않음.
    """

    __tablename__ = "activity_attendees"

    activity_id = Column(String(36), ForeignKey("activities.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
    is_host = Column(Boolean, nullable=False, default=False)
    date_joined = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    activity = relationship("Activity", back_populates="attendees")
    user = relationship("User", lazy="joined")
