# Comment 모델: 생성 후 불변, append-only

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.models.base import Base


class Comment(Base):
    """댓글 테이블. 정렬은 (created_at, id) — 같은 시각이면 삽입 순서(증가 PK)."""

    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    body = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    activity_id = Column(String(36), ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True)

    activity = relationship("Activity", back_populates="comments")
    user = relationship("User", lazy="joined")
