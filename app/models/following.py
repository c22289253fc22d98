# UserFollowing 모델: observer → target 팔로우 관계

from sqlalchemy import Column, ForeignKey, Integer

from app.models.base import Base


class UserFollowing(Base):
    """팔로우 테이블. (observer, target) 복합 PK."""

    __tablename__ = "user_followings"

    observer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    target_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
