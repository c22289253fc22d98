from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    모든 SQLAlchemy 모델이 상속할 기본 Base 클래스

    예시:

    class Activity(Base):
        __tablename__ = "activities"
        id = Column(String(36), primary_key=True, default=_new_id)
        ...
    """

    pass
