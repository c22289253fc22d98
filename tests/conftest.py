import asyncio
import os

# app.database가 import 시점에 엔진을 만들기 때문에 그 전에 테스트용 URL 지정
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./.pytest_gatherly.db")

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import NullPool

from app.database import build_engine, build_sessionmaker, init_models
from app.main import create_app
from app.models.activity import Activity, ActivityAttendee
from app.models.user import User
from app.realtime.topics import Subscriber

HOST = 1
PARTICIPANT = 2
STRANGER = 3


def in_days(days: float) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


def headers(user_id: int) -> dict:
    return {"X-User-Id": str(user_id)}


@pytest_asyncio.fixture
async def engine(tmp_path):
    # NullPool: 테스트마다 이벤트 루프가 달라도 연결을 재사용하지 않도록
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    await init_models(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def users(session_factory):
    async with session_factory() as session:
        session.add_all(
            [
                User(id=HOST, display_name="Hana"),
                User(id=PARTICIPANT, display_name="Paul", bio="board games"),
                User(id=STRANGER, display_name="Uri"),
            ]
        )
        await session.commit()
    return {"host": HOST, "participant": PARTICIPANT, "stranger": STRANGER}


@pytest.fixture
def seed_activity(session_factory, users):
    """검증(미래 날짜 등)을 거치지 않고 activity + host 참석 행을 바로 저장."""

    async def _seed(date: datetime, host_id: int = HOST, **fields) -> str:
        values = {
            "title": "Board game night",
            "description": "Bring your favourite game",
            "category": "culture",
            "city": "Seoul",
            "venue": "Dice Cafe",
            "latitude": 37.56,
            "longitude": 126.97,
        }
        values.update(fields)
        async with session_factory() as session:
            activity = Activity(date=date, **values)
            activity.attendees.append(ActivityAttendee(user_id=host_id, is_host=True))
            session.add(activity)
            await session.commit()
            return activity.id

    return _seed


@pytest_asyncio.fixture
async def api_client(engine, users):
    app = create_app(engine)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


class Inbox:
    """Subscriber + pump 태스크. 받은 메시지를 순서대로 기록."""

    def __init__(self, name: str) -> None:
        self.received = []
        self.subscriber = Subscriber(self._send, name=name)
        self._task = asyncio.create_task(self.subscriber.pump())

    async def _send(self, message):
        self.received.append(message)

    async def drain(self):
        """close 후 pump가 큐를 다 비울 때까지 기다렸다가 기록 반환."""
        self.subscriber.close()
        await self._task
        return self.received
