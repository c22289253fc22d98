import pytest

from app.crud.activity_crud import edit_activity, get_activity_details
from app.crud.attendance_crud import toggle_attendance
from app.crud.host_policy import is_host
from app.schemas.activity import ActivityEdit
from conftest import HOST, PARTICIPANT, STRANGER, in_days

pytestmark = pytest.mark.asyncio


async def test_only_the_creating_host_passes(db, session_factory, seed_activity):
    activity_id = await seed_activity(in_days(1))
    async with session_factory() as session:
        await toggle_attendance(session, activity_id, PARTICIPANT)

    assert await is_host(db, activity_id, HOST) is True
    assert await is_host(db, activity_id, PARTICIPANT) is False
    assert await is_host(db, activity_id, STRANGER) is False


async def test_missing_activity_is_a_silent_deny(db, users):
    assert await is_host(db, "missing", HOST) is False


async def test_policy_read_leaves_nothing_in_the_session(db, seed_activity):
    activity_id = await seed_activity(in_days(1))

    assert await is_host(db, activity_id, HOST)
    assert len(db.sync_session.identity_map) == 0
    assert not db.new and not db.dirty and not db.deleted


async def test_edit_after_policy_check_in_same_session_keeps_attendees(db, session_factory, seed_activity):
    activity_id = await seed_activity(in_days(1), title="Old title")
    async with session_factory() as session:
        await toggle_attendance(session, activity_id, PARTICIPANT)

    assert await is_host(db, activity_id, HOST)
    body = ActivityEdit(
        title="New title",
        date=in_days(3),
        description="Updated",
        category="culture",
        city="Busan",
        venue="Harbour",
    )
    result = await edit_activity(db, activity_id, body)
    assert result.is_success, result.error

    assert await is_host(db, activity_id, HOST)
    assert await is_host(db, activity_id, PARTICIPANT) is False
    async with session_factory() as session:
        details = (await get_activity_details(session, activity_id, HOST)).value
    assert details.title == "New title"
    assert sorted(p.id for p in details.attendees) == [HOST, PARTICIPANT]
