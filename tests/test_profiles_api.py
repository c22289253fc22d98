import pytest
from sqlalchemy.exc import OperationalError

from app.crud.profile_crud import get_profile
from conftest import HOST, PARTICIPANT, STRANGER, headers, in_days

pytestmark = pytest.mark.asyncio


async def test_follow_toggle_is_an_involution(api_client):
    first = await api_client.post(f"/profiles/{HOST}/follow", headers=headers(PARTICIPANT))
    assert first.status_code == 200

    followers = await api_client.get(f"/profiles/{HOST}/follow-list", headers=headers(STRANGER))
    assert [p["id"] for p in followers.json()] == [PARTICIPANT]
    followings = await api_client.get(
        f"/profiles/{PARTICIPANT}/follow-list", params={"predicate": "followings"}, headers=headers(STRANGER)
    )
    assert [p["id"] for p in followings.json()] == [HOST]

    profile = (await api_client.get(f"/profiles/{HOST}", headers=headers(PARTICIPANT))).json()
    assert profile["followers_count"] == 1
    assert profile["following"] is True

    await api_client.post(f"/profiles/{HOST}/follow", headers=headers(PARTICIPANT))
    profile = (await api_client.get(f"/profiles/{HOST}", headers=headers(PARTICIPANT))).json()
    assert profile["followers_count"] == 0
    assert profile["following"] is False


async def test_follow_rejects_missing_target_and_self(api_client):
    missing = await api_client.post("/profiles/999/follow", headers=headers(PARTICIPANT))
    assert missing.status_code == 400
    assert missing.json()["detail"] == "Target user not found"
    self_follow = await api_client.post(f"/profiles/{PARTICIPANT}/follow", headers=headers(PARTICIPANT))
    assert self_follow.status_code == 400


async def test_unknown_predicate_gives_empty_list(api_client):
    response = await api_client.get(f"/profiles/{HOST}/follow-list", params={"predicate": "x"}, headers=headers(HOST))
    assert response.status_code == 200
    assert response.json() == []


async def test_missing_profile_is_404(api_client):
    assert (await api_client.get("/profiles/999", headers=headers(HOST))).status_code == 404


async def test_attendee_following_flag_in_feed(api_client, seed_activity):
    activity_id = await seed_activity(in_days(1))
    await api_client.post(f"/profiles/{HOST}/follow", headers=headers(PARTICIPANT))

    detail = (await api_client.get(f"/activities/{activity_id}", headers=headers(PARTICIPANT))).json()
    assert detail["attendees"][0]["following"] is True
    detail = (await api_client.get(f"/activities/{activity_id}", headers=headers(STRANGER))).json()
    assert detail["attendees"][0]["following"] is False


async def test_user_activities_filters(api_client, seed_activity):
    await seed_activity(in_days(-3), title="last week")
    await seed_activity(in_days(2), title="upcoming")
    joined = await seed_activity(in_days(4), host_id=STRANGER, title="someone else's")
    await api_client.post(f"/activities/{joined}/attend", headers=headers(HOST))

    async def titles(filter_by=None):
        params = {"filter": filter_by} if filter_by else {}
        response = await api_client.get(f"/profiles/{HOST}/activities", params=params, headers=headers(PARTICIPANT))
        assert response.status_code == 200
        return [a["title"] for a in response.json()]

    assert await titles() == ["upcoming", "someone else's"]
    assert await titles("past") == ["last week"]
    assert await titles("hosting") == ["last week", "upcoming"]


async def test_edit_profile_sets_display_name_and_bio(api_client):
    response = await api_client.put(
        "/profiles", json={"display_name": "Paula", "bio": "tabletop and hiking"}, headers=headers(PARTICIPANT)
    )
    assert response.status_code == 200

    profile = (await api_client.get(f"/profiles/{PARTICIPANT}", headers=headers(HOST))).json()
    assert profile["display_name"] == "Paula"
    assert profile["bio"] == "tabletop and hiking"


async def test_edit_profile_requires_display_name(api_client):
    for body in ({"bio": "no name"}, {"display_name": "  ", "bio": "blank"}):
        response = await api_client.put("/profiles", json=body, headers=headers(PARTICIPANT))
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing DisplayName parameter"

    profile = (await api_client.get(f"/profiles/{PARTICIPANT}", headers=headers(HOST))).json()
    assert profile["display_name"] == "Paul"


async def test_edit_profile_without_changes_fails(api_client):
    response = await api_client.put(
        "/profiles", json={"display_name": "Paul", "bio": "board games"}, headers=headers(PARTICIPANT)
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Problem editing profile"


async def test_profile_store_failure_is_a_failed_result(db, users, monkeypatch):
    async def down(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is down"))

    monkeypatch.setattr(db, "get", down)
    result = await get_profile(db, HOST, PARTICIPANT)

    assert not result.is_success
    assert result.code == 400
    assert result.error == "Failed to get profile"
