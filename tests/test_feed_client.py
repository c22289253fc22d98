import httpx
import pytest

from app.client.feed_client import ApiError, FeedClient, apply_attendance_toggle

ME = {"id": 2, "display_name": "Paul", "bio": None, "image_url": None, "following": False}


def _activity(**overrides):
    activity = {
        "id": "a1",
        "title": "Board game night",
        "host_id": 1,
        "is_cancelled": False,
        "attendees": [{"id": 1, "display_name": "Hana", "bio": None, "image_url": None, "following": False}],
    }
    activity.update(overrides)
    return activity


def _client(handler) -> FeedClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://testserver")
    return FeedClient(http, ME)


def test_toggle_mirror_joins_leaves_and_cancels():
    joined = apply_attendance_toggle(_activity(), ME)
    assert [a["id"] for a in joined["attendees"]] == [1, 2]

    left = apply_attendance_toggle(joined, ME)
    assert [a["id"] for a in left["attendees"]] == [1]

    host_view = apply_attendance_toggle(_activity(), {"id": 1})
    assert host_view["is_cancelled"] is True
    assert len(host_view["attendees"]) == 1


def test_toggle_mirror_does_not_touch_input():
    original = _activity()
    apply_attendance_toggle(original, ME)
    assert original == _activity()


@pytest.mark.asyncio
async def test_load_page_sends_params_and_caches_items():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        seen["user"] = request.headers["X-User-Id"]
        return httpx.Response(200, json={"items": [_activity()], "nextCursor": None, "nextCursorId": None})

    client = _client(handler)
    page = await client.load_page(page_size=5, filter_by="isGoing")

    assert seen == {"params": {"pageSize": "5", "filter": "isGoing"}, "user": "2"}
    assert page["nextCursor"] is None
    assert client.cache["a1"]["title"] == "Board game night"


@pytest.mark.asyncio
async def test_speculative_toggle_kept_on_success():
    client = _client(lambda request: httpx.Response(200, json={"message": "toggled"}))
    client.cache["a1"] = _activity()

    await client.toggle_attendance("a1")

    assert [a["id"] for a in client.cache["a1"]["attendees"]] == [1, 2]


@pytest.mark.asyncio
async def test_speculative_toggle_rolled_back_on_error():
    client = _client(lambda request: httpx.Response(400, json={"detail": "Problem updating the DB"}))
    before = _activity()
    client.cache["a1"] = before

    with pytest.raises(ApiError) as exc_info:
        await client.toggle_attendance("a1")

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Problem updating the DB"
    assert client.cache["a1"] is before
    assert client.cache["a1"] == _activity()


@pytest.mark.asyncio
async def test_speculative_rolled_back_on_transport_error():
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    client = _client(handler)
    client.cache["a1"] = _activity()

    with pytest.raises(httpx.ConnectError):
        await client.toggle_attendance("a1")

    assert client.cache["a1"] == _activity()
