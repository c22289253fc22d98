"""Async API client with a speculative activity cache.

State transitions (attendance toggle) are applied to the cached activity at
once; the pre-transition snapshot is kept and put back verbatim when the
server rejects the write or the request fails.
"""

import copy
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

Activity = Dict[str, Any]


class ApiError(Exception):
    """Server answered with an error status; ``detail`` is the server's message."""

    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_error:
        try:
            detail = response.json().get("detail", response.text)
        except ValueError:
            detail = response.text
        raise ApiError(response.status_code, str(detail))


def apply_attendance_toggle(activity: Activity, profile: Dict[str, Any]) -> Activity:
    """Local mirror of the server transition: host flips is_cancelled, attendee leaves, stranger joins."""
    updated = copy.deepcopy(activity)
    user_id = profile["id"]
    if updated.get("host_id") == user_id:
        updated["is_cancelled"] = not updated.get("is_cancelled", False)
    elif any(a["id"] == user_id for a in updated.get("attendees", [])):
        updated["attendees"] = [a for a in updated["attendees"] if a["id"] != user_id]
    else:
        updated.setdefault("attendees", []).append(dict(profile))
    return updated


class FeedClient:
    def __init__(self, http: httpx.AsyncClient, profile: Dict[str, Any]) -> None:
        self._http = http
        self.profile = profile
        self.cache: Dict[str, Activity] = {}

    @property
    def _headers(self) -> Dict[str, str]:
        return {"X-User-Id": str(self.profile["id"])}

    async def load_page(
        self,
        cursor: Optional[str] = None,
        cursor_id: Optional[str] = None,
        page_size: int = 10,
        filter_by: Optional[str] = None,
        start_date: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"pageSize": page_size}
        for key, value in (("cursor", cursor), ("cursorId", cursor_id), ("filter", filter_by), ("startDate", start_date)):
            if value is not None:
                params[key] = value
        response = await self._http.get("/activities", params=params, headers=self._headers)
        _raise_for_status(response)
        page = response.json()
        for item in page["items"]:
            self.cache[item["id"]] = item
        return page

    @asynccontextmanager
    async def speculative(self, activity_id: str, transition: Callable[[Activity], Activity]) -> AsyncIterator[None]:
        """Apply ``transition`` to the cached activity now; restore the snapshot if the body raises."""
        previous = self.cache.get(activity_id)
        if previous is not None:
            self.cache[activity_id] = transition(previous)
        try:
            yield
        except Exception:
            if previous is not None:
                self.cache[activity_id] = previous
            logger.info("rolled back speculative update of %s", activity_id)
            raise

    async def toggle_attendance(self, activity_id: str) -> None:
        async with self.speculative(activity_id, lambda a: apply_attendance_toggle(a, self.profile)):
            response = await self._http.post(f"/activities/{activity_id}/attend", headers=self._headers)
            _raise_for_status(response)
