# 댓글 실시간 채널 (WebSocket). 서버→클라이언트: history / newComment / error, 클라이언트→서버: publishComment
import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.models.user import User
from app.realtime.comment_hub import MSG_PUBLISH_COMMENT, CommentHub
from app.realtime.topics import ProtocolError, Subscriber

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Comments"])

# RFC 6455 close codes
POLICY_VIOLATION = 1008
INTERNAL_ERROR = 1011


async def _resolve_user_id(hub: CommentHub, raw: str | None) -> int | None:
    if not raw or not raw.isdigit():
        return None
    async with hub.session_factory() as db:
        user = await db.get(User, int(raw))
    return user.id if user is not None else None


@router.websocket("/ws/comments")
async def comments_websocket(websocket: WebSocket) -> None:
    """
    ?activityId=...&userId=... 로 연결.

    - activityId 없음 → ProtocolError → 1008로 닫음 (topic 없이는 쓸 수 없는 연결)
    - 연결 시 그 activity의 전체 댓글 이력을 이 연결에만 1회 전송
    - 연결이 끊기면 topic에서 제거. 재연결하면 이력을 처음부터 다시 받는다.
    """
    hub: CommentHub = websocket.app.state.comment_hub
    activity_id = websocket.query_params.get("activityId")
    user_id = await _resolve_user_id(hub, websocket.query_params.get("userId"))
    if user_id is None:
        await websocket.close(code=POLICY_VIOLATION)
        return

    subscriber = Subscriber(websocket.send_json, name=f"user:{user_id}")
    try:
        await hub.connect(activity_id, subscriber)
    except ProtocolError as exc:
        logger.warning("comment channel rejected: %s", exc)
        await websocket.close(code=POLICY_VIOLATION)
        return
    except Exception:
        logger.exception("comment channel join failed (activity=%s)", activity_id)
        await websocket.close(code=INTERNAL_ERROR)
        return

    await websocket.accept()
    pump = asyncio.create_task(subscriber.pump())
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                subscriber.deliver({"type": "error", "code": 422, "error": "Malformed message"})
                continue
            if not isinstance(message, dict) or message.get("type") != MSG_PUBLISH_COMMENT:
                subscriber.deliver({"type": "error", "code": 422, "error": "Unknown message type"})
                continue
            await hub.send_comment(subscriber, user_id, message)
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(activity_id, subscriber)
        subscriber.close()
        pump.cancel()
        await asyncio.gather(pump, return_exceptions=True)
