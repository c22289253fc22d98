# 댓글 실시간 채널: activity id = topic. join 시 history 1회 전송, publish는 저장 성공 시에만 전체 브로드캐스트

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.result import ErrorCode, Result
from app.crud.comment_crud import add_comment, list_comments
from app.realtime.topics import Message, ProtocolError, Subscriber, TopicRegistry
from app.schemas.comment import CommentCreate, CommentDto

logger = logging.getLogger(__name__)

MSG_HISTORY = "history"
MSG_NEW_COMMENT = "newComment"
MSG_PUBLISH_COMMENT = "publishComment"
MSG_ERROR = "error"


class HistoryUnavailable(Exception):
    """join 시 댓글 이력을 읽지 못함."""


def _error_message(error: str, code: int) -> Message:
    return {"type": MSG_ERROR, "code": code, "error": error}


class CommentHub:
    """
    TopicRegistry를 댓글 저장 경로에 묶는다.

    - connect: 구독 + 그 구독자에게만 history
    - send_comment: 검증 → 저장 → (성공 시) 같은 topic 전체에 newComment. 보낸 사람도 브로드캐스트로 받음.
    - disconnect: 구독 해제만. 연결별 상태는 남기지 않음.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        registry: Optional[TopicRegistry] = None,
    ) -> None:
        self.session_factory = session_factory
        self.registry = registry or TopicRegistry()

    async def connect(self, activity_id: Optional[str], subscriber: Subscriber) -> None:
        if not activity_id:
            raise ProtocolError("No activity with this id")

        async def history() -> Message:
            async with self.session_factory() as db:
                result = await list_comments(db, activity_id)
            if not result.is_success:
                raise HistoryUnavailable(result.error)
            return {"type": MSG_HISTORY, "data": [c.model_dump(mode="json") for c in result.value]}

        await self.registry.join(activity_id, subscriber, snapshot=history)

    def disconnect(self, activity_id: Optional[str], subscriber: Subscriber) -> None:
        self.registry.leave(activity_id, subscriber)

    async def send_comment(
        self, subscriber: Subscriber, actor_id: int, payload: Dict[str, Any]
    ) -> Result[CommentDto]:
        """
        publishComment 처리. 실패는 보낸 구독자에게만 error 메시지로 알리고 브로드캐스트하지 않음.

        저장과 브로드캐스트를 topic 잠금 안에서 함께 수행 → 브로드캐스트 순서 = 저장 순서.
        """
        try:
            body = CommentCreate.model_validate(payload)
        except ValidationError as exc:
            result: Result[CommentDto] = Result.failure(
                "; ".join(e["msg"] for e in exc.errors()), ErrorCode.VALIDATION_FAILURE
            )
            subscriber.deliver(_error_message(result.error, result.code))
            return result

        async with self.registry.locked(body.activity_id):
            async with self.session_factory() as db:
                result = await add_comment(db, actor_id, body)
            if result.is_success:
                delivered = self.registry.broadcast(
                    body.activity_id,
                    {"type": MSG_NEW_COMMENT, "data": result.value.model_dump(mode="json")},
                )
                logger.info("comment %s on %s fanned out to %d", result.value.id, body.activity_id, delivered)

        if not result.is_success:
            subscriber.deliver(_error_message(result.error, result.code))
        return result
