import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

from app import database
from app.realtime.comment_hub import CommentHub
from app.routers.activities import router as activities_router
from app.routers.comments import router as comments_router
from app.routers.profiles import router as profiles_router

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(engine: Optional[AsyncEngine] = None) -> FastAPI:
    """
    애플리케이션 팩토리.

    engine을 넘기면 (테스트 등) HTTP 의존성과 실시간 채널 모두 그 엔진의 세션을 사용.
    """
    bind = engine if engine is not None else database.engine
    factory = database.SessionLocal if engine is None else database.build_sessionmaker(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """기동 시 테이블 생성 (마이그레이션은 외부 도구 책임), 종료 시 엔진 정리."""
        await database.init_models(bind)
        logger.info("Gatherly API started")
        yield
        await bind.dispose()

    app = FastAPI(
        title="Gatherly API",
        description="모임 피드, 참석, 실시간 댓글을 제공하는 Gatherly 백엔드 API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.comment_hub = CommentHub(factory)

    if engine is not None:

        async def _get_db():
            async with factory() as db:
                yield db

        app.dependency_overrides[database.get_db] = _get_db

    app.include_router(activities_router)
    app.include_router(profiles_router)
    app.include_router(comments_router)

    # CORS 설정
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict:
        return {"status": "ok"}

    @app.get("/", tags=["Root"])
    async def root() -> dict:
        return {
            "message": "Gatherly API에 오신 것을 환영합니다.",
            "docs": "/docs",
            "redoc": "/redoc",
            "health": "/health",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
