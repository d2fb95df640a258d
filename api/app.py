"""
api/app.py — FastAPI 앱 인스턴스 + 세션 미들웨어 + static 파일 서빙
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse

from config import BACKEND_URL, SESSION_CLEANUP_INTERVAL, SESSION_TTL, STATIC_DIR
from api.routes import router
import api.session as session
from mantra_cbt.services.gateway import BackendGateway

SESSION_COOKIE = "cbt_session"

logger = logging.getLogger(__name__)

GatewayFactory = Callable[[Optional[str]], BackendGateway]


def _default_gateway_factory(token: Optional[str]) -> BackendGateway:
    return BackendGateway(base_url=BACKEND_URL, token=token)


async def _cleanup_loop() -> None:
    # 응시 타이머가 이벤트 루프에 있으므로 정리도 같은 루프에서 수행
    while True:
        await asyncio.sleep(SESSION_CLEANUP_INTERVAL)
        removed = session.cleanup_expired()
        for state in removed:
            await session.discard_attempt(state)
        if removed:
            logger.info(f"만료 세션 {len(removed)}개 정리")


@asynccontextmanager
async def _lifespan(app: FastAPI):
    task = asyncio.create_task(_cleanup_loop())
    try:
        yield
    finally:
        task.cancel()
        for state in session.drain():
            await session.discard_attempt(state)
        await session.wait_closing()


def create_app(gateway_factory: Optional[GatewayFactory] = None) -> FastAPI:
    app = FastAPI(title="Mantra IAS CBT", docs_url=None, redoc_url=None, lifespan=_lifespan)
    app.state.gateway_factory = gateway_factory or _default_gateway_factory

    # CORS (모바일 브라우저 등 다양한 출처 허용)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 세션 미들웨어: 쿠키에서 세션 ID를 읽고, 없으면 새로 발급
    @app.middleware("http")
    async def session_middleware(request: Request, call_next):
        sid = request.cookies.get(SESSION_COOKIE)
        if not sid or session.get_session(sid) is None:
            sid = session.create_session()

        request.state.session_id = sid
        response: Response = await call_next(request)
        response.set_cookie(
            key=SESSION_COOKIE,
            value=sid,
            httponly=True,
            samesite="lax",
            max_age=SESSION_TTL,
        )
        return response

    app.include_router(router)

    # static 파일 마운트
    if os.path.isdir(STATIC_DIR):
        app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    # 루트 → index.html
    @app.get("/")
    async def serve_index():
        index_path = os.path.join(STATIC_DIR, "index.html")
        if os.path.exists(index_path):
            return FileResponse(index_path)
        return {"error": "index.html not found"}

    return app
