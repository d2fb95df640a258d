"""
api/session.py — 멀티유저 인메모리 세션 (쿠키 기반)

각 브라우저에 UUID 세션 ID를 발급하고, 세션별로 독립된 상태를 유지.
세션 하나에는 진행 중인 응시 엔진이 최대 하나만 존재한다.
TTL(기본 1시간) 경과 시 자동 만료.
"""

import asyncio
import logging
import threading
import time
import uuid
from typing import Any

from config import SESSION_TTL
from mantra_cbt.models.session_state import AttemptStatus
from mantra_cbt.services.notifier import Notifier

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_sessions: dict[str, dict[str, Any]] = {}
_timestamps: dict[str, float] = {}
_closing: set[asyncio.Task] = set()


def _new_state() -> dict[str, Any]:
    return {
        "engine": None,
        "gateway": None,
        "notifier": Notifier(),
    }


def create_session() -> str:
    """새 세션을 생성하고 세션 ID를 반환."""
    sid = uuid.uuid4().hex
    with _lock:
        _sessions[sid] = _new_state()
        _timestamps[sid] = time.time()
    return sid


def get_session(sid: str) -> dict[str, Any] | None:
    """세션 ID로 세션 데이터를 가져옴. 만료되었거나 없으면 None."""
    with _lock:
        if sid not in _sessions:
            return None
        if time.time() - _timestamps[sid] > SESSION_TTL:
            # 만료된 세션의 응시 정리는 cleanup_expired() 호출자가 담당
            return None
        _timestamps[sid] = time.time()  # 접근 시 갱신
        return _sessions[sid]


async def _close_when_settled(engine, gateway) -> None:
    await engine.wait_settled()
    await gateway.aclose()


async def discard_attempt(state: dict[str, Any]) -> None:
    """
    세션의 응시 엔진을 정리(타이머 취소)하고 게이트웨이 연결을 닫는다.
    제출이 진행 중이면 제출이 끝난 뒤에 닫는다.
    """
    engine = state.get("engine")
    gateway = state.get("gateway")
    state["engine"] = None
    state["gateway"] = None
    if engine is not None:
        engine.leave()
    if gateway is None:
        return
    if engine is not None and engine.status == AttemptStatus.SUBMITTING:
        logger.info(f"제출 진행 중: 완료 후 게이트웨이 종료 (mock_test_id={engine.session.mock_test_id})")
        task = asyncio.create_task(_close_when_settled(engine, gateway))
        _closing.add(task)
        task.add_done_callback(_closing.discard)
        return
    await gateway.aclose()


async def wait_closing() -> None:
    """제출 완료를 기다리는 게이트웨이 종료 작업을 모두 기다린다 (서버 종료 시)."""
    if _closing:
        await asyncio.gather(*list(_closing))


async def reset(sid: str) -> None:
    """세션의 응시 상태 초기화 (알림은 유지)."""
    state = get_session(sid)
    if state is not None:
        await discard_attempt(state)


def cleanup_expired() -> list[dict[str, Any]]:
    """만료된 세션을 레지스트리에서 제거하고, 제거된 세션 상태 목록을 반환."""
    now = time.time()
    removed = []
    with _lock:
        expired = [sid for sid, ts in _timestamps.items() if now - ts > SESSION_TTL]
        for sid in expired:
            removed.append(_sessions.pop(sid))
            del _timestamps[sid]
    return removed


def drain() -> list[dict[str, Any]]:
    """모든 세션을 레지스트리에서 제거하고 상태 목록을 반환 (서버 종료 시)."""
    with _lock:
        states = list(_sessions.values())
        _sessions.clear()
        _timestamps.clear()
    return states
