"""
api/routes.py — FastAPI 엔드포인트
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Header, HTTPException, Request
from pydantic import BaseModel

import api.session as session
from mantra_cbt.models.question_model import TestKind
from mantra_cbt.services.attempt_engine import AttemptEngine, StartAttemptError
from mantra_cbt.services.exam_service import SubmissionReport
from mantra_cbt.services.gateway import BackendGateway, GatewayError
from mantra_cbt.views import exam_view, home_view, result_view

logger = logging.getLogger(__name__)

router = APIRouter()

SAFE_REDIRECT = "/dashboard"

# ── Pydantic request bodies ──────────────────────────────────────────────────

class StartAttemptBody(BaseModel):
    mock_test_id: int
    test_kind: str = TestKind.PAID.value
    user_id: int

class SaveAnswerBody(BaseModel):
    question_id: int
    answer: str = ""

class NavigateBody(BaseModel):
    index: Optional[int] = None
    direction: Optional[Literal["next", "previous"]] = None


# ── 헬퍼 ─────────────────────────────────────────────────────────────────────

def _state(request: Request) -> dict:
    state = session.get_session(request.state.session_id)
    if state is None:
        raise HTTPException(status_code=400, detail="Session expired. Please reload the page.")
    return state


def _engine(request: Request) -> AttemptEngine:
    engine: AttemptEngine | None = _state(request).get("engine")
    if engine is None:
        raise HTTPException(status_code=404, detail="No test attempt in this session.")
    return engine


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    return token.strip() if scheme.lower() == "bearer" and token.strip() else None


def _gateway(request: Request, authorization: Optional[str]) -> BackendGateway:
    return request.app.state.gateway_factory(_bearer_token(authorization))


def _parse_kind(kind: str) -> TestKind:
    try:
        return TestKind.parse(kind)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _report_to_dict(report: SubmissionReport) -> dict:
    return {
        "steps": {step.value: state.value for step, state in report.steps.items()},
        "elapsed": report.elapsed,
        "score": report.score,
        "result_available": report.result_available,
        "persistence_failed": report.persistence_failed,
        "failed_step": report.failed_step.value if report.failed_step else None,
        "error": report.error,
    }


# ── 응시 엔드포인트 ─────────────────────────────────────────────────────────

@router.post("/api/attempt/start")
async def start_attempt(
    body: StartAttemptBody,
    request: Request,
    authorization: Optional[str] = Header(None),
):
    state = _state(request)
    kind = _parse_kind(body.test_kind)

    current: AttemptEngine | None = state.get("engine")
    if current is not None and not current.can_leave_unguarded:
        raise HTTPException(status_code=409, detail="Another test is already in progress.")
    await session.discard_attempt(state)

    gateway = _gateway(request, authorization)
    engine = AttemptEngine(gateway, state["notifier"], body.user_id)
    try:
        await engine.start(body.mock_test_id, kind)
    except StartAttemptError as e:
        await gateway.aclose()
        raise HTTPException(status_code=502, detail={"message": e.message, "redirect": SAFE_REDIRECT})

    state["engine"] = engine
    state["gateway"] = gateway
    return exam_view.render(engine)


@router.get("/api/attempt")
async def get_attempt(request: Request):
    return exam_view.render(_engine(request))


@router.get("/api/attempt/status")
async def get_attempt_status(request: Request):
    engine: AttemptEngine | None = _state(request).get("engine")
    if engine is None:
        return {"status": None, "can_leave": True}
    return {"status": engine.status.value, "can_leave": engine.can_leave_unguarded}


@router.post("/api/attempt/answer")
async def save_answer(body: SaveAnswerBody, request: Request):
    engine = _engine(request)
    try:
        if body.answer:
            accepted = engine.select_answer(body.question_id, body.answer)
        else:
            accepted = engine.clear_answer(body.question_id)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if not accepted:
        raise HTTPException(status_code=400, detail="This test is no longer accepting answers.")
    return {"ok": True, "answered_count": engine.session.answered_count}


@router.post("/api/attempt/navigate")
async def navigate(body: NavigateBody, request: Request):
    engine = _engine(request)
    if engine.navigation is None:
        raise HTTPException(status_code=400, detail="Test has not started.")

    if body.index is not None:
        try:
            engine.go_to(body.index)
        except IndexError as e:
            raise HTTPException(status_code=404, detail=str(e))
    elif body.direction == "next":
        engine.next()
    elif body.direction == "previous":
        engine.previous()
    else:
        raise HTTPException(status_code=422, detail="Provide either index or direction.")
    return {"index": engine.navigation.current_index, "ok": True}


@router.post("/api/attempt/submit")
async def submit_attempt(request: Request):
    engine = _engine(request)
    report = await engine.submit()
    if report is None:
        raise HTTPException(
            status_code=409,
            detail=f"Submission not started (status={engine.status.value}).",
        )

    response = {"status": engine.status.value, "report": _report_to_dict(report)}
    if report.result is not None:
        response["result"] = result_view.render(report.result)
    return response


@router.get("/api/attempt/result")
async def get_result(request: Request):
    engine = _engine(request)
    report = engine.report
    if report is None or report.result is None:
        raise HTTPException(status_code=404, detail="No result available.")
    return result_view.render(report.result)


@router.post("/api/attempt/leave")
async def leave_attempt(request: Request):
    await session.reset(request.state.session_id)
    return {"ok": True, "redirect": SAFE_REDIRECT}


@router.get("/api/notification")
async def pop_notification(request: Request):
    notification = _state(request)["notifier"].pop()
    return {"notification": notification.model_dump(mode="json") if notification else None}


# ── 목록 / 이력 ─────────────────────────────────────────────────────────────

@router.get("/api/catalog/{kind}")
async def get_catalog(kind: str, request: Request, authorization: Optional[str] = Header(None)):
    test_kind = _parse_kind(kind)
    try:
        async with _gateway(request, authorization) as gateway:
            tests = await gateway.list_mock_tests(test_kind)
    except GatewayError as e:
        raise HTTPException(status_code=502, detail=f"Failed to load mock tests: {e.message}")
    return home_view.render_catalog(test_kind, tests)


@router.get("/api/history/scores")
async def get_score_history(user_id: int, request: Request, authorization: Optional[str] = Header(None)):
    try:
        async with _gateway(request, authorization) as gateway:
            scores = await gateway.get_user_scores(user_id)
    except GatewayError as e:
        raise HTTPException(status_code=502, detail=f"Failed to load scores: {e.message}")
    return home_view.render_scores(scores)


@router.get("/api/history/attempts")
async def get_attempt_history(user_id: int, request: Request, authorization: Optional[str] = Header(None)):
    try:
        async with _gateway(request, authorization) as gateway:
            attempts = await gateway.get_user_attempts(user_id)
    except GatewayError as e:
        raise HTTPException(status_code=502, detail=f"Failed to load attempts: {e.message}")
    return home_view.render_attempts(attempts)


@router.get("/api/history/attempts/{attempt_id}")
async def get_attempt_details(attempt_id: int, request: Request, authorization: Optional[str] = Header(None)):
    try:
        async with _gateway(request, authorization) as gateway:
            return await gateway.get_attempt_details(attempt_id)
    except GatewayError as e:
        status_code = 404 if e.is_not_found else 502
        raise HTTPException(status_code=status_code, detail=f"Failed to load attempt details: {e.message}")
