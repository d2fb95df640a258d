"""
views/exam_view.py — 시험 풀기 화면

레이아웃:
  - 헤더     : 시험 이름 + 문제 위치 + 타이머
  - 메인 영역 : 현재 문제 카드 + 이전/다음
  - 사이드바  : 문제 번호 그리드 + 진행 현황 + 최종 제출

진행 중(IN_PROGRESS)이 아니면 입력을 비활성화한다.
"""

from __future__ import annotations

from mantra_cbt.models.session_state import AttemptStatus
from mantra_cbt.services.attempt_engine import AttemptEngine
from mantra_cbt.views.components import question_card as qcard
from mantra_cbt.views.components import sidebar as nav
from mantra_cbt.views.components import timer as tmr


def render(engine: AttemptEngine) -> dict:
    """시험 화면 데이터. 시작 전(LOADING)이거나 시작 실패면 로딩/오류 상태만 반환."""
    session = engine.session
    navigation = engine.navigation

    if navigation is None:
        return {
            "status": session.status.value,
            "loading": session.status == AttemptStatus.LOADING,
            "error": "Failed to load test" if session.status == AttemptStatus.FAILED else None,
        }

    current_q = navigation.current_question
    accepting = session.is_active
    submitting = session.status == AttemptStatus.SUBMITTING

    return {
        "status": session.status.value,
        "mock_test_id": session.mock_test_id,
        "mock_test_name": session.mock_test_name,
        "test_kind": session.test_kind.value,
        "current_index": navigation.current_index,
        "timer": tmr.render(session.remaining_seconds, session.timer_total_seconds),
        "question": qcard.render(
            question=current_q,
            position=navigation.current_index + 1,
            total=navigation.total,
            saved_answer=session.answer_for(current_q.question_id),
        ),
        "sidebar": nav.render(navigation),
        "controls": {
            "inputs_enabled": accepting,
            "previous_enabled": accepting and not navigation.is_first,
            "next_enabled": accepting and not navigation.is_last,
            "submit_enabled": accepting,
            "submit_label": "Submitting..." if submitting else "Submit Test",
        },
        "can_leave": engine.can_leave_unguarded,
    }
