"""
views/home_view.py — 홈 / 시험 선택 화면

기능:
  - 유료 / 무료 모의고사 목록 (시험 시작 버튼)
  - 내 점수 이력
  - 내 응시 이력 (정답/오답/미응답, 소요 시간)
"""

from __future__ import annotations

from typing import List

from mantra_cbt.models.attempt_model import AttemptSummary, MockTestInfo, ScoreRecord
from mantra_cbt.models.question_model import TestKind
from mantra_cbt.services.exam_service import grade_band


def render_catalog(kind: TestKind, tests: List[MockTestInfo]) -> dict:
    return {
        "kind": kind.value,
        "tests": [
            {
                "id": t.id,
                "name": t.name,
                "timer_in_minutes": t.timer_in_minutes,
                "start": {"mock_test_id": t.id, "test_kind": kind.value},
            }
            for t in tests
        ],
    }


def render_scores(scores: List[ScoreRecord]) -> dict:
    """점수 이력. 최신순 정렬, 평균 점수 포함."""
    ordered = sorted(
        scores,
        key=lambda s: s.completed_at.timestamp() if s.completed_at else 0,
        reverse=True,
    )
    average = round(sum(s.score for s in scores) / len(scores), 2) if scores else 0.0
    return {
        "count": len(scores),
        "average": average,
        "scores": [
            {
                "id": s.id,
                "mock_test_id": s.mock_test_id,
                "title": s.mock_test_title,
                "score": s.score,
                "band": grade_band(s.score).value,
                "completed_at": s.completed_at.isoformat() if s.completed_at else None,
            }
            for s in ordered
        ],
    }


def render_attempts(attempts: List[AttemptSummary]) -> dict:
    """응시 이력 카드 목록."""
    return {
        "count": len(attempts),
        "attempts": [
            {
                "id": a.id,
                "name": a.mock_test_name,
                "type": a.mock_test_type,
                "score": f"{a.score:g}/{a.total_questions}",
                "band": grade_band(a.score / a.total_questions * 100 if a.total_questions else 0).value,
                "correct": a.correct_answers,
                "wrong": a.wrong_answers,
                "unanswered": a.unanswered,
                "time_taken": a.time_taken_label,
                "completed_at": a.completed_at.isoformat() if a.completed_at else None,
            }
            for a in attempts
        ],
    }
