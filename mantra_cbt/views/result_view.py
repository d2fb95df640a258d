"""
views/result_view.py — 시험 결과 화면

표시 내용:
  - 최종 점수 (%), 정답 수 / 전체 문제 수
  - 등급 배지 (Excellent / Good / Needs Improvement)
  - 통계 요약 (정답 수, 오답 수, 미응답 수)
  - 문제별 답안 리뷰 (내 답 ↔ 정답, 정답/오답/미응답 구분)

읽기 전용. TestResult 이외의 상태는 참조하지 않는다.
"""

from __future__ import annotations

from mantra_cbt.models.result_model import ReviewEntry, TestResult, Verdict
from mantra_cbt.services.exam_service import GradeBand, grade_band

NOT_ANSWERED = "Not Answered"

_BAND_LABELS = {
    GradeBand.EXCELLENT: ("Excellent", "Excellent!"),
    GradeBand.GOOD: ("Good", "Good Job!"),
    GradeBand.NEEDS_IMPROVEMENT: ("Needs Improvement", "Keep Practicing!"),
}

_VERDICT_MARKS = {
    Verdict.CORRECT: "✓",
    Verdict.INCORRECT: "✗",
    Verdict.UNANSWERED: "–",
}


def render(result: TestResult) -> dict:
    """결과 화면 데이터."""
    band = grade_band(result.score_percent)
    label, message = _BAND_LABELS[band]

    return {
        "score": result.score_percent,
        "score_display": f"{result.score_percent:g}%",
        "correct_count": result.correct_count,
        "total_questions": result.total_questions,
        "summary_line": f"{result.correct_count} out of {result.total_questions} correct",
        "band": band.value,
        "band_label": label,
        "band_message": message,
        "stats": {
            "correct": result.correct_count,
            "incorrect": result.incorrect_count,
            "unanswered": result.unanswered_count,
        },
        "review": [_review_row(entry) for entry in result.entries],
    }


def _review_row(entry: ReviewEntry) -> dict:
    verdict = entry.verdict
    user_answer = entry.user_answer.value if entry.user_answer else NOT_ANSWERED
    return {
        "question_id": entry.question_id,
        "label": f"Q{entry.question_no}",
        "text": entry.text,
        "options": {
            "A": entry.option_a,
            "B": entry.option_b,
            "C": entry.option_c,
            "D": entry.option_d,
        },
        "verdict": verdict.value,
        "mark": _VERDICT_MARKS[verdict],
        "user_answer": user_answer,
        "user_answer_text": entry.option_text(entry.user_answer),
        "correct_answer": entry.correct_answer.value,
        "correct_answer_text": entry.option_text(entry.correct_answer),
        "solution_link": entry.solution_link,
    }
