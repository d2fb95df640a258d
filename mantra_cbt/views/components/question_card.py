"""
views/components/question_card.py

단일 문제(Question)를 카드 형태로 표시하기 위한 데이터.
"""

from __future__ import annotations

from typing import Optional

from mantra_cbt.models.question_model import Option, Question


def render(
    question: Question,
    position: int,
    total: int,
    saved_answer: Optional[Option] = None,
) -> dict:
    """
    Args:
        question:     표시할 Question 객체
        position:     전체 문제 중 몇 번째인지 (1-based, "Question 3 of 20")
        total:        전체 문제 수
        saved_answer: 이미 선택한 보기 (없으면 None)
    """
    return {
        "question_id": question.question_id,
        "question_no": question.question_no,
        "label": f"Q{question.question_no}",
        "counter": f"Question {position} of {total}",
        "text": question.text,
        "options": [
            {
                "option": opt.value,
                "text": text,
                "checked": saved_answer == opt,
            }
            for opt, text in question.options
        ],
        "selected": saved_answer.value if saved_answer else None,
    }
