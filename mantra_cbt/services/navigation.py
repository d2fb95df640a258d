"""
services/navigation.py

현재 문제 위치와 문제 번호 그리드를 관리한다.
답함/미답 여부는 항상 AttemptSession.answers 에서 읽는다 (별도 상태 없음).
"""

from typing import Dict, List

from mantra_cbt.models.question_model import Question
from mantra_cbt.models.session_state import AttemptSession


class NavigationController:
    def __init__(self, session: AttemptSession):
        if not session.questions:
            raise ValueError("문제가 없는 시험은 탐색할 수 없습니다.")
        self.session = session
        self.current_index = 0

    @property
    def total(self) -> int:
        return len(self.session.questions)

    @property
    def current_question(self) -> Question:
        return self.session.questions[self.current_index]

    @property
    def is_first(self) -> bool:
        return self.current_index == 0

    @property
    def is_last(self) -> bool:
        return self.current_index == self.total - 1

    def go_to(self, index: int) -> None:
        """
        지정한 문제로 이동한다.

        Raises:
            IndexError: 범위를 벗어난 인덱스 (보정하지 않음).
        """
        if not 0 <= index < self.total:
            raise IndexError(f"문제 인덱스 범위를 벗어났습니다: {index} (0 ~ {self.total - 1})")
        self.current_index = index

    def next(self) -> bool:
        """다음 문제로. 마지막 문제면 그대로 두고 False."""
        if self.is_last:
            return False
        self.current_index += 1
        return True

    def previous(self) -> bool:
        """이전 문제로. 첫 문제면 그대로 두고 False."""
        if self.is_first:
            return False
        self.current_index -= 1
        return True

    def is_answered(self, question_id: int) -> bool:
        return self.session.is_answered(question_id)

    def grid(self) -> List[Dict[str, object]]:
        """문제 번호 그리드 셀 목록."""
        return [
            {
                "index": idx,
                "question_id": q.question_id,
                "question_no": q.question_no,
                "is_current": idx == self.current_index,
                "is_answered": self.session.is_answered(q.question_id),
            }
            for idx, q in enumerate(self.session.questions)
        ]

    def summary(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "answered": self.session.answered_count,
            "remaining": self.session.unanswered_count,
        }
