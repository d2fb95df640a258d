"""
models/session_state.py

진행 중인 응시(Attempt)의 인메모리 상태 모델 — OMR 카드.
Pydantic BaseModel 기반. UI 코드, 네트워크 호출 없음.

상태 전이:
    LOADING → IN_PROGRESS → SUBMITTING → COMPLETED
       │            │             └────→ FAILED
       └────────────┴──────────────────→ FAILED
COMPLETED / FAILED 는 종료 상태이며 이후 답안·남은 시간은 변경되지 않는다.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from mantra_cbt.models.attempt_model import AttemptTest
from mantra_cbt.models.question_model import Option, Question, TestKind

logger = logging.getLogger(__name__)


class AttemptStatus(str, Enum):
    LOADING = "LOADING"
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTING = "SUBMITTING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


TERMINAL_STATUSES = frozenset({AttemptStatus.COMPLETED, AttemptStatus.FAILED})


class AttemptSession(BaseModel):
    """
    사용자의 응시 세션 전체 상태를 표현하는 모델.

    Attributes:
        mock_test_id:        모의고사 ID.
        mock_test_name:      모의고사 이름 (점수 저장 시 제목으로 사용).
        test_kind:           PAID / FREE.
        timer_total_seconds: 제한 시간 (초). 시작 시 고정.
        remaining_seconds:   남은 시간 (초). 진행 중에는 감소만 한다.
        questions:           문제 목록. 로드 후 고정.
        answers:             답안지. {question_id: Option}
        status:              응시 상태.
    """

    mock_test_id: Optional[int] = None
    mock_test_name: str = ""
    test_kind: TestKind = TestKind.PAID
    timer_total_seconds: int = Field(default=0, ge=0)
    remaining_seconds: int = Field(default=0, ge=0)
    questions: List[Question] = Field(default_factory=list)
    answers: Dict[int, Option] = Field(default_factory=dict)
    status: AttemptStatus = AttemptStatus.LOADING

    # ── 조회 ───────────────────────────────────────────────────────────────

    @property
    def is_active(self) -> bool:
        return self.status == AttemptStatus.IN_PROGRESS

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def elapsed_seconds(self) -> int:
        """소요 시간 — 수동 제출/시간 종료 여부와 무관하게 동일하게 계산."""
        return self.timer_total_seconds - self.remaining_seconds

    @property
    def question_ids(self) -> List[int]:
        return [q.question_id for q in self.questions]

    @property
    def answered_count(self) -> int:
        return len(self.answers)

    @property
    def unanswered_count(self) -> int:
        return len(self.questions) - len(self.answers)

    def is_answered(self, question_id: int) -> bool:
        return question_id in self.answers

    def answer_for(self, question_id: int) -> Optional[Option]:
        return self.answers.get(question_id)

    # ── 상태 변경 ───────────────────────────────────────────────────────────

    def load(self, attempt: AttemptTest, test_kind: TestKind) -> None:
        """
        백엔드 응시 시작 응답으로 세션을 초기화하고 IN_PROGRESS로 전환한다.

        Raises:
            RuntimeError: LOADING 상태가 아닌 세션을 다시 로드하려는 경우.
        """
        if self.status != AttemptStatus.LOADING:
            raise RuntimeError(f"이미 시작된 세션입니다 (status={self.status.value}).")

        self.mock_test_id = attempt.mock_test_id
        self.mock_test_name = attempt.mock_test_name
        self.test_kind = TestKind.parse(test_kind)
        self.timer_total_seconds = attempt.timer_in_minutes * 60
        self.remaining_seconds = self.timer_total_seconds
        self.questions = list(attempt.questions)
        self.answers = {}
        self.status = AttemptStatus.IN_PROGRESS

    def set_answer(self, question_id: int, option: "Option | str") -> bool:
        """
        답안을 기록(덮어쓰기)한다. 같은 보기를 다시 선택해도 결과는 동일.

        Returns:
            기록되었으면 True. 진행 중이 아니면 아무것도 바꾸지 않고 False.

        Raises:
            ValueError: 존재하지 않는 문제 ID이거나 A~D가 아닌 보기.
        """
        if not self.is_active:
            logger.warning(
                f"진행 중이 아닌 응시에 답안 기록 시도 무시 "
                f"(status={self.status.value}, question_id={question_id})"
            )
            return False
        if question_id not in self.question_ids:
            raise ValueError(f"이 시험에 없는 문제입니다: {question_id}")
        self.answers[question_id] = Option.parse(option)
        return True

    def clear_answer(self, question_id: int) -> bool:
        """답안 선택을 해제한다. 진행 중이 아니면 False."""
        if not self.is_active:
            return False
        self.answers.pop(question_id, None)
        return True

    def tick(self) -> bool:
        """
        남은 시간을 정확히 1초 줄인다.

        Returns:
            감소했으면 True. 진행 중이 아니거나 이미 0이면 False.
        """
        if not self.is_active or self.remaining_seconds <= 0:
            return False
        self.remaining_seconds -= 1
        return True

    def begin_submit(self) -> bool:
        """
        제출 가드. IN_PROGRESS → SUBMITTING 을 동기적으로 전환한다.
        이미 제출 중이거나 종료된 세션이면 False (중복 제출 차단).
        """
        if not self.is_active:
            return False
        self.status = AttemptStatus.SUBMITTING
        return True

    def complete(self) -> None:
        if self.status != AttemptStatus.SUBMITTING:
            raise RuntimeError(f"제출 중이 아닌 세션은 완료할 수 없습니다 (status={self.status.value}).")
        self.status = AttemptStatus.COMPLETED

    def fail(self) -> None:
        if self.is_terminal:
            return
        self.status = AttemptStatus.FAILED
