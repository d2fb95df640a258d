"""
services/exam_service.py

시험 제출(채점 요청 → 상세 결과 → 응시 저장 → 점수 저장) 비즈니스 로직.
채점은 백엔드가 단독으로 수행하며, 여기서는 순서와 실패 정책만 책임진다.

실패 정책:
  - 채점/상세 결과 실패  → 결과 화면 차단, 세션 FAILED
  - 응시/점수 저장 실패  → 결과는 그대로 보여주고 저장 실패만 따로 알림
  - 그 밖의 예상하지 못한 오류 → 채점 실패와 동일하게 FAILED
어느 경우든 실패한 단계 이후의 단계는 실행하지 않으며, 자동 재시도는 없다.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from config import EXCELLENT_THRESHOLD, GOOD_THRESHOLD
from mantra_cbt.models.attempt_model import ScoreRecord
from mantra_cbt.models.result_model import DetailedResultRow, ReviewEntry, TestResult
from mantra_cbt.models.session_state import AttemptSession, AttemptStatus
from mantra_cbt.services.gateway import BackendGateway, GatewayError
from mantra_cbt.services.notifier import Notifier, NotificationType

logger = logging.getLogger(__name__)

MSG_SUBMITTED = "Test submitted successfully!"
MSG_SCORE_FAILED = "Failed to calculate score"
MSG_SAVE_FAILED = "Your result is shown, but the attempt could not be saved."


class SubmissionStep(str, Enum):
    ELAPSED = "elapsed"
    CALCULATE_SCORE = "calculate_score"
    FETCH_RESULTS = "fetch_results"
    SAVE_ATTEMPT = "save_attempt"
    SAVE_SCORE = "save_score"


class StepState(str, Enum):
    PENDING = "PENDING"
    OK = "OK"
    FAILED = "FAILED"


_PERSISTENCE_STEPS = (SubmissionStep.SAVE_ATTEMPT, SubmissionStep.SAVE_SCORE)


class SubmissionReport(BaseModel):
    """
    제출 한 번의 진행 기록.

    Attributes:
        steps:         단계별 상태 (PENDING / OK / FAILED).
        elapsed:       소요 시간 (초).
        score:         백엔드가 계산한 점수.
        result:        결과 화면용 TestResult (채점·상세 결과 성공 시에만).
        score_record:  저장된 점수 레코드.
        failed_step:   실패한 단계.
        error:         실패 메시지.
    """

    steps: Dict[SubmissionStep, StepState] = Field(
        default_factory=lambda: {step: StepState.PENDING for step in SubmissionStep}
    )
    elapsed: int = 0
    score: Optional[float] = None
    result: Optional[TestResult] = None
    score_record: Optional[ScoreRecord] = None
    failed_step: Optional[SubmissionStep] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return all(state == StepState.OK for state in self.steps.values())

    @property
    def result_available(self) -> bool:
        return self.result is not None

    @property
    def persistence_failed(self) -> bool:
        return self.failed_step in _PERSISTENCE_STEPS

    def mark(self, step: SubmissionStep, state: StepState) -> None:
        self.steps[step] = state


class _StepFailed(Exception):
    def __init__(self, step: SubmissionStep, cause: Exception):
        super().__init__(str(cause))
        self.step = step
        self.cause = cause


def _error_message(e: Exception) -> str:
    if isinstance(e, GatewayError):
        return e.message
    return str(e) or type(e).__name__


def selected_options(session: AttemptSession) -> List[Dict[str, Any]]:
    """응시 저장용 문제별 선택지 목록. 미응답은 None."""
    return [
        {
            "questionId": q.question_id,
            "selectedOption": session.answers[q.question_id].value if q.question_id in session.answers else None,
        }
        for q in session.questions
    ]


def build_test_result(score: float, rows: List[DetailedResultRow], total_questions: int) -> TestResult:
    """상세 결과 응답으로 TestResult를 조립한다. 정답 수는 isCorrect 기준."""
    entries = [ReviewEntry.from_row(row) for row in rows]
    return TestResult(
        score_percent=score,
        correct_count=sum(1 for e in entries if e.is_correct),
        total_questions=total_questions,
        entries=entries,
    )


class GradeBand(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    NEEDS_IMPROVEMENT = "needs-improvement"


def grade_band(
    score: float,
    excellent: float = EXCELLENT_THRESHOLD,
    good: float = GOOD_THRESHOLD,
) -> GradeBand:
    """
    점수 등급을 반환한다.

    Args:
        score:     0.0 ~ 100.0 점수.
        excellent: Excellent 기준 (기본값 80점).
        good:      Good 기준 (기본값 60점).
    """
    if score >= excellent:
        return GradeBand.EXCELLENT
    if score >= good:
        return GradeBand.GOOD
    return GradeBand.NEEDS_IMPROVEMENT


class SubmissionOrchestrator:
    def __init__(self, gateway: BackendGateway, notifier: Notifier):
        self.gateway = gateway
        self.notifier = notifier

    async def submit(self, session: AttemptSession, user_id: int) -> Optional[SubmissionReport]:
        """
        응시를 제출한다. 모든 단계는 앞 단계 응답을 받은 뒤에만 시작한다.

        Returns:
            SubmissionReport. 이미 제출 중이거나 종료된 세션이면 None (아무것도 하지 않음).
        """
        # await 이전에 동기적으로 상태를 바꿔야 중복 트리거를 막을 수 있다
        if not session.begin_submit():
            logger.info(f"중복 제출 무시 (status={session.status.value})")
            return None

        report = SubmissionReport()
        try:
            await self._run(session, user_id, report)
        except Exception as e:
            logger.exception(f"제출 처리 중 예상하지 못한 오류 (mock_test_id={session.mock_test_id})")
            report.result = None
            report.error = report.error or _error_message(e)
            session.fail()
            self.notifier.show(MSG_SCORE_FAILED, NotificationType.ERROR)
        finally:
            # 취소 등으로 중단되어도 SUBMITTING에 머무르지 않는다
            if session.status == AttemptStatus.SUBMITTING:
                session.fail()
        return report

    async def _run(self, session: AttemptSession, user_id: int, report: SubmissionReport) -> None:
        answers = dict(session.answers)

        report.elapsed = session.elapsed_seconds
        report.mark(SubmissionStep.ELAPSED, StepState.OK)

        try:
            report.score = await self._step(
                report,
                SubmissionStep.CALCULATE_SCORE,
                self.gateway.calculate_score(session.mock_test_id, user_id, answers, session.test_kind),
            )
            rows = await self._step(
                report,
                SubmissionStep.FETCH_RESULTS,
                self.gateway.get_detailed_results(session.mock_test_id, user_id, answers, session.test_kind),
            )
        except _StepFailed as e:
            logger.error(f"채점 실패 [{e.step.value}]: {e.cause}")
            session.fail()
            self.notifier.show(MSG_SCORE_FAILED, NotificationType.ERROR)
            return

        report.result = build_test_result(report.score, rows, len(session.questions))

        try:
            await self._step(
                report,
                SubmissionStep.SAVE_ATTEMPT,
                self.gateway.save_attempt(
                    user_id,
                    session.mock_test_id,
                    session.mock_test_name,
                    session.test_kind,
                    selected_options(session),
                    report.elapsed,
                ),
            )
            report.score_record = await self._step(
                report,
                SubmissionStep.SAVE_SCORE,
                self.gateway.save_score(user_id, session.mock_test_id, session.mock_test_name, report.score),
            )
        except _StepFailed as e:
            # 점수는 이미 확보됨: 결과는 보여주고 저장 실패만 따로 알린다
            logger.error(f"응시 기록 저장 실패 [{e.step.value}]: {e.cause}")

        session.complete()
        self.notifier.show(MSG_SUBMITTED, NotificationType.SUCCESS)
        if report.persistence_failed:
            self.notifier.show(MSG_SAVE_FAILED, NotificationType.WARNING)

        logger.info(
            f"제출 완료 (mock_test_id={session.mock_test_id}, score={report.score}, "
            f"elapsed={report.elapsed}s, saved={not report.persistence_failed})"
        )

    @staticmethod
    async def _step(report: SubmissionReport, step: SubmissionStep, call):
        try:
            value = await call
        except Exception as e:
            if not isinstance(e, GatewayError):
                logger.exception(f"게이트웨이 호출 중 예상하지 못한 오류 [{step.value}]")
            report.mark(step, StepState.FAILED)
            report.failed_step = step
            report.error = _error_message(e)
            raise _StepFailed(step, e) from e
        report.mark(step, StepState.OK)
        return value
