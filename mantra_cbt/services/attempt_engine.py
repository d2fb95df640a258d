"""
services/attempt_engine.py

응시 한 건을 구성하는 요소(세션·타이머·문제 탐색·제출)를 묶는다.
한 엔진은 정확히 하나의 AttemptSession을 소유하며, 다른 화면/탭과 공유하지 않는다.
"""

import asyncio
import logging
from typing import Optional

from mantra_cbt.models.question_model import Option, TestKind
from mantra_cbt.models.session_state import AttemptSession, AttemptStatus
from mantra_cbt.services.exam_service import SubmissionOrchestrator, SubmissionReport
from mantra_cbt.services.gateway import BackendGateway, GatewayError
from mantra_cbt.services.navigation import NavigationController
from mantra_cbt.services.notifier import Notifier, NotificationType
from mantra_cbt.services.timer import TimerController

logger = logging.getLogger(__name__)

MSG_START_FAILED = "Failed to start test"


class StartAttemptError(Exception):
    """응시 시작 실패. 셸은 이 예외를 받으면 안전한 화면으로 돌려보낸다."""

    def __init__(self, message: str, cause: Optional[GatewayError] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class AttemptEngine:
    def __init__(
        self,
        gateway: BackendGateway,
        notifier: Notifier,
        user_id: int,
        start_timer: bool = True,
    ):
        self.gateway = gateway
        self.notifier = notifier
        self.user_id = user_id
        self.session = AttemptSession()
        self.orchestrator = SubmissionOrchestrator(gateway, notifier)
        self.timer: Optional[TimerController] = None
        self.navigation: Optional[NavigationController] = None
        self.report: Optional[SubmissionReport] = None
        self._start_timer = start_timer
        self._settled = asyncio.Event()
        self._settled.set()

    # ── 조회 ───────────────────────────────────────────────────────────────

    @property
    def status(self) -> AttemptStatus:
        return self.session.status

    @property
    def can_leave_unguarded(self) -> bool:
        """진행 중/제출 중에는 이탈 확인이 필요하다."""
        return self.status not in (AttemptStatus.IN_PROGRESS, AttemptStatus.SUBMITTING)

    # ── 시작 ───────────────────────────────────────────────────────────────

    async def start(self, mock_test_id: int, test_kind: TestKind) -> AttemptSession:
        """
        백엔드에 응시 시작을 요청하고 타이머를 가동한다.

        Raises:
            StartAttemptError: 네트워크/인증/존재하지 않는 시험 등으로 시작 실패.
        """
        test_kind = TestKind.parse(test_kind)
        try:
            attempt = await self.gateway.start_attempt(mock_test_id, self.user_id, test_kind)
            if not attempt.questions:
                raise GatewayError(f"Mock test {mock_test_id} has no questions")
        except GatewayError as e:
            logger.error(f"응시 시작 실패 (mock_test_id={mock_test_id}, kind={test_kind.value}): {e}")
            self.session.fail()
            self.notifier.show(MSG_START_FAILED, NotificationType.ERROR)
            raise StartAttemptError(MSG_START_FAILED, e) from e

        self.session.load(attempt, test_kind)
        self.navigation = NavigationController(self.session)
        self.timer = TimerController(self.session, on_expire=self.submit)

        logger.info(
            f"응시 시작 (mock_test_id={mock_test_id}, questions={len(self.session.questions)}, "
            f"timer={self.session.timer_total_seconds}s)"
        )
        if self.session.remaining_seconds == 0:
            # 제한 시간 0분: 시작과 동시에 자동 제출
            await self.timer.expire_if_elapsed()
        elif self._start_timer:
            self.timer.start()
        return self.session

    # ── 답안 / 탐색 ─────────────────────────────────────────────────────────

    def select_answer(self, question_id: int, option: "Option | str") -> bool:
        return self.session.set_answer(question_id, option)

    def clear_answer(self, question_id: int) -> bool:
        return self.session.clear_answer(question_id)

    def go_to(self, index: int) -> None:
        self._require_navigation().go_to(index)

    def next(self) -> bool:
        return self._require_navigation().next()

    def previous(self) -> bool:
        return self._require_navigation().previous()

    def _require_navigation(self) -> NavigationController:
        if self.navigation is None:
            raise RuntimeError("시작되지 않은 응시입니다.")
        return self.navigation

    # ── 제출 / 종료 ─────────────────────────────────────────────────────────

    async def submit(self) -> Optional[SubmissionReport]:
        """수동 제출과 시간 종료 자동 제출이 공유하는 경로. 먼저 도착한 쪽만 실행된다."""
        if not self.session.is_active:
            return None
        if self.timer is not None:
            self.timer.cancel()
        self._settled.clear()
        try:
            report = await self.orchestrator.submit(self.session, self.user_id)
        finally:
            self._settled.set()
        if report is not None:
            self.report = report
        return report

    async def wait_settled(self) -> None:
        """진행 중인 제출이 끝날 때까지 기다린다. 제출 중이 아니면 바로 반환."""
        await self._settled.wait()

    def leave(self) -> None:
        """
        화면 이탈. 타이머를 멈추고 진행 중인 응시는 폐기한다.
        이미 제출 중이면 제출은 끝까지 진행된다 (게이트웨이는 wait_settled() 이후에 닫을 것).
        """
        if self.timer is not None:
            self.timer.cancel()
        if self.session.status in (AttemptStatus.LOADING, AttemptStatus.IN_PROGRESS):
            logger.info(f"진행 중인 응시 폐기 (mock_test_id={self.session.mock_test_id})")
            self.session.fail()
