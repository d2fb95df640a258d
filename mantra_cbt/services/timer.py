"""
services/timer.py

응시 카운트다운 타이머.

- 이벤트 루프 위의 단일 태스크가 1초마다 AttemptSession.tick()을 호출한다.
- 틱 한 번에 정확히 1초 감소 (밀린 틱을 한꺼번에 보정하지 않음).
- 0초 도달 시 스케줄을 멈추고 on_expire를 정확히 한 번 호출한다.
- cancel() 이후에는 어떤 콜백도 실행되지 않는다.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from config import TICK_INTERVAL_SECONDS
from mantra_cbt.models.session_state import AttemptSession

logger = logging.getLogger(__name__)


class CancellationToken:
    """한 번 취소되면 되돌릴 수 없는 취소 플래그."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class TimerController:
    def __init__(
        self,
        session: AttemptSession,
        on_expire: Callable[[], Awaitable[object]],
        interval: float = TICK_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.session = session
        self.interval = interval
        self.token = CancellationToken()
        self._on_expire = on_expire
        self._sleep = sleep
        self._expired = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def expired(self) -> bool:
        return self._expired

    def start(self) -> asyncio.Task:
        """카운트다운 태스크를 현재 이벤트 루프에 예약한다. 중복 호출 시 기존 태스크 반환."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def run(self) -> None:
        while self._should_continue():
            await self._sleep(self.interval)
            if self.token.cancelled:
                return
            await self.tick()

    def _should_continue(self) -> bool:
        return (
            not self.token.cancelled
            and not self._expired
            and self.session.is_active
            and self.session.remaining_seconds > 0
        )

    async def tick(self) -> None:
        """1초 감소. 0에 도달하면 만료 처리를 한 번만 실행한다."""
        if self.token.cancelled or not self.session.tick():
            return
        if self.session.remaining_seconds == 0:
            await self._expire()

    async def expire_if_elapsed(self) -> bool:
        """남은 시간이 이미 0이면 (제한 시간 0분) 틱 없이 바로 만료 처리한다."""
        if self.token.cancelled or self._expired or self.session.remaining_seconds > 0:
            return False
        await self._expire()
        return True

    async def _expire(self) -> None:
        # 수동 제출과 같은 틱에 겹치면 상태가 이미 바뀌어 있다
        if self._expired or not self.session.is_active:
            return
        self._expired = True
        logger.info(f"시험 시간 종료: 자동 제출 (mock_test_id={self.session.mock_test_id})")
        await self._on_expire()

    def cancel(self) -> None:
        """이후 틱/만료 콜백을 모두 막는다. 여러 번 호출해도 안전."""
        self.token.cancel()
        task, self._task = self._task, None
        if task is None or task.done():
            return
        # 만료 콜백(자동 제출) 안에서 자기 자신을 취소하는 경우는 건드리지 않는다
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()
