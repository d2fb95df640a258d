"""Tests for the TimerController countdown."""

import asyncio

import pytest

from mantra_cbt.models.attempt_model import AttemptTest
from mantra_cbt.models.question_model import TestKind
from mantra_cbt.models.session_state import AttemptSession, AttemptStatus
from mantra_cbt.services.timer import CancellationToken, TimerController

from conftest import make_attempt_payload


def _session(minutes: int = 1) -> AttemptSession:
    session = AttemptSession()
    session.load(AttemptTest.model_validate(make_attempt_payload(timer_in_minutes=minutes)), TestKind.FREE)
    return session


class ExpiryRecorder:
    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1


async def _instant_sleep(_interval):
    await asyncio.sleep(0)


class TestCancellationToken:
    def test_starts_uncancelled(self):
        assert CancellationToken().cancelled is False

    def test_cancel_is_permanent(self):
        token = CancellationToken()
        token.cancel()
        token.cancel()
        assert token.cancelled is True


class TestTick:
    """Tests for manually driven ticks."""

    @pytest.mark.asyncio
    async def test_expires_exactly_once_after_t_ticks(self):
        session = _session(minutes=1)
        on_expire = ExpiryRecorder()
        timer = TimerController(session, on_expire)

        for _ in range(59):
            await timer.tick()
        assert session.remaining_seconds == 1
        assert on_expire.calls == 0

        await timer.tick()
        assert session.remaining_seconds == 0
        assert on_expire.calls == 1

        for _ in range(5):
            await timer.tick()
        assert session.remaining_seconds == 0
        assert on_expire.calls == 1
        assert timer.expired is True

    @pytest.mark.asyncio
    async def test_no_expiry_when_submission_already_started(self):
        session = _session(minutes=1)
        on_expire = ExpiryRecorder()
        timer = TimerController(session, on_expire)
        session.remaining_seconds = 1

        session.begin_submit()
        await timer.tick()

        assert session.remaining_seconds == 1
        assert on_expire.calls == 0

    @pytest.mark.asyncio
    async def test_cancelled_timer_ignores_ticks(self):
        session = _session(minutes=1)
        on_expire = ExpiryRecorder()
        timer = TimerController(session, on_expire)

        timer.cancel()
        for _ in range(120):
            await timer.tick()

        assert session.remaining_seconds == 60
        assert on_expire.calls == 0

    @pytest.mark.asyncio
    async def test_zero_minute_session_expires_without_ticks(self):
        session = _session(minutes=0)
        on_expire = ExpiryRecorder()
        timer = TimerController(session, on_expire)

        assert await timer.expire_if_elapsed() is True
        assert await timer.expire_if_elapsed() is False
        await timer.tick()

        assert on_expire.calls == 1
        assert timer.expired is True

    @pytest.mark.asyncio
    async def test_expire_if_elapsed_waits_for_remaining_time(self):
        session = _session(minutes=1)
        on_expire = ExpiryRecorder()
        timer = TimerController(session, on_expire)

        assert await timer.expire_if_elapsed() is False
        assert on_expire.calls == 0


class TestRunLoop:
    """Tests for the scheduled countdown task."""

    @pytest.mark.asyncio
    async def test_run_counts_down_and_stops(self):
        session = _session(minutes=1)
        on_expire = ExpiryRecorder()
        sleeps = []

        async def fake_sleep(interval):
            sleeps.append(interval)
            await asyncio.sleep(0)

        timer = TimerController(session, on_expire, interval=1.0, sleep=fake_sleep)
        await timer.run()

        assert session.remaining_seconds == 0
        assert on_expire.calls == 1
        assert sleeps == [1.0] * 60

    @pytest.mark.asyncio
    async def test_start_schedules_a_single_task(self):
        session = _session(minutes=1)
        timer = TimerController(session, ExpiryRecorder(), sleep=_instant_sleep)

        task = timer.start()
        assert timer.start() is task
        await task

        assert session.remaining_seconds == 0
        assert timer.running is False

    @pytest.mark.asyncio
    async def test_cancel_stops_pending_task(self):
        session = _session(minutes=10)
        on_expire = ExpiryRecorder()
        gate = asyncio.Event()

        async def blocking_sleep(_interval):
            await gate.wait()

        timer = TimerController(session, on_expire, sleep=blocking_sleep)
        task = timer.start()
        await asyncio.sleep(0)

        timer.cancel()
        gate.set()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert session.remaining_seconds == 600
        assert on_expire.calls == 0

    @pytest.mark.asyncio
    async def test_loop_exits_when_status_leaves_in_progress(self):
        session = _session(minutes=1)
        on_expire = ExpiryRecorder()
        ticks = 0

        async def sleep_then_fail(_interval):
            nonlocal ticks
            ticks += 1
            if ticks == 3:
                session.status = AttemptStatus.FAILED
            await asyncio.sleep(0)

        timer = TimerController(session, on_expire, sleep=sleep_then_fail)
        await timer.run()

        assert session.remaining_seconds == 58
        assert on_expire.calls == 0
