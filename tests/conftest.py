"""Pytest configuration and shared fixtures for the attempt engine tests."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from mantra_cbt.models.attempt_model import AttemptTest, ScoreRecord
from mantra_cbt.models.question_model import Option, TestKind
from mantra_cbt.models.result_model import DetailedResultRow
from mantra_cbt.models.session_state import AttemptSession
from mantra_cbt.services.attempt_engine import AttemptEngine
from mantra_cbt.services.gateway import GatewayError
from mantra_cbt.services.notifier import Notifier

ANSWER_KEY = {101: "A", 102: "B", 103: "C", 104: "D", 105: "A"}


def make_attempt_payload(question_count: int = 5, timer_in_minutes: int = 30) -> Dict[str, Any]:
    """Backend-shaped start-attempt payload (camelCase, no correct answers)."""
    return {
        "id": 9001,
        "userId": 7,
        "mockTestId": 42,
        "mockTestName": "Prelims Mock 1",
        "timerInMinutes": timer_in_minutes,
        "startedAt": "2026-10-19T09:00:00",
        "isCompleted": False,
        "questions": [
            {
                "questionId": 100 + n,
                "questionNo": n,
                "question": f"Question {n}?",
                "optionA": f"{n}-alpha",
                "optionB": f"{n}-beta",
                "optionC": f"{n}-gamma",
                "optionD": f"{n}-delta",
            }
            for n in range(1, question_count + 1)
        ],
    }


class FakeGateway:
    """
    In-memory stand-in for BackendGateway.

    Every call is recorded as ("start", name) / ("end", name) so tests can
    check that no call begins before the previous one has returned.
    """

    def __init__(
        self,
        attempt: Optional[Dict[str, Any]] = None,
        fail_on: Optional[set] = None,
        answer_key: Optional[Dict[int, str]] = None,
        errors: Optional[Dict[str, Exception]] = None,
    ):
        self.attempt = attempt or make_attempt_payload()
        self.fail_on = fail_on or set()
        self.answer_key = answer_key or ANSWER_KEY
        self.errors = errors or {}
        self.events: List[tuple] = []
        self.saved_attempts: List[Dict[str, Any]] = []
        self.saved_scores: List[Dict[str, Any]] = []
        self.closed = False

    @property
    def call_order(self) -> List[str]:
        return [name for kind, name in self.events if kind == "start"]

    async def _enter(self, name: str) -> None:
        self.events.append(("start", name))
        await asyncio.sleep(0)
        if name in self.fail_on:
            self.events.append(("end", name))
            raise GatewayError(f"{name} failed", status_code=500)
        if name in self.errors:
            self.events.append(("end", name))
            raise self.errors[name]

    def _exit(self, name: str) -> None:
        self.events.append(("end", name))

    def _score(self, answers) -> float:
        questions = self.attempt["questions"]
        correct = sum(
            1 for q in questions
            if answers.get(q["questionId"]) == Option(self.answer_key[q["questionId"]])
        )
        return round(correct / len(questions) * 100, 2)

    async def start_attempt(self, mock_test_id, user_id, test_kind):
        await self._enter("start_attempt")
        self._exit("start_attempt")
        return AttemptTest.model_validate(self.attempt)

    async def calculate_score(self, mock_test_id, user_id, answers, test_kind):
        await self._enter("calculate_score")
        self._exit("calculate_score")
        return self._score(answers)

    async def get_detailed_results(self, mock_test_id, user_id, answers, test_kind):
        await self._enter("get_detailed_results")
        rows = []
        for q in self.attempt["questions"]:
            qid = q["questionId"]
            user = answers.get(qid)
            rows.append(
                DetailedResultRow.model_validate(
                    {
                        **q,
                        "correctAnswer": self.answer_key[qid],
                        "userAnswer": user.value if user else None,
                        "isCorrect": user is not None and user.value == self.answer_key[qid],
                    }
                )
            )
        self._exit("get_detailed_results")
        return rows

    async def save_attempt(self, user_id, mock_test_id, mock_test_name, test_kind, selected_options, time_taken):
        await self._enter("save_attempt")
        self.saved_attempts.append(
            {
                "userId": user_id,
                "mockTestId": mock_test_id,
                "mockTestName": mock_test_name,
                "mockTestType": TestKind.parse(test_kind).value,
                "answers": selected_options,
                "timeTaken": time_taken,
            }
        )
        self._exit("save_attempt")
        return {"ok": True}

    async def save_score(self, user_id, mock_test_id, mock_test_title, score):
        await self._enter("save_score")
        self.saved_scores.append({"userId": user_id, "mockTestId": mock_test_id, "score": score})
        self._exit("save_score")
        return ScoreRecord(
            id=1,
            user_id=user_id,
            mock_test_id=mock_test_id,
            mock_test_title=mock_test_title,
            score=score,
        )

    async def aclose(self):
        self.closed = True


@pytest.fixture
def attempt_payload() -> Dict[str, Any]:
    return make_attempt_payload()


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def loaded_session(attempt_payload) -> AttemptSession:
    """Session already loaded with 5 questions and a 30 minute timer."""
    session = AttemptSession()
    session.load(AttemptTest.model_validate(attempt_payload), TestKind.PAID)
    return session


@pytest.fixture
def engine_factory(notifier):
    """Build an AttemptEngine with the timer task disabled (ticks are driven by tests)."""

    def _make(gateway: FakeGateway, user_id: int = 7) -> AttemptEngine:
        return AttemptEngine(gateway, notifier, user_id=user_id, start_timer=False)

    return _make
