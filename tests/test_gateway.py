"""Tests for the BackendGateway HTTP client."""

import json

import httpx
import pytest

from mantra_cbt.models.question_model import Option, TestKind
from mantra_cbt.services.gateway import BackendGateway, GatewayError, answers_payload

from conftest import make_attempt_payload


def _wrapped(data, code=200):
    return {"code": code, "message": "OK", "status": "SUCCESS", "data": data}


class Recorder:
    """MockTransport handler that records requests and replies from a route table."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"message": "not found"})
        status, body = self.routes[key]
        return httpx.Response(status, json=body)


def _gateway(routes, token="secret-token"):
    recorder = Recorder(routes)
    gateway = BackendGateway(
        base_url="http://backend.test/",
        token=token,
        transport=httpx.MockTransport(recorder),
    )
    return gateway, recorder


class TestAnswersPayload:
    def test_keys_are_strings(self):
        assert answers_payload({101: Option.A, 103: "c"}) == {"101": "A", "103": "C"}


class TestStartAttempt:
    @pytest.mark.asyncio
    async def test_paid_route_and_auth_header(self):
        gateway, recorder = _gateway(
            {("POST", "/api/admin/mocktests/42/attempt"): (200, _wrapped(make_attempt_payload()))}
        )
        async with gateway:
            attempt = await gateway.start_attempt(42, 7, TestKind.PAID)

        request = recorder.requests[0]
        assert request.url.params["userId"] == "7"
        assert request.headers["Authorization"] == "Bearer secret-token"
        assert attempt.timer_in_minutes == 30
        assert [q.question_no for q in attempt.questions] == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_free_route(self):
        gateway, recorder = _gateway(
            {("POST", "/api/admin/Free/mocktests/42/attempt"): (200, _wrapped(make_attempt_payload()))}
        )
        async with gateway:
            await gateway.start_attempt(42, 7, "FREE")
        assert recorder.requests[0].url.path == "/api/admin/Free/mocktests/42/attempt"

    @pytest.mark.asyncio
    async def test_not_found(self):
        gateway, _ = _gateway({})
        async with gateway:
            with pytest.raises(GatewayError) as exc_info:
                await gateway.start_attempt(42, 7, TestKind.PAID)
        assert exc_info.value.is_not_found

    @pytest.mark.asyncio
    async def test_unauthorized(self):
        gateway, _ = _gateway({("POST", "/api/admin/mocktests/42/attempt"): (401, {"message": "no"})})
        async with gateway:
            with pytest.raises(GatewayError) as exc_info:
                await gateway.start_attempt(42, 7, TestKind.PAID)
        assert exc_info.value.is_unauthorized

    @pytest.mark.asyncio
    async def test_malformed_payload(self):
        gateway, _ = _gateway({("POST", "/api/admin/mocktests/42/attempt"): (200, _wrapped({"oops": 1}))})
        async with gateway:
            with pytest.raises(GatewayError):
                await gateway.start_attempt(42, 7, TestKind.PAID)

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def boom(request):
            raise httpx.ConnectError("connection refused", request=request)

        gateway = BackendGateway(base_url="http://backend.test", transport=httpx.MockTransport(boom))
        async with gateway:
            with pytest.raises(GatewayError) as exc_info:
                await gateway.start_attempt(42, 7, TestKind.PAID)
        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_no_auth_header_without_token(self):
        gateway, recorder = _gateway(
            {("POST", "/api/admin/mocktests/42/attempt"): (200, _wrapped(make_attempt_payload()))},
            token=None,
        )
        async with gateway:
            await gateway.start_attempt(42, 7, TestKind.PAID)
        assert "Authorization" not in recorder.requests[0].headers

    @pytest.mark.asyncio
    async def test_closed_client_raises_gateway_error(self):
        gateway, recorder = _gateway(
            {("POST", "/api/admin/mocktests/42/attempt"): (200, _wrapped(make_attempt_payload()))}
        )
        await gateway.aclose()

        with pytest.raises(GatewayError):
            await gateway.start_attempt(42, 7, TestKind.PAID)
        assert recorder.requests == []


class TestScoring:
    @pytest.mark.asyncio
    async def test_calculate_score_sends_answers(self):
        gateway, recorder = _gateway({("POST", "/api/admin/mocktests/42/calculate-score"): (200, _wrapped(40.0))})
        async with gateway:
            score = await gateway.calculate_score(42, 7, {101: Option.A, 103: Option.C}, TestKind.PAID)

        assert score == 40.0
        assert json.loads(recorder.requests[0].content) == {"101": "A", "103": "C"}

    @pytest.mark.asyncio
    async def test_score_out_of_range(self):
        gateway, _ = _gateway({("POST", "/api/admin/mocktests/42/calculate-score"): (200, _wrapped(140))})
        async with gateway:
            with pytest.raises(GatewayError):
                await gateway.calculate_score(42, 7, {}, TestKind.PAID)

    @pytest.mark.asyncio
    async def test_detailed_results(self):
        rows = [
            {
                "questionId": 101, "questionNo": 1, "question": "Q1?",
                "optionA": "a", "optionB": "b", "optionC": "c", "optionD": "d",
                "correctAnswer": "A", "userAnswer": "A", "isCorrect": True,
            },
            {
                "questionId": 102, "questionNo": 2, "question": "Q2?",
                "optionA": "a", "optionB": "b", "optionC": "c", "optionD": "d",
                "correctAnswer": "B", "userAnswer": "", "isCorrect": False,
            },
        ]
        gateway, _ = _gateway({("POST", "/api/admin/Free/mocktests/42/results"): (200, _wrapped(rows))})
        async with gateway:
            result = await gateway.get_detailed_results(42, 7, {101: Option.A}, TestKind.FREE)

        assert result[0].is_correct is True
        assert result[1].user_answer is None
        assert result[1].correct_answer == Option.B

    @pytest.mark.asyncio
    async def test_detailed_results_rejects_unknown_option(self):
        rows = [{"questionId": 1, "questionNo": 1, "correctAnswer": "Z"}]
        gateway, _ = _gateway({("POST", "/api/admin/mocktests/42/results"): (200, _wrapped(rows))})
        async with gateway:
            with pytest.raises(GatewayError):
                await gateway.get_detailed_results(42, 7, {}, TestKind.PAID)


class TestPersistence:
    @pytest.mark.asyncio
    async def test_save_attempt_body(self):
        gateway, recorder = _gateway({("POST", "/api/attempts"): (200, _wrapped({"id": 5}))})
        async with gateway:
            await gateway.save_attempt(
                7, 42, "Prelims Mock 1", TestKind.FREE,
                [{"questionId": 101, "selectedOption": None}], 120,
            )

        body = json.loads(recorder.requests[0].content)
        assert body == {
            "userId": 7,
            "mockTestId": 42,
            "mockTestName": "Prelims Mock 1",
            "mockTestType": "FREE",
            "answers": [{"questionId": 101, "selectedOption": None}],
            "timeTaken": 120,
        }

    @pytest.mark.asyncio
    async def test_save_score_query_params(self):
        record = {
            "id": 11, "userId": 7, "mockTestId": 42, "mockTestTitle": "Prelims Mock 1",
            "score": 40.0, "completedAt": "2026-10-19T10:00:00",
        }
        gateway, recorder = _gateway({("POST", "/api/scores"): (200, record)})
        async with gateway:
            saved = await gateway.save_score(7, 42, "Prelims Mock 1", 40.0)

        params = recorder.requests[0].url.params
        assert params["mockTestTitle"] == "Prelims Mock 1"
        assert params["score"] == "40.0"
        assert saved.id == 11
        assert saved.completed_at.year == 2026

    @pytest.mark.asyncio
    async def test_save_failure(self):
        gateway, _ = _gateway({("POST", "/api/attempts"): (500, {"message": "db down"})})
        async with gateway:
            with pytest.raises(GatewayError) as exc_info:
                await gateway.save_attempt(7, 42, "x", TestKind.PAID, [], 1)
        assert exc_info.value.status_code == 500


class TestHistory:
    @pytest.mark.asyncio
    async def test_user_scores_unwrapped_list(self):
        scores = [{"id": 1, "userId": 7, "mockTestId": 42, "mockTestTitle": "T", "score": 80}]
        gateway, _ = _gateway({("GET", "/api/scores/user/7"): (200, scores)})
        async with gateway:
            result = await gateway.get_user_scores(7)
        assert result[0].score == 80

    @pytest.mark.asyncio
    async def test_user_attempts(self):
        attempts = [{
            "id": 3, "mockTestName": "T", "mockTestType": "PAID", "score": 3,
            "totalQuestions": 5, "correctAnswers": 3, "wrongAnswers": 1,
            "unanswered": 1, "timeTaken": 125,
        }]
        gateway, _ = _gateway({("GET", "/api/attempts/user/7"): (200, _wrapped(attempts))})
        async with gateway:
            result = await gateway.get_user_attempts(7)
        assert result[0].time_taken_label == "2m 5s"

    @pytest.mark.asyncio
    async def test_catalog(self):
        tests = [{"id": 42, "name": "Prelims Mock 1", "timerInMinutes": 120}]
        gateway, _ = _gateway({("GET", "/api/user/free/mocktests"): (200, _wrapped(tests))})
        async with gateway:
            result = await gateway.list_mock_tests(TestKind.FREE)
        assert result[0].timer_in_minutes == 120
