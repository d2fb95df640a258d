"""
services/gateway.py

Mantra IAS 백엔드 게이트웨이 HTTP 클라이언트 (httpx 비동기).
Public API:
  - start_attempt(mock_test_id, user_id, test_kind)   -> AttemptTest
  - calculate_score(mock_test_id, user_id, answers, test_kind) -> float
  - get_detailed_results(mock_test_id, user_id, answers, test_kind) -> List[DetailedResultRow]
  - save_attempt(...)                                   -> dict
  - save_score(user_id, mock_test_id, title, score)     -> ScoreRecord
  - list_mock_tests / get_user_scores / get_user_attempts / get_attempt_details

설계 원칙:
- 채점(정답 판정)은 전적으로 백엔드 책임. 클라이언트는 답안지만 전달한다.
- 모든 실패(전송 오류, 2xx 이외 응답, 응답 형식 오류)는 GatewayError 하나로 변환.
- 자동 재시도 없음.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx
from pydantic import ValidationError

from config import BACKEND_TIMEOUT_SECONDS, BACKEND_URL
from mantra_cbt.models.attempt_model import AttemptSummary, AttemptTest, MockTestInfo, ScoreRecord
from mantra_cbt.models.question_model import Option, TestKind
from mantra_cbt.models.result_model import DetailedResultRow

logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_STATUS_UNAUTHORIZED = 401
HTTP_STATUS_FORBIDDEN = 403
HTTP_STATUS_NOT_FOUND = 404

_ATTEMPT_PREFIX = {
    TestKind.PAID: "/api/admin/mocktests",
    TestKind.FREE: "/api/admin/Free/mocktests",
}
_CATALOG_PATH = {
    TestKind.PAID: "/api/user/mocktests",
    TestKind.FREE: "/api/user/free/mocktests",
}


class GatewayError(Exception):
    """백엔드 호출 실패. 원본 전송 예외는 __cause__로 보존된다."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == HTTP_STATUS_NOT_FOUND

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code in (HTTP_STATUS_UNAUTHORIZED, HTTP_STATUS_FORBIDDEN)


def answers_payload(answers: Mapping[int, Option]) -> Dict[str, str]:
    """답안지를 백엔드 요청 본문 형식({"<questionId>": "A"})으로 변환."""
    return {str(qid): Option.parse(opt).value for qid, opt in answers.items()}


class BackendGateway:
    """
    백엔드 API 호출 래퍼.

    Attributes:
        base_url: 백엔드 기본 URL
        token:    Bearer 토큰 (로그인 계층이 발급, 없으면 인증 헤더 생략)
        timeout:  요청 타임아웃 (초)
    """

    def __init__(
        self,
        base_url: str = BACKEND_URL,
        token: Optional[str] = None,
        timeout: float = BACKEND_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._get_headers(),
            timeout=timeout,
            transport=transport,
        )
        logger.debug(f"BackendGateway initialized with base_url: {self.base_url}")

    async def __aenter__(self) -> "BackendGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    # ── 저수준 요청 ──────────────────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """요청을 보내고 JSON 본문을 반환. 실패는 모두 GatewayError."""
        if self._client.is_closed:
            logger.error(f"닫힌 게이트웨이로 요청 시도: {method} {path}")
            raise GatewayError(f"Backend connection closed: {method} {path}")
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            logger.error(f"백엔드 연결 실패: {method} {path} - {e}")
            raise GatewayError(f"Backend unreachable: {e}") from e

        if response.is_error:
            logger.error(f"백엔드 오류 응답: {method} {path} - HTTP {response.status_code}")
            raise GatewayError(
                f"Backend returned HTTP {response.status_code} for {method} {path}",
                status_code=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise GatewayError(f"Malformed JSON from {method} {path}") from e

    @staticmethod
    def _unwrap(body: Any) -> Any:
        """{code, message, status, data} 래퍼가 있으면 data만 꺼낸다."""
        if isinstance(body, dict) and "data" in body and ("status" in body or "code" in body):
            return body["data"]
        return body

    async def _call(self, method: str, path: str, **kwargs) -> Any:
        return self._unwrap(await self._request(method, path, **kwargs))

    # ── 응시 ────────────────────────────────────────────────────────────────

    async def start_attempt(self, mock_test_id: int, user_id: int, test_kind: TestKind) -> AttemptTest:
        prefix = _ATTEMPT_PREFIX[TestKind.parse(test_kind)]
        data = await self._call("POST", f"{prefix}/{mock_test_id}/attempt", params={"userId": user_id})
        try:
            return AttemptTest.model_validate(data)
        except ValidationError as e:
            raise GatewayError(f"Unexpected attempt payload: {e.error_count()} validation errors") from e

    async def calculate_score(
        self,
        mock_test_id: int,
        user_id: int,
        answers: Mapping[int, Option],
        test_kind: TestKind,
    ) -> float:
        prefix = _ATTEMPT_PREFIX[TestKind.parse(test_kind)]
        data = await self._call(
            "POST",
            f"{prefix}/{mock_test_id}/calculate-score",
            params={"userId": user_id},
            json=answers_payload(answers),
        )
        try:
            score = float(data)
        except (TypeError, ValueError) as e:
            raise GatewayError(f"Unexpected score payload: {data!r}") from e
        if not 0 <= score <= 100:
            raise GatewayError(f"Score out of range: {score}")
        return score

    async def get_detailed_results(
        self,
        mock_test_id: int,
        user_id: int,
        answers: Mapping[int, Option],
        test_kind: TestKind,
    ) -> List[DetailedResultRow]:
        prefix = _ATTEMPT_PREFIX[TestKind.parse(test_kind)]
        data = await self._call(
            "POST",
            f"{prefix}/{mock_test_id}/results",
            params={"userId": user_id},
            json=answers_payload(answers),
        )
        if not isinstance(data, list):
            raise GatewayError("Unexpected results payload: expected a list")
        try:
            return [DetailedResultRow.model_validate(row) for row in data]
        except (ValidationError, ValueError) as e:
            raise GatewayError(f"Unexpected results payload: {e}") from e

    async def save_attempt(
        self,
        user_id: int,
        mock_test_id: int,
        mock_test_name: str,
        test_kind: TestKind,
        selected_options: List[Dict[str, Any]],
        time_taken: int,
    ) -> Any:
        payload = {
            "userId": user_id,
            "mockTestId": mock_test_id,
            "mockTestName": mock_test_name,
            "mockTestType": TestKind.parse(test_kind).value,
            "answers": selected_options,
            "timeTaken": time_taken,
        }
        return await self._call("POST", "/api/attempts", json=payload)

    async def save_score(
        self,
        user_id: int,
        mock_test_id: int,
        mock_test_title: str,
        score: float,
    ) -> ScoreRecord:
        data = await self._call(
            "POST",
            "/api/scores",
            params={
                "userId": user_id,
                "mockTestId": mock_test_id,
                "mockTestTitle": mock_test_title,
                "score": score,
            },
        )
        try:
            return ScoreRecord.model_validate(data)
        except ValidationError as e:
            raise GatewayError(f"Unexpected score record payload: {e.error_count()} validation errors") from e

    # ── 조회 (목록/이력) ──────────────────────────────────────────────────────

    async def list_mock_tests(self, test_kind: TestKind) -> List[MockTestInfo]:
        data = await self._call("GET", _CATALOG_PATH[TestKind.parse(test_kind)])
        return self._validate_list(MockTestInfo, data, "mock test catalog")

    async def get_user_scores(self, user_id: int) -> List[ScoreRecord]:
        data = await self._call("GET", f"/api/scores/user/{user_id}")
        return self._validate_list(ScoreRecord, data, "score history")

    async def get_user_attempts(self, user_id: int) -> List[AttemptSummary]:
        data = await self._call("GET", f"/api/attempts/user/{user_id}")
        return self._validate_list(AttemptSummary, data, "attempt history")

    async def get_attempt_details(self, attempt_id: int) -> Dict[str, Any]:
        data = await self._call("GET", f"/api/attempts/{attempt_id}")
        if not isinstance(data, dict):
            raise GatewayError("Unexpected attempt details payload")
        return data

    @staticmethod
    def _validate_list(model, data: Any, what: str) -> list:
        if data is None:
            return []
        if not isinstance(data, list):
            raise GatewayError(f"Unexpected {what} payload: expected a list")
        try:
            return [model.model_validate(item) for item in data]
        except ValidationError as e:
            raise GatewayError(f"Unexpected {what} payload: {e.error_count()} validation errors") from e
