"""
models/attempt_model.py

백엔드 게이트웨이와 주고받는 응시/점수 레코드 모델.
필드명은 백엔드 JSON(camelCase) 별칭으로 받고, 코드에서는 snake_case로 쓴다.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from mantra_cbt.models.question_model import Question


class _GatewayModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class AttemptTest(_GatewayModel):
    """응시 시작 응답 — 문제 목록(정답 제외)과 제한 시간."""

    id: Optional[int] = None
    user_id: Optional[int] = Field(None, alias="userId")
    mock_test_id: int = Field(..., alias="mockTestId")
    mock_test_name: str = Field(..., alias="mockTestName")
    timer_in_minutes: int = Field(..., alias="timerInMinutes", ge=0)
    started_at: Optional[str] = Field(None, alias="startedAt")
    questions: List[Question] = Field(default_factory=list)


class MockTestInfo(_GatewayModel):
    """유료/무료 모의고사 목록 항목."""

    id: int
    name: str
    timer_in_minutes: int = Field(..., alias="timerInMinutes")
    created_at: Optional[str] = Field(None, alias="createdAt")


class ScoreRecord(_GatewayModel):
    """점수 저장 응답 및 사용자 점수 이력."""

    id: int
    user_id: int = Field(..., alias="userId")
    mock_test_id: int = Field(..., alias="mockTestId")
    mock_test_title: str = Field(..., alias="mockTestTitle")
    score: float
    completed_at: Optional[datetime] = Field(None, alias="completedAt")


class AttemptSummary(_GatewayModel):
    """사용자 응시 이력 ("My Attempts") 항목."""

    id: int
    mock_test_name: str = Field(..., alias="mockTestName")
    mock_test_type: str = Field(..., alias="mockTestType")
    score: float = 0
    total_questions: int = Field(0, alias="totalQuestions")
    correct_answers: int = Field(0, alias="correctAnswers")
    wrong_answers: int = Field(0, alias="wrongAnswers")
    unanswered: int = 0
    time_taken: int = Field(0, alias="timeTaken")
    completed_at: Optional[datetime] = Field(None, alias="completedAt")

    @property
    def time_taken_label(self) -> str:
        return f"{self.time_taken // 60}m {self.time_taken % 60}s"
