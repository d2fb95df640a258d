"""
models/result_model.py

제출 후 결과 모델. 제출 왕복이 모두 끝난 뒤 한 번만 생성되며 불변이다.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mantra_cbt.models.question_model import Option


class Verdict(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    UNANSWERED = "unanswered"


class DetailedResultRow(BaseModel):
    """백엔드 상세 결과 응답의 한 행 (문제별 정답/사용자 답/정오)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    question_id: int = Field(..., alias="questionId")
    question_no: int = Field(..., alias="questionNo")
    question: str = ""
    option_a: str = Field("", alias="optionA")
    option_b: str = Field("", alias="optionB")
    option_c: str = Field("", alias="optionC")
    option_d: str = Field("", alias="optionD")
    correct_answer: Option = Field(..., alias="correctAnswer")
    user_answer: Optional[Option] = Field(None, alias="userAnswer")
    is_correct: bool = Field(False, alias="isCorrect")
    solution_link: Optional[str] = Field(None, alias="solutionLink")

    @field_validator("correct_answer", mode="before")
    @classmethod
    def _parse_correct(cls, v):
        return Option.parse(v)

    @field_validator("user_answer", mode="before")
    @classmethod
    def _parse_user(cls, v):
        # 미응답은 null 또는 "" 로 내려온다
        return Option.parse_optional(v)


class ReviewEntry(BaseModel):
    """결과 화면의 문제별 리뷰 항목."""

    model_config = ConfigDict(frozen=True)

    question_id: int
    question_no: int
    text: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    user_answer: Optional[Option] = None
    correct_answer: Option
    is_correct: bool
    solution_link: Optional[str] = None

    @property
    def verdict(self) -> Verdict:
        if self.user_answer is None:
            return Verdict.UNANSWERED
        return Verdict.CORRECT if self.is_correct else Verdict.INCORRECT

    def option_text(self, option: Optional[Option]) -> str:
        if option is None:
            return ""
        return {
            Option.A: self.option_a,
            Option.B: self.option_b,
            Option.C: self.option_c,
            Option.D: self.option_d,
        }[option]

    @classmethod
    def from_row(cls, row: DetailedResultRow) -> "ReviewEntry":
        return cls(
            question_id=row.question_id,
            question_no=row.question_no,
            text=row.question,
            option_a=row.option_a,
            option_b=row.option_b,
            option_c=row.option_c,
            option_d=row.option_d,
            user_answer=row.user_answer,
            correct_answer=row.correct_answer,
            # 미응답은 정답으로 볼 수 없다
            is_correct=row.is_correct and row.user_answer is not None,
            solution_link=row.solution_link,
        )


class TestResult(BaseModel):
    """
    최종 결과.

    Attributes:
        score_percent:   백엔드가 계산한 점수 (0 ~ 100).
        correct_count:   정답 수.
        total_questions: 전체 문제 수.
        entries:         문제별 리뷰 (백엔드 응답 순서 유지).
    """

    __test__ = False

    model_config = ConfigDict(frozen=True)

    score_percent: float = Field(..., ge=0, le=100)
    correct_count: int = Field(..., ge=0)
    total_questions: int = Field(..., ge=0)
    entries: List[ReviewEntry] = Field(default_factory=list)

    @property
    def incorrect_count(self) -> int:
        return sum(1 for e in self.entries if e.verdict == Verdict.INCORRECT)

    @property
    def unanswered_count(self) -> int:
        return sum(1 for e in self.entries if e.verdict == Verdict.UNANSWERED)
