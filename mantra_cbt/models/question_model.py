"""
models/question_model.py

모의고사 문제 모델.
백엔드가 내려주는 JSON(camelCase)을 그대로 검증/파싱한다.
제출 전 문제에는 정답이 절대 포함되지 않는다.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Option(str, Enum):
    """객관식 보기 (A~D). 미선택은 답안지에 키가 없는 상태로 표현한다."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"

    @classmethod
    def parse(cls, value: "str | Option") -> "Option":
        """
        문자열을 Option으로 변환한다.

        Raises:
            ValueError: A/B/C/D 이외의 값인 경우.
        """
        if isinstance(value, Option):
            return value
        normalized = str(value).strip().upper()
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"올바르지 않은 보기입니다: {value!r} (A/B/C/D 중 하나)") from None

    @classmethod
    def parse_optional(cls, value: Optional[str]) -> Optional["Option"]:
        """빈 값(None, "")은 미응답(None)으로 취급한다."""
        if value is None or not str(value).strip():
            return None
        return cls.parse(value)


class TestKind(str, Enum):
    """유료/무료 모의고사 구분. 응시 로직은 동일하고 API 경로만 다르다."""

    __test__ = False  # pytest 수집 제외

    PAID = "PAID"
    FREE = "FREE"

    @classmethod
    def parse(cls, value: "str | TestKind") -> "TestKind":
        if isinstance(value, TestKind):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"알 수 없는 시험 종류입니다: {value!r}") from None


class Question(BaseModel):
    """
    Mantra IAS 모의고사 문제 모델
    Pydantic v2 적용
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    question_id: int = Field(
        ...,
        alias="questionId",
        description="문제 고유 ID (답안지 키)"
    )
    question_no: int = Field(
        ...,
        alias="questionNo",
        ge=1,
        description="화면 표시용 문제 번호 (1-based, 연속이 아닐 수 있음)"
    )
    text: str = Field(
        ...,
        alias="question",
        description="문제 본문"
    )
    option_a: str = Field(..., alias="optionA")
    option_b: str = Field(..., alias="optionB")
    option_c: str = Field(..., alias="optionC")
    option_d: str = Field(..., alias="optionD")

    def option_text(self, option: Option) -> str:
        """보기 문자에 해당하는 보기 내용을 반환."""
        return {
            Option.A: self.option_a,
            Option.B: self.option_b,
            Option.C: self.option_c,
            Option.D: self.option_d,
        }[Option.parse(option)]

    @property
    def options(self) -> list[tuple[Option, str]]:
        return [(opt, self.option_text(opt)) for opt in Option]
