"""
models/exam_model.py

시험 정의(ExamDefinition)와 점수 환산 결과(NormalizedScore) 모델.
Pydantic v2 적용. 저장소에서 읽어 온 원본 시험 문서는 형태가 제각각이므로
exam_from_document()가 한 번만 정리해서 모델로 만든다.
"""

import math
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from config import EXAM_TYPE_MAX_MARKS


class ExamType(str, Enum):
    """시험 단계 (레이어). 단계마다 기준 만점이 정해져 있다 (10 / 30 / 60)."""

    FIRST_TEST = "first-test"
    SECOND_TEST = "second-test"
    MAIN_EXAM = "main-exam"


# 예전 데이터에 남아 있는 표기 → 표준 단계
EXAM_TYPE_ALIASES = {
    "first-test": ExamType.FIRST_TEST,
    "first_test": ExamType.FIRST_TEST,
    "test1": ExamType.FIRST_TEST,
    "first test": ExamType.FIRST_TEST,
    "test": ExamType.FIRST_TEST,
    "first-test (10 marks)": ExamType.FIRST_TEST,
    "first test (10 marks)": ExamType.FIRST_TEST,
    "second-test": ExamType.SECOND_TEST,
    "second_test": ExamType.SECOND_TEST,
    "test2": ExamType.SECOND_TEST,
    "second test": ExamType.SECOND_TEST,
    "mid-term": ExamType.SECOND_TEST,
    "mid term": ExamType.SECOND_TEST,
    "second-test (30 marks)": ExamType.SECOND_TEST,
    "second test (30 marks)": ExamType.SECOND_TEST,
    "main-exam": ExamType.MAIN_EXAM,
    "main_exam": ExamType.MAIN_EXAM,
    "exam": ExamType.MAIN_EXAM,
    "final": ExamType.MAIN_EXAM,
    "main exam": ExamType.MAIN_EXAM,
    "final exam": ExamType.MAIN_EXAM,
    "main-exam (60 marks)": ExamType.MAIN_EXAM,
    "main exam (60 marks)": ExamType.MAIN_EXAM,
}


def normalize_exam_type(value: Any) -> Optional[ExamType]:
    """
    시험 단계 표기를 표준 ExamType으로 변환한다.
    대소문자/앞뒤 공백은 무시. 알 수 없는 표기이면 None.
    """
    if isinstance(value, ExamType):
        return value
    if not isinstance(value, str):
        return None
    return EXAM_TYPE_ALIASES.get(value.strip().lower())


def as_number(value: Any) -> Optional[float]:
    """
    숫자로 쓸 수 있는 값이면 float로, 아니면 None을 반환한다.

    bool은 숫자로 보지 않는다. 숫자 문자열("12", " 7.5 ")은 허용.
    NaN / 무한대는 잘못된 값으로 취급.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


class ExamDefinition(BaseModel):
    """
    시험 정의. 일부 필드만 채워져 있어도 된다.
    비어 있는 값은 점수 환산 엔진이 기본값으로 채운다.
    """

    total_marks: Optional[float] = Field(
        None,
        ge=0,
        description="시험 만점"
    )
    total_questions: Optional[int] = Field(
        None,
        ge=1,
        description="채점 대상 문항 수"
    )
    exam_type: Optional[ExamType] = Field(
        None,
        description="시험 단계 (first-test / second-test / main-exam)"
    )
    title: Optional[str] = Field(
        None,
        description="시험 제목"
    )
    type_name: Optional[str] = Field(
        None,
        description="화면 표시용 단계 이름 (예: First Test)"
    )

    model_config = {"frozen": True}


class ExamDraft(BaseModel):
    """
    관리자가 새로 만드는 시험. 저장 전에 단계별 만점을 검증한다.
    """

    title: str = Field(
        ...,
        min_length=1,
        description="시험 제목"
    )
    layer: ExamType = Field(
        ...,
        description="시험 단계"
    )
    total_marks: float = Field(
        ...,
        gt=0,
        description="시험 만점 (단계 기준 만점 이하)"
    )
    total_questions: int = Field(
        ...,
        ge=1,
        description="문항 수"
    )
    class_name: Optional[str] = Field(
        None,
        description="대상 반"
    )
    subject_name: Optional[str] = Field(
        None,
        description="과목명"
    )

    @field_validator("layer", mode="before")
    @classmethod
    def parse_layer(cls, v: Any) -> Any:
        """예전 표기(예: "Final", "test1")도 허용한다."""
        normalized = normalize_exam_type(v)
        return normalized if normalized is not None else v

    @model_validator(mode="after")
    def validate_marks_within_layer(self) -> "ExamDraft":
        """만점은 선택한 단계의 기준 만점을 넘을 수 없다."""
        limit = EXAM_TYPE_MAX_MARKS[self.layer.value]
        if self.total_marks > limit:
            raise ValueError(f"만점({self.total_marks})이 {self.layer.value} 기준 만점({limit})을 넘습니다.")
        return self


class NormalizedScore(BaseModel):
    """
    점수 환산 결과. 결과 표, CSV 내보내기, 수동 수정이 모두 같은 값을 쓴다.

    Attributes:
        correct_answers:     정답 수.
        points_per_question: 문항당 배점 (total_marks / total_questions).
        earned_marks:        취득 점수. 0 ~ total_marks 범위로 잘린다.
        percentage:          취득 점수 백분율 (정수, 반올림).
        total_marks:         적용된 만점.
        total_questions:     적용된 문항 수.
    """

    correct_answers: int
    points_per_question: float
    earned_marks: float
    percentage: int
    total_marks: float
    total_questions: int


def _first_number(doc: Mapping[str, Any], *keys: str) -> Optional[float]:
    for key in keys:
        number = as_number(doc.get(key))
        if number is not None:
            return number
    return None


def _first_text(doc: Mapping[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = doc.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def exam_from_document(doc: Any) -> Optional[ExamDefinition]:
    """
    저장소의 원본 시험 문서를 ExamDefinition으로 변환한다.

    필드 우선순위:
      - 만점:    totalMarks → totalPoints → marks
      - 문항 수: questions 리스트 길이 → totalQuestions → questionCount
      - 제목:    title → examTitle → name
      - 단계:    layer → examType
    잘못된 값은 없는 것으로 보고 다음 후보로 넘어간다. 예외를 던지지 않는다.

    Returns:
        ExamDefinition. doc이 매핑이 아니면 None.
    """
    if isinstance(doc, ExamDefinition):
        return doc
    if not isinstance(doc, Mapping):
        return None

    total_marks = _first_number(doc, "totalMarks", "totalPoints", "marks")
    if total_marks is not None and total_marks < 0:
        total_marks = None

    questions = doc.get("questions")
    if isinstance(questions, list) and questions:
        total_questions: Optional[float] = len(questions)
    else:
        total_questions = _first_number(doc, "totalQuestions", "questionCount")
    if total_questions is not None:
        total_questions = int(total_questions) if total_questions >= 1 else None

    exam_type = None
    for key in ("layer", "examType"):
        exam_type = normalize_exam_type(doc.get(key))
        if exam_type is not None:
            break

    return ExamDefinition(
        total_marks=total_marks,
        total_questions=total_questions,
        exam_type=exam_type,
        title=_first_text(doc, "title", "examTitle", "name"),
        type_name=_first_text(doc, "layerName", "examTypeName"),
    )
