"""
models/result_model.py

원본 결과 레코드에서 뽑아낸 "성적 근거" 모델.

저장된 결과 레코드는 정답 수, 점수, 답안 리스트, 취득 점수 중 어느 하나로
성적을 기록하고 있다 (어느 것인지 보장 없음). classify_result()가 레코드를
한 번만 들여다보고 아래 다섯 가지 중 정확히 하나로 분류한다.
"""

from typing import Annotated, Any, List, Literal, Mapping, Union

from pydantic import BaseModel, Field

from exam_admin.models.exam_model import as_number


class ByCount(BaseModel):
    """correctAnswers 필드: 정답 수가 직접 기록된 경우."""
    kind: Literal["count"] = "count"
    correct_answers: float


class ByScoreAmbiguous(BaseModel):
    """score 필드: 정답 수 / 백분율 / 점수 중 무엇인지 모호한 값."""
    kind: Literal["score"] = "score"
    score: float


class ByAnswersList(BaseModel):
    """answers 리스트: 문항별 isCorrect 플래그."""
    kind: Literal["answers"] = "answers"
    correct_flags: List[bool] = Field(default_factory=list)

    @property
    def correct_count(self) -> int:
        return sum(1 for flag in self.correct_flags if flag)


class ByEarnedPoints(BaseModel):
    """earnedPoints 필드: 이미 환산된 취득 점수."""
    kind: Literal["earned_points"] = "earned_points"
    earned_points: float


class Unknown(BaseModel):
    """성적 정보가 없는 레코드."""
    kind: Literal["unknown"] = "unknown"


ScoreEvidence = Annotated[
    Union[ByCount, ByScoreAmbiguous, ByAnswersList, ByEarnedPoints, Unknown],
    Field(discriminator="kind"),
]

# 근거 필드 (우선순위 순). 수동 수정 시 이 필드들을 정리한다.
EVIDENCE_FIELDS = ("correctAnswers", "score", "answers", "earnedPoints")


def classify_result(raw: Any) -> ScoreEvidence:
    """
    원본 결과 레코드를 성적 근거 하나로 분류한다 (먼저 해당하는 것 채택).

      1. correctAnswers 가 유효한 숫자  → ByCount
      2. score 가 유효한 숫자           → ByScoreAmbiguous
      3. answers 가 리스트              → ByAnswersList
      4. earnedPoints 가 유효한 숫자    → ByEarnedPoints
      5. 해당 없음                      → Unknown

    잘못된 값(숫자가 아닌 문자열, None 등)은 없는 필드로 취급한다.
    매핑이 아닌 입력도 Unknown.
    """
    if not isinstance(raw, Mapping):
        return Unknown()

    count = as_number(raw.get("correctAnswers"))
    if count is not None:
        return ByCount(correct_answers=count)

    score = as_number(raw.get("score"))
    if score is not None:
        return ByScoreAmbiguous(score=score)

    answers = raw.get("answers")
    if isinstance(answers, list):
        flags = [
            bool(item.get("isCorrect"))
            for item in answers
            if isinstance(item, Mapping)
        ]
        return ByAnswersList(correct_flags=flags)

    earned = as_number(raw.get("earnedPoints"))
    if earned is not None:
        return ByEarnedPoints(earned_points=earned)

    return Unknown()
