"""
services/score_service.py

시험 결과 점수 환산(정규화) 비즈니스 로직.
순수 Python 함수로 구성. UI 코드나 전역 상태 변경은 없다.

결과 레코드는 정답 수 / 점수 / 답안 리스트 / 취득 점수 중 어느 형태로든
저장되어 있을 수 있다. reconcile()은 시험 정의와 결과 레코드 하나를 받아
"총 문항 중 정답 수"를 먼저 확정한 뒤, 그 값으로 취득 점수와 백분율을 계산한다.
결과 표, CSV 내보내기, 수동 점수 수정이 모두 이 함수를 거친다.
"""

import asyncio
import inspect
import logging
import math
import re
import sys
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Union

import config
from exam_admin.models.exam_model import (
    ExamDefinition,
    ExamType,
    NormalizedScore,
    as_number,
    exam_from_document,
    normalize_exam_type,
)
from exam_admin.models.result_model import (
    EVIDENCE_FIELDS,
    ByAnswersList,
    ByCount,
    ByEarnedPoints,
    ByScoreAmbiguous,
    classify_result,
)

logger = logging.getLogger(__name__)

ExamLike = Union[ExamDefinition, Mapping[str, Any], None]
ExamLookup = Callable[[str], Union[Awaitable[ExamLike], ExamLike]]

# 수동 수정 화면에서 고칠 수 있는 필드
MANUAL_FIELDS = ("correctAnswers", "score", "earnedPoints")

_EXAM_TYPE_LABELS = {
    ExamType.FIRST_TEST: "First Test",
    ExamType.SECOND_TEST: "Second Test",
    ExamType.MAIN_EXAM: "Main Exam",
}


def round_half_up(value: float) -> int:
    """
    0.5는 올림하는 산술 반올림 (파이썬 round()의 은행가 반올림과 다름).
    나눗셈이 넘쳐 무한대가 되면 sys.maxsize로 자르고, NaN은 0.
    """
    if math.isnan(value):
        return 0
    if math.isinf(value):
        return sys.maxsize if value > 0 else -sys.maxsize
    return int(math.floor(value + 0.5))


def max_marks_for_exam_type(exam_type: Any) -> Optional[float]:
    """시험 단계별 기준 만점 (10 / 30 / 60). 알 수 없는 단계이면 None."""
    normalized = normalize_exam_type(exam_type)
    if normalized is None:
        return None
    return float(config.EXAM_TYPE_MAX_MARKS[normalized.value])


def exam_type_display(exam_type: Any) -> str:
    """화면 표시용 단계 이름. 알 수 없는 단계는 Main Exam으로 표시."""
    normalized = normalize_exam_type(exam_type)
    return _EXAM_TYPE_LABELS.get(normalized, "Main Exam")


def percentage_badge(percentage: float) -> str:
    """
    백분율 배지 색상.
    기준(70 / 50)은 화면 쪽 정책이라 config에서 가져온다.
    """
    if percentage >= config.BADGE_GREEN_MIN:
        return "green"
    if percentage >= config.BADGE_YELLOW_MIN:
        return "yellow"
    return "red"


def _result_exam_type(result: Mapping[str, Any]) -> Optional[ExamType]:
    for key in ("layer", "examType"):
        exam_type = normalize_exam_type(result.get(key))
        if exam_type is not None:
            return exam_type
    return None


def resolve_totals(exam: ExamLike, result: Any) -> Tuple[float, int]:
    """
    만점과 문항 수를 결정한다. 필드마다 독립적으로 아래 순서를 따른다.

      만점:    시험 정의 → 결과의 totalMarks → 결과의 totalPoints
               → 시험 단계 기준 만점 → 기본값(30)
      문항 수: 시험 정의 → 결과의 totalQuestions → 기본값(6)

    결과 레코드에 들어 있는 0 이하의 값은 없는 것으로 본다.
    """
    definition = exam_from_document(exam)
    record: Mapping[str, Any] = result if isinstance(result, Mapping) else {}

    total_marks = definition.total_marks if definition else None
    if total_marks is None:
        for key in ("totalMarks", "totalPoints"):
            number = as_number(record.get(key))
            if number is not None and number > 0:
                total_marks = number
                break
    if total_marks is None:
        exam_type = definition.exam_type if definition else None
        total_marks = max_marks_for_exam_type(exam_type or _result_exam_type(record))
    if total_marks is None:
        total_marks = float(config.DEFAULT_TOTAL_MARKS)

    total_questions = definition.total_questions if definition else None
    if total_questions is None:
        number = as_number(record.get("totalQuestions"))
        if number is not None and number >= 1:
            total_questions = int(number)
    if total_questions is None:
        total_questions = config.DEFAULT_TOTAL_QUESTIONS

    return float(total_marks), total_questions


def _correct_answers(result: Any, total_questions: int, points_per_question: float) -> int:
    evidence = classify_result(result)

    if isinstance(evidence, ByCount):
        return round_half_up(evidence.correct_answers)

    if isinstance(evidence, ByScoreAmbiguous):
        score = evidence.score
        # 문항 수 이하이면 100 이하여도 정답 수로 본다 (순서 유지)
        if score <= total_questions:
            return round_half_up(score)
        if score <= 100:
            return round_half_up(score / 100 * total_questions)
        if points_per_question <= 0:
            return 0
        return round_half_up(score / points_per_question)

    if isinstance(evidence, ByAnswersList):
        return evidence.correct_count

    if isinstance(evidence, ByEarnedPoints):
        if points_per_question <= 0:
            return 0
        return round_half_up(evidence.earned_points / points_per_question)

    return 0


def reconcile(exam: ExamLike, result: Any) -> NormalizedScore:
    """
    시험 정의와 결과 레코드 하나로 정규화된 점수를 계산한다.

    계산식: 정답 수 × (만점 ÷ 문항 수) = 취득 점수
    취득 점수는 0 ~ 만점으로 자르고, 백분율은 만점 대비 반올림 정수.

    Args:
        exam:   ExamDefinition, 원본 시험 문서(dict), 또는 None.
        result: 원본 결과 레코드. 어떤 형태든 허용 (dict가 아니면 빈 레코드 취급).

    Returns:
        NormalizedScore. 어떤 입력에도 예외를 던지지 않는다.
    """
    total_marks, total_questions = resolve_totals(exam, result)
    points_per_question = total_marks / total_questions

    correct = _correct_answers(result, total_questions, points_per_question)

    earned = correct * points_per_question
    earned = min(max(0.0, earned), total_marks)

    percentage = round_half_up(earned / total_marks * 100) if total_marks > 0 else 0

    return NormalizedScore(
        correct_answers=correct,
        points_per_question=points_per_question,
        earned_marks=earned,
        percentage=percentage,
        total_marks=total_marks,
        total_questions=total_questions,
    )


async def _fetch_exam(lookup: ExamLookup, exam_id: str, timeout: float) -> Optional[ExamDefinition]:
    """시험 정보 1건 조회. 실패/시간 초과/빈 응답은 None (상위로 전파하지 않음)."""

    async def _call():
        value = lookup(exam_id)
        if inspect.isawaitable(value):
            value = await value
        return value

    try:
        doc = await asyncio.wait_for(_call(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"시험 정보 조회 시간 초과 (examId={exam_id}, {timeout}s) → 결과 내 정보 사용")
        return None
    except Exception as e:
        logger.warning(f"시험 정보 조회 실패 (examId={exam_id}): {e} → 결과 내 정보 사용")
        return None

    exam = exam_from_document(doc)
    if exam is None:
        logger.info(f"시험 정보 없음 (examId={exam_id}) → 결과 내 정보 사용")
    return exam


def exam_id_of(result: Any) -> Optional[str]:
    if not isinstance(result, Mapping):
        return None
    exam_id = result.get("examId")
    if exam_id is None or exam_id == "":
        return None
    return str(exam_id)


async def fetch_exams(
    lookup: ExamLookup,
    results: List[Any],
    timeout: Optional[float] = None,
) -> Dict[str, Optional[ExamDefinition]]:
    """
    결과들이 참조하는 시험 정보를 조회한다.

    서로 다른 examId만 골라 동시에 조회 (중복 조회 없음).
    조회마다 timeout(초) 제한. 실패한 조회는 경고 로그만 남기고 None.

    Returns:
        {examId: ExamDefinition 또는 None}
    """
    if timeout is None:
        timeout = config.LOOKUP_TIMEOUT

    exam_ids: List[str] = []
    for result in results:
        exam_id = exam_id_of(result)
        if exam_id is not None and exam_id not in exam_ids:
            exam_ids.append(exam_id)

    fetched = await asyncio.gather(
        *(_fetch_exam(lookup, exam_id, timeout) for exam_id in exam_ids)
    )
    return dict(zip(exam_ids, fetched))


async def reconcile_batch(
    lookup: ExamLookup,
    results: List[Any],
    timeout: Optional[float] = None,
) -> List[NormalizedScore]:
    """
    결과 여러 건을 시험 정보와 조인하여 한꺼번에 환산한다.

    시험 정보 조회에 실패한 결과는 자체 필드 → 기본값 순으로 환산된다.
    반환 순서는 입력 순서와 같다 (조회 완료 순서와 무관).
    """
    exams = await fetch_exams(lookup, results, timeout)
    return reconcile_joined(exams, results)


def reconcile_joined(
    exams: Mapping[str, Optional[ExamDefinition]],
    results: List[Any],
) -> List[NormalizedScore]:
    """이미 조회해 둔 {examId: 시험 정의}로 결과들을 환산한다. 입력 순서 유지."""
    return [reconcile(exams.get(exam_id_of(result) or ""), result) for result in results]


def parse_form_int(value: Any) -> int:
    """
    관리자 입력값을 정수로 해석한다 (숫자 입력 폼 방식).
    "12", "12.7", " 8점" → 앞쪽 정수 부분. 해석 불가하면 0.
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        number = as_number(value)
        return int(number) if number is not None else 0
    if isinstance(value, str):
        match = re.match(r"\s*([+-]?\d+)", value)
        return int(match.group(1)) if match else 0
    return 0


def apply_manual_score(
    exam: ExamLike,
    result: Mapping[str, Any],
    field: str,
    value: Any,
    now: Optional[datetime] = None,
) -> Tuple[Dict[str, Any], NormalizedScore]:
    """
    관리자가 직접 입력한 점수/정답 수를 반영한다.

    입력한 필드만 남기고 나머지 성적 근거 필드를 지운 뒤 다시 환산하여,
    그 결과를 새 기록값으로 삼는다.

    Args:
        exam:   시험 정의 (없으면 None).
        result: 기존 결과 레코드.
        field:  correctAnswers / score / earnedPoints 중 하나.
        value:  입력값 (문자열 또는 숫자).
        now:    수정 시각 (테스트용). 기본값은 현재 UTC 시각.

    Returns:
        (저장할 새 레코드, 환산 결과)

    Raises:
        ValueError: 수정할 수 없는 필드인 경우.
    """
    if field not in MANUAL_FIELDS:
        raise ValueError(f"수정할 수 없는 필드입니다: {field}")

    record = {k: v for k, v in result.items() if k not in EVIDENCE_FIELDS}
    record[field] = parse_form_int(value)

    score = reconcile(exam, record)
    stamp = now or datetime.now(timezone.utc)

    record.update({
        "correctAnswers": score.correct_answers,
        "earnedPoints": score.earned_marks,
        "calculatedScore": round_half_up(score.earned_marks),
        "percentage": score.percentage,
        "updatedAt": stamp.isoformat(),
    })
    logger.info(
        f"점수 수동 수정: {field}={record[field]} → "
        f"{score.correct_answers}개 정답, {score.earned_marks}/{score.total_marks}"
    )
    return record, score


def _matches_exam_type(result: Mapping[str, Any], wanted: str) -> bool:
    raw = str(result.get("layer") or result.get("examType") or "").strip().lower()
    normalized = normalize_exam_type(raw)
    wanted_type = normalize_exam_type(wanted)
    if wanted_type is not None:
        wanted = wanted_type.value
    if (normalized.value if normalized else raw) == wanted:
        return True
    # 표준 표기로 못 바꾸면 부분 일치라도 인정
    return bool(raw) and wanted in raw


def filter_results(
    results: List[Any],
    class_name: Optional[str] = None,
    subject: Optional[str] = None,
    exam_type: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    반/과목/시험 단계로 결과를 거른다. 대소문자 무시.
    None, 빈 문자열, "all"이면 해당 조건을 적용하지 않는다. 원본 순서 유지.
    """

    def _active(value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().lower()
        return None if value in ("", "all") else value

    wanted_class = _active(class_name)
    wanted_subject = _active(subject)
    wanted_type = _active(exam_type)

    filtered = []
    for result in results:
        if not isinstance(result, Mapping):
            continue
        if wanted_class and str(result.get("className") or "").strip().lower() != wanted_class:
            continue
        if wanted_subject and str(result.get("subjectName") or "").strip().lower() != wanted_subject:
            continue
        if wanted_type and not _matches_exam_type(result, wanted_type):
            continue
        filtered.append(result)
    return filtered
