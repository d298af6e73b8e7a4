"""
services/report_service.py

결과 표 행 구성과 CSV 내보내기.
점수 계산은 하지 않는다. score_service.reconcile()의 결과를 받아 모양만 만든다.
"""

import csv
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from config import RECENT_ACTIVITY_LIMIT
from exam_admin.models.exam_model import ExamDefinition, NormalizedScore, as_number
from exam_admin.services.score_service import (
    exam_id_of,
    exam_type_display,
    percentage_badge,
    round_half_up,
)

CSV_HEADERS = [
    "Student Name", "Class", "Subject",
    "Exam Type", "Exam Title", "Exam Code",
    "Score", "Total Marks", "Percentage",
    "Total Questions", "Correct Answers",
    "Date", "Status",
]

_BOM = "\ufeff"


def _text(result: Mapping[str, Any], *keys: str, default: str = "N/A") -> str:
    for key in keys:
        value = result.get(key)
        if value not in (None, ""):
            return str(value)
    return default


def _format_marks(value: float) -> str:
    """30.0 → "30", 7.5 → "7.5"."""
    return str(int(value)) if float(value).is_integer() else str(value)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    제출 시각 값을 datetime으로 해석한다.
    숫자는 epoch 밀리초, 문자열은 ISO 8601. 시간대가 없으면 UTC로 본다.
    해석 불가하면 None.
    """
    if value in (None, ""):
        return None
    try:
        if isinstance(value, datetime):
            stamp = value
        elif isinstance(value, str) and as_number(value) is None:
            stamp = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        else:
            millis = as_number(value)
            if millis is None:
                return None
            stamp = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


def format_timestamp(value: Any) -> str:
    """제출 시각을 "YYYY-MM-DD HH:MM:SS"로 표시한다. 해석 불가하면 "N/A"."""
    stamp = parse_timestamp(value)
    if stamp is None:
        return "N/A"
    return stamp.strftime("%Y-%m-%d %H:%M:%S")


def _submitted_at(result: Any) -> Optional[datetime]:
    if not isinstance(result, Mapping):
        return None
    return parse_timestamp(result.get("timestamp") or result.get("submittedAt"))


def sort_newest_first(results: Sequence[Any]) -> List[Any]:
    """
    제출 시각(timestamp → submittedAt) 최신순으로 정렬한다.
    시각이 없거나 해석할 수 없는 결과는 뒤로 보내고, 같은 시각끼리는 원래 순서를 유지한다.
    """
    dated, undated = [], []
    for result in results:
        stamp = _submitted_at(result)
        if stamp is None:
            undated.append(result)
        else:
            dated.append((stamp, result))
    dated.sort(key=lambda pair: pair[0], reverse=True)
    return [result for _, result in dated] + undated


def _exam_for(result: Mapping[str, Any], exams: Optional[Mapping[str, Optional[ExamDefinition]]]):
    if not exams:
        return None
    return exams.get(exam_id_of(result) or "")


def _exam_title(result: Mapping[str, Any], exam: Optional[ExamDefinition]) -> str:
    if exam is not None and exam.title:
        return exam.title
    return _text(result, "examTitle", default="Untitled Exam")


def _exam_type_label(result: Mapping[str, Any]) -> str:
    if result.get("layerName"):
        return str(result["layerName"])
    return exam_type_display(result.get("layer") or result.get("examType"))


def build_table_rows(
    results: Sequence[Any],
    scores: Sequence[NormalizedScore],
    exams: Optional[Mapping[str, Optional[ExamDefinition]]] = None,
) -> List[Dict[str, Any]]:
    """
    결과 표에 표시할 행 리스트를 만든다.

    Args:
        results: 원본 결과 레코드 리스트.
        scores:  results와 같은 순서의 환산 결과 (reconcile_batch 반환값).
        exams:   {examId: ExamDefinition}, 시험 제목 표시용 (선택).

    Returns:
        [{"id", "student", "class", "subject", "exam_title", "exam_type",
          "score_display", "earned_marks", "total_marks", "percentage",
          "badge", "correct_answers", "total_questions", "submitted_at"}, ...]
        매핑이 아닌 레코드는 건너뛴다.
    """
    rows = []
    for result, score in zip(results, scores):
        if not isinstance(result, Mapping):
            continue
        exam = _exam_for(result, exams)
        rows.append({
            "id": result.get("id"),
            "student": _text(result, "studentName", default="Unknown Student"),
            "class": _text(result, "className", default="Unknown Class"),
            "subject": _text(result, "subjectName", default="Unknown Subject"),
            "exam_title": _exam_title(result, exam),
            "exam_type": _exam_type_label(result),
            "score_display": f"{round_half_up(score.earned_marks)} / {_format_marks(score.total_marks)}",
            "earned_marks": score.earned_marks,
            "total_marks": score.total_marks,
            "percentage": score.percentage,
            "badge": percentage_badge(score.percentage),
            "correct_answers": score.correct_answers,
            "total_questions": score.total_questions,
            "submitted_at": format_timestamp(result.get("submittedAt") or result.get("timestamp")),
        })
    return rows


def generate_csv(
    results: Sequence[Any],
    scores: Sequence[NormalizedScore],
    exams: Optional[Mapping[str, Optional[ExamDefinition]]] = None,
) -> str:
    """
    결과를 탭 구분 CSV 문자열로 만든다 (엑셀 호환 UTF-8 BOM 포함).

    모든 값은 큰따옴표로 감싼다. 점수 열은 reconcile() 결과를 그대로 쓴다.

    Raises:
        ValueError: 내보낼 결과가 없는 경우.
    """
    rows = []
    for result, score in zip(results, scores):
        if not isinstance(result, Mapping):
            continue
        exam = _exam_for(result, exams)
        rows.append([
            _text(result, "studentName", "student"),
            _text(result, "className", "class"),
            _text(result, "subjectName", "subject"),
            _exam_type_label(result),
            _exam_title(result, exam),
            _text(result, "examCode", "code", default=""),
            str(round_half_up(score.earned_marks)),
            _format_marks(score.total_marks),
            f"{score.percentage}%",
            str(score.total_questions),
            str(score.correct_answers),
            format_timestamp(result.get("timestamp") or result.get("submittedAt")),
            _text(result, "status", default="Completed"),
        ])

    if not rows:
        raise ValueError("내보낼 결과가 없습니다.")

    df = pd.DataFrame(rows, columns=CSV_HEADERS)
    return _BOM + df.to_csv(sep="\t", index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")


def export_filename(now: Optional[datetime] = None) -> str:
    """exam_results_20240101_120000.csv 형식의 파일명."""
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"exam_results_{stamp}.csv"


def build_dashboard_summary(
    counts: Mapping[str, int],
    recent_rows: Sequence[Mapping[str, Any]],
) -> Dict[str, Any]:
    """
    대시보드 첫 화면 데이터: 컬렉션별 건수와 최근 결과.

    Args:
        counts:      {"classes": n, "subjects": n, "exams": n, "results": n}
        recent_rows: 최신순 결과 표 행 (build_table_rows 반환값). RECENT_ACTIVITY_LIMIT건만 쓴다.
    """
    return {
        "totals": {name: int(counts.get(name, 0)) for name in ("classes", "subjects", "exams", "results")},
        "recent": [
            {
                "id": row["id"],
                "student": row["student"],
                "exam_title": row["exam_title"],
                "score_display": row["score_display"],
                "percentage": row["percentage"],
                "submitted_at": row["submitted_at"],
            }
            for row in list(recent_rows)[:RECENT_ACTIVITY_LIMIT]
        ],
    }
