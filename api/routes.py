"""
api/routes.py — FastAPI 엔드포인트
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response
from pydantic import BaseModel, Field

from api.store import AdminStore
from config import RECENT_ACTIVITY_LIMIT
from exam_admin.models.exam_model import ExamDraft, NormalizedScore
from exam_admin.services.report_service import (
    build_dashboard_summary,
    build_table_rows,
    export_filename,
    generate_csv,
    sort_newest_first,
)
from exam_admin.services.score_service import (
    apply_manual_score,
    exam_id_of,
    exam_type_display,
    fetch_exams,
    filter_results,
    reconcile,
    reconcile_joined,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# ── Pydantic request bodies ──────────────────────────────────────────────────

class ReconcileBody(BaseModel):
    exam: Optional[dict[str, Any]] = None
    result: dict[str, Any] = Field(default_factory=dict)

class ManualScoreBody(BaseModel):
    field: str = "earnedPoints"
    value: Any = 0

class NamedBody(BaseModel):
    name: str = Field(..., min_length=1)
    classId: Optional[str] = None


# ── 헬퍼 ─────────────────────────────────────────────────────────────────────

def get_store(request: Request) -> AdminStore:
    return request.app.state.store


def _score_to_dict(score: NormalizedScore) -> dict:
    return {
        "correctAnswers": score.correct_answers,
        "pointsPerQuestion": score.points_per_question,
        "earnedMarks": score.earned_marks,
        "percentage": score.percentage,
        "totalMarks": score.total_marks,
        "totalQuestions": score.total_questions,
    }


def _exam_to_document(draft: ExamDraft, code: str) -> dict:
    return {
        "title": draft.title,
        "layer": draft.layer.value,
        "layerName": exam_type_display(draft.layer),
        "totalMarks": draft.total_marks,
        "totalQuestions": draft.total_questions,
        "className": draft.class_name,
        "subjectName": draft.subject_name,
        "code": code,
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }


def _load_results(store: AdminStore, class_name: str, subject: str, exam_type: str) -> list[dict]:
    """결과 원본을 읽어 필터링 후 최신순 정렬. 저장소 자체 장애는 503으로 올린다."""
    try:
        results = store.find_all("results")
    except Exception as e:
        logger.error(f"결과 목록 조회 실패: {e}")
        raise HTTPException(status_code=503, detail="결과를 불러오지 못했습니다. 잠시 후 다시 시도해 주세요.")
    return sort_newest_first(filter_results(results, class_name, subject, exam_type))


# ── 대시보드 ─────────────────────────────────────────────────────────────────

@router.get("/api/dashboard")
async def dashboard_summary(store: AdminStore = Depends(get_store)):
    results = _load_results(store, "all", "all", "all")
    try:
        counts = {name: len(store.find_all(name)) for name in ("classes", "subjects", "exams")}
    except Exception as e:
        logger.error(f"대시보드 집계 실패: {e}")
        raise HTTPException(status_code=503, detail="대시보드 정보를 불러오지 못했습니다.")
    counts["results"] = len(results)

    recent = results[:RECENT_ACTIVITY_LIMIT]
    exams = await fetch_exams(store.find_exam, recent)
    rows = build_table_rows(recent, reconcile_joined(exams, recent), exams)
    return build_dashboard_summary(counts, rows)


# ── 결과 ─────────────────────────────────────────────────────────────────────

@router.get("/api/results")
async def list_results(
    class_name: str = "all",
    subject: str = "all",
    exam_type: str = "all",
    store: AdminStore = Depends(get_store),
):
    results = _load_results(store, class_name, subject, exam_type)
    exams = await fetch_exams(store.find_exam, results)
    scores = reconcile_joined(exams, results)
    return {
        "count": len(results),
        "edit_mode": store.edit_mode,
        "rows": build_table_rows(results, scores, exams),
    }


@router.get("/api/results/export")
async def export_results(
    class_name: str = "all",
    subject: str = "all",
    exam_type: str = "all",
    store: AdminStore = Depends(get_store),
):
    results = _load_results(store, class_name, subject, exam_type)
    exams = await fetch_exams(store.find_exam, results)
    scores = reconcile_joined(exams, results)
    try:
        content = generate_csv(results, scores, exams)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    filename = export_filename()
    logger.info(f"결과 {len(results)}건 내보내기: {filename}")
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/api/results")
async def add_result(result: dict[str, Any] = Body(...), store: AdminStore = Depends(get_store)):
    saved = store.add("results", result)
    return {"ok": True, "result": saved}


@router.delete("/api/results/{result_id}")
async def delete_result(result_id: str, store: AdminStore = Depends(get_store)):
    if not store.delete("results", result_id):
        raise HTTPException(status_code=404, detail="결과를 찾을 수 없습니다.")
    return {"ok": True}


@router.patch("/api/results/{result_id}/score")
async def update_score(result_id: str, body: ManualScoreBody, store: AdminStore = Depends(get_store)):
    result = store.get("results", result_id)
    if result is None:
        raise HTTPException(status_code=404, detail="결과를 찾을 수 없습니다.")

    exams = await fetch_exams(store.find_exam, [result])
    exam = exams.get(exam_id_of(result) or "")
    try:
        record, score = apply_manual_score(exam, result, body.field, body.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    store.replace("results", result_id, record)
    return {"ok": True, "result": record, "score": _score_to_dict(score)}


@router.post("/api/reconcile")
async def reconcile_one(body: ReconcileBody):
    return _score_to_dict(reconcile(body.exam, body.result))


@router.post("/api/edit-mode")
async def toggle_edit_mode(store: AdminStore = Depends(get_store)):
    return {"edit_mode": store.toggle_edit_mode()}


# ── 시험 ─────────────────────────────────────────────────────────────────────

@router.get("/api/exams")
async def list_exams(store: AdminStore = Depends(get_store)):
    return store.find_all("exams")


@router.post("/api/exams")
async def create_exam(draft: ExamDraft, store: AdminStore = Depends(get_store)):
    saved = store.add("exams", _exam_to_document(draft, store.generate_code("exams")))
    logger.info(f"시험 생성: {saved['title']} ({saved['layer']}, {saved['totalMarks']}점)")
    return saved


@router.delete("/api/exams/{exam_id}")
async def delete_exam(exam_id: str, store: AdminStore = Depends(get_store)):
    if not store.delete("exams", exam_id):
        raise HTTPException(status_code=404, detail="시험을 찾을 수 없습니다.")
    return {"ok": True}


# ── 반 / 과목 ────────────────────────────────────────────────────────────────

@router.get("/api/classes")
async def list_classes(store: AdminStore = Depends(get_store)):
    return store.find_all("classes")


@router.post("/api/classes")
async def create_class(body: NamedBody, store: AdminStore = Depends(get_store)):
    return store.add("classes", {"name": body.name, "code": store.generate_code("classes")})


@router.get("/api/subjects")
async def list_subjects(store: AdminStore = Depends(get_store)):
    return store.find_all("subjects")


@router.post("/api/subjects")
async def create_subject(body: NamedBody, store: AdminStore = Depends(get_store)):
    return store.add("subjects", {"name": body.name, "classId": body.classId})


@router.delete("/api/classes/{class_id}")
async def delete_class(class_id: str, store: AdminStore = Depends(get_store)):
    if not store.delete("classes", class_id):
        raise HTTPException(status_code=404, detail="반을 찾을 수 없습니다.")
    logger.info(f"반 삭제: {class_id}")
    return {"ok": True}


@router.delete("/api/subjects/{subject_id}")
async def delete_subject(subject_id: str, store: AdminStore = Depends(get_store)):
    if not store.delete("subjects", subject_id):
        raise HTTPException(status_code=404, detail="과목을 찾을 수 없습니다.")
    logger.info(f"과목 삭제: {subject_id}")
    return {"ok": True}
