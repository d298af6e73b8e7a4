"""
views/dashboard_view.py — 관리자 대시보드 첫 화면

표시 내용:
  - 반 / 과목 / 시험 / 결과 건수
  - 최근 제출 결과 (최신순)
"""

from __future__ import annotations

import asyncio

import streamlit as st

from api.store import AdminStore
from config import RECENT_ACTIVITY_LIMIT
from exam_admin.services.report_service import build_dashboard_summary, build_table_rows, sort_newest_first
from exam_admin.services.score_service import fetch_exams, reconcile_joined

_STAT_LABELS = {
    "classes": "반",
    "subjects": "과목",
    "exams": "시험",
    "results": "결과",
}


def render(store: AdminStore) -> None:
    """대시보드 렌더링."""

    st.markdown(
        "<h2 style='font-size:1.4rem; font-weight:700; color:#1a1a2e;'>대시보드</h2>",
        unsafe_allow_html=True,
    )

    results = sort_newest_first(store.find_all("results"))
    counts = {name: len(store.find_all(name)) for name in ("classes", "subjects", "exams")}
    counts["results"] = len(results)

    recent = results[:RECENT_ACTIVITY_LIMIT]
    exams = asyncio.run(fetch_exams(store.find_exam, recent))
    summary = build_dashboard_summary(counts, build_table_rows(recent, reconcile_joined(exams, recent), exams))

    # ── 건수 ─────────────────────────────────────────────────────────────
    for col, (name, label) in zip(st.columns(len(_STAT_LABELS)), _STAT_LABELS.items()):
        col.metric(label, summary["totals"][name])

    st.divider()

    # ── 최근 결과 ────────────────────────────────────────────────────────
    st.markdown("**최근 결과**")
    if not summary["recent"]:
        st.caption("최근 활동이 없습니다.")
        return

    for item in summary["recent"]:
        st.markdown(
            f"<div style='padding:6px 0; border-bottom:1px solid #f1f5f9;'>"
            f"<span style='font-weight:600;'>{item['student']}</span>"
            f"<span style='font-size:0.8rem; color:#6b7280;'> · {item['exam_title']} · "
            f"{item['score_display']} ({item['percentage']}%) · {item['submitted_at']}</span></div>",
            unsafe_allow_html=True,
        )
