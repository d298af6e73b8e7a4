"""
views/results_view.py — 시험 결과 관리 화면

표시 내용:
  - 반 / 과목 / 시험 단계 필터
  - 결과 표 (취득 점수 / 만점, 백분율 배지)
  - 편집 모드: 정답 수 직접 수정 (수정 즉시 재환산)
  - CSV 내보내기 버튼
"""

from __future__ import annotations

import asyncio

import streamlit as st

from api.store import AdminStore
from exam_admin.services.report_service import (
    build_table_rows,
    export_filename,
    generate_csv,
    sort_newest_first,
)
from exam_admin.services.score_service import (
    apply_manual_score,
    exam_id_of,
    fetch_exams,
    filter_results,
    reconcile_joined,
)

_BADGE_STYLES = {
    "green": ("#d1fae5", "#065f46"),
    "yellow": ("#fef3c7", "#92400e"),
    "red": ("#fee2e2", "#991b1b"),
}

_EXAM_TYPE_OPTIONS = {
    "all": "전체",
    "first-test": "First Test (10 marks)",
    "second-test": "Second Test (30 marks)",
    "main-exam": "Main Exam (60 marks)",
}


def _toggle_edit_mode(store: AdminStore) -> None:
    store.toggle_edit_mode()


def _save_score(store: AdminStore, result: dict, exam, widget_key: str) -> None:
    """편집 모드 입력값(정답 수)을 반영."""
    value = st.session_state.get(widget_key, 0)
    record, _ = apply_manual_score(exam, result, "correctAnswers", value)
    store.replace("results", result["id"], record)
    st.toast("점수가 수정되었습니다.")


def render(store: AdminStore) -> None:
    """결과 관리 화면 렌더링."""

    st.markdown(
        "<h2 style='font-size:1.4rem; font-weight:700; color:#1a1a2e;'>시험 결과</h2>",
        unsafe_allow_html=True,
    )

    # ── 필터 ──────────────────────────────────────────────────────────────
    all_results = store.find_all("results")
    classes = sorted({r.get("className") for r in all_results if r.get("className")})
    subjects = sorted({r.get("subjectName") for r in all_results if r.get("subjectName")})

    f1, f2, f3, f4 = st.columns([1, 1, 1, 0.6])
    with f1:
        class_name = st.selectbox("반", ["all"] + classes, format_func=lambda v: "전체" if v == "all" else v)
    with f2:
        subject = st.selectbox("과목", ["all"] + subjects, format_func=lambda v: "전체" if v == "all" else v)
    with f3:
        exam_type = st.selectbox("시험 단계", list(_EXAM_TYPE_OPTIONS), format_func=_EXAM_TYPE_OPTIONS.get)
    with f4:
        st.button(
            "보기 모드" if store.edit_mode else "편집 모드",
            key="edit_mode_btn",
            use_container_width=True,
            on_click=_toggle_edit_mode,
            args=(store,),
        )

    results = sort_newest_first(filter_results(all_results, class_name, subject, exam_type))
    if not results:
        st.info("결과가 없습니다.")
        return

    # ── 시험 정보 조인 + 환산 ─────────────────────────────────────────────
    with st.spinner("시험 정보를 불러오는 중..."):
        exams = asyncio.run(fetch_exams(store.find_exam, results))
    scores = reconcile_joined(exams, results)
    rows = build_table_rows(results, scores, exams)

    st.markdown(
        f"<p style='font-size:0.85rem; color:#6b7280;'>총 {len(rows)}건</p>",
        unsafe_allow_html=True,
    )

    # ── 결과 표 ──────────────────────────────────────────────────────────
    header = st.columns([1.4, 1, 1, 1.4, 1, 1, 0.8])
    for col, label in zip(header, ["학생", "반", "과목", "시험", "단계", "점수", "백분율"]):
        col.markdown(f"**{label}**")

    for result, row in zip(results, rows):
        cols = st.columns([1.4, 1, 1, 1.4, 1, 1, 0.8])
        cols[0].write(row["student"])
        cols[1].write(row["class"])
        cols[2].write(row["subject"])
        cols[3].write(row["exam_title"])
        cols[4].write(row["exam_type"])

        with cols[5]:
            if store.edit_mode:
                widget_key = f"score_{row['id']}"
                st.number_input(
                    "정답 수",
                    min_value=0,
                    max_value=row["total_questions"],
                    value=min(max(row["correct_answers"], 0), row["total_questions"]),
                    key=widget_key,
                    label_visibility="collapsed",
                    on_change=_save_score,
                    args=(store, result, exams.get(exam_id_of(result) or ""), widget_key),
                )
                st.caption(f"{row['score_display']} ({row['total_questions']}문항)")
            else:
                st.write(row["score_display"])

        bg, fg = _BADGE_STYLES[row["badge"]]
        cols[6].markdown(
            f"<span style='font-size:0.8rem; padding:2px 10px; border-radius:12px; "
            f"background:{bg}; color:{fg}; font-weight:600;'>{row['percentage']}%</span>",
            unsafe_allow_html=True,
        )

    # ── 내보내기 ─────────────────────────────────────────────────────────
    st.divider()
    st.download_button(
        "CSV 내보내기",
        data=generate_csv(results, scores, exams).encode("utf-8"),
        file_name=export_filename(),
        mime="text/csv",
        type="primary",
    )
