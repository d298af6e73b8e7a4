"""
dashboard.py — Streamlit 관리자 화면 진입점

실행: streamlit run dashboard.py
"""

import logging

import streamlit as st

from config import SEED_FILE
from api.store import AdminStore
from exam_admin.views import dashboard_view, results_view

logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] %(message)s')


@st.cache_resource
def _get_store() -> AdminStore:
    # 세션 간 공유되는 저장소 (프로세스당 하나)
    store = AdminStore()
    store.load_seed(SEED_FILE)
    return store


_PAGES = {
    "대시보드": dashboard_view.render,
    "시험 결과": results_view.render,
}

st.set_page_config(page_title="Exam Results Admin", layout="wide")
page = st.sidebar.radio("메뉴", list(_PAGES))
_PAGES[page](_get_store())
