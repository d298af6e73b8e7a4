"""
api/app.py — FastAPI 앱 인스턴스 + 상태 저장소 연결
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import SEED_FILE
from api.routes import router
from api.store import AdminStore

logger = logging.getLogger(__name__)


def create_app(store: Optional[AdminStore] = None) -> FastAPI:
    app = FastAPI(title="Exam Results Admin", docs_url=None, redoc_url=None)

    # CORS (관리자 화면이 다른 출처에서 호출하는 경우)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 저장소를 넘겨받지 않으면 새로 만들고 시드 데이터를 읽는다
    if store is None:
        store = AdminStore()
        store.load_seed(SEED_FILE)
    app.state.store = store

    app.include_router(router)

    @app.get("/api/health")
    async def health():
        return {"ok": True, "edit_mode": app.state.store.edit_mode}

    logger.info("API 앱 생성 완료")
    return app
