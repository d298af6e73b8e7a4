"""
api/store.py — 관리자 대시보드 인메모리 상태 저장소

반(classes), 과목(subjects), 시험(exams), 결과(results) 컬렉션과
편집 모드 플래그를 하나의 객체로 묶는다. 앱마다 인스턴스 하나를
app.state.store 에 두고 라우트/화면이 명시적으로 넘겨받아 사용한다.
실제 문서 DB를 대신하는 자리이며, 영속화는 하지 않는다 (시드 JSON 로드만 지원).
"""

import copy
import json
import logging
import os
import secrets
import string
import threading
import uuid
from typing import Any, Optional

from exam_admin.models.exam_model import ExamDefinition, exam_from_document

logger = logging.getLogger(__name__)

COLLECTIONS = ("classes", "subjects", "exams", "results")
CODE_LENGTH = 6
_CODE_ALPHABET = string.ascii_uppercase + string.digits


class AdminStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, dict[str, dict[str, Any]]] = {name: {} for name in COLLECTIONS}
        self.edit_mode = False

    # ── 컬렉션 CRUD ────────────────────────────────────────────────────────

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        if name not in self._data:
            raise KeyError(f"알 수 없는 컬렉션: {name}")
        return self._data[name]

    def add(self, name: str, doc: dict[str, Any]) -> dict[str, Any]:
        """문서 추가. id가 없으면 새로 발급. 저장된 문서 사본을 반환."""
        doc = copy.deepcopy(doc)
        doc_id = str(doc.get("id") or uuid.uuid4().hex)
        doc["id"] = doc_id
        with self._lock:
            self._collection(name)[doc_id] = doc
        return copy.deepcopy(doc)

    def get(self, name: str, doc_id: str) -> Optional[dict[str, Any]]:
        """id로 문서 조회. 없으면 None."""
        with self._lock:
            doc = self._collection(name).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def find_all(self, name: str) -> list[dict[str, Any]]:
        """컬렉션 전체 (삽입 순서)."""
        with self._lock:
            return [copy.deepcopy(doc) for doc in self._collection(name).values()]

    def update(self, name: str, doc_id: str, changes: dict[str, Any]) -> Optional[dict[str, Any]]:
        """문서 일부 갱신. 없는 문서이면 None."""
        with self._lock:
            doc = self._collection(name).get(doc_id)
            if doc is None:
                return None
            doc.update(copy.deepcopy(changes))
            doc["id"] = doc_id
            return copy.deepcopy(doc)

    def replace(self, name: str, doc_id: str, doc: dict[str, Any]) -> Optional[dict[str, Any]]:
        """문서 전체 교체. 없는 문서이면 None."""
        doc = copy.deepcopy(doc)
        doc["id"] = doc_id
        with self._lock:
            collection = self._collection(name)
            if doc_id not in collection:
                return None
            collection[doc_id] = doc
        return copy.deepcopy(doc)

    def delete(self, name: str, doc_id: str) -> bool:
        """문서 삭제. 삭제했으면 True."""
        with self._lock:
            return self._collection(name).pop(doc_id, None) is not None

    # ── 편집 모드 ──────────────────────────────────────────────────────────

    def toggle_edit_mode(self) -> bool:
        with self._lock:
            self.edit_mode = not self.edit_mode
            return self.edit_mode

    # ── 시험 조회 (reconcile_batch 용) ────────────────────────────────────

    async def find_exam(self, exam_id: str) -> Optional[ExamDefinition]:
        """examId로 시험 정의를 찾는다. 없으면 None."""
        return exam_from_document(self.get("exams", exam_id))

    # ── 코드 발급 ──────────────────────────────────────────────────────────

    def generate_code(self, name: str) -> str:
        """컬렉션 안에서 겹치지 않는 6자리 코드 (대문자+숫자)."""
        existing = {doc.get("code") for doc in self.find_all(name)}
        while True:
            code = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(CODE_LENGTH))
            if code not in existing:
                return code

    # ── 시드 데이터 ────────────────────────────────────────────────────────

    def load_seed(self, path: str) -> int:
        """
        JSON 파일에서 초기 데이터를 읽어 온다. 파일이 없으면 0.
        형식: {"classes": [...], "subjects": [...], "exams": [...], "results": [...]}

        Returns:
            불러온 문서 수.
        """
        if not path or not os.path.exists(path):
            return 0
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        loaded = 0
        for name in COLLECTIONS:
            for doc in data.get(name, []):
                if isinstance(doc, dict):
                    self.add(name, doc)
                    loaded += 1
        logger.info(f"시드 데이터 {loaded}건 로드: {path}")
        return loaded
