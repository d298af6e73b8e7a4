import asyncio
import json
import string

import pytest

from api.store import AdminStore


@pytest.fixture
def store():
    return AdminStore()


class TestCollections:
    def test_add_assigns_id(self, store):
        saved = store.add("classes", {"name": "Primary 1 - Orange"})
        assert saved["id"]
        assert store.get("classes", saved["id"])["name"] == "Primary 1 - Orange"

    def test_keeps_given_id_and_insertion_order(self, store):
        store.add("results", {"id": "b"})
        store.add("results", {"id": "a"})
        assert [doc["id"] for doc in store.find_all("results")] == ["b", "a"]

    def test_returns_copies(self, store):
        store.add("exams", {"id": "e1", "questions": [1, 2]})
        store.get("exams", "e1")["questions"].append(3)
        assert store.get("exams", "e1")["questions"] == [1, 2]

    def test_update_and_replace(self, store):
        store.add("results", {"id": "r1", "score": 3, "studentName": "Ada"})
        assert store.update("results", "r1", {"score": 5})["studentName"] == "Ada"
        assert store.replace("results", "r1", {"correctAnswers": 4}) == {"correctAnswers": 4, "id": "r1"}
        assert store.update("results", "missing", {"score": 1}) is None
        assert store.replace("results", "missing", {}) is None

    def test_delete(self, store):
        store.add("subjects", {"id": "s1"})
        assert store.delete("subjects", "s1") is True
        assert store.delete("subjects", "s1") is False
        assert store.get("subjects", "s1") is None

    def test_unknown_collection(self, store):
        with pytest.raises(KeyError):
            store.find_all("teachers")


class TestStoreHelpers:
    def test_toggle_edit_mode(self, store):
        assert store.toggle_edit_mode() is True
        assert store.toggle_edit_mode() is False

    def test_find_exam(self, store):
        store.add("exams", {"id": "e1", "title": "Quiz", "totalMarks": 10, "totalQuestions": 5})
        exam = asyncio.run(store.find_exam("e1"))
        assert exam.title == "Quiz"
        assert exam.total_marks == 10
        assert asyncio.run(store.find_exam("nope")) is None

    def test_generate_code(self, store):
        code = store.generate_code("exams")
        assert len(code) == 6
        assert set(code) <= set(string.ascii_uppercase + string.digits)

    def test_load_seed(self, store, tmp_path):
        path = tmp_path / "seed.json"
        path.write_text(json.dumps({
            "exams": [{"id": "e1", "totalMarks": 60}],
            "results": [{"id": "r1"}, {"id": "r2"}, "not-a-doc"],
        }), encoding="utf-8")
        assert store.load_seed(str(path)) == 3
        assert len(store.find_all("results")) == 2

    def test_load_seed_missing_file(self, store, tmp_path):
        assert store.load_seed(str(tmp_path / "absent.json")) == 0
