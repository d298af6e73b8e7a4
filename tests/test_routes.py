import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api.store import AdminStore


def _seeded_store() -> AdminStore:
    store = AdminStore()
    store.add("exams", {"id": "math", "title": "Mathematics Final", "layer": "main-exam",
                        "totalMarks": 60, "totalQuestions": 6})
    store.add("exams", {"id": "eng", "title": "English Quiz 1", "layer": "first-test",
                        "totalMarks": 10, "totalQuestions": 10})
    store.add("results", {"id": "r1", "studentName": "Ada", "className": "Orange", "subjectName": "Mathematics",
                          "examId": "math", "layer": "main-exam", "correctAnswers": 4})
    store.add("results", {"id": "r2", "studentName": "Tunde", "className": "Lemon", "subjectName": "English",
                          "examId": "eng", "layer": "first-test", "score": 8})
    store.add("results", {"id": "r3", "studentName": "Musa", "className": "Orange", "subjectName": "Mathematics",
                          "layer": "second-test", "earnedPoints": 15})
    return store


@pytest.fixture
def store():
    return _seeded_store()


@pytest.fixture
def client(store):
    return TestClient(create_app(store))


class TestResults:
    def test_list_reconciles_every_row(self, client):
        res = client.get("/api/results")
        assert res.status_code == 200
        rows = {row["id"]: row for row in res.json()["rows"]}
        assert rows["r1"]["score_display"] == "40 / 60"
        assert rows["r1"]["percentage"] == 67
        assert rows["r1"]["exam_title"] == "Mathematics Final"
        assert rows["r2"]["score_display"] == "8 / 10"
        assert rows["r3"]["score_display"] == "15 / 30"
        assert rows["r3"]["percentage"] == 50

    def test_undated_results_keep_store_order(self, client):
        ids = [row["id"] for row in client.get("/api/results").json()["rows"]]
        assert ids == ["r1", "r2", "r3"]

    def test_newest_first(self, client, store):
        store.update("results", "r1", {"timestamp": "2024-03-01T09:00:00Z"})
        store.update("results", "r3", {"timestamp": "2024-03-05T09:00:00Z"})
        rows = client.get("/api/results").json()["rows"]
        assert [row["id"] for row in rows] == ["r3", "r1", "r2"]
        assert rows[0]["score_display"] == "15 / 30"

    def test_one_huge_record_does_not_break_the_list(self, client, store):
        store.add("exams", {"id": "tiny", "totalMarks": 1, "totalQuestions": 1000})
        store.add("results", {"id": "r4", "examId": "tiny", "score": 1e308})
        res = client.get("/api/results")
        assert res.status_code == 200
        rows = {row["id"]: row for row in res.json()["rows"]}
        assert rows["r4"]["percentage"] == 100
        assert client.get("/api/results/export").status_code == 200

    def test_filters(self, client):
        res = client.get("/api/results", params={"class_name": "orange", "exam_type": "final"})
        assert [row["id"] for row in res.json()["rows"]] == ["r1"]

    def test_add_and_delete(self, client):
        saved = client.post("/api/results", json={"studentName": "New", "correctAnswers": 1}).json()["result"]
        assert client.delete(f"/api/results/{saved['id']}").status_code == 200
        assert client.delete(f"/api/results/{saved['id']}").status_code == 404

    def test_result_source_failure_is_503(self):
        class BrokenStore(AdminStore):
            def find_all(self, name):
                raise ConnectionError("offline")

        res = TestClient(create_app(BrokenStore())).get("/api/results")
        assert res.status_code == 503


class TestExport:
    def test_csv_download(self, client):
        res = client.get("/api/results/export")
        assert res.status_code == 200
        assert res.headers["content-type"].startswith("text/csv")
        assert "exam_results_" in res.headers["content-disposition"]
        body = res.content.decode("utf-8")
        assert body.startswith("\ufeff")
        assert len(body.strip().splitlines()) == 4

    def test_empty_export_is_404(self, client):
        res = client.get("/api/results/export", params={"subject": "History"})
        assert res.status_code == 404


class TestManualEdit:
    def test_edit_reconciles_and_persists(self, client, store):
        res = client.patch("/api/results/r1/score", json={"field": "correctAnswers", "value": "5"})
        assert res.status_code == 200
        assert res.json()["score"]["earnedMarks"] == 50
        assert res.json()["score"]["percentage"] == 83
        assert store.get("results", "r1")["correctAnswers"] == 5

        rows = {row["id"]: row for row in client.get("/api/results").json()["rows"]}
        assert rows["r1"]["score_display"] == "50 / 60"

    def test_unknown_result(self, client):
        res = client.patch("/api/results/nope/score", json={"field": "score", "value": 1})
        assert res.status_code == 404

    def test_bad_field(self, client):
        res = client.patch("/api/results/r1/score", json={"field": "percentage", "value": 90})
        assert res.status_code == 400


class TestReconcileEndpoint:
    def test_single_pair(self, client):
        res = client.post("/api/reconcile", json={
            "exam": {"totalMarks": 60, "totalQuestions": 6},
            "result": {"correctAnswers": 4},
        })
        assert res.json() == {
            "correctAnswers": 4,
            "pointsPerQuestion": 10.0,
            "earnedMarks": 40.0,
            "percentage": 67,
            "totalMarks": 60.0,
            "totalQuestions": 6,
        }

    def test_without_exam(self, client):
        res = client.post("/api/reconcile", json={"result": {}})
        assert res.json()["totalMarks"] == 30
        assert res.json()["percentage"] == 0

    def test_overflowing_quotient_is_capped(self, client):
        for evidence in ({"score": 1e308}, {"earnedPoints": 1e308}):
            res = client.post("/api/reconcile", json={
                "exam": {"totalMarks": 1, "totalQuestions": 1000},
                "result": evidence,
            })
            assert res.status_code == 200
            assert res.json()["earnedMarks"] == 1
            assert res.json()["percentage"] == 100


class TestExamsAndState:
    def test_create_exam(self, client):
        res = client.post("/api/exams", json={
            "title": "Science Quiz", "layer": "test1", "total_marks": 10, "total_questions": 5,
        })
        assert res.status_code == 200
        exam = res.json()
        assert exam["layer"] == "first-test"
        assert exam["layerName"] == "First Test"
        assert len(exam["code"]) == 6

    def test_exam_over_layer_limit(self, client):
        res = client.post("/api/exams", json={
            "title": "Science Quiz", "layer": "first-test", "total_marks": 20, "total_questions": 5,
        })
        assert res.status_code == 422

    def test_delete_exam(self, client):
        assert client.delete("/api/exams/eng").status_code == 200
        assert client.delete("/api/exams/eng").status_code == 404

    def test_classes_and_subjects(self, client):
        created = client.post("/api/classes", json={"name": "Primary 2"}).json()
        client.post("/api/subjects", json={"name": "Science", "classId": created["id"]})
        assert [c["name"] for c in client.get("/api/classes").json()] == ["Primary 2"]
        assert client.get("/api/subjects").json()[0]["classId"] == created["id"]

    def test_toggle_edit_mode(self, client):
        assert client.post("/api/edit-mode").json() == {"edit_mode": True}
        assert client.get("/api/health").json()["edit_mode"] is True

    def test_delete_class_and_subject(self, client):
        created = client.post("/api/classes", json={"name": "Primary 3"}).json()
        subject = client.post("/api/subjects", json={"name": "Music", "classId": created["id"]}).json()

        assert client.delete(f"/api/subjects/{subject['id']}").status_code == 200
        assert client.delete(f"/api/subjects/{subject['id']}").status_code == 404
        assert client.delete(f"/api/classes/{created['id']}").status_code == 200
        assert client.delete(f"/api/classes/{created['id']}").status_code == 404
        assert client.get("/api/classes").json() == []
        assert client.get("/api/subjects").json() == []


class TestDashboard:
    def test_totals(self, client):
        client.post("/api/classes", json={"name": "Primary 1"})
        summary = client.get("/api/dashboard").json()
        assert summary["totals"] == {"classes": 1, "subjects": 0, "exams": 2, "results": 3}

    def test_recent_is_newest_first_and_limited(self, client, store):
        for i in range(6):
            store.add("results", {"id": f"n{i}", "studentName": f"S{i}", "correctAnswers": 1,
                                  "timestamp": f"2024-04-0{i + 1}T10:00:00Z"})
        recent = client.get("/api/dashboard").json()["recent"]
        assert [item["id"] for item in recent] == ["n5", "n4", "n3", "n2", "n1"]
        assert recent[0]["submitted_at"] == "2024-04-06 10:00:00"

    def test_result_source_failure_is_503(self):
        class BrokenStore(AdminStore):
            def find_all(self, name):
                raise ConnectionError("offline")

        assert TestClient(create_app(BrokenStore())).get("/api/dashboard").status_code == 503
