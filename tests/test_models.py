import pytest
from pydantic import ValidationError

from exam_admin.models.exam_model import (
    ExamDraft,
    ExamType,
    as_number,
    exam_from_document,
    normalize_exam_type,
)
from exam_admin.models.result_model import (
    ByAnswersList,
    ByCount,
    ByEarnedPoints,
    ByScoreAmbiguous,
    Unknown,
    classify_result,
)


class TestAsNumber:
    def test_numbers_and_numeric_strings(self):
        assert as_number(3) == 3.0
        assert as_number(2.5) == 2.5
        assert as_number(" 7.5 ") == 7.5

    def test_rejects_bool_none_and_garbage(self):
        assert as_number(True) is None
        assert as_number(None) is None
        assert as_number("abc") is None
        assert as_number([1]) is None

    def test_rejects_nan_and_infinity(self):
        assert as_number(float("nan")) is None
        assert as_number("inf") is None

    def test_rejects_int_too_large_for_float(self):
        assert as_number(10 ** 400) is None


class TestNormalizeExamType:
    def test_legacy_spellings(self):
        assert normalize_exam_type("Test1") == ExamType.FIRST_TEST
        assert normalize_exam_type(" mid-term ") == ExamType.SECOND_TEST
        assert normalize_exam_type("Main Exam (60 marks)") == ExamType.MAIN_EXAM

    def test_unknown(self):
        assert normalize_exam_type("quarterly") is None
        assert normalize_exam_type(3) is None


class TestExamFromDocument:
    def test_primary_fields(self):
        exam = exam_from_document({
            "title": "Math Final",
            "layer": "main-exam",
            "layerName": "Main Exam",
            "totalMarks": 60,
            "totalQuestions": 6,
        })
        assert exam.total_marks == 60
        assert exam.total_questions == 6
        assert exam.exam_type == ExamType.MAIN_EXAM
        assert exam.title == "Math Final"
        assert exam.type_name == "Main Exam"

    def test_fallback_fields(self):
        exam = exam_from_document({"totalPoints": 25, "questionCount": 5, "name": "Quiz", "examType": "test2"})
        assert exam.total_marks == 25
        assert exam.total_questions == 5
        assert exam.title == "Quiz"
        assert exam.exam_type == ExamType.SECOND_TEST

    def test_question_list_length_wins(self):
        exam = exam_from_document({"questions": [{}, {}, {}], "totalQuestions": 10})
        assert exam.total_questions == 3

    def test_malformed_values_are_absent(self):
        exam = exam_from_document({"totalMarks": "lots", "totalQuestions": 0, "layer": "??"})
        assert exam.total_marks is None
        assert exam.total_questions is None
        assert exam.exam_type is None

    def test_non_mapping(self):
        assert exam_from_document(None) is None
        assert exam_from_document("exam-1") is None


class TestExamDraft:
    def test_valid_draft(self):
        draft = ExamDraft(title="Quiz", layer="test1", total_marks=10, total_questions=5)
        assert draft.layer == ExamType.FIRST_TEST

    def test_marks_over_layer_limit(self):
        with pytest.raises(ValidationError, match="기준 만점"):
            ExamDraft(title="Quiz", layer="first-test", total_marks=12, total_questions=5)

    def test_unknown_layer(self):
        with pytest.raises(ValidationError):
            ExamDraft(title="Quiz", layer="quarterly", total_marks=10, total_questions=5)


class TestClassifyResult:
    def test_priority_order(self):
        assert isinstance(classify_result({"correctAnswers": 3, "score": 9}), ByCount)
        assert isinstance(classify_result({"score": 9, "answers": []}), ByScoreAmbiguous)
        assert isinstance(classify_result({"answers": [], "earnedPoints": 4}), ByAnswersList)
        assert isinstance(classify_result({"earnedPoints": 4}), ByEarnedPoints)
        assert isinstance(classify_result({}), Unknown)

    def test_invalid_fields_fall_through(self):
        evidence = classify_result({"correctAnswers": None, "score": "n/a", "answers": "none", "earnedPoints": "12"})
        assert isinstance(evidence, ByEarnedPoints)
        assert evidence.earned_points == 12

    def test_answers_count(self):
        evidence = classify_result({"answers": [{"isCorrect": True}, {"isCorrect": 0}, {"isCorrect": "yes"}, 5]})
        assert evidence.correct_flags == [True, False, True]
        assert evidence.correct_count == 2

    def test_non_mapping(self):
        assert isinstance(classify_result(["correctAnswers", 3]), Unknown)
