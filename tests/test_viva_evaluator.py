"""
Tests for the viva evaluator: fallback scoring, model response handling and
evaluation totals.
"""
import json
from types import SimpleNamespace

import pytest

from viva_backend.models.viva import QuestionAnswerPair, compute_percentage
from viva_evaluator import VivaEvaluator, fallback_score, parse_model_response
from viva_backend.exceptions import EvaluationError


def _pairs(*answers):
    return [
        QuestionAnswerPair(question_number=i + 1, question=f"Question {i + 1}?", answer=a)
        for i, a in enumerate(answers)
    ]


class FakeModels:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = 0

    async def generate_content(self, model, contents, config):
        self.calls += 1
        if self.error:
            raise self.error
        parts = [
            SimpleNamespace(text="thinking about it", thought=True),
            SimpleNamespace(text=self.text, thought=False),
        ]
        return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


def fake_client(text=None, error=None):
    models = FakeModels(text=text, error=error)
    return SimpleNamespace(aio=SimpleNamespace(models=models)), models


def _assert_totals(evaluation):
    assert evaluation.total_marks == sum(m.marks for m in evaluation.marks)
    assert evaluation.percentage == compute_percentage(evaluation.total_marks, evaluation.max_total_marks)


class TestFallbackScore:

    def test_length_bands(self):
        assert fallback_score("") == 0
        assert fallback_score("x" * 40) == 1
        assert fallback_score("x" * 120) == 2
        assert fallback_score("x" * 300) == 3

    def test_band_edges(self):
        assert fallback_score("x" * 49) == 1
        assert fallback_score("x" * 50) == 2
        assert fallback_score("x" * 149) == 2
        assert fallback_score("x" * 150) == 3

    def test_uncertainty_caps_score(self):
        long_unsure = "I am Not Sure about this " + "x" * 280
        assert len(long_unsure) >= 300
        assert fallback_score(long_unsure) <= 1
        assert fallback_score("Honestly I don't know. " + "y" * 200) == 1

    def test_ten_point_scale(self):
        assert fallback_score("x" * 300, max_marks=10) == 10
        assert fallback_score("x" * 120, max_marks=10) == 7
        assert fallback_score("x" * 40, max_marks=10) == 3


class TestFallbackEvaluation:

    @pytest.mark.asyncio
    async def test_empty_pairs(self):
        evaluation = await VivaEvaluator().evaluate([], "Algorithms")
        assert evaluation.marks == []
        assert evaluation.feedback == []
        assert evaluation.total_marks == 0
        assert evaluation.max_total_marks == 0
        assert evaluation.percentage == 0
        assert evaluation.overall_feedback == "No questions answered."

    @pytest.mark.asyncio
    async def test_empty_pairs_never_call_model(self):
        client, models = fake_client(text="{}")
        await VivaEvaluator(client=client).evaluate([], "Algorithms")
        assert models.calls == 0

    @pytest.mark.asyncio
    async def test_totals_and_lengths(self):
        pairs = _pairs("", "x" * 40, "x" * 120, "x" * 300)
        evaluation = await VivaEvaluator().evaluate(pairs, "Algorithms")

        assert len(evaluation.marks) == len(evaluation.feedback) == 4
        assert [m.marks for m in evaluation.marks] == [0, 1, 2, 3]
        assert evaluation.max_total_marks == 12
        assert evaluation.percentage == 50.0
        _assert_totals(evaluation)

    @pytest.mark.asyncio
    async def test_overall_feedback_bands(self):
        excellent = await VivaEvaluator().evaluate(_pairs("x" * 300), "Networks")
        poor = await VivaEvaluator().evaluate(_pairs("x" * 10), "Networks")
        assert excellent.overall_feedback.startswith("Excellent")
        assert poor.overall_feedback.startswith("Needs improvement")

    @pytest.mark.asyncio
    async def test_camel_case_serialization(self):
        evaluation = await VivaEvaluator().evaluate(_pairs("x" * 60), "OS")
        data = evaluation.model_dump(by_alias=True)
        assert {"marks", "feedback", "totalMarks", "maxTotalMarks", "percentage", "overallFeedback"} <= set(data)
        assert data["marks"][0]["questionNumber"] == 1
        assert data["marks"][0]["maxMarks"] == 3


class TestModelPath:

    @pytest.mark.asyncio
    async def test_uses_model_scores(self):
        response = {
            "evaluations": [
                {"questionNumber": 1, "marks": 3, "maxMarks": 3, "feedback": "Great", "strengths": ["clear"], "weaknesses": []},
                {"questionNumber": 2, "marks": 1, "maxMarks": 3, "feedback": "Partial", "strengths": [], "weaknesses": ["vague"]},
            ],
            "overallFeedback": "Solid effort.",
        }
        client, models = fake_client(text="```json\n" + json.dumps(response) + "\n```")
        evaluation = await VivaEvaluator(client=client).evaluate(_pairs("a", "b"), "DBMS")

        assert models.calls == 1
        assert [m.marks for m in evaluation.marks] == [3, 1]
        assert evaluation.overall_feedback == "Solid effort."
        assert evaluation.feedback[0].strengths == ["clear"]
        assert evaluation.feedback[0].weaknesses is None
        _assert_totals(evaluation)

    @pytest.mark.asyncio
    async def test_missing_question_number_scores_zero(self):
        response = {
            "evaluations": [{"questionNumber": 2, "marks": 2, "feedback": "Good"}],
            "overallFeedback": "Ok.",
        }
        client, _ = fake_client(text=json.dumps(response))
        evaluation = await VivaEvaluator(client=client).evaluate(_pairs("a", "b"), "DBMS")

        assert [m.marks for m in evaluation.marks] == [0, 2]
        assert evaluation.feedback[0].feedback == "Unable to evaluate"
        assert evaluation.max_total_marks == 6
        _assert_totals(evaluation)

    @pytest.mark.asyncio
    async def test_invalid_json_falls_back(self):
        client, _ = fake_client(text="Sure! Here are the scores: great job")
        evaluation = await VivaEvaluator(client=client).evaluate(_pairs("x" * 300), "DBMS")
        assert evaluation.marks[0].marks == 3
        assert evaluation.overall_feedback.startswith("Excellent")

    @pytest.mark.asyncio
    async def test_out_of_range_marks_fall_back(self):
        response = {"evaluations": [{"questionNumber": 1, "marks": 9, "feedback": "?"}], "overallFeedback": "x"}
        client, _ = fake_client(text=json.dumps(response))
        evaluation = await VivaEvaluator(client=client).evaluate(_pairs("x" * 40), "DBMS")
        assert evaluation.marks[0].marks == 1

    @pytest.mark.asyncio
    async def test_model_error_falls_back(self):
        client, _ = fake_client(error=TimeoutError("deadline exceeded"))
        evaluation = await VivaEvaluator(client=client).evaluate(_pairs("x" * 120), "DBMS")
        assert evaluation.marks[0].marks == 2


class TestParseModelResponse:

    def test_contract_violation_raises(self):
        with pytest.raises(EvaluationError):
            parse_model_response('{"evaluations": [{"marks": 1}]}', 3)

    def test_plain_json(self):
        result = parse_model_response('{"evaluations": [], "overallFeedback": "none"}', 3)
        assert result.scores == []
        assert result.overall_feedback == "none"
        assert result.source == "llm"
