"""
Question/answer and evaluation models.

Serialized with camelCase keys (questionNumber, totalMarks, ...) since the
evaluation JSON is stored alongside every result row.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuestionAnswerPair(_CamelModel):
    """One extracted question with the student's accumulated answer."""
    question_number: int
    question: str
    answer: str


class QuestionMark(_CamelModel):
    question_number: int
    question: str
    answer: str
    marks: float
    max_marks: float


class QuestionFeedback(_CamelModel):
    question_number: int
    feedback: str
    strengths: Optional[List[str]] = None
    weaknesses: Optional[List[str]] = None


class EvaluationSummary(_CamelModel):
    total_marks: float
    max_total_marks: float
    percentage: float


class VivaEvaluation(_CamelModel):
    """Scored viva: one mark and one feedback entry per question/answer pair."""
    marks: List[QuestionMark] = []
    feedback: List[QuestionFeedback] = []
    total_marks: float = 0
    max_total_marks: float = 0
    percentage: float = 0
    overall_feedback: str = ""

    def summary(self) -> EvaluationSummary:
        return EvaluationSummary(
            total_marks=self.total_marks,
            max_total_marks=self.max_total_marks,
            percentage=self.percentage,
        )


def compute_percentage(total_marks: float, max_total_marks: float) -> float:
    """Percentage rounded to two decimals; 0 when there is nothing to score."""
    if max_total_marks <= 0:
        return 0
    return round(100 * total_marks / max_total_marks, 2)


def zero_evaluation(
    pairs: List[QuestionAnswerPair],
    max_marks_per_question: float,
    overall_feedback: str,
    feedback: str = "Evaluation unavailable.",
) -> VivaEvaluation:
    """All-zero evaluation covering every pair."""
    return VivaEvaluation(
        marks=[
            QuestionMark(
                question_number=p.question_number,
                question=p.question,
                answer=p.answer,
                marks=0,
                max_marks=max_marks_per_question,
            )
            for p in pairs
        ],
        feedback=[QuestionFeedback(question_number=p.question_number, feedback=feedback) for p in pairs],
        total_marks=0,
        max_total_marks=len(pairs) * max_marks_per_question,
        percentage=0,
        overall_feedback=overall_feedback,
    )
