"""
Viva evaluator: scores question/answer pairs with Gemini, falling back to a
deterministic length/keyword heuristic when the model is unavailable or its
response cannot be used.
"""

from dataclasses import dataclass, field
from typing import Optional
import json
import logging
import re

from google import genai
from google.genai import types
from pydantic import BaseModel, ValidationError

from viva_backend.config import GEMINI_MODEL, MAX_MARKS_PER_QUESTION
from viva_backend.exceptions import EvaluationError
from viva_backend.models.viva import (
    QuestionAnswerPair,
    QuestionFeedback,
    QuestionMark,
    VivaEvaluation,
    compute_percentage,
    zero_evaluation,
)

logger = logging.getLogger(__name__)

NO_QUESTIONS_FEEDBACK = "No questions answered."
MISSING_SCORE_FEEDBACK = "Unable to evaluate"

UNCERTAINTY_PHRASES = ("don't know", "not sure")


# =============================================================================
# Data Classes for Results
# =============================================================================

@dataclass
class QuestionScore:
    """Score for a single question, from either the model or the fallback."""
    question_number: int
    marks: float
    feedback: str
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)


@dataclass
class ScoringResult:
    """Per-question scores plus overall feedback."""
    scores: list[QuestionScore]
    overall_feedback: str
    source: str  # "llm" or "fallback"


# =============================================================================
# Model Response Contract
# =============================================================================

class _ModelQuestionEvaluation(BaseModel):
    questionNumber: int
    marks: float
    maxMarks: Optional[float] = None
    feedback: str
    strengths: list[str] = []
    weaknesses: list[str] = []


class _ModelEvaluationResponse(BaseModel):
    evaluations: list[_ModelQuestionEvaluation]
    overallFeedback: str


INSTRUCTION = """You are a fair but strict examiner evaluating a student's viva voce (oral examination) in {subject}.

You are evaluating the TRANSCRIBED TEXT of the student's answers. Focus on the content and meaning of what
the student said. Do not penalize transcription errors, filler words or speech disfluencies.

## SCORING
Assign each answer a score from 0 to {max_marks}:
- 0: No answer, or completely incorrect
- 1: Partial understanding with major gaps
- 2: Good understanding with minor gaps
- 3: Excellent, complete and accurate answer
{scale_note}
## FEEDBACK
For every answer give 2-3 sentences of specific, constructive feedback, and list up to 3 strengths and
up to 3 weaknesses. Then write a 3-5 sentence overall summary with concrete study recommendations.

## OUTPUT FORMAT
Respond with ONLY valid JSON in exactly this shape:
{{
  "evaluations": [
    {{
      "questionNumber": 1,
      "marks": <0-{max_marks}>,
      "maxMarks": {max_marks},
      "feedback": "<feedback>",
      "strengths": ["<strength>"],
      "weaknesses": ["<weakness>"]
    }}
  ],
  "overallFeedback": "<summary>"
}}
"""


def build_prompt(pairs: list[QuestionAnswerPair], subject: str, max_marks: float) -> str:
    """Build the scoring prompt for all pairs."""
    scale_note = ""
    if max_marks != 3:
        scale_note = f"Scale these bands proportionally to the 0-{max_marks:g} range.\n"

    qa_text = "\n\n".join(
        f"Question {p.question_number}: {p.question}\n"
        f"Student's Answer: {p.answer or '(No answer provided)'}"
        for p in pairs
    )
    instruction = INSTRUCTION.format(subject=subject, max_marks=f"{max_marks:g}", scale_note=scale_note)
    return f"{instruction}\n## QUESTIONS AND ANSWERS\n{qa_text}"


def parse_model_response(response_text: str, max_marks: float) -> ScoringResult:
    """
    Parse and validate the model's JSON answer.

    Raises EvaluationError on anything other than a complete, in-range result.
    """
    json_match = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", response_text)
    if json_match:
        json_str = json_match.group(1)
    else:
        json_str = response_text.strip()

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise EvaluationError(f"Model returned invalid JSON: {e}", {"response": response_text[:500]})

    try:
        parsed = _ModelEvaluationResponse.model_validate(data)
    except ValidationError as e:
        raise EvaluationError(f"Model response does not match contract: {e.error_count()} errors")

    scores = []
    for item in parsed.evaluations:
        if not 0 <= item.marks <= max_marks:
            raise EvaluationError(
                f"Marks out of range for question {item.questionNumber}: {item.marks}"
            )
        scores.append(
            QuestionScore(
                question_number=item.questionNumber,
                marks=item.marks,
                feedback=item.feedback,
                strengths=item.strengths,
                weaknesses=item.weaknesses,
            )
        )
    return ScoringResult(scores=scores, overall_feedback=parsed.overallFeedback, source="llm")


# =============================================================================
# Deterministic Fallback
# =============================================================================

def fallback_score(answer: str, max_marks: float = MAX_MARKS_PER_QUESTION) -> float:
    """
    Score an answer by length on a 0-3 band, scaled to max_marks.

    Answers admitting uncertainty are capped at the lowest non-zero band.
    """
    length = len(answer or "")
    if length == 0:
        band = 0
    elif length < 50:
        band = 1
    elif length < 150:
        band = 2
    else:
        band = 3

    lower = (answer or "").lower()
    if any(phrase in lower for phrase in UNCERTAINTY_PHRASES):
        band = min(band, 1)

    if max_marks == 3:
        return band
    return round(band * max_marks / 3)


def fallback_question_feedback(band_fraction: float) -> str:
    if band_fraction <= 0:
        return "No answer or completely incorrect. Please review this topic thoroughly."
    elif band_fraction < 0.5:
        return "Partial understanding shown. Add more detail and correct the key concepts."
    elif band_fraction < 1:
        return "Good understanding with some gaps. Elaborate with examples and connections."
    return "Excellent, detailed answer."


def fallback_overall_feedback(percentage: float, question_count: int) -> str:
    """Overall feedback from four fixed percentage bands."""
    if percentage >= 80:
        return (
            f"Excellent performance! You answered {question_count} questions with strong "
            "understanding of the subject. Keep building on these strengths."
        )
    elif percentage >= 60:
        return (
            f"Good performance. You answered {question_count} questions and showed a solid "
            "foundation. Add more detailed explanations and examples to improve further."
        )
    elif percentage >= 40:
        return (
            f"Fair performance. You answered {question_count} questions with some understanding, "
            "but your answers need more depth. Review the fundamentals and practice explaining them."
        )
    return (
        f"Needs improvement. You answered {question_count} questions, but the responses lacked "
        "detail and understanding. Review the core concepts thoroughly before your next attempt."
    )


def fallback_scoring(pairs: list[QuestionAnswerPair], max_marks: float) -> ScoringResult:
    scores = []
    for p in pairs:
        marks = fallback_score(p.answer, max_marks)
        fraction = marks / max_marks if max_marks else 0
        scores.append(
            QuestionScore(
                question_number=p.question_number,
                marks=marks,
                feedback=fallback_question_feedback(fraction),
                strengths=["Provided a response"] if fraction >= 0.5 else [],
                weaknesses=["Answer could be more detailed"] if fraction < 1 else [],
            )
        )
    total = sum(s.marks for s in scores)
    percentage = compute_percentage(total, len(pairs) * max_marks)
    return ScoringResult(
        scores=scores,
        overall_feedback=fallback_overall_feedback(percentage, len(pairs)),
        source="fallback",
    )


# =============================================================================
# Evaluator
# =============================================================================

class VivaEvaluator:
    """Scores viva question/answer pairs.

    Uses Gemini when a client is provided, otherwise (or when the model call
    fails in any way) the deterministic fallback.
    """

    def __init__(
        self,
        client: Optional[genai.Client] = None,
        model: str = GEMINI_MODEL,
        max_marks_per_question: float = MAX_MARKS_PER_QUESTION,
    ):
        self.client = client
        self.model = model
        self.max_marks_per_question = max_marks_per_question

    async def evaluate(self, pairs: list[QuestionAnswerPair], subject: str) -> VivaEvaluation:
        if not pairs:
            return zero_evaluation([], self.max_marks_per_question, NO_QUESTIONS_FEEDBACK)

        logger.info(f"Evaluating {len(pairs)} Q&A pairs for subject: {subject or 'General'}")

        result = None
        if self.client is not None:
            try:
                result = await self._score_with_model(pairs, subject or "General")
            except Exception as e:
                logger.warning(f"Model evaluation failed, using fallback: {e}")
        else:
            logger.info("No evaluation model configured, using fallback scoring")

        if result is None:
            result = fallback_scoring(pairs, self.max_marks_per_question)

        return self._assemble(pairs, result)

    async def _score_with_model(self, pairs: list[QuestionAnswerPair], subject: str) -> ScoringResult:
        prompt = build_prompt(pairs, subject, self.max_marks_per_question)
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=[types.Content(role="user", parts=[types.Part(text=prompt)])],
            config=types.GenerateContentConfig(
                temperature=0.1,
                max_output_tokens=4096,
                response_mime_type="application/json",
            ),
        )

        response_text = ""
        if response and response.candidates:
            for part in response.candidates[0].content.parts or []:
                # Thinking parts would corrupt JSON parsing
                if getattr(part, "thought", False):
                    continue
                if getattr(part, "text", None):
                    response_text += part.text

        if not response_text:
            raise EvaluationError("Empty response from evaluation model")

        logger.debug(f"Raw model response: {response_text[:1000]}")
        return parse_model_response(response_text, self.max_marks_per_question)

    def _assemble(self, pairs: list[QuestionAnswerPair], result: ScoringResult) -> VivaEvaluation:
        by_number = {s.question_number: s for s in result.scores}
        max_marks = self.max_marks_per_question

        marks = []
        feedback = []
        for p in pairs:
            score = by_number.get(p.question_number)
            if score is None:
                score = QuestionScore(question_number=p.question_number, marks=0, feedback=MISSING_SCORE_FEEDBACK)
            marks.append(
                QuestionMark(
                    question_number=p.question_number,
                    question=p.question,
                    answer=p.answer,
                    marks=score.marks,
                    max_marks=max_marks,
                )
            )
            feedback.append(
                QuestionFeedback(
                    question_number=p.question_number,
                    feedback=score.feedback,
                    strengths=score.strengths or None,
                    weaknesses=score.weaknesses or None,
                )
            )

        total = sum(m.marks for m in marks)
        max_total = len(pairs) * max_marks
        return VivaEvaluation(
            marks=marks,
            feedback=feedback,
            total_marks=total,
            max_total_marks=max_total,
            percentage=compute_percentage(total, max_total),
            overall_feedback=result.overall_feedback,
        )

