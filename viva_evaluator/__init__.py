"""
Viva Evaluator for scoring student viva transcripts.

This module provides functionality to:
1. Score question/answer pairs with Gemini against a fixed 0-3 rubric
2. Fall back to deterministic length/keyword scoring when the model is unavailable
3. Assemble a complete evaluation with per-question marks and feedback
"""

from .agent import (
    VivaEvaluator,
    QuestionScore,
    ScoringResult,
    build_prompt,
    parse_model_response,
    fallback_score,
    fallback_scoring,
    fallback_overall_feedback,
)

__all__ = [
    "VivaEvaluator",
    "QuestionScore",
    "ScoringResult",
    "build_prompt",
    "parse_model_response",
    "fallback_score",
    "fallback_scoring",
    "fallback_overall_feedback",
]
