"""
Pydantic models for webhook payloads, evaluations and stored results.
"""
from .vapi import (
    ArtifactMessage,
    ArtifactRecord,
    CallRecord,
    LocatedPayload,
    WebhookMessage,
)
from .viva import (
    EvaluationSummary,
    QuestionAnswerPair,
    QuestionFeedback,
    QuestionMark,
    VivaEvaluation,
    compute_percentage,
    zero_evaluation,
)
from .results import SaveResult, StudentMetadata, VivaResultRecord

__all__ = [
    "ArtifactMessage",
    "ArtifactRecord",
    "CallRecord",
    "LocatedPayload",
    "WebhookMessage",
    "EvaluationSummary",
    "QuestionAnswerPair",
    "QuestionFeedback",
    "QuestionMark",
    "VivaEvaluation",
    "compute_percentage",
    "zero_evaluation",
    "SaveResult",
    "StudentMetadata",
    "VivaResultRecord",
]
