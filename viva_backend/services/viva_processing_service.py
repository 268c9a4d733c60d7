"""
Viva processing service - turns a call-completion event into a stored result.

Pipeline per terminal event:
1. Resolve call id and student metadata
2. Extract the transcript and parse it into question/answer pairs
3. Evaluate (an evaluator failure yields an all-zero evaluation)
4. Save through the result sink with a bounded in-request retry
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

from viva_backend import config
from viva_backend.models.results import SaveResult, StudentMetadata, VivaResultRecord
from viva_backend.models.vapi import CallRecord, LocatedPayload, WebhookMessage
from viva_backend.models.viva import VivaEvaluation, zero_evaluation
from viva_backend.repositories.viva_result_repo import VivaResultRepository
from viva_backend.services.payload_locator import locate
from viva_backend.services.result_sink import ResultSink
from viva_backend.services.transcript_extractor import extract_transcript
from viva_backend.services.transcript_parser import parse_transcript
from viva_evaluator import VivaEvaluator

logger = logging.getLogger(__name__)

EVALUATION_FAILED_FEEDBACK = "Automatic evaluation failed. This viva needs manual review."


class EventKind(str, Enum):
    ASSISTANT_REQUEST = "assistant-request"
    NON_TERMINAL_EVENT = "non-terminal"
    NO_CALL_DATA = "no-call-data"
    PROCESS = "process"


def classify_event(located: LocatedPayload) -> EventKind:
    """Decide how an inbound event is handled.

    An event is terminal when its type is in the terminal set or its call
    status says the call ended. Either signal alone can be missing, and
    duplicate deliveries are absorbed by the idempotent save.
    """
    message_type = located.message_type
    if message_type == "assistant-request":
        return EventKind.ASSISTANT_REQUEST

    status = located.call.status if located.call else None
    terminal = (
        message_type in config.TERMINAL_MESSAGE_TYPES
        or (status or "").lower() in config.TERMINAL_CALL_STATUSES
    )

    if not terminal:
        return EventKind.NON_TERMINAL_EVENT
    if located.call is None:
        return EventKind.NO_CALL_DATA
    return EventKind.PROCESS


# =============================================================================
# Metadata resolution
# =============================================================================

MetadataAccessor = Callable[[CallRecord, WebhookMessage], dict]


def _nested_dict(source: dict, key: str) -> dict:
    value = source.get(key)
    return value if isinstance(value, dict) else {}


def _customer_metadata(call: CallRecord, message: WebhookMessage) -> dict:
    return {"studentEmail": call.customer.get("email"), "studentName": call.customer.get("name")}


# Priority order: first non-empty value wins, per field.
METADATA_ACCESSORS: List[MetadataAccessor] = [
    lambda call, message: call.metadata,
    lambda call, message: _nested_dict(call.assistantOverrides, "metadata"),
    lambda call, message: _nested_dict(call.assistant, "metadata"),
    lambda call, message: message.metadata,
    lambda call, message: _nested_dict(call.assistantOverrides, "variableValues"),
    _customer_metadata,
]

METADATA_KEYS = {
    "email": ("studentEmail", "student_email"),
    "name": ("studentName", "student_name"),
    "subject": ("subject",),
    "topics": ("topics",),
    "teacher_email": ("teacherEmail", "teacher_email"),
}


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, list):
        joined = ", ".join(str(v).strip() for v in value if str(v).strip())
        return joined or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def first_metadata_value(call: CallRecord, message: WebhookMessage, keys: tuple) -> Optional[str]:
    for accessor in METADATA_ACCESSORS:
        source = accessor(call, message)
        for key in keys:
            value = _as_text(source.get(key))
            if value:
                return value
    return None


def resolve_student_metadata(call: CallRecord, message: WebhookMessage) -> StudentMetadata:
    values = {field: first_metadata_value(call, message, keys) for field, keys in METADATA_KEYS.items()}

    structured = _nested_dict(call.analysis, "structuredData") or _nested_dict(message.analysis, "structuredData")
    teacher_email = _as_text(structured.get("teacher_email")) or _as_text(structured.get("teacherEmail"))

    return StudentMetadata(
        name=values["name"] or "Unknown",
        email=values["email"] or "",
        subject=values["subject"] or "Unknown Subject",
        topics=values["topics"] or "",
        teacher_email=teacher_email or values["teacher_email"],
    )


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def _duration_seconds(call: CallRecord) -> Optional[float]:
    if call.duration_seconds is not None:
        return call.duration_seconds
    started = _parse_timestamp(call.startedAt)
    ended = _parse_timestamp(call.endedAt)
    if started and ended and ended >= started:
        return (ended - started).total_seconds()
    return None


# =============================================================================
# Service
# =============================================================================

@dataclass
class ProcessingOutcome:
    """Result of running one call through the pipeline."""
    call_id: str
    evaluation: VivaEvaluation
    save_result: SaveResult

    def to_response(self) -> dict:
        return {
            "success": True,
            "callId": self.call_id,
            "evaluation": self.evaluation.summary().model_dump(by_alias=True),
            "sheetsSaved": self.save_result.success,
            "syncStatus": self.save_result.sync_status,
            "adminDbSaved": self.save_result.admin_db_saved,
        }


class VivaProcessingService:
    """Orchestrates locate -> extract -> parse -> evaluate -> save."""

    def __init__(
        self,
        evaluator: VivaEvaluator,
        sink: ResultSink,
        repository: Optional[VivaResultRepository] = None,
        max_attempts: int = config.SAVE_MAX_ATTEMPTS,
        retry_delay: float = config.SAVE_RETRY_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.evaluator = evaluator
        self.sink = sink
        self.repository = repository
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.sleep = sleep

    async def handle_event(self, raw: Any) -> dict:
        """Handle one webhook body and return the JSON response body."""
        located = locate(raw)
        kind = classify_event(located)

        if kind == EventKind.ASSISTANT_REQUEST:
            return {}

        if kind == EventKind.NON_TERMINAL_EVENT:
            logger.debug(f"Skipping non-terminal VAPI event: type={located.message_type}")
            return {"received": True, "type": located.message_type, "skipped": True}

        if kind == EventKind.NO_CALL_DATA:
            logger.warning(f"Terminal VAPI event without call data: type={located.message_type}")
            return {"received": True, "note": "No call data to process"}

        outcome = await self.process_call(located)
        return outcome.to_response()

    async def process_call(self, located: LocatedPayload) -> ProcessingOutcome:
        call = located.call or CallRecord()
        call_id = call.id or f"unknown-{int(time.time() * 1000)}"
        if not call.id:
            logger.warning(f"Call has no id, using generated key {call_id}")

        student = resolve_student_metadata(call, located.message)
        if not student.teacher_email:
            student.teacher_email = await self._lookup_teacher_email(student.subject)

        transcript = extract_transcript(call, located.artifact, located.message)
        if not transcript:
            logger.warning(f"No transcript for call {call_id}, storing metadata only")

        pairs = parse_transcript(transcript)
        logger.info(f"Call {call_id}: {len(pairs)} Q&A pairs parsed for {student.email or student.name}")

        try:
            evaluation = await self.evaluator.evaluate(pairs, student.subject)
        except Exception as e:
            logger.error(f"Evaluation failed for call {call_id}: {e}", exc_info=True)
            evaluation = zero_evaluation(
                pairs, self.evaluator.max_marks_per_question, EVALUATION_FAILED_FEEDBACK
            )

        recording_url = (located.artifact.recordingUrl if located.artifact else None) or call.recordingUrl
        record = VivaResultRecord(
            call_id=call_id,
            timestamp=_parse_timestamp(call.endedAt) or datetime.now(timezone.utc),
            student=student,
            evaluation=evaluation,
            transcript=transcript,
            recording_url=recording_url,
            duration_seconds=_duration_seconds(call),
        )

        save_result = await self.save_with_retry(record)
        return ProcessingOutcome(
            call_id=call_id,
            evaluation=evaluation,
            save_result=save_result,
        )

    async def save_with_retry(self, record: VivaResultRecord) -> SaveResult:
        """Save with up to max_attempts tries and a fixed delay between them."""
        result = SaveResult(success=False, error="not attempted")
        for attempt in range(1, self.max_attempts + 1):
            try:
                result = await self.sink.save(record)
            except Exception as e:
                logger.warning(f"Save attempt {attempt} for call {record.call_id} raised: {e}", exc_info=True)
                result = SaveResult(success=False, error=str(e))

            if result.success or not result.retryable:
                break
            if attempt < self.max_attempts:
                logger.info(f"Retrying save for call {record.call_id} in {self.retry_delay}s")
                await self.sleep(self.retry_delay)

        if not result.success:
            logger.error(f"Failed to save result for call {record.call_id}: {result.error}")
        return result

    async def _lookup_teacher_email(self, subject: str) -> Optional[str]:
        if self.repository is None or subject == "Unknown Subject":
            return None
        try:
            return await self.repository.find_teacher_email(subject)
        except Exception as e:
            logger.warning(f"Teacher email lookup failed for subject '{subject}': {e}")
            return None

    async def sync_call(self, call: dict) -> dict:
        """Run one call fetched from the VAPI API through the pipeline."""
        call_id = call.get("id") or "unknown"
        status = call.get("status")
        if status != "ended":
            return {"callId": call_id, "status": "skipped", "result": f"Call status: {status}"}

        located = locate({
            "message": {
                "type": "end-of-call-report",
                "call": call,
                "artifact": call.get("artifact") or {},
                "analysis": call.get("analysis") or {},
            }
        })
        if not extract_transcript(located.call, located.artifact, located.message):
            return {"callId": call_id, "status": "skipped", "result": "No transcript"}

        try:
            outcome = await self.process_call(located)
        except Exception as e:
            logger.error(f"Sync failed for call {call_id}: {e}", exc_info=True)
            return {"callId": call_id, "status": "error", "result": str(e)}

        if not outcome.save_result.success:
            return {"callId": call_id, "status": "error", "result": outcome.save_result.error}
        return {
            "callId": call_id,
            "status": outcome.save_result.sync_status,
            "result": outcome.evaluation.summary().model_dump(by_alias=True),
        }
