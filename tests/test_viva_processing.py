"""
Tests for event classification, metadata resolution and the processing pipeline.
"""
import pytest

from viva_backend.models.results import SaveResult
from viva_backend.models.vapi import CallRecord, WebhookMessage
from viva_backend.services import (
    EventKind,
    ResultSink,
    VivaProcessingService,
    classify_event,
    locate,
    resolve_student_metadata,
)
from viva_evaluator import VivaEvaluator

from conftest import FakeResultRepository, FakeSheetsStore, RecordingSleep, end_of_call_payload


class FlakySink:
    """Sink that fails a given number of times before succeeding."""

    def __init__(self, failures, raise_error=False, retryable=True):
        self.failures = failures
        self.raise_error = raise_error
        self.retryable = retryable
        self.calls = 0

    async def save(self, record):
        self.calls += 1
        if self.calls <= self.failures:
            if self.raise_error:
                raise ConnectionError("sheets timeout")
            return SaveResult(success=False, error="write failed", retryable=self.retryable)
        return SaveResult(success=True)


class ExplodingEvaluator(VivaEvaluator):
    async def evaluate(self, pairs, subject):
        raise RuntimeError("evaluator crashed")


def _service(sink, evaluator=None, repository=None, sleep=None):
    return VivaProcessingService(
        evaluator=evaluator or VivaEvaluator(),
        sink=sink,
        repository=repository,
        sleep=sleep or RecordingSleep(),
    )


class TestClassifyEvent:

    def test_assistant_request(self):
        assert classify_event(locate({"message": {"type": "assistant-request"}})) == EventKind.ASSISTANT_REQUEST

    def test_end_of_call_report(self):
        assert classify_event(locate(end_of_call_payload())) == EventKind.PROCESS

    def test_intermediate_events_are_skipped(self):
        for event_type in ("status-update", "transcript", "speech-update", "conversation-update"):
            payload = {"message": {"type": event_type, "call": {"id": "c", "status": "in-progress"}}}
            assert classify_event(locate(payload)) == EventKind.NON_TERMINAL_EVENT, event_type

    def test_ended_status_on_typed_event_is_processed(self):
        for status in ("ended", "completed", "Ended"):
            payload = {"message": {"type": "status-update", "call": {"id": "c", "status": status}}}
            assert classify_event(locate(payload)) == EventKind.PROCESS, status

    def test_end_of_call_report_with_in_progress_status(self):
        payload = {"message": {"type": "end-of-call-report", "call": {"id": "c", "status": "in-progress"}}}
        assert classify_event(locate(payload)) == EventKind.PROCESS

    def test_untyped_ended_call_is_processed(self):
        assert classify_event(locate({"call": {"id": "c", "status": "ended"}})) == EventKind.PROCESS
        assert classify_event(locate({"data": {"call": {"id": "c", "status": "completed"}}})) == EventKind.PROCESS

    def test_untyped_in_progress_call_is_skipped(self):
        assert classify_event(locate({"call": {"id": "c", "status": "in-progress"}})) == EventKind.NON_TERMINAL_EVENT

    def test_terminal_without_call(self):
        assert classify_event(locate({"message": {"type": "end-of-call-report"}})) == EventKind.NO_CALL_DATA


class TestResolveStudentMetadata:

    def test_defaults(self):
        student = resolve_student_metadata(CallRecord(), WebhookMessage())
        assert student.name == "Unknown"
        assert student.subject == "Unknown Subject"
        assert student.email == ""
        assert student.topics == ""

    def test_priority_order(self):
        call = CallRecord.model_validate({
            "metadata": {"subject": "From call metadata"},
            "assistantOverrides": {
                "metadata": {"subject": "From overrides", "studentName": "Override Name"},
                "variableValues": {"studentEmail": "vars@example.com", "studentName": "Vars Name", "topics": "Graphs"},
            },
            "assistant": {"metadata": {"studentName": "Assistant Name"}},
            "customer": {"email": "customer@example.com", "name": "Customer Name"},
        })
        message = WebhookMessage(metadata={"studentEmail": "message@example.com"})
        student = resolve_student_metadata(call, message)

        assert student.subject == "From call metadata"
        assert student.name == "Override Name"
        assert student.email == "message@example.com"
        assert student.topics == "Graphs"

    def test_empty_values_are_skipped(self):
        call = CallRecord.model_validate({
            "metadata": {"studentName": "  "},
            "customer": {"name": "Customer Name"},
        })
        assert resolve_student_metadata(call, WebhookMessage()).name == "Customer Name"

    def test_topics_list_is_joined(self):
        call = CallRecord.model_validate({"metadata": {"topics": ["Arrays", "Trees"]}})
        assert resolve_student_metadata(call, WebhookMessage()).topics == "Arrays, Trees"

    def test_teacher_email_from_structured_data(self):
        call = CallRecord.model_validate({
            "analysis": {"structuredData": {"teacher_email": "prof@example.com"}},
            "metadata": {"teacherEmail": "meta@example.com"},
        })
        assert resolve_student_metadata(call, WebhookMessage()).teacher_email == "prof@example.com"


class TestSaveRetry:

    @pytest.mark.asyncio
    async def test_retries_once_then_succeeds(self):
        sink = FlakySink(failures=1)
        sleep = RecordingSleep()
        outcome = await _service(sink, sleep=sleep).process_call(locate(end_of_call_payload()))

        assert sink.calls == 2
        assert sleep.calls == [1.0]
        assert outcome.save_result.success

    @pytest.mark.asyncio
    async def test_gives_up_after_two_attempts(self):
        sink = FlakySink(failures=5)
        sleep = RecordingSleep()
        outcome = await _service(sink, sleep=sleep).process_call(locate(end_of_call_payload()))

        assert sink.calls == 2, "Persistence is attempted at most twice"
        assert sleep.calls == [1.0]
        assert not outcome.save_result.success
        assert outcome.to_response()["sheetsSaved"] is False
        assert outcome.to_response()["success"] is True

    @pytest.mark.asyncio
    async def test_exceptions_are_retried(self):
        sink = FlakySink(failures=1, raise_error=True)
        outcome = await _service(sink).process_call(locate(end_of_call_payload()))
        assert sink.calls == 2
        assert outcome.save_result.success

    @pytest.mark.asyncio
    async def test_non_retryable_failure_is_not_retried(self):
        sink = FlakySink(failures=5, retryable=False)
        sleep = RecordingSleep()
        await _service(sink, sleep=sleep).process_call(locate(end_of_call_payload()))
        assert sink.calls == 1
        assert sleep.calls == []


class TestProcessCall:

    @pytest.mark.asyncio
    async def test_full_pipeline(self):
        sheets = FakeSheetsStore()
        repo = FakeResultRepository()
        service = _service(ResultSink(sheets, repo), repository=repo)
        outcome = await service.process_call(locate(end_of_call_payload()))

        assert outcome.call_id == "call-123"
        assert len(outcome.evaluation.marks) == 1
        assert 0 <= outcome.evaluation.total_marks <= 3

        row = sheets.rows[0]
        assert row[1] == "Asha Rao"
        assert row[3] == "Data Structures"
        assert row[4] == "Arrays, Linked Lists"
        assert row[9] == "https://storage.vapi.ai/call-123.wav"
        assert "call-123" in row[10]

        stored = repo.records["call-123"]
        assert stored.duration_seconds == 330.0

    @pytest.mark.asyncio
    async def test_unreachable_admin_db_still_stores_to_sheet(self):
        sheets = FakeSheetsStore()
        repo = FakeResultRepository(fail=True, lock_fails=True)
        service = _service(ResultSink(sheets, repo), repository=repo)
        response = (await service.process_call(locate(end_of_call_payload()))).to_response()

        assert response["sheetsSaved"] is True
        assert response["syncStatus"] == "synced"
        assert response["adminDbSaved"] is False
        assert len(sheets.rows) == 1

    @pytest.mark.asyncio
    async def test_evaluator_failure_stores_zero_evaluation(self):
        sheets = FakeSheetsStore()
        service = _service(ResultSink(sheets), evaluator=ExplodingEvaluator())
        outcome = await service.process_call(locate(end_of_call_payload()))

        assert outcome.evaluation.total_marks == 0
        assert len(outcome.evaluation.marks) == 1
        assert len(sheets.rows) == 1, "Transcript is still archived when evaluation fails"

    @pytest.mark.asyncio
    async def test_missing_transcript_still_stored(self):
        sheets = FakeSheetsStore()
        payload = {"message": {"type": "end-of-call-report", "call": {"id": "quiet-call"}}}
        outcome = await _service(ResultSink(sheets)).process_call(locate(payload))

        assert sheets.rows[0][8] == "-"
        assert outcome.evaluation.overall_feedback == "No questions answered."
        assert len(sheets.rows) == 1

    @pytest.mark.asyncio
    async def test_missing_call_id_gets_generated_key(self):
        sheets = FakeSheetsStore()
        payload = {"message": {"type": "end-of-call-report", "call": {"status": "ended"}}}
        outcome = await _service(ResultSink(sheets)).process_call(locate(payload))
        assert outcome.call_id.startswith("unknown-")

    @pytest.mark.asyncio
    async def test_teacher_email_lookup(self):
        repo = FakeResultRepository(teacher_emails={"data structures": "teacher@example.com"})
        service = _service(ResultSink(FakeSheetsStore(), repo), repository=repo)
        await service.process_call(locate(end_of_call_payload()))
        assert repo.records["call-123"].student.teacher_email == "teacher@example.com"


class TestSyncCall:

    @pytest.mark.asyncio
    async def test_statuses(self):
        sheets = FakeSheetsStore()
        service = _service(ResultSink(sheets))
        call = {
            "id": "api-call",
            "status": "ended",
            "artifact": {"messages": [
                {"role": "assistant", "message": "What is a queue?"},
                {"role": "user", "message": "First in, first out."},
            ]},
        }

        assert (await service.sync_call(call))["status"] == "synced"
        assert (await service.sync_call(call))["status"] == "already_synced"
        assert (await service.sync_call({"id": "live", "status": "in-progress"}))["status"] == "skipped"
        assert (await service.sync_call({"id": "empty", "status": "ended"}))["status"] == "skipped"
        assert len(sheets.rows) == 1
