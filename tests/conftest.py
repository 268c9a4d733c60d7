"""
Pytest fixtures for viva backend tests.

The Google Sheet and admin database are replaced with in-memory fakes and
injected through app.state, so tests run without network access.
"""
from contextlib import asynccontextmanager
from typing import List, Optional

import httpx
import pytest

from viva_backend import config
from viva_backend.models.results import VivaResultRecord
from viva_backend.services import ResultSink, VivaProcessingService
from viva_backend.services.sheets_service import cell_has_call_id
from viva_evaluator import VivaEvaluator


class FakeSheetsStore:
    """In-memory stand-in for GoogleSheetsService."""

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.rows: List[List[str]] = []
        self.schema_checks = 0
        self.append_failures: List[Exception] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def ensure_schema(self) -> None:
        self.schema_checks += 1

    async def call_id_exists(self, call_id: str) -> bool:
        return any(cell_has_call_id(row[-1], call_id) for row in self.rows)

    async def append_row(self, row: List[str]) -> None:
        if self.append_failures:
            raise self.append_failures.pop(0)
        self.rows.append(row)


class FakeResultRepository:
    """In-memory stand-in for VivaResultRepository."""

    def __init__(self, teacher_emails: Optional[dict] = None, fail: bool = False, lock_fails: bool = False):
        self.records = {}
        self.teacher_emails = teacher_emails or {}
        self.fail = fail
        self.lock_fails = lock_fails
        self.locked: List[str] = []

    async def insert_if_absent(self, record: VivaResultRecord) -> bool:
        if self.fail:
            raise ConnectionError("admin db unreachable")
        if record.call_id in self.records:
            return False
        self.records[record.call_id] = record
        return True

    async def find_teacher_email(self, subject: str) -> Optional[str]:
        return self.teacher_emails.get(subject.lower())

    @asynccontextmanager
    async def call_lock(self, call_id: str):
        if self.lock_fails:
            raise ConnectionError("admin db unreachable")
        self.locked.append(call_id)
        yield


class RecordingSleep:
    """Zero-delay sleep that records requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def end_of_call_payload(call_id: str = "call-123", **overrides) -> dict:
    """A realistic end-of-call-report as VAPI sends it."""
    payload = {
        "message": {
            "type": "end-of-call-report",
            "call": {
                "id": call_id,
                "status": "ended",
                "startedAt": "2026-10-19T09:00:00.000Z",
                "endedAt": "2026-10-19T09:05:30.000Z",
                "metadata": {
                    "studentEmail": "Asha@Example.com",
                    "studentName": "Asha Rao",
                    "subject": "Data Structures",
                    "topics": ["Arrays", "Linked Lists"],
                },
            },
            "artifact": {
                "messages": [
                    {"role": "system", "message": "You are a viva examiner."},
                    {"role": "assistant", "message": "What is a linked list?"},
                    {"role": "user", "message": "A linked list is a sequence of nodes where each node points to the next one."},
                ],
                "recordingUrl": "https://storage.vapi.ai/call-123.wav",
            },
        }
    }
    payload["message"].update(overrides)
    return payload


@pytest.fixture
def sheets_store() -> FakeSheetsStore:
    return FakeSheetsStore()


@pytest.fixture
def result_repo() -> FakeResultRepository:
    return FakeResultRepository()


@pytest.fixture
def no_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def processing_service(sheets_store, result_repo, no_sleep) -> VivaProcessingService:
    return VivaProcessingService(
        evaluator=VivaEvaluator(client=None),
        sink=ResultSink(sheets_store, result_repo),
        repository=result_repo,
        sleep=no_sleep,
    )


@pytest.fixture
async def client(processing_service, sheets_store, monkeypatch):
    """Async HTTP client bound to the FastAPI app with fakes on app.state."""
    from app import app

    monkeypatch.setattr(config, "VAPI_WEBHOOK_SECRET", "")
    app.state.db_pool = None
    app.state.sheets_service = sheets_store
    app.state.processing_service = processing_service

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test", timeout=30.0) as client:
        yield client
