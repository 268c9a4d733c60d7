"""
Persisted viva result models.
"""
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from .viva import VivaEvaluation


class StudentMetadata(BaseModel):
    """Student details resolved from the call metadata."""
    name: str = "Unknown"
    email: str = ""
    subject: str = "Unknown Subject"
    topics: str = ""
    teacher_email: Optional[str] = None


class VivaResultRecord(BaseModel):
    """One stored result per call. Created once, never updated."""
    call_id: str
    timestamp: datetime
    student: StudentMetadata
    evaluation: VivaEvaluation
    transcript: str = ""
    recording_url: Optional[str] = None
    duration_seconds: Optional[float] = None

    def evaluation_json(self) -> str:
        """Evaluation JSON with the call id embedded, used for duplicate detection."""
        payload = {"callId": self.call_id, **self.evaluation.model_dump(by_alias=True)}
        return json.dumps(payload, ensure_ascii=False)


@dataclass
class SaveResult:
    """Outcome of a result sink save."""
    success: bool
    error: Optional[str] = None
    retryable: bool = True
    admin_db_saved: bool = False

    ALREADY_EXISTS = "already exists"

    @property
    def already_exists(self) -> bool:
        return self.success and self.error == self.ALREADY_EXISTS

    @property
    def sync_status(self) -> str:
        """Status label: synced, already_synced or error."""
        if not self.success:
            return "error"
        return "already_synced" if self.already_exists else "synced"
