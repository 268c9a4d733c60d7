"""
VAPI webhook payload models.

VAPI delivers call events in several nesting shapes and is loose about field
types. These models are the typed boundary: values of an unexpected JSON type
are dropped to their empty default instead of failing validation, so that
downstream code only ever sees well-typed records.
"""
from typing import Any, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_timestamp(value: Any) -> Optional[Union[str, int, float]]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (str, int, float)):
        return value
    return None


class _LenientModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ArtifactMessage(_LenientModel):
    """Single message in a call artifact."""
    role: str = ""  # "system", "user", "assistant", "bot", ...
    content: Optional[str] = None
    message: Optional[str] = None  # Alternative field name used by VAPI
    raw_text: Optional[str] = Field(None, alias="text")
    secondsFromStart: Optional[float] = None

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, v):
        return _as_str(v) or ""

    @field_validator("content", "message", "raw_text", mode="before")
    @classmethod
    def _text_fields(cls, v):
        return _as_str(v)

    @field_validator("secondsFromStart", mode="before")
    @classmethod
    def _seconds(cls, v):
        return v if isinstance(v, (int, float)) and not isinstance(v, bool) else None

    @property
    def text(self) -> str:
        """Get message text from 'content', 'message' or 'text'."""
        return self.content or self.message or self.raw_text or ""


class CallRecord(_LenientModel):
    """VAPI call object included in webhooks."""
    id: Optional[str] = None
    status: Optional[str] = None  # "queued", "ringing", "in-progress", "ended", ...
    endedReason: Optional[str] = None
    startedAt: Optional[Union[str, int, float]] = None  # ISO string or Unix ms
    endedAt: Optional[Union[str, int, float]] = None
    duration: Optional[float] = None  # seconds
    durationSeconds: Optional[float] = None  # Alias used by some VAPI versions
    metadata: dict = {}
    assistantOverrides: dict = {}
    assistant: dict = {}
    customer: dict = {}
    analysis: dict = {}
    transcript: Optional[str] = None
    recordingUrl: Optional[str] = None

    @field_validator("id", "status", "endedReason", "transcript", "recordingUrl", mode="before")
    @classmethod
    def _strings(cls, v):
        return _as_str(v)

    @field_validator("startedAt", "endedAt", mode="before")
    @classmethod
    def _timestamps(cls, v):
        return _as_timestamp(v)

    @field_validator("duration", "durationSeconds", mode="before")
    @classmethod
    def _durations(cls, v):
        if isinstance(v, bool) or not isinstance(v, (int, float)) or v < 0:
            return None
        return v

    @field_validator("metadata", "assistantOverrides", "assistant", "customer", "analysis", mode="before")
    @classmethod
    def _maps(cls, v):
        return _as_dict(v)

    @property
    def duration_seconds(self) -> Optional[float]:
        return self.duration if self.duration is not None else self.durationSeconds


class ArtifactRecord(_LenientModel):
    """Artifact containing the structured conversation and recording info."""
    messages: List[ArtifactMessage] = []
    transcript: Optional[str] = None
    recordingUrl: Optional[str] = None

    @field_validator("messages", mode="before")
    @classmethod
    def _messages(cls, v):
        if not isinstance(v, list):
            return []
        return [m for m in v if isinstance(m, dict)]

    @field_validator("transcript", "recordingUrl", mode="before")
    @classmethod
    def _strings(cls, v):
        return _as_str(v)


class WebhookMessage(_LenientModel):
    """The top-level 'message' envelope VAPI wraps server events in."""
    type: Optional[str] = None
    status: Optional[str] = None
    transcript: Optional[str] = None
    metadata: dict = {}
    analysis: dict = {}

    @field_validator("type", "status", "transcript", mode="before")
    @classmethod
    def _strings(cls, v):
        return _as_str(v)

    @field_validator("metadata", "analysis", mode="before")
    @classmethod
    def _maps(cls, v):
        return _as_dict(v)


class LocatedPayload(BaseModel):
    """Typed projection of an inbound event."""
    call: Optional[CallRecord] = None
    artifact: Optional[ArtifactRecord] = None
    message: WebhookMessage = WebhookMessage()
    message_type: Optional[str] = None
