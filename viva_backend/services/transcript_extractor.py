"""
Builds a normalized "Speaker: text" transcript from a located call.
"""
from typing import Optional

from viva_backend.models.vapi import ArtifactRecord, CallRecord, WebhookMessage

AI_ROLES = {"bot", "assistant", "ai"}


def _format_messages(artifact: ArtifactRecord) -> str:
    lines = []
    for msg in artifact.messages:
        role = msg.role.lower()
        if role == "system":
            continue
        content = msg.text.strip()
        if not content:
            continue
        label = "AI" if role in AI_ROLES else "Student"
        lines.append(f"{label}: {content}")
    return "\n".join(lines)


def extract_transcript(
    call: Optional[CallRecord],
    artifact: Optional[ArtifactRecord],
    message: Optional[WebhookMessage] = None,
) -> str:
    """
    Return the transcript for a call, preferring the structured message list.

    Falls back to call.transcript, artifact.transcript, then the message
    envelope's transcript. Returns "" when none is available.
    """
    if artifact is not None and artifact.messages:
        return _format_messages(artifact)

    candidates = (
        call.transcript if call else None,
        artifact.transcript if artifact else None,
        message.transcript if message else None,
    )
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate
    return ""
