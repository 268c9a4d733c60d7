"""
Payload locator for VAPI call-completion events.

VAPI (and proxies in front of it) nest the call and artifact objects in
different places depending on event version. The locator checks the known
locations in order and parses the first hit into typed records.
"""
from typing import Any, Optional, Tuple

from viva_backend.models.vapi import (
    ArtifactRecord,
    CallRecord,
    LocatedPayload,
    WebhookMessage,
)

# Probe order matters: first non-empty object wins.
CALL_PATHS: Tuple[Tuple[str, ...], ...] = (
    ("message", "call"),
    ("call",),
    ("data", "call"),
    ("event", "call"),
)

ARTIFACT_PATHS: Tuple[Tuple[str, ...], ...] = (
    ("message", "artifact"),
    ("artifact",),
    ("data", "artifact"),
)


def _dig(raw: dict, path: Tuple[str, ...]) -> Optional[dict]:
    node: Any = raw
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    if isinstance(node, dict) and node:
        return node
    return None


def _first(raw: dict, paths: Tuple[Tuple[str, ...], ...]) -> Optional[dict]:
    for path in paths:
        found = _dig(raw, path)
        if found is not None:
            return found
    return None


def locate(raw: Any) -> LocatedPayload:
    """Project a raw webhook body onto typed call/artifact/message records.

    Never raises: a body with no recognizable call yields ``call=None`` and the
    caller decides how to respond.
    """
    if not isinstance(raw, dict):
        return LocatedPayload()

    message_raw = raw.get("message") if isinstance(raw.get("message"), dict) else {}
    message = WebhookMessage.model_validate(message_raw)

    message_type = message.type
    if message_type is None and isinstance(raw.get("type"), str):
        message_type = raw["type"]

    call_raw = _first(raw, CALL_PATHS)
    artifact_raw = _first(raw, ARTIFACT_PATHS)

    return LocatedPayload(
        call=CallRecord.model_validate(call_raw) if call_raw is not None else None,
        artifact=ArtifactRecord.model_validate(artifact_raw) if artifact_raw is not None else None,
        message=message,
        message_type=message_type,
    )
