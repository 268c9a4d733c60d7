"""
VAPI Webhook Router - handles viva call-completion events.

VAPI posts many server events per call (status updates, partial transcripts,
assistant requests, the end-of-call report). Only the terminal event is
scored and stored; everything else is acknowledged.
"""
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from viva_backend import config
from viva_backend.dependencies import get_processing_service
from viva_backend.exceptions import InvalidSignatureError
from viva_backend.services import VivaProcessingService
from viva_backend.utils.signature import verify_signature

logger = logging.getLogger(__name__)

router = APIRouter(tags=["VAPI Webhooks"])

VIVA_COMPLETE_PATH = "/api/viva-complete"


def verify_vapi_signature(body: bytes, signature: Optional[str]) -> None:
    """
    Verify the X-Vapi-Signature header (hex HMAC-SHA256 of the raw body).

    Raises InvalidSignatureError when a secret is configured and the header is
    missing or wrong.
    """
    if not config.VAPI_WEBHOOK_SECRET:
        logger.debug("VAPI_WEBHOOK_SECRET not set, skipping signature validation")
        return

    if not signature:
        logger.warning("No X-Vapi-Signature header provided")
        raise InvalidSignatureError()

    if not verify_signature(config.VAPI_WEBHOOK_SECRET, body, signature):
        logger.warning("X-Vapi-Signature mismatch")
        raise InvalidSignatureError()


@router.post(VIVA_COMPLETE_PATH)
@router.post("/vapi/events")
async def viva_complete(
    request: Request,
    x_vapi_signature: Optional[str] = Header(None, alias="X-Vapi-Signature"),
    service: VivaProcessingService = Depends(get_processing_service),
):
    """
    Handle VAPI webhook events.

    - assistant-request: answered with an empty body
    - end-of-call-report (or an untyped event for an ended call): scored and stored
    - anything else: acknowledged and skipped
    """
    body = await request.body()
    verify_vapi_signature(body, x_vapi_signature)

    body_str = body.decode("utf-8", errors="replace")
    if len(body_str) > config.PAYLOAD_LOG_CHARS:
        body_str = body_str[:config.PAYLOAD_LOG_CHARS] + "... [truncated]"
    logger.debug(f"[viva-complete] payload: {body_str}")

    try:
        payload = json.loads(body) if body else None
    except ValueError as e:
        logger.warning(f"Unparseable VAPI webhook body: {e}")
        return {"received": True, "note": "Invalid JSON body"}

    try:
        return await service.handle_event(payload)
    except Exception as e:
        logger.error(f"Error processing viva completion: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": "Failed to process viva completion"},
        )


@router.get(VIVA_COMPLETE_PATH)
async def viva_complete_status():
    """Liveness check for the webhook endpoint."""
    return {
        "status": "ok",
        "endpoint": VIVA_COMPLETE_PATH,
        "message": "Viva completion webhook is active. Send POST requests with VAPI call data.",
    }
