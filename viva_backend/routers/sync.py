"""
Results backfill router.

Pulls recent calls from the VAPI API and runs every ended call through the
same pipeline as the webhook. Already-stored calls are reported as
already_synced, so the endpoint is safe to call repeatedly.
"""
import logging

from fastapi import APIRouter, Depends, Query

from viva_backend.dependencies import get_processing_service, get_vapi_service
from viva_backend.services import VapiService, VivaProcessingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Results Sync"])


@router.get("/sync-results")
async def sync_results(
    limit: int = Query(20, ge=1, le=100),
    vapi: VapiService = Depends(get_vapi_service),
    service: VivaProcessingService = Depends(get_processing_service),
):
    """Store results for recent VAPI calls that are missing from the sheet."""
    calls = await vapi.list_calls(limit=limit)

    results = []
    for call in calls:
        results.append(await service.sync_call(call))

    summary = {
        "total": len(results),
        "newlySynced": sum(1 for r in results if r["status"] == "synced"),
        "alreadySynced": sum(1 for r in results if r["status"] == "already_synced"),
        "skipped": sum(1 for r in results if r["status"] == "skipped"),
        "errors": sum(1 for r in results if r["status"] == "error"),
    }
    logger.info(f"Results sync complete: {summary}")
    return {"success": True, "summary": summary, "results": results}
