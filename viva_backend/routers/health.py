"""
Health check router with admin database and Sheets configuration status.
"""
import logging
from typing import Optional

import asyncpg
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from viva_backend.dependencies import get_pool, get_sheets_service
from viva_backend.services import GoogleSheetsService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(
    pool: Optional[asyncpg.Pool] = Depends(get_pool),
    sheets: GoogleSheetsService = Depends(get_sheets_service),
):
    """Health check endpoint.

    Returns 503 if the admin database is configured but unreachable.
    """
    status = {
        "status": "healthy",
        "service": "viva-backend",
        "sheets": "configured" if sheets.is_configured else "not_configured",
        "database": "disabled",
    }
    if pool is None:
        return status

    try:
        await pool.fetchval("SELECT 1")
        status["database"] = "connected"
        return status
    except Exception as e:
        logger.error(f"Health check: admin database unreachable: {e}")
        status.update({"status": "unhealthy", "database": "unreachable"})
        return JSONResponse(status_code=503, content=status)
