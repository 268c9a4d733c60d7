"""
FastAPI dependency injection factories.

Long-lived clients are created once in the application lifespan and stored on
app.state; these factories hand them to routers.
"""
from typing import Optional

import asyncpg
from fastapi import Request

from viva_backend.services import GoogleSheetsService, VapiService, VivaProcessingService


def get_pool(request: Request) -> Optional[asyncpg.Pool]:
    """Get the admin database pool (None when not configured)."""
    return getattr(request.app.state, "db_pool", None)


def get_processing_service(request: Request) -> VivaProcessingService:
    return request.app.state.processing_service


def get_sheets_service(request: Request) -> GoogleSheetsService:
    return request.app.state.sheets_service


def get_vapi_service(request: Request) -> VapiService:
    return request.app.state.vapi_service
