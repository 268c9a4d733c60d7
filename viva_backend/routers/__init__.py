"""
API routers.
"""
from .health import router as health_router
from .sync import router as sync_router
from .vapi import router as vapi_router

__all__ = ["health_router", "sync_router", "vapi_router"]
