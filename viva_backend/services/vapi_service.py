"""
VAPI Service - reads completed calls from the VAPI REST API.

Used by the results backfill to pick up calls whose webhook never arrived.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

import httpx

from viva_backend import config
from viva_backend.exceptions import VapiApiError

logger = logging.getLogger(__name__)


def normalize_api_key(value: str) -> str:
    """Accept both "key" and "NAME=key" (as pasted from some dashboards)."""
    value = (value or "").strip()
    if "=" in value:
        value = value.split("=", 1)[1].strip()
    return value


@dataclass
class VapiConfig:
    """VAPI API configuration from environment variables."""
    api_key: str
    base_url: str = "https://api.vapi.ai"

    @classmethod
    def from_env(cls) -> "VapiConfig":
        """Load configuration from environment variables."""
        api_key = normalize_api_key(config.VAPI_PRIVATE_KEY)
        if not api_key:
            logger.warning("VAPI_PRIVATE_KEY not set, results backfill is disabled")
        return cls(api_key=api_key, base_url=config.VAPI_API_BASE.rstrip("/"))


class VapiService:
    """Minimal VAPI REST client."""

    def __init__(self, vapi_config: Optional[VapiConfig] = None, timeout: float = 30.0):
        self.config = vapi_config or VapiConfig.from_env()
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    async def list_calls(self, limit: int = 20) -> List[dict]:
        """Fetch the most recent calls."""
        if not self.is_configured:
            raise VapiApiError("VAPI_PRIVATE_KEY is not configured", status_code=503)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(
                f"{self.config.base_url}/call",
                params={"limit": limit},
                headers={"Authorization": f"Bearer {self.config.api_key}"},
            )

        if response.status_code != 200:
            logger.error(f"VAPI list calls failed: {response.status_code} - {response.text[:500]}")
            raise VapiApiError(f"VAPI API returned {response.status_code}")

        data = response.json()
        # The API returns a bare list; some versions wrap it in {"results": [...]}
        if isinstance(data, dict):
            data = data.get("results") or data.get("calls") or []
        calls = [c for c in data if isinstance(c, dict)]
        logger.info(f"Fetched {len(calls)} calls from VAPI")
        return calls
