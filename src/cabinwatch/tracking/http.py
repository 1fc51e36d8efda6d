"""Tracking API snapshot source.

Polls the shipboard tracking backend, which wraps every answer in a
``{"success": bool, "data": ...}`` envelope.
"""

import logging
from typing import Any

import httpx

from cabinwatch.tracking.base import SnapshotSource, TrackingError

logger = logging.getLogger(__name__)

DATA_PATH = "/api/tracking/data"


class HttpTrackingSource(SnapshotSource):
    """Fetches device snapshots from the tracking HTTP API."""

    name = "http"

    def __init__(self, base_url: str, timeout: float = 15.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def fetch(self) -> dict[str, Any]:
        logger.debug("Fetching tracking data from %s%s", self.base_url, DATA_PATH)
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Accept": "application/json"},
            ) as client:
                resp = await client.get(DATA_PATH)
                resp.raise_for_status()
                body = resp.json()
        except httpx.HTTPStatusError as e:
            raise TrackingError(f"Tracking API returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise TrackingError(f"Tracking API request failed: {e}") from e
        except ValueError as e:
            raise TrackingError("Tracking API returned invalid JSON") from e

        if not isinstance(body, dict) or not body.get("success"):
            raise TrackingError("Tracking API reported failure")
        data = body.get("data")
        if not isinstance(data, dict) or not isinstance(data.get("devices", []), list):
            raise TrackingError("Tracking API response has no device list")
        return data
