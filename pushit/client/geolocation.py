"""Best-effort country lookup for hold sessions.

The label is only shown in "holders by location" statistics, so every
failure degrades to "Unknown" instead of blocking a hold.
"""
from typing import Optional

import httpx
import structlog

from pushit.core import config
from pushit.core.constants import UNKNOWN_LOCATION
from pushit.core.sanitization import sanitize_location_label

logger = structlog.get_logger(__name__)


async def detect_country(
    url: Optional[str] = None,
    timeout: Optional[float] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> str:
    """Country name of the caller's public IP, or "Unknown"."""
    url = url or config.settings.GEOLOCATION_URL
    timeout = timeout if timeout is not None else config.settings.GEOLOCATION_TIMEOUT

    client = http_client or httpx.AsyncClient(timeout=timeout)
    try:
        response = await client.get(url, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.debug("geolocation_failed", error=str(e))
        return UNKNOWN_LOCATION
    finally:
        if http_client is None:
            await client.aclose()

    if not isinstance(data, dict):
        return UNKNOWN_LOCATION
    return sanitize_location_label(data.get("country_name") or data.get("country"))
