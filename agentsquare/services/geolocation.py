"""Best-effort nickname lookup from a client's network address."""

import asyncio
import logging
import os

import httpx

from agentsquare.utils.network import is_private_address

logger = logging.getLogger(__name__)

DEFAULT_GEOLOCATION_URL = "http://ip-api.com/json/{ip}"
LOCAL_NICKNAME = "Local user"
FALLBACK_NICKNAME = "Mysterious visitor"


def nickname_for_location(data: object) -> str | None:
    """Build 'Friend from {place}' from a geolocation response."""
    if not isinstance(data, dict) or data.get("status") not in (None, "success"):
        return None
    place = data.get("city") or data.get("regionName") or data.get("country")
    if not isinstance(place, str) or not place.strip():
        return None
    return f"Friend from {place.strip()}"


class GeolocationAdapter:
    """Derives a display nickname for a new chat participant.

    Args:
        transport: Optional httpx transport override.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def nickname_for(self, ip: str, timeout: float) -> str:
        """Return a nickname for ``ip``; never raises."""
        if is_private_address(ip):
            return LOCAL_NICKNAME

        url_template = (
            os.environ.get("AGENTSQUARE_GEOLOCATION_URL", "").strip() or DEFAULT_GEOLOCATION_URL
        )
        url = url_template.format(ip=ip)
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await asyncio.wait_for(client.get(url), timeout=timeout)
            if not response.is_success:
                logger.info("Geolocation lookup returned %d", response.status_code)
                return FALLBACK_NICKNAME
            nickname = nickname_for_location(response.json())
        except (asyncio.TimeoutError, httpx.HTTPError, ValueError) as e:
            logger.info("Geolocation lookup failed: %s", type(e).__name__)
            return FALLBACK_NICKNAME
        return nickname or FALLBACK_NICKNAME
