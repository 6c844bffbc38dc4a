"""Image re-hosting adapter.

Generated images are often ephemeral upstream URLs or large data URIs.
This adapter uploads them to the configured image host and returns a
permanent URL. Callers fall back to the original reference on failure.
"""

import asyncio
import base64
import binascii
import logging
import re
import secrets
import time
from typing import Any

import httpx

from agentsquare.services.config_resolver import HostingConfig
from agentsquare.services.errors import ExternalServiceError
from agentsquare.utils.redaction import sanitize_error_message

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/png"

_DATA_URI_PATTERN = re.compile(r"^data:([^;]+);base64,(.+)$", re.DOTALL)

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
    "image/bmp": "bmp",
}


def extension_for(mime_type: str) -> str:
    """File extension for an image MIME type (png when unknown)."""
    return _EXTENSIONS.get(mime_type.lower(), "png")


def decode_data_uri(data_uri: str) -> tuple[bytes, str]:
    """Decode a base64 data URI into (payload, mime_type).

    Raises:
        ExternalServiceError: PARSE_ERROR for malformed input.
    """
    match = _DATA_URI_PATTERN.match(data_uri)
    if not match:
        raise ExternalServiceError(code="PARSE_ERROR", message="Invalid base64 image data")
    try:
        payload = base64.b64decode(match.group(2), validate=False)
    except (binascii.Error, ValueError) as e:
        raise ExternalServiceError(code="PARSE_ERROR", message="Invalid base64 image data") from e
    return payload, match.group(1)


def extract_hosted_url(data: Any, base_url: str) -> str | None:
    """Find the image URL in the host's upload response.

    Accepted shapes: ``[{"src": ...}]``, ``{"url": ...}``, ``{"src": ...}``,
    ``{"data": {"url": ...}}`` and ``{"data": {"links": {"url": ...}}}``.
    Relative paths are joined onto ``base_url``.
    """
    candidate = None
    if isinstance(data, list) and data and isinstance(data[0], dict):
        candidate = data[0].get("src")
    elif isinstance(data, dict):
        inner = data.get("data") if isinstance(data.get("data"), dict) else {}
        links = inner.get("links") if isinstance(inner.get("links"), dict) else {}
        candidate = data.get("url") or data.get("src") or inner.get("url") or links.get("url")

    if not isinstance(candidate, str) or not candidate:
        return None
    if candidate.startswith(("http://", "https://")):
        return candidate
    if not candidate.startswith("/"):
        candidate = "/" + candidate
    return base_url + candidate


class HostingAdapter:
    """Uploads generated images to the configured image host.

    Args:
        transport: Optional httpx transport override, used for both the
            source download and the upload.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def _load_source(
        self, client: httpx.AsyncClient, image_reference: str
    ) -> tuple[bytes, str]:
        if image_reference.startswith("data:image/"):
            return decode_data_uri(image_reference)
        if image_reference.startswith(("http://", "https://")):
            response = await client.get(image_reference)
            if not response.is_success:
                raise ExternalServiceError(
                    code="AI_SERVICE_ERROR",
                    message=f"Image download failed: {response.status_code}",
                    status_code=response.status_code,
                )
            mime_type = response.headers.get("content-type", "").split(";")[0].strip()
            return response.content, mime_type or DEFAULT_MIME_TYPE
        raise ExternalServiceError(code="PARSE_ERROR", message="Unsupported image reference")

    async def _upload(self, config: HostingConfig, image_reference: str, timeout: float) -> str:
        headers = {}
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"

        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            payload, mime_type = await self._load_source(client, image_reference)
            filename = (
                f"ai_{int(time.time() * 1000)}_{secrets.token_hex(3)}.{extension_for(mime_type)}"
            )
            response = await client.post(
                f"{config.base_url}/upload",
                headers=headers,
                files={"file": (filename, payload, mime_type)},
            )

        if not response.is_success:
            raise ExternalServiceError(
                code="AI_SERVICE_ERROR",
                message=(
                    "Image host upload failed: "
                    f"{sanitize_error_message(response.text[:200]) or response.status_code}"
                ),
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise ExternalServiceError(
                code="PARSE_ERROR", message="Image host returned a non-JSON response"
            ) from e

        url = extract_hosted_url(data, config.base_url)
        if not url:
            raise ExternalServiceError(
                code="PARSE_ERROR", message="Image host response did not contain a URL"
            )
        return url

    async def rehost(self, config: HostingConfig, image_reference: str, timeout: float) -> str:
        """Upload ``image_reference`` and return its permanent URL.

        Raises:
            ExternalServiceError: CONFIG_MISSING when no host is configured,
                TIMEOUT, AI_SERVICE_ERROR or PARSE_ERROR otherwise.
        """
        if not config.is_configured:
            raise ExternalServiceError(
                code="CONFIG_MISSING", message="Image host is not configured"
            )
        try:
            return await asyncio.wait_for(
                self._upload(config, image_reference, timeout), timeout=timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise ExternalServiceError(
                code="TIMEOUT", message=f"Image host upload timed out after {timeout:g}s"
            ) from e
        except httpx.RequestError as e:
            raise ExternalServiceError(
                code="AI_SERVICE_ERROR", message=f"Image host upload failed: {type(e).__name__}"
            ) from e
        except httpx.InvalidURL as e:
            raise ExternalServiceError(
                code="PARSE_ERROR", message="Image reference is not a valid URL"
            ) from e
