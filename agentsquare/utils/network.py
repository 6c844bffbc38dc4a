"""Client network address resolution.

Chat participants are identified by network address, so the address
chosen here is the identity key for users and for login rate limiting.
"""

import ipaddress
import os

from fastapi import Request

LOOPBACK_FALLBACK = "127.0.0.1"

# Checked in order; the first non-blank value wins.
_PROXY_HEADERS = ("cf-connecting-ip", "x-real-ip")


def trust_proxy_headers() -> bool:
    """Whether reverse-proxy address headers are honoured.

    AGENTSQUARE_TRUST_PROXY defaults to enabled; set it to 0/false when the
    service is exposed directly and clients could spoof the headers.
    """
    raw = os.environ.get("AGENTSQUARE_TRUST_PROXY", "1").strip().lower()
    return raw not in ("0", "false", "no", "off")


def is_private_address(ip: str) -> bool:
    """True for loopback, private, link-local and unparseable addresses."""
    if not ip or ip == "localhost":
        return True
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return True
    return addr.is_private or addr.is_loopback or addr.is_link_local


def get_client_ip(request: Request) -> str:
    """Resolve the requesting client's network address.

    Order: CF-Connecting-IP, X-Real-IP, first X-Forwarded-For entry (when
    trusting proxy headers), then the socket peer, then 127.0.0.1.
    """
    if trust_proxy_headers():
        for header in _PROXY_HEADERS:
            value = request.headers.get(header, "").strip()
            if value:
                return value
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return LOOPBACK_FALLBACK
