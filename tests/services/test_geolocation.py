"""Tests for nickname derivation from network address."""

import httpx
import pytest

from agentsquare.services.geolocation import (
    FALLBACK_NICKNAME,
    LOCAL_NICKNAME,
    GeolocationAdapter,
    nickname_for_location,
)


def _never(request):
    raise AssertionError("lookup must not happen for private addresses")


class TestNicknameForLocation:
    @pytest.mark.parametrize(
        ("data", "expected"),
        [
            ({"status": "success", "city": "Lisbon", "regionName": "Lisboa"}, "Friend from Lisbon"),
            ({"status": "success", "city": "", "regionName": "Bavaria"}, "Friend from Bavaria"),
            ({"country": "Chile"}, "Friend from Chile"),
            ({"status": "fail", "city": "Nowhere"}, None),
            ({"status": "success"}, None),
            ([], None),
            ("Lisbon", None),
        ],
    )
    def test_place_fallbacks(self, data, expected):
        assert nickname_for_location(data) == expected


class TestGeolocationAdapter:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("ip", ["127.0.0.1", "10.1.2.3", "192.168.0.4", "169.254.1.1", "localhost", "::1"])
    async def test_private_addresses_are_local(self, ip):
        adapter = GeolocationAdapter(httpx.MockTransport(_never))
        assert await adapter.nickname_for(ip, timeout=1) == LOCAL_NICKNAME

    @pytest.mark.asyncio
    async def test_public_address_looked_up(self):
        def handler(request):
            assert request.url.path == "/json/8.8.8.8"
            return httpx.Response(200, json={"status": "success", "city": "Mountain View"})

        adapter = GeolocationAdapter(httpx.MockTransport(handler))
        assert await adapter.nickname_for("8.8.8.8", timeout=1) == "Friend from Mountain View"

    @pytest.mark.asyncio
    async def test_custom_lookup_url(self, monkeypatch):
        monkeypatch.setenv("AGENTSQUARE_GEOLOCATION_URL", "https://geo.test/lookup?ip={ip}")

        def handler(request):
            assert request.url.host == "geo.test"
            assert request.url.params["ip"] == "1.1.1.1"
            return httpx.Response(200, json={"city": "Sydney"})

        adapter = GeolocationAdapter(httpx.MockTransport(handler))
        assert await adapter.nickname_for("1.1.1.1", timeout=1) == "Friend from Sydney"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "handler",
        [
            lambda request: httpx.Response(503),
            lambda request: httpx.Response(200, text="<html>"),
            lambda request: httpx.Response(200, json=[]),
            lambda request: httpx.Response(200, json="Lisbon"),
        ],
    )
    async def test_failures_fall_back(self, handler):
        adapter = GeolocationAdapter(httpx.MockTransport(handler))
        assert await adapter.nickname_for("8.8.4.4", timeout=1) == FALLBACK_NICKNAME

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        adapter = GeolocationAdapter(httpx.MockTransport(handler))
        assert await adapter.nickname_for("8.8.4.4", timeout=1) == FALLBACK_NICKNAME
