"""Tests for UserService."""

import pytest

from agentsquare.services.user_service import DEFAULT_AVATAR, UserService


class TestGetOrCreate:
    @pytest.mark.asyncio
    async def test_creates_user_once(self, test_db):
        calls = []

        async def nickname_for(ip: str) -> str:
            calls.append(ip)
            return "Shanghai user"

        service = UserService(test_db)
        first = await service.get_or_create("8.8.8.8", nickname_for)
        second = await service.get_or_create("8.8.8.8", nickname_for)

        assert first.id == second.id
        assert first.nickname == "Shanghai user"
        assert first.avatar == DEFAULT_AVATAR
        assert calls == ["8.8.8.8"]

    @pytest.mark.asyncio
    async def test_existing_user_skips_lookup(self, test_db, make_user):
        existing = make_user(ip="10.0.0.9", nickname="Local user")

        async def nickname_for(ip: str) -> str:
            raise AssertionError("lookup should not run")

        user = await UserService(test_db).get_or_create("10.0.0.9", nickname_for)
        assert user.id == existing.id

    def test_find_by_ip_missing(self, test_db):
        assert UserService(test_db).find_by_ip("10.9.9.9") is None
