"""
Tests for PlatformConnectionsRepository upsert and queries
"""

from datetime import timedelta, timezone

import pytest

from conftest import as_utc
from platform_connect.infrastructure.connections_repo import PlatformConnectionsRepository
from platform_connect.providers import get_provider
from platform_connect.providers.registry import Identity
from platform_connect.services.oauth_service import build_connection_values
from platform_connect.utils import decrypt_token, utcnow


@pytest.fixture
def repo(test_session):
    return PlatformConnectionsRepository(test_session)


def _values(platform="asana", user_id="u-1", access_token="a-1", now=None, **token_extra):
    token_data = {"access_token": access_token, **token_extra}
    identity = Identity(platform_user_id=user_id, platform_username=f"{platform} {user_id}")
    return build_connection_values(get_provider(platform), token_data, identity, now=now)


class TestUpsert:
    async def test_insert_then_overwrite(self, repo, stored_connections):
        first_at = utcnow() - timedelta(days=2)
        created = await repo.upsert(_values(access_token="a-1", now=first_at, expires_in=60))

        updated = await repo.upsert(_values(access_token="a-2"))

        rows = await stored_connections()
        assert len(rows) == 1
        assert updated.id == created.id
        assert decrypt_token(rows[0].access_token) == "a-2"
        assert rows[0].expires_at is None
        assert as_utc(rows[0].connected_at) == first_at
        assert as_utc(rows[0].last_used_at) > first_at

    async def test_reauth_reactivates(self, repo):
        cp = await repo.upsert(_values())
        await repo.set_active(cp, False)

        again = await repo.upsert(_values(access_token="a-2"))

        assert again.is_active is True

    async def test_timestamps_are_utc_aware(self, repo):
        values = _values()

        cp = await repo.upsert(values)

        assert values["connected_at"].tzinfo == timezone.utc
        assert values["expires_at"] is None
        assert as_utc(cp.last_used_at) == values["last_used_at"]

    async def test_set_active_stamps_updated_at(self, repo, stored_connections):
        cp = await repo.upsert(_values(now=utcnow() - timedelta(days=1)))
        before = utcnow()

        await repo.set_active(cp, False)

        row = (await stored_connections())[0]
        assert row.is_active is False
        assert as_utc(row.updated_at) >= before

    async def test_same_user_id_on_two_platforms(self, repo, stored_connections):
        await repo.upsert(_values(platform="asana", user_id="42"))
        await repo.upsert(_values(platform="clickup", user_id="42"))

        assert len(await stored_connections()) == 2


class TestQueries:
    async def test_list_filters_and_orders(self, repo):
        now = utcnow()
        await repo.upsert(_values(platform="asana", user_id="old", now=now - timedelta(hours=2)))
        await repo.upsert(_values(platform="asana", user_id="new", now=now))
        await repo.upsert(_values(platform="notion", user_id="n", now=now - timedelta(hours=1)))
        inactive = await repo.upsert(_values(platform="asana", user_id="off", now=now))
        await repo.set_active(inactive, False)

        asana = await repo.list_connections(platform="asana")
        everything = await repo.list_connections()

        assert [cp.platform_user_id for cp in asana] == ["new", "old"]
        assert [cp.platform_user_id for cp in everything] == ["new", "n", "old"]
        assert len(await repo.list_connections(active_only=False)) == 4

    async def test_delete_by_platform(self, repo, stored_connections):
        await repo.upsert(_values(platform="monday", user_id="1"))
        await repo.upsert(_values(platform="monday", user_id="2"))
        await repo.upsert(_values(platform="notion", user_id="3"))

        removed = await repo.delete_by_platform("monday")

        assert removed == 2
        assert [cp.platform for cp in await stored_connections()] == ["notion"]
