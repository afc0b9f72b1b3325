"""Tests for the Redis fact store."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from errors import FactStoreError
from facts import FactMemory


class TestFacts:
    async def test_remember_and_recall(self, facts):
        await facts.remember("user.name", "Ada")
        fact = await facts.recall("user.name")

        assert fact is not None
        assert fact.value == "Ada"
        assert fact.updated_at.endswith("+00:00")

    async def test_stored_as_json_with_updated_at(self, facts):
        await facts.remember("editor", "vim")
        raw = await facts.client.hget("agent:facts", "editor")
        data = json.loads(raw)
        assert data["value"] == "vim"
        assert "updatedAt" in data

    async def test_recall_missing(self, facts):
        assert await facts.recall("nope") is None

    async def test_overwrite(self, facts):
        await facts.remember("k", "v1")
        await facts.remember("k", "v2")
        assert (await facts.recall("k")).value == "v2"

    async def test_forget_is_idempotent(self, facts):
        await facts.remember("k", "v")
        await facts.forget("k")
        await facts.forget("k")
        assert await facts.recall("k") is None

    async def test_get_all(self, facts):
        assert await facts.get_all() == {}
        await facts.remember("a", "1")
        await facts.remember("b", "2")

        all_facts = await facts.get_all()
        assert sorted(all_facts) == ["a", "b"]
        assert all_facts["b"].value == "2"

    async def test_corrupt_fact_is_error(self, facts):
        await facts.connect()
        await facts.client.hset("agent:facts", "bad", "not json")
        with pytest.raises(FactStoreError, match="bad"):
            await facts.recall("bad")

    async def test_connect_configures_persistence(self, facts, capsys):
        await facts.connect()
        await facts.connect()
        assert capsys.readouterr().err.count("persistence (AOF/RDB) auto-configured") == 1

    async def test_checkpoint(self, facts):
        await facts.remember("k", "v")
        await facts.checkpoint()


def _mock_client(**overrides) -> MagicMock:
    client = MagicMock()
    client.ping = AsyncMock(return_value=True)
    client.config_set = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    for name, value in overrides.items():
        setattr(client, name, value)
    return client


class TestFactsBackendErrors:
    async def test_unreachable_redis(self):
        client = _mock_client(ping=AsyncMock(side_effect=RedisConnectionError("Connection refused")))
        with pytest.raises(FactStoreError, match="Connection refused"):
            await FactMemory(client=client).remember("k", "v")

    async def test_persistence_config_denied_is_warning(self, capsys):
        client = _mock_client(
            config_set=AsyncMock(side_effect=ResponseError("unknown command 'CONFIG'")),
            hset=AsyncMock(return_value=1),
        )
        await FactMemory(client=client).remember("k", "v")
        assert "Could not auto-configure Redis persistence" in capsys.readouterr().err

    async def test_checkpoint_already_in_progress(self):
        client = _mock_client(
            bgsave=AsyncMock(side_effect=ResponseError("Background save already in progress"))
        )
        await FactMemory(client=client).checkpoint()

    async def test_checkpoint_other_error(self):
        client = _mock_client(bgsave=AsyncMock(side_effect=ResponseError("MISCONF disk full")))
        with pytest.raises(FactStoreError, match="MISCONF"):
            await FactMemory(client=client).checkpoint()
