"""Key/value fact store on a Redis hash.

Each fact is stored as JSON {"value": ..., "updatedAt": ...} under its key in
the `agent:facts` hash.
"""

from __future__ import annotations

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError, ResponseError

from config import CONFIG
from errors import FactStoreError
from models import Fact
from utils import log, now_iso

# appendonly + RDB save points: every 15 min if 1 change, 5 min if 10, 1 min if 10000
PERSISTENCE_SETTINGS = {"appendonly": "yes", "save": "900 1 300 10 60 10000"}


class FactMemory:
    """Exact-recall facts in Redis."""

    def __init__(
        self,
        client: redis.Redis | None = None,
        host: str | None = None,
        port: int | None = None,
        facts_key: str | None = None,
    ):
        self.client = client or redis.Redis(
            host=host or CONFIG.redis_host,
            port=port or CONFIG.redis_port,
            decode_responses=True,
        )
        self.facts_key = facts_key or CONFIG.facts_key
        self._connected = False

    async def connect(self) -> None:
        """Check the connection once and try to enable Redis persistence."""
        if self._connected:
            return
        try:
            await self.client.ping()
        except RedisError as e:
            raise FactStoreError(f"Cannot connect to Redis: {e}") from e
        self._connected = True
        try:
            for name, value in PERSISTENCE_SETTINGS.items():
                await self.client.config_set(name, value)
            log("Redis persistence (AOF/RDB) auto-configured.")
        except RedisError as e:
            log(f"Could not auto-configure Redis persistence. Ensure you have permissions. {e}", "WARNING")

    async def disconnect(self) -> None:
        if self._connected:
            await self.client.aclose()
            self._connected = False

    async def remember(self, key: str, value: str) -> None:
        await self.connect()
        fact = Fact(value=value, updated_at=now_iso())
        try:
            await self.client.hset(self.facts_key, key, fact.model_dump_json(by_alias=True))
        except RedisError as e:
            raise FactStoreError(f"Failed to save fact '{key}': {e}") from e

    async def recall(self, key: str) -> Fact | None:
        await self.connect()
        try:
            raw = await self.client.hget(self.facts_key, key)
        except RedisError as e:
            raise FactStoreError(f"Failed to recall fact '{key}': {e}") from e
        if not raw:
            return None
        return self._parse(key, raw)

    async def forget(self, key: str) -> None:
        await self.connect()
        try:
            await self.client.hdel(self.facts_key, key)
        except RedisError as e:
            raise FactStoreError(f"Failed to forget fact '{key}': {e}") from e

    async def get_all(self) -> dict[str, Fact]:
        await self.connect()
        try:
            raw = await self.client.hgetall(self.facts_key)
        except RedisError as e:
            raise FactStoreError(f"Failed to list facts: {e}") from e
        return {key: self._parse(key, value) for key, value in raw.items()}

    async def checkpoint(self) -> None:
        """Trigger BGSAVE. A save already in progress counts as success."""
        await self.connect()
        try:
            await self.client.bgsave()
        except ResponseError as e:
            if "already in progress" in str(e).lower():
                return
            raise FactStoreError(f"Checkpoint failed: {e}") from e
        except RedisError as e:
            raise FactStoreError(f"Checkpoint failed: {e}") from e

    @staticmethod
    def _parse(key: str, raw: str) -> Fact:
        try:
            return Fact.model_validate_json(raw)
        except ValidationError as e:
            raise FactStoreError(f"Fact '{key}' is not valid JSON: {e}") from e
