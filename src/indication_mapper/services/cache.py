"""
Redis cache for persisted indications.

The cache is a disposable view over the repository: every Redis failure is
logged and treated as a miss (reads) or a no-op (writes and deletes).

Keys:
  indications:<drug>  list of indications for one canonical drug name
  indications-all     every stored indication
  indication:<id>     a single stored indication
"""

import json
import logging
from typing import Any
from uuid import UUID

from pydantic import TypeAdapter, ValidationError
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from indication_mapper.config import Settings, get_settings
from indication_mapper.constants import (
    ALL_INDICATIONS_KEY,
    DRUG_CACHE_PREFIX,
    RECORD_CACHE_PREFIX,
)
from indication_mapper.helpers.drug_helpers import canonicalize_drug_name
from indication_mapper.models.model_indication import PersistedIndication

logger = logging.getLogger(__name__)

_indication_list = TypeAdapter(list[PersistedIndication])


def drug_key(drug_name: str) -> str:
    """Cache key for one drug, case-insensitive on the drug name."""
    return DRUG_CACHE_PREFIX + canonicalize_drug_name(drug_name).lower()


def record_key(indication_id: UUID | str) -> str:
    return f"{RECORD_CACHE_PREFIX}{indication_id}"


def create_redis_client(settings: Settings | None = None) -> aioredis.Redis:
    """Build a Redis client from settings. Connects lazily on first command."""
    settings = settings or get_settings()
    return aioredis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        decode_responses=True,
    )


class IndicationCache:
    """Cache-aside wrapper with JSON values and per-key TTL."""

    def __init__(
        self,
        client: aioredis.Redis,
        search_ttl: int | None = None,
        record_ttl: int | None = None,
    ) -> None:
        settings = get_settings()
        self.client = client
        self.search_ttl = search_ttl if search_ttl is not None else settings.search_cache_ttl
        self.record_ttl = record_ttl if record_ttl is not None else settings.record_cache_ttl

    async def close(self) -> None:
        try:
            await self.client.aclose()
        except RedisError as e:
            logger.warning("Error closing Redis connection: %s", e)

    # -- Generic operations ---------------------------------------------------

    async def get(self, key: str) -> Any | None:
        try:
            data = await self.client.get(key)
        except (RedisError, OSError) as e:
            logger.error("Error getting key %s: %s", key, e)
            return None
        if data is None:
            return None
        try:
            return json.loads(data)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error("Undecodable cache entry %s: %s", key, e)
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        try:
            await self.client.set(
                key, json.dumps(value, default=str), ex=ttl or self.search_ttl
            )
        except (RedisError, OSError) as e:
            logger.error("Error setting key %s: %s", key, e)

    async def invalidate(self, *keys: str) -> None:
        if not keys:
            return
        try:
            await self.client.delete(*keys)
        except (RedisError, OSError) as e:
            logger.error("Error deleting keys %s: %s", ", ".join(keys), e)

    # -- Typed helpers --------------------------------------------------------

    async def _get_list(self, key: str) -> list[PersistedIndication] | None:
        data = await self.get(key)
        if data is None:
            return None
        try:
            return _indication_list.validate_python(data)
        except ValidationError as e:
            logger.error("Invalid cached indications under %s: %s", key, e)
            return None

    async def _set_list(self, key: str, indications: list[PersistedIndication]) -> None:
        await self.set(key, _indication_list.dump_python(indications, mode="json"), self.search_ttl)

    async def get_drug(self, drug_name: str) -> list[PersistedIndication] | None:
        return await self._get_list(drug_key(drug_name))

    async def set_drug(self, drug_name: str, indications: list[PersistedIndication]) -> None:
        await self._set_list(drug_key(drug_name), indications)

    async def get_all(self) -> list[PersistedIndication] | None:
        return await self._get_list(ALL_INDICATIONS_KEY)

    async def set_all(self, indications: list[PersistedIndication]) -> None:
        await self._set_list(ALL_INDICATIONS_KEY, indications)

    async def get_record(self, indication_id: UUID | str) -> PersistedIndication | None:
        data = await self.get(record_key(indication_id))
        if data is None:
            return None
        try:
            return PersistedIndication.model_validate(data)
        except ValidationError as e:
            logger.error("Invalid cached indication %s: %s", indication_id, e)
            return None

    async def set_record(self, indication: PersistedIndication) -> None:
        await self.set(
            record_key(indication.id), indication.model_dump(mode="json"), self.record_ttl
        )

    async def invalidate_drug(self, drug_name: str) -> None:
        """Drop the drug's list and the aggregate list."""
        await self.invalidate(drug_key(drug_name), ALL_INDICATIONS_KEY)

    async def invalidate_record(self, indication_id: UUID | str, drug_name: str) -> None:
        """Drop a single record together with every list that contains it."""
        await self.invalidate(
            record_key(indication_id), drug_key(drug_name), ALL_INDICATIONS_KEY
        )
