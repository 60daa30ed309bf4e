"""Unit tests for the result cache."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from checkinmate.services.cache import CacheService, MemoryCacheService, RedisCacheService
from checkinmate.utils.cache import LRUCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestBuildPlacesKey:

    def test_key_format(self) -> None:
        key = CacheService.build_places_key(48.8584, 2.2945, 500, 1, 10)
        assert key == "places:48.858400:2.294500:500:1:10"

    def test_rounds_to_six_decimals(self) -> None:
        a = CacheService.build_places_key(48.85840001, 2.2945, 500, 1, 10)
        b = CacheService.build_places_key(48.8584, 2.2945, 500, 1, 10)
        assert a == b

    def test_every_parameter_changes_key(self) -> None:
        base = (48.8584, 2.2945, 500, 1, 10)
        variants = [
            (48.858401, 2.2945, 500, 1, 10),
            (48.8584, 2.294501, 500, 1, 10),
            (48.8584, 2.2945, 501, 1, 10),
            (48.8584, 2.2945, 500, 2, 10),
            (48.8584, 2.2945, 500, 1, 11),
        ]
        keys = {CacheService.build_places_key(*v) for v in variants}
        keys.add(CacheService.build_places_key(*base))
        assert len(keys) == len(variants) + 1

    def test_swapped_page_and_limit_differ(self) -> None:
        assert CacheService.build_places_key(1, 1, 100, 2, 10) != CacheService.build_places_key(1, 1, 100, 10, 2)


class TestLRUCache:

    def setup_method(self) -> None:
        self.clock = FakeClock()
        self.cache = LRUCache(max_size=3, ttl_seconds=60, timer=self.clock)

    def test_get_missing(self) -> None:
        assert self.cache.get("nope") is None

    def test_set_then_get_within_ttl(self) -> None:
        value = [{"name": "Louvre"}]
        self.cache.set("k", value)
        self.clock.advance(59)
        assert self.cache.get("k") is value

    def test_expires_after_ttl(self) -> None:
        self.cache.set("k", [1])
        self.clock.advance(61)
        assert self.cache.get("k") is None
        assert len(self.cache) == 0

    def test_get_does_not_extend_ttl(self) -> None:
        self.cache.set("k", [1])
        self.clock.advance(40)
        assert self.cache.get("k") == [1]
        self.clock.advance(30)
        assert self.cache.get("k") is None

    def test_evicts_least_recently_used(self) -> None:
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        self.cache.set("c", 3)
        self.cache.get("a")
        self.cache.set("d", 4)
        assert self.cache.get("b") is None
        assert self.cache.get("a") == 1
        assert self.cache.get("c") == 3
        assert self.cache.get("d") == 4

    def test_overwrite_resets_age(self) -> None:
        self.cache.set("k", 1)
        self.clock.advance(50)
        self.cache.set("k", 2)
        self.clock.advance(50)
        assert self.cache.get("k") == 2

    def test_delete_and_clear(self) -> None:
        self.cache.set("a", 1)
        self.cache.set("b", 2)
        assert self.cache.delete("a") is True
        assert self.cache.delete("a") is False
        self.cache.clear()
        assert len(self.cache) == 0


class TestMemoryCacheService:

    @pytest.mark.asyncio
    async def test_round_trip_and_expiry(self) -> None:
        clock = FakeClock()
        service = MemoryCacheService(max_size=10, ttl_seconds=60, timer=clock)
        await service.set("k", [{"name": "Louvre"}])
        assert await service.get("k") == [{"name": "Louvre"}]
        clock.advance(61)
        assert await service.get("k") is None

    @pytest.mark.asyncio
    async def test_ping(self) -> None:
        assert await MemoryCacheService().ping() is True


class TestRedisCacheService:

    def setup_method(self) -> None:
        self.client = MagicMock()
        self.client.get = AsyncMock(return_value=None)
        self.client.set = AsyncMock(return_value=True)
        self.client.delete = AsyncMock(return_value=1)
        self.client.ping = AsyncMock(return_value=True)
        self.service = RedisCacheService(ttl_seconds=60, client=self.client)

    @pytest.mark.asyncio
    async def test_set_uses_ttl(self) -> None:
        await self.service.set("k", [{"name": "Louvre"}])
        self.client.set.assert_awaited_once_with("k", json.dumps([{"name": "Louvre"}]), ex=60)

    @pytest.mark.asyncio
    async def test_get_decodes_json(self) -> None:
        self.client.get.return_value = '[{"name": "Louvre"}]'
        assert await self.service.get("k") == [{"name": "Louvre"}]

    @pytest.mark.asyncio
    async def test_get_miss(self) -> None:
        assert await self.service.get("k") is None

    @pytest.mark.asyncio
    async def test_undecodable_entry_dropped(self) -> None:
        self.client.get.return_value = "not json"
        assert await self.service.get("k") is None
        self.client.delete.assert_awaited_once_with("k")

    @pytest.mark.asyncio
    async def test_ping_failure_reports_false(self) -> None:
        self.client.ping.side_effect = RedisConnectionError("down")
        assert await self.service.ping() is False
