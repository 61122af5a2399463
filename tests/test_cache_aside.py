"""Tests for cache keys, read-through population and mutation invalidation."""

import asyncio

import pytest

from shelter_api.adapters.cache import InMemoryCacheStore
from shelter_api.core.cache_aside import (
    ANIMAL_KEYS,
    SHELTER_KEYS,
    CacheAside,
    CacheKeys,
    InvalidationKeySet,
    filters_digest,
)


class RecordingStore(InMemoryCacheStore):
    """In-memory store that records the order of reads, writes and deletes."""

    def __init__(self, events: list[str]) -> None:
        super().__init__()
        self.events = events

    async def get(self, key):
        self.events.append(f"get:{key}")
        return await super().get(key)

    async def set(self, key, value, ttl_seconds):
        self.events.append(f"set:{key}:{ttl_seconds}")
        return await super().set(key, value, ttl_seconds)

    async def delete(self, *keys):
        self.events.append("delete:" + ",".join(keys))
        return await super().delete(*keys)

    async def delete_by_pattern(self, pattern):
        self.events.append(f"delete_pattern:{pattern}")
        return await super().delete_by_pattern(pattern)


class TestCacheKeys:
    def test_key_shapes(self) -> None:
        assert ANIMAL_KEYS.all == "animals:all"
        assert ANIMAL_KEYS.by_id(7) == "animal:7"
        assert ANIMAL_KEYS.by_parent(3) == "animals:shelter:3"
        assert ANIMAL_KEYS.parent_pattern() == "animals:shelter:*"
        assert ANIMAL_KEYS.search_pattern() == "animals:search:*"
        assert ANIMAL_KEYS.search({"type": "cat"}).startswith("animals:search:")

    def test_types_without_parent_reject_parent_keys(self) -> None:
        with pytest.raises(ValueError):
            SHELTER_KEYS.by_parent(1)

    def test_digest_ignores_order_and_unset_filters(self) -> None:
        assert filters_digest({"type": "dog", "gender": "male"}) == filters_digest(
            {"gender": "male", "type": "dog", "health": None}
        )
        assert filters_digest({"type": "dog"}) != filters_digest({"type": "cat"})


class TestInvalidationKeySet:
    def test_for_entity_always_includes_collection_key(self) -> None:
        key_set = InvalidationKeySet.for_entity(SHELTER_KEYS)

        assert key_set.keys == {"shelters:all"}
        assert key_set.patterns == frozenset()

    def test_for_entity_with_parents_search_and_fan_out(self) -> None:
        key_set = InvalidationKeySet.for_entity(
            ANIMAL_KEYS,
            5,
            parent_ids=(1, 2, None),
            include_search=True,
            fan_out=True,
        )

        assert key_set.keys == {"animals:all", "animal:5", "animals:shelter:1", "animals:shelter:2"}
        assert key_set.patterns == {"animals:search:*", "animals:shelter:*"}

    def test_union_and_truthiness(self) -> None:
        merged = InvalidationKeySet.of("a") | InvalidationKeySet.of("b", patterns=("c:*",))

        assert merged.keys == {"a", "b"}
        assert merged.patterns == {"c:*"}
        assert not InvalidationKeySet()


class TestReadThrough:
    def test_miss_loads_caches_and_returns(self) -> None:
        events: list[str] = []
        cache = CacheAside(RecordingStore(events))
        loads: list[int] = []

        async def loader():
            loads.append(1)
            return {"id": 1}

        first = asyncio.run(cache.read_through("shelter:1", loader, 3600))
        second = asyncio.run(cache.read_through("shelter:1", loader, 3600))

        assert first == second == {"id": 1}
        assert len(loads) == 1
        assert events == ["get:shelter:1", "set:shelter:1:3600", "get:shelter:1"]

    def test_missing_entity_is_not_cached(self) -> None:
        store = InMemoryCacheStore()
        cache = CacheAside(store)

        async def loader():
            return None

        assert asyncio.run(cache.read_through("shelter:9", loader, 60)) is None
        assert store.keys() == []

    def test_empty_collections_are_cached(self) -> None:
        store = InMemoryCacheStore()
        cache = CacheAside(store)

        async def loader():
            return []

        assert asyncio.run(cache.read_through("shelters:all", loader, 60)) == []
        assert store.keys() == ["shelters:all"]

    def test_normalize_applies_on_miss_and_on_hit(self) -> None:
        store = InMemoryCacheStore()
        cache = CacheAside(store)
        asyncio.run(store.set("raw", {"n": 1}, 60))

        def bump(value):
            return {"n": value["n"] + 1}

        async def loader():
            return {"n": 10}

        assert asyncio.run(cache.read_through("raw", loader, 60, bump)) == {"n": 2}
        assert asyncio.run(cache.read_through("fresh", loader, 60, bump)) == {"n": 11}
        assert asyncio.run(store.get("fresh")) == {"n": 11}

    def test_unavailable_store_always_loads(self) -> None:
        store = InMemoryCacheStore()
        store.set_available(False)
        cache = CacheAside(store)
        loads: list[int] = []

        async def loader():
            loads.append(1)
            return {"id": 1}

        asyncio.run(cache.read_through("k", loader, 60))
        asyncio.run(cache.read_through("k", loader, 60))

        assert len(loads) == 2


class TestInvalidate:
    def test_removes_keys_and_patterns(self) -> None:
        store = InMemoryCacheStore()
        cache = CacheAside(store)
        for key in ("animals:all", "animal:1", "animals:search:x", "animals:search:y", "shelter:1"):
            asyncio.run(store.set(key, {}, 60))

        removed = asyncio.run(
            cache.invalidate(InvalidationKeySet.for_entity(ANIMAL_KEYS, 1, include_search=True))
        )

        assert removed == 4
        assert store.keys() == ["shelter:1"]

    def test_is_idempotent(self) -> None:
        store = InMemoryCacheStore()
        cache = CacheAside(store)
        asyncio.run(store.set("shelter:1", {}, 60))
        key_set = InvalidationKeySet.for_entity(SHELTER_KEYS, 1)

        asyncio.run(cache.invalidate(key_set))
        state_after_first = store.keys()
        assert asyncio.run(cache.invalidate(key_set)) == 0
        assert store.keys() == state_after_first == []

    def test_empty_key_set_touches_nothing(self) -> None:
        events: list[str] = []
        cache = CacheAside(RecordingStore(events))

        assert asyncio.run(cache.invalidate(InvalidationKeySet())) == 0
        assert events == []

    def test_never_raises_when_store_is_down(self) -> None:
        store = InMemoryCacheStore()
        store.set_available(False)

        removed = asyncio.run(
            CacheAside(store).invalidate(InvalidationKeySet.for_entity(ANIMAL_KEYS, 1, include_search=True))
        )

        assert removed == 0


class TestMutate:
    def test_invalidates_before_and_after_operation(self) -> None:
        events: list[str] = []
        cache = CacheAside(RecordingStore(events))

        async def operation():
            events.append("write")
            return {"id": 1}

        result = asyncio.run(cache.mutate(InvalidationKeySet.of("shelter:1"), operation))

        assert result == {"id": 1}
        assert events == ["delete:shelter:1", "write", "delete:shelter:1"]

    def test_drops_entries_repopulated_during_the_write(self) -> None:
        store = InMemoryCacheStore()
        cache = CacheAside(store)

        async def operation():
            # A concurrent reader repopulates from pre-write state mid-write
            await store.set("shelter:1", {"name": "stale"}, 3600)
            return {"name": "fresh"}

        asyncio.run(cache.mutate(InvalidationKeySet.of("shelter:1"), operation))

        assert asyncio.run(store.get("shelter:1")) is None

    def test_follow_up_keys_join_trailing_invalidation(self) -> None:
        events: list[str] = []
        cache = CacheAside(RecordingStore(events))

        async def operation():
            return {"id": 42}

        asyncio.run(
            cache.mutate(
                InvalidationKeySet.of("shelters:all"),
                operation,
                follow_up=lambda row: InvalidationKeySet.of(SHELTER_KEYS.by_id(row["id"])),
            )
        )

        assert events == ["delete:shelters:all", "delete:shelter:42,shelters:all"]

    def test_failed_operation_still_invalidates_and_propagates(self) -> None:
        events: list[str] = []
        cache = CacheAside(RecordingStore(events))

        async def operation():
            events.append("write")
            raise RuntimeError("store rejected write")

        with pytest.raises(RuntimeError, match="store rejected write"):
            asyncio.run(cache.mutate(InvalidationKeySet.of("shelter:1"), operation))

        assert events == ["delete:shelter:1", "write", "delete:shelter:1"]

    def test_mutation_proceeds_when_store_is_down(self) -> None:
        store = InMemoryCacheStore()
        store.set_available(False)

        async def operation():
            return "written"

        result = asyncio.run(CacheAside(store).mutate(InvalidationKeySet.of("k"), operation))

        assert result == "written"


def test_custom_namespace() -> None:
    keys = CacheKeys("widget", "widgets", parent="shelf")

    assert keys.by_parent(2) == "widgets:shelf:2"
