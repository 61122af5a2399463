"""Cache-aside read path and write-triggered invalidation.

Every entity service reads through ``CacheAside.read_through`` and wraps
each mutation in ``CacheAside.mutate``. Invalidation always deletes, and
population always replaces whole entries, so an entry is either absent or a
complete snapshot of some committed state.

Ordering: the key set is invalidated right before the mutation (dropping
entries a concurrent reader could otherwise keep serving while the write is
in flight) and again right after it (dropping anything re-populated from a
pre-write read during the write). This narrows the read-after-write race
window without a lock; under concurrent writers to the same entity the
guarantee is eventual consistency bounded by the entry TTL.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, TypeVar

from shelter_api.adapters.cache.base import CacheStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheKeys:
    """Key namespace for one entity type.

    ``CacheKeys("animal", "animals", parent="shelter")`` yields
    ``animals:all``, ``animal:7``, ``animals:shelter:3`` and
    ``animals:search:<digest>``.
    """

    singular: str
    plural: str
    parent: str | None = None

    @property
    def all(self) -> str:
        return f"{self.plural}:all"

    def by_id(self, entity_id: int | str) -> str:
        return f"{self.singular}:{entity_id}"

    def by_parent(self, parent_id: int | str) -> str:
        if self.parent is None:
            raise ValueError(f"{self.plural} have no parent collection")
        return f"{self.plural}:{self.parent}:{parent_id}"

    def parent_pattern(self) -> str:
        if self.parent is None:
            raise ValueError(f"{self.plural} have no parent collection")
        return f"{self.plural}:{self.parent}:*"

    def search(self, filters: Mapping[str, Any]) -> str:
        return f"{self.plural}:search:{filters_digest(filters)}"

    def search_pattern(self) -> str:
        return f"{self.plural}:search:*"


def filters_digest(filters: Mapping[str, Any]) -> str:
    """Stable digest of a filter mapping; key order and None values don't matter."""
    canonical = {k: v for k, v in filters.items() if v is not None}
    raw = json.dumps(canonical, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:32]


SHELTER_KEYS = CacheKeys("shelter", "shelters")
ANIMAL_KEYS = CacheKeys("animal", "animals", parent="shelter")
USER_KEYS = CacheKeys("user", "users")
APPLICATION_KEYS = CacheKeys("application", "applications", parent="animal")
VOTE_KEYS = CacheKeys("vote", "votes", parent="shelter")


@dataclass(frozen=True)
class InvalidationKeySet:
    """Exact keys and glob patterns to drop for one mutation."""

    keys: frozenset[str] = field(default_factory=frozenset)
    patterns: frozenset[str] = field(default_factory=frozenset)

    def __or__(self, other: "InvalidationKeySet") -> "InvalidationKeySet":
        return InvalidationKeySet(
            keys=self.keys | other.keys,
            patterns=self.patterns | other.patterns,
        )

    def __bool__(self) -> bool:
        return bool(self.keys or self.patterns)

    @classmethod
    def of(cls, *keys: str, patterns: tuple[str, ...] = ()) -> "InvalidationKeySet":
        return cls(keys=frozenset(keys), patterns=frozenset(patterns))

    @classmethod
    def for_entity(
        cls,
        namespace: CacheKeys,
        entity_id: int | str | None = None,
        *,
        parent_ids: tuple[int | str | None, ...] = (),
        include_search: bool = False,
        fan_out: bool = False,
    ) -> "InvalidationKeySet":
        """Build the key set for a mutation of one entity.

        Args:
            namespace: The entity's key namespace.
            entity_id: Id of the mutated entity, when known.
            parent_ids: Owning parents whose scoped collections change
                (old and new parent when a child moves).
            include_search: Drop every cached search result of the type.
            fan_out: Drop every parent-scoped collection of the type.
        """
        keys = {namespace.all}
        patterns: set[str] = set()
        if entity_id is not None:
            keys.add(namespace.by_id(entity_id))
        for parent_id in parent_ids:
            if parent_id is not None:
                keys.add(namespace.by_parent(parent_id))
        if include_search:
            patterns.add(namespace.search_pattern())
        if fan_out:
            patterns.add(namespace.parent_pattern())
        return cls(keys=frozenset(keys), patterns=frozenset(patterns))


class CacheAside:
    """Read-through population and before/after invalidation over a store."""

    def __init__(self, store: CacheStore) -> None:
        self._store = store

    @property
    def store(self) -> CacheStore:
        return self._store

    async def read_through(
        self,
        key: str,
        loader: Callable[[], Awaitable[T | None]],
        ttl_seconds: int,
        normalize: Callable[[Any], Any] | None = None,
    ) -> Any:
        """Return the cached value for ``key`` or load, cache and return it.

        ``normalize`` is applied on both paths: cached payloads were
        normalized when stored, but normalization rules may have changed
        since. A loader result of None (entity missing) is never cached.
        """
        cached = await self._store.get(key)
        if cached is not None:
            return normalize(cached) if normalize else cached

        loaded = await loader()
        if loaded is None:
            return None

        value = normalize(loaded) if normalize else loaded
        await self._store.set(key, value, ttl_seconds)
        return value

    async def invalidate(self, key_set: InvalidationKeySet) -> int:
        """Delete every key and pattern of ``key_set``; idempotent, never raises."""
        if not key_set:
            return 0

        removed = 0
        if key_set.keys:
            removed += await self._store.delete(*sorted(key_set.keys))
        for pattern in sorted(key_set.patterns):
            removed += await self._store.delete_by_pattern(pattern)

        logger.debug(
            "cache.invalidated",
            extra={
                "keys": sorted(key_set.keys),
                "patterns": sorted(key_set.patterns),
                "removed": removed,
            },
        )
        return removed

    async def mutate(
        self,
        key_set: InvalidationKeySet,
        operation: Callable[[], Awaitable[T]],
        *,
        follow_up: Callable[[T], InvalidationKeySet] | None = None,
    ) -> T:
        """Run ``operation`` between two invalidations of ``key_set``.

        Args:
            key_set: Keys known before the write.
            operation: The write against the authoritative store.
            follow_up: Derives keys only known from the write's result (the
                id of a created row); they join the trailing invalidation.

        The trailing invalidation also runs when the operation raises, since
        the authoritative store may have applied part of it; the exception
        then propagates unchanged.
        """
        await self.invalidate(key_set)
        try:
            result = await operation()
        except Exception:
            await self.invalidate(key_set)
            raise

        if follow_up is not None and result is not None:
            key_set = key_set | follow_up(result)
        await self.invalidate(key_set)
        return result
