"""User accounts over the cache-aside protocol.

Password hashes are written to the store but stripped from everything the
service returns, so they are never cached either.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from typing import Any

from shelter_api.core.cache_aside import USER_KEYS, CacheAside, InvalidationKeySet
from shelter_api.core.config import CacheSettings
from shelter_api.core.errors import not_found
from shelter_api.repositories.base import PhotosRepository, Row, UsersRepository
from shelter_api.schemas.entities import UserCreate, UserUpdate
from shelter_api.services.photos import attach_photos, attach_photos_many, replace_photos
from shelter_api.utils.url_normalizer import normalize_entity

logger = logging.getLogger(__name__)

PHOTO_ENTITY = "user"
_HASH_ITERATIONS = 240_000
_PRIVATE_FIELDS = frozenset({"password", "password_hash"})


def hash_password(password: str, *, salt: str | None = None) -> str:
    """PBKDF2-SHA256 hash in ``pbkdf2_sha256$<iterations>$<salt>$<hex>`` form."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), _HASH_ITERATIONS)
    return f"pbkdf2_sha256${_HASH_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


def _public(row: Row) -> Row:
    return {key: value for key, value in row.items() if key not in _PRIVATE_FIELDS}


def _to_storage(changes: dict[str, Any]) -> dict[str, Any]:
    changes = dict(changes)
    changes.pop("photo_url", None)
    password = changes.pop("password", None)
    if password:
        changes["password_hash"] = hash_password(password)
    if changes.get("email"):
        changes["email"] = changes["email"].lower()
    return changes


class UsersService:
    def __init__(
        self,
        *,
        users: UsersRepository,
        photos: PhotosRepository,
        cache: CacheAside,
        cache_settings: CacheSettings,
    ) -> None:
        self._users = users
        self._photos = photos
        self._cache = cache
        self._ttl = cache_settings.users_ttl_seconds

    async def list_users(self) -> list[Row]:
        async def load() -> list[Row]:
            rows = [_public(row) for row in await self._users.list_all()]
            return await attach_photos_many(self._photos, PHOTO_ENTITY, rows)

        return await self._cache.read_through(USER_KEYS.all, load, self._ttl, normalize_entity)

    async def get_user(self, user_id: int) -> Row:
        async def load() -> Row | None:
            row = await self._users.get(user_id)
            if row is None:
                return None
            return await attach_photos(self._photos, PHOTO_ENTITY, _public(row))

        user = await self._cache.read_through(USER_KEYS.by_id(user_id), load, self._ttl, normalize_entity)
        if user is None:
            raise not_found("user", user_id)
        return user

    async def create_user(self, data: UserCreate) -> Row:
        payload = _to_storage(data.model_dump(mode="json"))

        async def write() -> Row:
            row = await self._users.create(payload)
            if data.photo_url:
                await replace_photos(self._photos, PHOTO_ENTITY, row["id"], [data.photo_url])
            return row

        created = await self._cache.mutate(
            InvalidationKeySet.for_entity(USER_KEYS),
            write,
            follow_up=lambda row: InvalidationKeySet.of(USER_KEYS.by_id(row["id"])),
        )
        logger.info("user.created", extra={"user_id": created["id"]})
        return normalize_entity(await attach_photos(self._photos, PHOTO_ENTITY, _public(created)))

    async def update_user(self, user_id: int, data: UserUpdate) -> Row:
        if await self._users.get(user_id) is None:
            raise not_found("user", user_id)
        changes = _to_storage(data.model_dump(mode="json", exclude_unset=True))

        async def write() -> Row | None:
            row = await self._users.update(user_id, changes)
            if row is not None and data.photo_url:
                await replace_photos(self._photos, PHOTO_ENTITY, user_id, [data.photo_url])
            return row

        updated = await self._cache.mutate(InvalidationKeySet.for_entity(USER_KEYS, user_id), write)
        if updated is None:
            raise not_found("user", user_id)
        logger.info("user.updated", extra={"user_id": user_id})
        return normalize_entity(await attach_photos(self._photos, PHOTO_ENTITY, _public(updated)))

    async def delete_user(self, user_id: int) -> None:
        if await self._users.get(user_id) is None:
            raise not_found("user", user_id)

        async def write() -> Row | None:
            await self._photos.delete_by_entity(PHOTO_ENTITY, user_id)
            return await self._users.delete(user_id)

        await self._cache.mutate(InvalidationKeySet.for_entity(USER_KEYS, user_id), write)
        logger.info("user.deleted", extra={"user_id": user_id})
