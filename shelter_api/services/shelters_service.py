"""Shelter reads and writes over the cache-aside protocol.

Cached entries:
- ``shelters:all``: the unbounded listing, photos attached.
- ``shelter:<id>``: one shelter, photos attached.

Every write drops both (plus the shelter's animal listing on delete). Reads
that are limited or scoped to an admin go straight to the store, since the
number of such variants is unbounded.
"""

from __future__ import annotations

import logging

from shelter_api.core.auth import CurrentUser
from shelter_api.core.cache_aside import ANIMAL_KEYS, SHELTER_KEYS, CacheAside, InvalidationKeySet
from shelter_api.core.config import CacheSettings
from shelter_api.core.errors import (
    ConflictAppError,
    ForbiddenAppError,
    NotFoundAppError,
    ValidationAppError,
    not_found,
)
from shelter_api.repositories.base import PhotosRepository, Row, SheltersRepository
from shelter_api.schemas.entities import ShelterCreate, ShelterUpdate
from shelter_api.services.photos import attach_photos, attach_photos_many, replace_photos
from shelter_api.utils.url_normalizer import normalize_entity

logger = logging.getLogger(__name__)

PHOTO_ENTITY = "shelter"


class SheltersService:
    def __init__(
        self,
        *,
        shelters: SheltersRepository,
        photos: PhotosRepository,
        cache: CacheAside,
        cache_settings: CacheSettings,
    ) -> None:
        self._shelters = shelters
        self._photos = photos
        self._cache = cache
        self._ttl = cache_settings.shelters_ttl_seconds

    async def list_shelters(self, limit: int | None = None, admin_id: int | None = None) -> list[Row]:
        if limit is not None or admin_id is not None:
            if admin_id is not None:
                rows = await self._shelters.list_by_admin(admin_id)
                rows = rows[:limit] if limit else rows
            else:
                rows = await self._shelters.list_all(limit=limit)
            return normalize_entity(await attach_photos_many(self._photos, PHOTO_ENTITY, rows))

        async def load() -> list[Row]:
            rows = await self._shelters.list_all()
            return await attach_photos_many(self._photos, PHOTO_ENTITY, rows)

        return await self._cache.read_through(SHELTER_KEYS.all, load, self._ttl, normalize_entity)

    async def get_shelter(self, shelter_id: int) -> Row:
        async def load() -> Row | None:
            row = await self._shelters.get(shelter_id)
            if row is None:
                return None
            return await attach_photos(self._photos, PHOTO_ENTITY, row)

        shelter = await self._cache.read_through(
            SHELTER_KEYS.by_id(shelter_id), load, self._ttl, normalize_entity
        )
        if shelter is None:
            raise not_found("shelter", shelter_id)
        return shelter

    async def get_shelter_by_admin(self, admin_id: int) -> Row:
        if admin_id < 1:
            raise ValidationAppError(
                code="invalid_admin_id",
                message="Admin id must be a positive integer",
                details={"field": "admin_id"},
            )
        rows = await self._shelters.list_by_admin(admin_id)
        if not rows:
            raise NotFoundAppError(
                code="shelter_not_found",
                message=f"No shelter found for admin {admin_id}",
                details={"entity": "shelter", "field": "admin_id"},
            )
        return normalize_entity(await attach_photos(self._photos, PHOTO_ENTITY, rows[0]))

    async def create_shelter(self, data: ShelterCreate, user: CurrentUser | None = None) -> Row:
        payload = data.model_dump(mode="json", exclude={"photo_urls"})
        if user is not None and user.is_shelter_admin:
            if await self._shelters.list_by_admin(user.user_id):
                raise ConflictAppError(
                    code="shelter_admin_has_shelter",
                    message="Shelter admin already owns a shelter",
                    details={"entity": "shelter"},
                )
            payload["admin_id"] = user.user_id

        async def write() -> Row:
            row = await self._shelters.create(payload)
            await replace_photos(self._photos, PHOTO_ENTITY, row["id"], data.photo_urls)
            return row

        created = await self._cache.mutate(
            InvalidationKeySet.for_entity(SHELTER_KEYS),
            write,
            follow_up=lambda row: InvalidationKeySet.of(SHELTER_KEYS.by_id(row["id"])),
        )
        logger.info("shelter.created", extra={"shelter_id": created["id"]})
        return normalize_entity(await attach_photos(self._photos, PHOTO_ENTITY, created))

    async def update_shelter(
        self,
        shelter_id: int,
        data: ShelterUpdate,
        user: CurrentUser | None = None,
    ) -> Row:
        await self._load_owned(shelter_id, user)
        changes = data.model_dump(mode="json", exclude_unset=True, exclude={"photo_urls"})

        async def write() -> Row | None:
            row = await self._shelters.update(shelter_id, changes)
            if row is not None and data.photo_urls:
                await replace_photos(self._photos, PHOTO_ENTITY, shelter_id, data.photo_urls)
            return row

        updated = await self._cache.mutate(
            InvalidationKeySet.for_entity(SHELTER_KEYS, shelter_id),
            write,
        )
        if updated is None:
            raise not_found("shelter", shelter_id)
        logger.info("shelter.updated", extra={"shelter_id": shelter_id})
        return normalize_entity(await attach_photos(self._photos, PHOTO_ENTITY, updated))

    async def delete_shelter(self, shelter_id: int, user: CurrentUser | None = None) -> None:
        await self._load_owned(shelter_id, user)

        async def write() -> Row | None:
            await self._photos.delete_by_entity(PHOTO_ENTITY, shelter_id)
            return await self._shelters.delete(shelter_id)

        key_set = InvalidationKeySet.for_entity(SHELTER_KEYS, shelter_id) | InvalidationKeySet.of(
            ANIMAL_KEYS.by_parent(shelter_id)
        )
        await self._cache.mutate(key_set, write)
        logger.info("shelter.deleted", extra={"shelter_id": shelter_id})

    async def _load_owned(self, shelter_id: int, user: CurrentUser | None) -> Row:
        row = await self._shelters.get(shelter_id)
        if row is None:
            raise not_found("shelter", shelter_id)
        if user is not None and user.is_shelter_admin and row.get("admin_id") != user.user_id:
            raise ForbiddenAppError(
                code="shelter_not_owned",
                message="Shelter admins may only manage their own shelter",
                details={"entity": "shelter", "entity_id": shelter_id},
            )
        return row
