"""Animal reads and writes over the cache-aside protocol.

Animals are cached individually, as the full listing, per owning shelter and
per search filter set. A write can affect any search result and, when the
animal changes shelter, the listings of both shelters, so mutations drop the
whole search namespace along with the affected shelter listings.
"""

from __future__ import annotations

import logging

from shelter_api.core.auth import CurrentUser
from shelter_api.core.cache_aside import ANIMAL_KEYS, CacheAside, InvalidationKeySet
from shelter_api.core.config import CacheSettings
from shelter_api.core.errors import ForbiddenAppError, not_found
from shelter_api.repositories.base import AnimalsRepository, PhotosRepository, Row, SheltersRepository
from shelter_api.schemas.entities import AnimalCreate, AnimalSearchParams, AnimalUpdate
from shelter_api.services.photos import attach_photos, attach_photos_many, replace_photos
from shelter_api.utils.url_normalizer import normalize_entity

logger = logging.getLogger(__name__)

PHOTO_ENTITY = "animal"


class AnimalsService:
    def __init__(
        self,
        *,
        animals: AnimalsRepository,
        shelters: SheltersRepository,
        photos: PhotosRepository,
        cache: CacheAside,
        cache_settings: CacheSettings,
    ) -> None:
        self._animals = animals
        self._shelters = shelters
        self._photos = photos
        self._cache = cache
        self._ttl = cache_settings.animals_ttl_seconds
        self._search_ttl = cache_settings.animal_search_ttl_seconds

    async def _with_photos(self, rows: list[Row]) -> list[Row]:
        return await attach_photos_many(self._photos, PHOTO_ENTITY, rows)

    async def list_animals(self, limit: int | None = None) -> list[Row]:
        if limit is not None:
            rows = await self._animals.list_all(limit=limit)
            return normalize_entity(await self._with_photos(rows))

        async def load() -> list[Row]:
            return await self._with_photos(await self._animals.list_all())

        return await self._cache.read_through(ANIMAL_KEYS.all, load, self._ttl, normalize_entity)

    async def get_animal(self, animal_id: int) -> Row:
        async def load() -> Row | None:
            row = await self._animals.get(animal_id)
            if row is None:
                return None
            return await attach_photos(self._photos, PHOTO_ENTITY, row)

        animal = await self._cache.read_through(
            ANIMAL_KEYS.by_id(animal_id), load, self._ttl, normalize_entity
        )
        if animal is None:
            raise not_found("animal", animal_id)
        return animal

    async def list_by_shelter(self, shelter_id: int) -> list[Row]:
        async def load() -> list[Row]:
            return await self._with_photos(await self._animals.list_by_shelter(shelter_id))

        return await self._cache.read_through(
            ANIMAL_KEYS.by_parent(shelter_id), load, self._ttl, normalize_entity
        )

    async def search_animals(self, filters: AnimalSearchParams) -> list[Row]:
        criteria = filters.model_dump(exclude_none=True)

        async def load() -> list[Row]:
            return await self._with_photos(await self._animals.search(criteria))

        return await self._cache.read_through(
            ANIMAL_KEYS.search(criteria), load, self._search_ttl, normalize_entity
        )

    async def create_animal(self, data: AnimalCreate, user: CurrentUser | None = None) -> Row:
        await self._check_shelter(data.shelter_id, user)
        payload = data.model_dump(mode="json", exclude={"photo_urls"})

        async def write() -> Row:
            row = await self._animals.create(payload)
            await replace_photos(self._photos, PHOTO_ENTITY, row["id"], data.photo_urls)
            return row

        created = await self._cache.mutate(
            InvalidationKeySet.for_entity(
                ANIMAL_KEYS,
                parent_ids=(data.shelter_id,),
                include_search=True,
            ),
            write,
            follow_up=lambda row: InvalidationKeySet.of(ANIMAL_KEYS.by_id(row["id"])),
        )
        logger.info(
            "animal.created",
            extra={"animal_id": created["id"], "shelter_id": data.shelter_id},
        )
        return normalize_entity(await attach_photos(self._photos, PHOTO_ENTITY, created))

    async def update_animal(
        self,
        animal_id: int,
        data: AnimalUpdate,
        user: CurrentUser | None = None,
    ) -> Row:
        existing = await self._animals.get(animal_id)
        if existing is None:
            raise not_found("animal", animal_id)
        old_shelter_id = existing.get("shelter_id")
        await self._check_shelter(old_shelter_id, user)

        changes = data.model_dump(mode="json", exclude_unset=True, exclude={"photo_urls"})
        new_shelter_id = changes.get("shelter_id", old_shelter_id)
        moved = new_shelter_id != old_shelter_id
        if moved:
            if user is not None and user.is_shelter_admin:
                raise ForbiddenAppError(
                    code="animal_move_forbidden",
                    message="Shelter admins may not move animals to another shelter",
                    details={"entity": "animal", "entity_id": animal_id},
                )
            if await self._shelters.get(new_shelter_id) is None:
                raise not_found("shelter", new_shelter_id)

        async def write() -> Row | None:
            row = await self._animals.update(animal_id, changes)
            if row is not None and data.photo_urls:
                await replace_photos(self._photos, PHOTO_ENTITY, animal_id, data.photo_urls)
            return row

        updated = await self._cache.mutate(
            InvalidationKeySet.for_entity(
                ANIMAL_KEYS,
                animal_id,
                parent_ids=(old_shelter_id, new_shelter_id),
                include_search=True,
                fan_out=moved,
            ),
            write,
        )
        if updated is None:
            raise not_found("animal", animal_id)
        logger.info("animal.updated", extra={"animal_id": animal_id, "moved": moved})
        return normalize_entity(await attach_photos(self._photos, PHOTO_ENTITY, updated))

    async def delete_animal(self, animal_id: int, user: CurrentUser | None = None) -> None:
        existing = await self._animals.get(animal_id)
        if existing is None:
            raise not_found("animal", animal_id)
        await self._check_shelter(existing.get("shelter_id"), user)

        async def write() -> Row | None:
            await self._photos.delete_by_entity(PHOTO_ENTITY, animal_id)
            return await self._animals.delete(animal_id)

        await self._cache.mutate(
            InvalidationKeySet.for_entity(
                ANIMAL_KEYS,
                animal_id,
                parent_ids=(existing.get("shelter_id"),),
                include_search=True,
            ),
            write,
        )
        logger.info("animal.deleted", extra={"animal_id": animal_id})

    async def _check_shelter(self, shelter_id: int | None, user: CurrentUser | None) -> None:
        """Shelter must exist; shelter admins may only act within their own."""
        if shelter_id is None:
            return
        shelter = await self._shelters.get(shelter_id)
        if shelter is None:
            raise not_found("shelter", shelter_id)
        if user is not None and user.is_shelter_admin and shelter.get("admin_id") != user.user_id:
            raise ForbiddenAppError(
                code="shelter_not_owned",
                message="Shelter admins may only manage animals of their own shelter",
                details={"entity": "shelter", "entity_id": shelter_id},
            )
