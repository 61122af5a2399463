"""Adoption applications over the cache-aside protocol."""

from __future__ import annotations

import logging

from shelter_api.core.cache_aside import APPLICATION_KEYS, CacheAside, InvalidationKeySet
from shelter_api.core.config import CacheSettings
from shelter_api.core.errors import ValidationAppError, not_found
from shelter_api.repositories.base import AnimalsRepository, ApplicationsRepository, Row
from shelter_api.schemas.entities import ApplicationCreate, ApplicationUpdate

logger = logging.getLogger(__name__)


class ApplicationsService:
    def __init__(
        self,
        *,
        applications: ApplicationsRepository,
        animals: AnimalsRepository,
        cache: CacheAside,
        cache_settings: CacheSettings,
    ) -> None:
        self._applications = applications
        self._animals = animals
        self._cache = cache
        self._ttl = cache_settings.applications_ttl_seconds

    async def list_applications(self) -> list[Row]:
        return await self._cache.read_through(
            APPLICATION_KEYS.all, self._applications.list_all, self._ttl
        )

    async def get_application(self, application_id: int) -> Row:
        application = await self._cache.read_through(
            APPLICATION_KEYS.by_id(application_id),
            lambda: self._applications.get(application_id),
            self._ttl,
        )
        if application is None:
            raise not_found("application", application_id)
        return application

    async def list_by_animal(self, animal_id: int) -> list[Row]:
        return await self._cache.read_through(
            APPLICATION_KEYS.by_parent(animal_id),
            lambda: self._applications.list_by_animal(animal_id),
            self._ttl,
        )

    async def create_application(self, data: ApplicationCreate) -> Row:
        animal = await self._animals.get(data.animal_id)
        if animal is None:
            raise not_found("animal", data.animal_id)
        if animal.get("shelter_id") != data.shelter_id:
            raise ValidationAppError(
                code="application_shelter_mismatch",
                message="Animal does not belong to the given shelter",
                details={"field": "shelter_id", "entity": "animal", "entity_id": data.animal_id},
            )
        payload = data.model_dump(mode="json")

        created = await self._cache.mutate(
            InvalidationKeySet.for_entity(APPLICATION_KEYS, parent_ids=(data.animal_id,)),
            lambda: self._applications.create(payload),
            follow_up=lambda row: InvalidationKeySet.of(APPLICATION_KEYS.by_id(row["id"])),
        )
        logger.info(
            "application.created",
            extra={"application_id": created["id"], "animal_id": data.animal_id},
        )
        return created

    async def update_application(self, application_id: int, data: ApplicationUpdate) -> Row:
        existing = await self._applications.get(application_id)
        if existing is None:
            raise not_found("application", application_id)
        changes = data.model_dump(mode="json", exclude_unset=True)

        updated = await self._cache.mutate(
            InvalidationKeySet.for_entity(
                APPLICATION_KEYS,
                application_id,
                parent_ids=(existing.get("animal_id"),),
            ),
            lambda: self._applications.update(application_id, changes),
        )
        if updated is None:
            raise not_found("application", application_id)
        logger.info(
            "application.updated",
            extra={"application_id": application_id, "status": updated.get("status")},
        )
        return updated

    async def delete_application(self, application_id: int) -> None:
        existing = await self._applications.get(application_id)
        if existing is None:
            raise not_found("application", application_id)

        await self._cache.mutate(
            InvalidationKeySet.for_entity(
                APPLICATION_KEYS,
                application_id,
                parent_ids=(existing.get("animal_id"),),
            ),
            lambda: self._applications.delete(application_id),
        )
        logger.info("application.deleted", extra={"application_id": application_id})

    async def count_by_status(self, status: str) -> int:
        return await self._applications.count_by_status(status)
