"""Contracts for the authoritative relational and photo stores.

Rows travel as plain dicts (JSON-serializable, so services can cache them
as-is). Lookups return None for missing rows; writes that collide with a
unique constraint raise ``ConflictAppError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

Row = dict[str, Any]


class SheltersRepository(ABC):
    @abstractmethod
    async def list_all(self, limit: int | None = None) -> list[Row]: ...

    @abstractmethod
    async def get(self, shelter_id: int) -> Row | None: ...

    @abstractmethod
    async def list_by_admin(self, admin_id: int) -> list[Row]: ...

    @abstractmethod
    async def create(self, data: Mapping[str, Any]) -> Row: ...

    @abstractmethod
    async def update(self, shelter_id: int, data: Mapping[str, Any]) -> Row | None: ...

    @abstractmethod
    async def update_rating(
        self,
        shelter_id: int,
        *,
        rating: float,
        total_ratings: int,
    ) -> Row | None: ...

    @abstractmethod
    async def delete(self, shelter_id: int) -> Row | None: ...


class AnimalsRepository(ABC):
    @abstractmethod
    async def list_all(self, limit: int | None = None) -> list[Row]: ...

    @abstractmethod
    async def get(self, animal_id: int) -> Row | None: ...

    @abstractmethod
    async def list_by_shelter(self, shelter_id: int) -> list[Row]: ...

    @abstractmethod
    async def search(self, filters: Mapping[str, Any]) -> list[Row]:
        """Filter on ``type``, ``gender``, ``animal_size``, ``health``,
        ``shelter_id`` (equality) and ``min_age``/``max_age`` (inclusive)."""

    @abstractmethod
    async def create(self, data: Mapping[str, Any]) -> Row: ...

    @abstractmethod
    async def update(self, animal_id: int, data: Mapping[str, Any]) -> Row | None: ...

    @abstractmethod
    async def delete(self, animal_id: int) -> Row | None: ...


class UsersRepository(ABC):
    @abstractmethod
    async def list_all(self) -> list[Row]: ...

    @abstractmethod
    async def get(self, user_id: int) -> Row | None: ...

    @abstractmethod
    async def create(self, data: Mapping[str, Any]) -> Row:
        """Raises ConflictAppError when the email is taken."""

    @abstractmethod
    async def update(self, user_id: int, data: Mapping[str, Any]) -> Row | None:
        """Raises ConflictAppError when the new email is taken."""

    @abstractmethod
    async def delete(self, user_id: int) -> Row | None: ...


class ApplicationsRepository(ABC):
    @abstractmethod
    async def list_all(self) -> list[Row]: ...

    @abstractmethod
    async def get(self, application_id: int) -> Row | None: ...

    @abstractmethod
    async def list_by_animal(self, animal_id: int) -> list[Row]: ...

    @abstractmethod
    async def create(self, data: Mapping[str, Any]) -> Row: ...

    @abstractmethod
    async def update(self, application_id: int, data: Mapping[str, Any]) -> Row | None: ...

    @abstractmethod
    async def delete(self, application_id: int) -> Row | None: ...

    @abstractmethod
    async def count_by_status(self, status: str) -> int: ...


class VotesRepository(ABC):
    @abstractmethod
    async def get_by_user_and_shelter(self, user_id: int, shelter_id: int) -> Row | None: ...

    @abstractmethod
    async def create(self, *, user_id: int, shelter_id: int, vote: int) -> Row:
        """Raises ConflictAppError when the user already voted for the shelter."""

    @abstractmethod
    async def update(self, vote_id: int, vote: int) -> Row | None: ...

    @abstractmethod
    async def list_by_shelter(self, shelter_id: int) -> list[Row]: ...


class PhotosRepository(ABC):
    @abstractmethod
    async def list_by_entity_type(self, entity_type: str) -> list[Row]: ...

    @abstractmethod
    async def list_by_entity(self, entity_type: str, entity_id: int) -> list[Row]: ...

    @abstractmethod
    async def add(self, entity_type: str, entity_id: int, url: str) -> Row: ...

    @abstractmethod
    async def delete_by_entity(self, entity_type: str, entity_id: int) -> int: ...
