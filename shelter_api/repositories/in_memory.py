"""In-process implementation of the store contracts.

Backs local development and the test suite. Rows are copied on the way in
and out so callers can't mutate stored state by accident, mirroring what a
database round trip gives you.
"""

from __future__ import annotations

import copy
import itertools
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping

from shelter_api.core.errors import ConflictAppError
from shelter_api.repositories.base import (
    AnimalsRepository,
    ApplicationsRepository,
    PhotosRepository,
    Row,
    SheltersRepository,
    UsersRepository,
    VotesRepository,
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class _Table:
    """Auto-incrementing id -> row map."""

    def __init__(self) -> None:
        self._rows: dict[int, Row] = {}
        self._ids = itertools.count(1)

    def insert(self, data: Mapping[str, Any]) -> Row:
        row_id = next(self._ids)
        timestamp = _now()
        row = {**copy.deepcopy(dict(data)), "id": row_id, "created_at": timestamp, "updated_at": timestamp}
        self._rows[row_id] = row
        return copy.deepcopy(row)

    def get(self, row_id: int) -> Row | None:
        row = self._rows.get(row_id)
        return copy.deepcopy(row) if row is not None else None

    def update(self, row_id: int, data: Mapping[str, Any]) -> Row | None:
        row = self._rows.get(row_id)
        if row is None:
            return None
        row.update(copy.deepcopy({k: v for k, v in data.items() if k != "id"}))
        row["updated_at"] = _now()
        return copy.deepcopy(row)

    def delete(self, row_id: int) -> Row | None:
        return self._rows.pop(row_id, None)

    def select(self, where: Callable[[Row], bool] | None = None, limit: int | None = None) -> list[Row]:
        rows: Iterable[Row] = sorted(self._rows.values(), key=lambda r: r["id"])
        if where is not None:
            rows = (row for row in rows if where(row))
        selected = [copy.deepcopy(row) for row in rows]
        return selected[:limit] if limit else selected


class InMemorySheltersRepository(SheltersRepository):
    def __init__(self) -> None:
        self.table = _Table()

    async def list_all(self, limit: int | None = None) -> list[Row]:
        return self.table.select(limit=limit)

    async def get(self, shelter_id: int) -> Row | None:
        return self.table.get(shelter_id)

    async def list_by_admin(self, admin_id: int) -> list[Row]:
        return self.table.select(lambda row: row.get("admin_id") == admin_id)

    async def create(self, data: Mapping[str, Any]) -> Row:
        return self.table.insert({"rating": 0.0, "total_ratings": 0, **data})

    async def update(self, shelter_id: int, data: Mapping[str, Any]) -> Row | None:
        return self.table.update(shelter_id, data)

    async def update_rating(self, shelter_id: int, *, rating: float, total_ratings: int) -> Row | None:
        return self.table.update(shelter_id, {"rating": rating, "total_ratings": total_ratings})

    async def delete(self, shelter_id: int) -> Row | None:
        return self.table.delete(shelter_id)


class InMemoryAnimalsRepository(AnimalsRepository):
    _EQUALITY_FILTERS = ("type", "gender", "animal_size", "health", "shelter_id")

    def __init__(self) -> None:
        self.table = _Table()

    async def list_all(self, limit: int | None = None) -> list[Row]:
        return self.table.select(limit=limit)

    async def get(self, animal_id: int) -> Row | None:
        return self.table.get(animal_id)

    async def list_by_shelter(self, shelter_id: int) -> list[Row]:
        return self.table.select(lambda row: row.get("shelter_id") == shelter_id)

    async def search(self, filters: Mapping[str, Any]) -> list[Row]:
        def matches(row: Row) -> bool:
            for name in self._EQUALITY_FILTERS:
                expected = filters.get(name)
                if expected is not None and row.get(name) != expected:
                    return False
            age = row.get("age")
            min_age = filters.get("min_age")
            max_age = filters.get("max_age")
            if min_age is not None and (age is None or age < min_age):
                return False
            if max_age is not None and (age is None or age > max_age):
                return False
            return True

        return self.table.select(matches)

    async def create(self, data: Mapping[str, Any]) -> Row:
        return self.table.insert(data)

    async def update(self, animal_id: int, data: Mapping[str, Any]) -> Row | None:
        return self.table.update(animal_id, data)

    async def delete(self, animal_id: int) -> Row | None:
        return self.table.delete(animal_id)


class InMemoryUsersRepository(UsersRepository):
    def __init__(self) -> None:
        self.table = _Table()

    def _ensure_unique_email(self, email: str | None, exclude_id: int | None = None) -> None:
        if not email:
            return
        taken = self.table.select(
            lambda row: (row.get("email") or "").lower() == email.lower() and row["id"] != exclude_id
        )
        if taken:
            raise ConflictAppError(
                code="user_email_taken",
                message="User with this email already exists",
                details={"field": "email"},
            )

    async def list_all(self) -> list[Row]:
        return self.table.select()

    async def get(self, user_id: int) -> Row | None:
        return self.table.get(user_id)

    async def create(self, data: Mapping[str, Any]) -> Row:
        self._ensure_unique_email(data.get("email"))
        return self.table.insert(data)

    async def update(self, user_id: int, data: Mapping[str, Any]) -> Row | None:
        self._ensure_unique_email(data.get("email"), exclude_id=user_id)
        return self.table.update(user_id, data)

    async def delete(self, user_id: int) -> Row | None:
        return self.table.delete(user_id)


class InMemoryApplicationsRepository(ApplicationsRepository):
    def __init__(self) -> None:
        self.table = _Table()

    async def list_all(self) -> list[Row]:
        return self.table.select()

    async def get(self, application_id: int) -> Row | None:
        return self.table.get(application_id)

    async def list_by_animal(self, animal_id: int) -> list[Row]:
        return self.table.select(lambda row: row.get("animal_id") == animal_id)

    async def create(self, data: Mapping[str, Any]) -> Row:
        return self.table.insert({"status": "pending", "is_active": True, **data})

    async def update(self, application_id: int, data: Mapping[str, Any]) -> Row | None:
        return self.table.update(application_id, data)

    async def delete(self, application_id: int) -> Row | None:
        return self.table.delete(application_id)

    async def count_by_status(self, status: str) -> int:
        return len(self.table.select(lambda row: row.get("status") == status))


class InMemoryVotesRepository(VotesRepository):
    def __init__(self) -> None:
        self.table = _Table()

    async def get_by_user_and_shelter(self, user_id: int, shelter_id: int) -> Row | None:
        rows = self.table.select(
            lambda row: row["user_id"] == user_id and row["shelter_id"] == shelter_id
        )
        return rows[0] if rows else None

    async def create(self, *, user_id: int, shelter_id: int, vote: int) -> Row:
        if await self.get_by_user_and_shelter(user_id, shelter_id) is not None:
            raise ConflictAppError(
                code="vote_already_exists",
                message="User already voted for this shelter",
                details={"entity": "shelter", "entity_id": shelter_id},
            )
        return self.table.insert({"user_id": user_id, "shelter_id": shelter_id, "vote": vote})

    async def update(self, vote_id: int, vote: int) -> Row | None:
        return self.table.update(vote_id, {"vote": vote})

    async def list_by_shelter(self, shelter_id: int) -> list[Row]:
        return self.table.select(lambda row: row["shelter_id"] == shelter_id)


class InMemoryPhotosRepository(PhotosRepository):
    def __init__(self) -> None:
        self.table = _Table()

    async def list_by_entity_type(self, entity_type: str) -> list[Row]:
        return self.table.select(lambda row: row["entity_type"] == entity_type)

    async def list_by_entity(self, entity_type: str, entity_id: int) -> list[Row]:
        return self.table.select(
            lambda row: row["entity_type"] == entity_type and row["entity_id"] == entity_id
        )

    async def add(self, entity_type: str, entity_id: int, url: str) -> Row:
        return self.table.insert({"entity_type": entity_type, "entity_id": entity_id, "url": url})

    async def delete_by_entity(self, entity_type: str, entity_id: int) -> int:
        photos = await self.list_by_entity(entity_type, entity_id)
        for photo in photos:
            self.table.delete(photo["id"])
        return len(photos)


class InMemoryDatabase:
    """Bundle of in-process repositories sharing one lifetime."""

    def __init__(self) -> None:
        self.shelters = InMemorySheltersRepository()
        self.animals = InMemoryAnimalsRepository()
        self.users = InMemoryUsersRepository()
        self.applications = InMemoryApplicationsRepository()
        self.votes = InMemoryVotesRepository()
        self.photos = InMemoryPhotosRepository()
