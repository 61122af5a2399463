"""Photo attachment helpers shared by the entity services."""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from shelter_api.repositories.base import PhotosRepository, Row


def _photo_payload(photo: Row) -> dict[str, str]:
    return {"url": photo["url"]}


async def attach_photos(photos: PhotosRepository, entity_type: str, row: Row) -> Row:
    """Return ``row`` with its ``photos`` list filled from the photo store."""
    rows = await photos.list_by_entity(entity_type, row["id"])
    return {**row, "photos": [_photo_payload(photo) for photo in rows]}


async def attach_photos_many(
    photos: PhotosRepository,
    entity_type: str,
    rows: Iterable[Row],
) -> list[Row]:
    """Attach photos to a batch of rows with a single photo-store read."""
    by_entity: dict[int, list[dict[str, str]]] = defaultdict(list)
    for photo in await photos.list_by_entity_type(entity_type):
        by_entity[photo["entity_id"]].append(_photo_payload(photo))
    return [{**row, "photos": by_entity.get(row["id"], [])} for row in rows]


async def replace_photos(
    photos: PhotosRepository,
    entity_type: str,
    entity_id: int,
    urls: Iterable[str],
) -> None:
    await photos.delete_by_entity(entity_type, entity_id)
    for url in urls:
        await photos.add(entity_type, entity_id, url)
