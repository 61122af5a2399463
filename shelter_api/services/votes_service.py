"""Shelter votes and the derived rating.

A shelter's ``rating`` is the mean of its votes rounded to two decimals and
``total_ratings`` their count; both are recomputed from the full vote set on
every vote, never adjusted incrementally. One vote per (user, shelter): a
repeat vote replaces the earlier one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from shelter_api.core.cache_aside import SHELTER_KEYS, VOTE_KEYS, CacheAside, InvalidationKeySet
from shelter_api.core.config import CacheSettings
from shelter_api.core.errors import not_found
from shelter_api.repositories.base import PhotosRepository, Row, SheltersRepository, VotesRepository
from shelter_api.services.photos import attach_photos
from shelter_api.utils.url_normalizer import normalize_entity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteOutcome:
    vote: Row
    rating: float
    total_ratings: int
    shelter: Row
    updated: bool


def compute_rating(votes: Iterable[int]) -> tuple[float, int]:
    """Return ``(mean rounded to 2 decimals, count)``; ``(0.0, 0)`` without votes.

    Examples:
        >>> compute_rating([5, 3])
        (4.0, 2)
        >>> compute_rating([])
        (0.0, 0)
    """
    values = list(votes)
    if not values:
        return 0.0, 0
    return round(sum(values) / len(values), 2), len(values)


class VotesService:
    def __init__(
        self,
        *,
        votes: VotesRepository,
        shelters: SheltersRepository,
        photos: PhotosRepository,
        cache: CacheAside,
        cache_settings: CacheSettings,
    ) -> None:
        self._votes = votes
        self._shelters = shelters
        self._photos = photos
        self._cache = cache
        self._ttl = cache_settings.votes_ttl_seconds

    async def cast_vote(self, user_id: int, shelter_id: int, vote: int) -> VoteOutcome:
        """Record ``user_id``'s vote for a shelter and refresh its rating.

        Raises:
            NotFoundAppError: The shelter does not exist; no vote is written.
            ConflictAppError: A concurrent first vote by the same user won
                the race to create the row.
        """
        if await self._shelters.get(shelter_id) is None:
            raise not_found("shelter", shelter_id)

        async def write() -> tuple[Row, bool, Row]:
            prior = await self._votes.get_by_user_and_shelter(user_id, shelter_id)
            if prior is not None:
                row = await self._votes.update(prior["id"], vote)
                if row is None:
                    raise not_found("vote", prior["id"])
                updated = True
            else:
                row = await self._votes.create(user_id=user_id, shelter_id=shelter_id, vote=vote)
                updated = False

            all_votes = await self._votes.list_by_shelter(shelter_id)
            rating, total = compute_rating(v["vote"] for v in all_votes)
            shelter = await self._shelters.update_rating(shelter_id, rating=rating, total_ratings=total)
            if shelter is None:
                raise not_found("shelter", shelter_id)
            return row, updated, shelter

        key_set = InvalidationKeySet.of(
            SHELTER_KEYS.all,
            SHELTER_KEYS.by_id(shelter_id),
            VOTE_KEYS.by_parent(shelter_id),
        )
        vote_row, updated, shelter = await self._cache.mutate(key_set, write)

        logger.info(
            "vote.cast",
            extra={
                "shelter_id": shelter_id,
                "updated": updated,
                "rating": shelter["rating"],
                "total_ratings": shelter["total_ratings"],
            },
        )
        shelter = normalize_entity(await attach_photos(self._photos, "shelter", shelter))
        return VoteOutcome(
            vote=vote_row,
            rating=shelter["rating"],
            total_ratings=shelter["total_ratings"],
            shelter=shelter,
            updated=updated,
        )

    async def list_votes(self, shelter_id: int) -> list[Row]:
        return await self._cache.read_through(
            VOTE_KEYS.by_parent(shelter_id),
            lambda: self._votes.list_by_shelter(shelter_id),
            self._ttl,
        )
