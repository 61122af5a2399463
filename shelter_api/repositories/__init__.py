"""Authoritative store contracts and their in-process implementation."""

from shelter_api.repositories.base import (
    AnimalsRepository,
    ApplicationsRepository,
    PhotosRepository,
    Row,
    SheltersRepository,
    UsersRepository,
    VotesRepository,
)
from shelter_api.repositories.in_memory import InMemoryDatabase

__all__ = [
    "AnimalsRepository",
    "ApplicationsRepository",
    "InMemoryDatabase",
    "PhotosRepository",
    "Row",
    "SheltersRepository",
    "UsersRepository",
    "VotesRepository",
]
