"""Dependencies resolving the services built by the app lifespan."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from shelter_api.services.animals_service import AnimalsService
from shelter_api.services.applications_service import ApplicationsService
from shelter_api.services.shelters_service import SheltersService
from shelter_api.services.users_service import UsersService
from shelter_api.services.votes_service import VotesService


def get_shelters_service(request: Request) -> SheltersService:
    return request.app.state.shelters_service


def get_animals_service(request: Request) -> AnimalsService:
    return request.app.state.animals_service


def get_users_service(request: Request) -> UsersService:
    return request.app.state.users_service


def get_applications_service(request: Request) -> ApplicationsService:
    return request.app.state.applications_service


def get_votes_service(request: Request) -> VotesService:
    return request.app.state.votes_service


SheltersServiceDep = Annotated[SheltersService, Depends(get_shelters_service)]
AnimalsServiceDep = Annotated[AnimalsService, Depends(get_animals_service)]
UsersServiceDep = Annotated[UsersService, Depends(get_users_service)]
ApplicationsServiceDep = Annotated[ApplicationsService, Depends(get_applications_service)]
VotesServiceDep = Annotated[VotesService, Depends(get_votes_service)]
