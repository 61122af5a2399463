from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from shelter_api.api.dependencies import AnimalsServiceDep
from shelter_api.core.auth import OptionalUser, verify_api_key
from shelter_api.schemas.entities import AnimalCreate, AnimalResponse, AnimalSearchParams, AnimalUpdate

router = APIRouter(prefix="/animals", tags=["Animals"])


@router.get("", response_model=list[AnimalResponse])
async def list_animals(
    service: AnimalsServiceDep,
    limit: int | None = Query(default=None, ge=1, le=1000),
) -> list[dict]:
    return await service.list_animals(limit=limit)


@router.get("/search", response_model=list[AnimalResponse])
async def search_animals(
    filters: Annotated[AnimalSearchParams, Depends()],
    service: AnimalsServiceDep,
) -> list[dict]:
    """Filter animals by type, gender, size, health, shelter and age range."""
    return await service.search_animals(filters)


@router.get("/shelter/{shelter_id}", response_model=list[AnimalResponse])
async def list_animals_by_shelter(shelter_id: int, service: AnimalsServiceDep) -> list[dict]:
    return await service.list_by_shelter(shelter_id)


@router.get("/{animal_id}", response_model=AnimalResponse)
async def get_animal(animal_id: int, service: AnimalsServiceDep) -> dict:
    return await service.get_animal(animal_id)


@router.post(
    "",
    response_model=AnimalResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(verify_api_key)],
)
async def create_animal(payload: AnimalCreate, service: AnimalsServiceDep, user: OptionalUser) -> dict:
    return await service.create_animal(payload, user)


@router.put("/{animal_id}", response_model=AnimalResponse, dependencies=[Depends(verify_api_key)])
async def update_animal(
    animal_id: int,
    payload: AnimalUpdate,
    service: AnimalsServiceDep,
    user: OptionalUser,
) -> dict:
    return await service.update_animal(animal_id, payload, user)


@router.delete(
    "/{animal_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(verify_api_key)],
)
async def delete_animal(animal_id: int, service: AnimalsServiceDep, user: OptionalUser) -> None:
    await service.delete_animal(animal_id, user)
