from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from shelter_api.api.dependencies import SheltersServiceDep
from shelter_api.core.auth import OptionalUser, verify_api_key
from shelter_api.schemas.entities import ShelterCreate, ShelterResponse, ShelterUpdate

router = APIRouter(prefix="/shelters", tags=["Shelters"])


@router.get("", response_model=list[ShelterResponse])
async def list_shelters(
    service: SheltersServiceDep,
    limit: int | None = Query(default=None, ge=1, le=1000),
    admin_id: int | None = Query(default=None, ge=1),
) -> list[dict]:
    """List shelters, optionally limited or scoped to one shelter admin."""
    return await service.list_shelters(limit=limit, admin_id=admin_id)


@router.get("/admin/{admin_id}", response_model=ShelterResponse)
async def get_shelter_by_admin(admin_id: int, service: SheltersServiceDep) -> dict:
    return await service.get_shelter_by_admin(admin_id)


@router.get("/{shelter_id}", response_model=ShelterResponse)
async def get_shelter(shelter_id: int, service: SheltersServiceDep) -> dict:
    return await service.get_shelter(shelter_id)


@router.post(
    "",
    response_model=ShelterResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(verify_api_key)],
)
async def create_shelter(
    payload: ShelterCreate,
    service: SheltersServiceDep,
    user: OptionalUser,
) -> dict:
    """Create a shelter. Shelter admins own at most one and always own what they create."""
    return await service.create_shelter(payload, user)


@router.put(
    "/{shelter_id}",
    response_model=ShelterResponse,
    dependencies=[Depends(verify_api_key)],
)
async def update_shelter(
    shelter_id: int,
    payload: ShelterUpdate,
    service: SheltersServiceDep,
    user: OptionalUser,
) -> dict:
    return await service.update_shelter(shelter_id, payload, user)


@router.delete(
    "/{shelter_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(verify_api_key)],
)
async def delete_shelter(shelter_id: int, service: SheltersServiceDep, user: OptionalUser) -> None:
    await service.delete_shelter(shelter_id, user)
