from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from shelter_api.api.dependencies import ApplicationsServiceDep
from shelter_api.core.auth import verify_api_key
from shelter_api.schemas.entities import (
    ApplicationCreate,
    ApplicationResponse,
    ApplicationStatus,
    ApplicationUpdate,
    StatusCount,
)

router = APIRouter(prefix="/applications", tags=["Applications"])


@router.get("", response_model=list[ApplicationResponse])
async def list_applications(service: ApplicationsServiceDep) -> list[dict]:
    return await service.list_applications()


@router.get("/count", response_model=StatusCount)
async def count_applications(
    service: ApplicationsServiceDep,
    status_filter: ApplicationStatus = Query(default="pending", alias="status"),
) -> StatusCount:
    """Number of applications in one status; always read from the store."""
    return StatusCount(status=status_filter, count=await service.count_by_status(status_filter))


@router.get("/animal/{animal_id}", response_model=list[ApplicationResponse])
async def list_applications_by_animal(animal_id: int, service: ApplicationsServiceDep) -> list[dict]:
    return await service.list_by_animal(animal_id)


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(application_id: int, service: ApplicationsServiceDep) -> dict:
    return await service.get_application(application_id)


@router.post(
    "",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(verify_api_key)],
)
async def create_application(payload: ApplicationCreate, service: ApplicationsServiceDep) -> dict:
    return await service.create_application(payload)


@router.put(
    "/{application_id}",
    response_model=ApplicationResponse,
    dependencies=[Depends(verify_api_key)],
)
async def update_application(
    application_id: int,
    payload: ApplicationUpdate,
    service: ApplicationsServiceDep,
) -> dict:
    return await service.update_application(application_id, payload)


@router.delete(
    "/{application_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(verify_api_key)],
)
async def delete_application(application_id: int, service: ApplicationsServiceDep) -> None:
    await service.delete_application(application_id)
