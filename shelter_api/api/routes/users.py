from __future__ import annotations

from fastapi import APIRouter, Depends, status

from shelter_api.api.dependencies import UsersServiceDep
from shelter_api.core.auth import verify_api_key
from shelter_api.schemas.entities import UserCreate, UserResponse, UserUpdate

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=list[UserResponse])
async def list_users(service: UsersServiceDep) -> list[dict]:
    return await service.list_users()


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, service: UsersServiceDep) -> dict:
    return await service.get_user(user_id)


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(verify_api_key)],
)
async def create_user(payload: UserCreate, service: UsersServiceDep) -> dict:
    """Register a user. Duplicate emails are rejected with 409."""
    return await service.create_user(payload)


@router.put("/{user_id}", response_model=UserResponse, dependencies=[Depends(verify_api_key)])
async def update_user(user_id: int, payload: UserUpdate, service: UsersServiceDep) -> dict:
    return await service.update_user(user_id, payload)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(verify_api_key)],
)
async def delete_user(user_id: int, service: UsersServiceDep) -> None:
    await service.delete_user(user_id)
