from __future__ import annotations

from fastapi import APIRouter, Depends

from shelter_api.api.routes.animals import router as animals_router
from shelter_api.api.routes.applications import router as applications_router
from shelter_api.api.routes.auth import router as auth_router
from shelter_api.api.routes.health import router as health_router
from shelter_api.api.routes.shelters import router as shelters_router
from shelter_api.api.routes.users import router as users_router
from shelter_api.api.routes.votes import router as votes_router
from shelter_api.core.rate_limit import GLOBAL_POLICY, rate_limit_dependency

api_router = APIRouter(dependencies=[Depends(rate_limit_dependency(GLOBAL_POLICY))])
api_router.include_router(shelters_router)
api_router.include_router(votes_router)
api_router.include_router(animals_router)
api_router.include_router(users_router)
api_router.include_router(applications_router)
api_router.include_router(auth_router)

__all__ = ["api_router", "health_router"]
