from __future__ import annotations

from fastapi import APIRouter, Depends

from shelter_api.core.auth import RequiredUser, verify_api_key
from shelter_api.core.rate_limit import AUTH_POLICY, rate_limit_dependency

router = APIRouter(
    prefix="/auth",
    tags=["Auth"],
    dependencies=[Depends(rate_limit_dependency(AUTH_POLICY))],
)


@router.get("/session", dependencies=[Depends(verify_api_key)])
async def get_session(user: RequiredUser) -> dict:
    """Echo the caller identity forwarded by the gateway.

    Counted against the auth rate limit in addition to the global one.
    """
    return {"user_id": user.user_id, "role": user.role}
