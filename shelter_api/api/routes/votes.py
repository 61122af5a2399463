from __future__ import annotations

from fastapi import APIRouter, Depends

from shelter_api.api.dependencies import VotesServiceDep
from shelter_api.core.auth import RequiredUser, verify_api_key
from shelter_api.schemas.votes import VoteRequest, VoteResponse, VoteResult

router = APIRouter(prefix="/shelters/{shelter_id}/votes", tags=["Votes"])


@router.post("", response_model=VoteResult, dependencies=[Depends(verify_api_key)])
async def cast_vote(
    shelter_id: int,
    payload: VoteRequest,
    service: VotesServiceDep,
    user: RequiredUser,
) -> VoteResult:
    """Cast or replace the caller's vote and return the recomputed rating.

    Raises:
        NotFoundAppError: 404 if the shelter does not exist.
    """
    outcome = await service.cast_vote(user.user_id, shelter_id, payload.vote)
    return VoteResult(
        vote=VoteResponse.model_validate(outcome.vote),
        rating=outcome.rating,
        total_ratings=outcome.total_ratings,
        shelter=outcome.shelter,
        updated=outcome.updated,
    )


@router.get("", response_model=list[VoteResponse])
async def list_votes(shelter_id: int, service: VotesServiceDep) -> list[dict]:
    return await service.list_votes(shelter_id)
