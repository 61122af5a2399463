"""Pydantic schemas for shelter votes and rating results."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from shelter_api.schemas.entities import ShelterResponse


class VoteRequest(BaseModel):
    vote: int = Field(..., ge=1, le=5, description="Score from 1 to 5.")


class VoteResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    user_id: int
    shelter_id: int
    vote: int


class VoteResult(BaseModel):
    """Outcome of casting a vote, with the recomputed aggregate."""

    vote: VoteResponse
    rating: float = Field(..., description="Mean of all votes for the shelter, two decimals.")
    total_ratings: int = Field(..., description="Number of votes the rating is computed from.")
    shelter: ShelterResponse
    updated: bool = Field(..., description="True when an existing vote by the caller was replaced.")
