"""
Stateless recommendation endpoint.

For callers that already hold averaged measurements, e.g. re-scoring a
stored result after the user edits their questionnaire.
"""

from __future__ import annotations

from fastapi import APIRouter

from maskfit.core.recommendation import recommend
from maskfit.models.schemas import RecommendationRequest, RecommendationResponse

router = APIRouter()


@router.post("", response_model=RecommendationResponse)
async def get_recommendation(req: RecommendationRequest):
    recommendation = recommend(
        frontal=req.front,
        profile=req.profile,
        user_profile=req.user_profile,
    )
    return RecommendationResponse(recommendation=recommendation)
