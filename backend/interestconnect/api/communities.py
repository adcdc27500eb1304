"""Community recommendation endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from interestconnect.domain.chat.models import MinimalIdentity
from interestconnect.domain.matching.schemas import RecommendationsResponse
from interestconnect.domain.matching.service import MatchingService, get_matching_service
from interestconnect.infra.auth import get_current_user

router = APIRouter(prefix="/api/communities", tags=["communities"])


@router.get("/recommendations", response_model=RecommendationsResponse, response_model_exclude_none=True)
async def recommendations_endpoint(
	user: MinimalIdentity = Depends(get_current_user),
	service: MatchingService = Depends(get_matching_service),
) -> RecommendationsResponse:
	return await service.community_recommendations(user.id)
