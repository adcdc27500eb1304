"""User discovery endpoints: interest matches, search and the online roster."""

from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from interestconnect.domain.chat.models import MinimalIdentity
from interestconnect.domain.chat.schemas import Sender
from interestconnect.domain.matching.schemas import InterestItem, MatchesResponse, SearchResponse
from interestconnect.domain.matching.service import MatchingService, get_matching_service
from interestconnect.domain.realtime.hub import get_hub
from interestconnect.infra.auth import get_current_user

router = APIRouter(prefix="/api/users", tags=["users"])


class OnlineUsersResponse(BaseModel):
	users: List[Sender] = Field(default_factory=list)


class InterestsResponse(BaseModel):
	interests: Dict[str, List[InterestItem]] = Field(default_factory=dict)


@router.get("/matches", response_model=MatchesResponse, response_model_exclude_none=True)
async def matches_endpoint(
	user: MinimalIdentity = Depends(get_current_user),
	service: MatchingService = Depends(get_matching_service),
) -> MatchesResponse:
	return await service.people_matches(user.id)


@router.get("/search", response_model=SearchResponse)
async def search_endpoint(
	q: Optional[str] = Query(default=None, max_length=100),
	interests: Optional[str] = Query(default=None),
	user_type: Optional[str] = Query(default=None, alias="userType"),
	location: Optional[str] = Query(default=None, max_length=100),
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=20, ge=1, le=100),
	user: MinimalIdentity = Depends(get_current_user),
	service: MatchingService = Depends(get_matching_service),
) -> SearchResponse:
	return await service.search_users(
		user.id,
		q=q,
		interests=interests,
		user_type=user_type,
		location=location,
		page=page,
		limit=limit,
	)


@router.get("/online", response_model=OnlineUsersResponse)
async def online_endpoint(user: MinimalIdentity = Depends(get_current_user)) -> OnlineUsersResponse:
	return OnlineUsersResponse(users=[Sender.from_identity(identity) for identity in get_hub().online_users()])


@router.get("/interests", response_model=InterestsResponse)
async def interests_endpoint(service: MatchingService = Depends(get_matching_service)) -> InterestsResponse:
	return InterestsResponse(interests=await service.interest_catalog())
