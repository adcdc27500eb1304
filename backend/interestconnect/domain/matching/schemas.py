"""Pydantic schemas for matches, recommendations and search."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Wire(BaseModel):
	model_config = ConfigDict(populate_by_name=True)


class MatchPerson(_Wire):
	id: str
	name: str
	bio: Optional[str] = None
	location: Optional[str] = None
	profile_picture: Optional[str] = None
	user_type: Optional[str] = None
	is_online: bool = False
	interests: List[str] = Field(default_factory=list)
	match_score: int = Field(..., ge=0, le=100, alias="matchScore")


class MatchesResponse(_Wire):
	matches: List[MatchPerson] = Field(default_factory=list)
	message: Optional[str] = None


class CommunityCreator(_Wire):
	id: str
	name: Optional[str] = None
	profile_picture: Optional[str] = None


class CommunityRecommendation(_Wire):
	id: str
	name: str
	description: Optional[str] = None
	category: Optional[str] = None
	image_url: Optional[str] = Field(default=None, alias="imageUrl")
	creator: Optional[CommunityCreator] = None
	member_count: int = Field(default=0, alias="memberCount")
	interests: List[str] = Field(default_factory=list)
	match_score: int = Field(..., ge=0, le=100, alias="matchScore")


class RecommendationsResponse(_Wire):
	recommendations: List[CommunityRecommendation] = Field(default_factory=list)
	message: Optional[str] = None


class SearchUser(_Wire):
	id: str
	name: str
	bio: Optional[str] = None
	location: Optional[str] = None
	profile_picture: Optional[str] = None
	user_type: Optional[str] = None
	is_verified: bool = False
	is_online: bool = False
	interests: List[str] = Field(default_factory=list)
	match_score: Optional[int] = Field(default=None, alias="matchScore")


class SearchResponse(_Wire):
	users: List[SearchUser] = Field(default_factory=list)
	total: int = 0
	page: int = 1
	total_pages: int = Field(default=0, alias="totalPages")


class InterestItem(BaseModel):
	id: str
	name: str
	category: Optional[str] = None
