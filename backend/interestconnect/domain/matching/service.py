"""Matching, recommendation and search use-cases on top of the ranking engine."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional

from interestconnect.domain.communities.repo import PostgresCommunityStore
from interestconnect.domain.matching import ranking
from interestconnect.domain.matching.repo import InterestMembershipStore, PostgresInterestStore
from interestconnect.domain.matching.schemas import (
	CommunityCreator,
	CommunityRecommendation,
	InterestItem,
	MatchesResponse,
	MatchPerson,
	RecommendationsResponse,
	SearchResponse,
	SearchUser,
)
from interestconnect.domain.users.repo import PostgresUserDirectory
from interestconnect.obs import metrics as obs_metrics
from interestconnect.settings import settings

logger = logging.getLogger(__name__)


class MatchingService:
	def __init__(
		self,
		*,
		interests: Optional[InterestMembershipStore] = None,
		users: Optional[PostgresUserDirectory] = None,
		communities: Optional[PostgresCommunityStore] = None,
	) -> None:
		self._interests = interests or PostgresInterestStore()
		self._users = users or PostgresUserDirectory()
		self._communities = communities or PostgresCommunityStore()

	async def people_matches(self, user_id: str) -> MatchesResponse:
		obs_metrics.inc_ranking_request("people")
		reference = await self._interests.interests_of_user(user_id)
		if not reference:
			return MatchesResponse(matches=[], message=ranking.NO_INTERESTS_MESSAGE)
		sharing = await self._interests.users_sharing(reference, exclude_user_id=user_id)
		candidates = [ranking.Candidate(candidate_id=uid, interest_ids=frozenset(ids)) for uid, ids in sharing.items()]
		result = ranking.match_people(reference, candidates, cap=settings.match_limit)
		if not result.matches:
			return MatchesResponse(matches=[])
		ids = [match.candidate_id for match in result.matches]
		profiles = {profile["id"]: profile for profile in await self._users.fetch_profiles(ids)}
		interest_pairs = await self._interests.user_interests(ids)
		matches: List[MatchPerson] = []
		for match in result.matches:
			profile = profiles.get(match.candidate_id)
			if profile is None:
				# user_interests row outlived its user
				continue
			matches.append(
				MatchPerson(
					**profile,
					interests=[name for _, name in interest_pairs.get(match.candidate_id, [])],
					match_score=match.match_score,
				)
			)
		logger.info("people matches ranked", extra={"user_id": user_id, "count": len(matches)})
		return MatchesResponse(matches=matches)

	async def community_recommendations(self, user_id: str) -> RecommendationsResponse:
		obs_metrics.inc_ranking_request("communities")
		reference = await self._interests.interests_of_user(user_id)
		joined = await self._communities.joined_community_ids(user_id)
		pool_rows = await self._communities.recommendation_pool(joined, limit=settings.recommendation_pool_size)
		by_id: Dict[str, Dict[str, Any]] = {row["id"]: row for row in pool_rows}
		community_interests = await self._interests.community_interests(list(by_id))
		pool = [
			ranking.Candidate(
				candidate_id=community_id,
				interest_ids=frozenset(community_interests.get(community_id, (set(), []))[0]),
				interest_names=tuple(community_interests.get(community_id, (set(), []))[1]),
			)
			for community_id in by_id
		]
		result = ranking.recommend_communities(reference, pool, joined)
		recommendations = [_recommendation(by_id[match.candidate_id], match) for match in result.matches]
		return RecommendationsResponse(recommendations=recommendations, message=result.message)

	async def search_users(
		self,
		user_id: str,
		*,
		q: Optional[str] = None,
		interests: Optional[str] = None,
		user_type: Optional[str] = None,
		location: Optional[str] = None,
		page: int = 1,
		limit: int = 20,
	) -> SearchResponse:
		limit = max(1, min(limit, settings.search_page_size_max))
		page = max(1, page)
		rows, total = await self._users.search(
			user_id,
			q=q,
			user_type=user_type,
			location=location,
			limit=limit,
			offset=(page - 1) * limit,
		)
		pairs = await self._interests.user_interests([row["id"] for row in rows])
		wanted = {term.strip().lower() for term in (interests or "").split(",") if term.strip()}
		if wanted:
			rows = [
				row
				for row in rows
				if any(name.lower() in wanted for _, name in pairs.get(row["id"], []))
			]
		reference = await self._interests.interests_of_user(user_id)
		boosted = ranking.boost_by_overlap(
			reference,
			rows,
			lambda row: [interest_id for interest_id, _ in pairs.get(row["id"], [])],
		)
		users = [
			SearchUser(
				**row,
				interests=[name for _, name in pairs.get(row["id"], [])],
				match_score=match_score,
			)
			for row, match_score in boosted
		]
		return SearchResponse(
			users=users,
			total=total,
			page=page,
			total_pages=math.ceil(total / limit) if total else 0,
		)

	async def interest_catalog(self) -> Dict[str, List[InterestItem]]:
		grouped: Dict[str, List[InterestItem]] = {}
		for row in await self._interests.catalog():
			category = row.get("category") or "other"
			grouped.setdefault(category, []).append(InterestItem(**row))
		return grouped


def _recommendation(row: Dict[str, Any], match: ranking.MatchCandidate) -> CommunityRecommendation:
	creator = None
	if row.get("creator_id") is not None:
		creator = CommunityCreator(
			id=str(row["creator_id"]),
			name=row.get("creator_name"),
			profile_picture=row.get("creator_picture"),
		)
	return CommunityRecommendation(
		id=row["id"],
		name=row["name"],
		description=row.get("description"),
		category=row.get("category"),
		image_url=row.get("image_url"),
		creator=creator,
		member_count=int(row.get("member_count") or 0),
		interests=list(match.interest_names),
		match_score=match.match_score,
	)


_service: Optional[MatchingService] = None


def get_matching_service() -> MatchingService:
	global _service
	if _service is None:
		_service = MatchingService()
	return _service
