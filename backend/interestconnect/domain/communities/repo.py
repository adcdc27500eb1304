"""Community membership and recommendation pool queries."""

from __future__ import annotations

from typing import Any, Dict, List, Protocol, Set

from interestconnect.infra.postgres import get_pool


class CommunityStore(Protocol):
	async def is_member(self, community_id: str, user_id: str) -> bool: ...


class PostgresCommunityStore:
	async def is_member(self, community_id: str, user_id: str) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			role = await conn.fetchval(
				"SELECT role FROM community_members WHERE community_id = $1::uuid AND user_id = $2::uuid",
				community_id,
				user_id,
			)
		return role is not None

	async def joined_community_ids(self, user_id: str) -> Set[str]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT community_id FROM community_members WHERE user_id = $1::uuid",
				user_id,
			)
		return {str(row["community_id"]) for row in rows}

	async def recommendation_pool(self, exclude_ids: Set[str], *, limit: int) -> List[Dict[str, Any]]:
		"""Public communities outside ``exclude_ids``, largest first."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT c.id, c.name, c.description, c.category, c.image_url, c.member_count,
					u.id AS creator_id, u.name AS creator_name, u.profile_picture AS creator_picture
				FROM communities c
				LEFT JOIN users u ON u.id = c.creator_id
				WHERE c.is_private = FALSE AND NOT (c.id = ANY($1::uuid[]))
				ORDER BY c.member_count DESC
				LIMIT $2
				""",
				list(exclude_ids),
				limit,
			)
		return [{**dict(row), "id": str(row["id"])} for row in rows]
