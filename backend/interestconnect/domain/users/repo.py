"""User directory backed by Postgres."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from interestconnect.domain.chat.models import MinimalIdentity
from interestconnect.domain.common.exceptions import NotFound
from interestconnect.infra.postgres import get_pool

PROFILE_COLUMNS = "id, name, bio, location, profile_picture, user_type, is_verified, is_online"


class UserDirectory(Protocol):
	async def fetch_minimal_identity(self, user_id: str) -> MinimalIdentity: ...

	async def set_online(self, user_id: str, online: bool) -> None: ...


def _profile(row: Any) -> Dict[str, Any]:
	data = dict(row)
	data["id"] = str(data["id"])
	for flag in ("is_online", "is_verified"):
		data[flag] = bool(data.get(flag))
	return data


class PostgresUserDirectory:
	async def fetch_minimal_identity(self, user_id: str) -> MinimalIdentity:
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"SELECT id, name, profile_picture FROM users WHERE id = $1::uuid",
				user_id,
			)
		if row is None:
			raise NotFound("User not found")
		return MinimalIdentity.from_record(row)

	async def set_online(self, user_id: str, online: bool) -> None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(
				"UPDATE users SET is_online = $2, last_active = NOW() WHERE id = $1::uuid",
				user_id,
				online,
			)

	async def fetch_profiles(self, user_ids: Sequence[str]) -> List[Dict[str, Any]]:
		if not user_ids:
			return []
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"SELECT {PROFILE_COLUMNS} FROM users WHERE id = ANY($1::uuid[])",
				list(user_ids),
			)
		return [_profile(row) for row in rows]

	async def search(
		self,
		viewer_id: str,
		*,
		q: Optional[str] = None,
		user_type: Optional[str] = None,
		location: Optional[str] = None,
		limit: int = 20,
		offset: int = 0,
	) -> Tuple[List[Dict[str, Any]], int]:
		params: List[object] = [viewer_id]
		conditions = ["id <> $1::uuid"]
		if q:
			params.append(f"%{q}%")
			conditions.append(f"(name ILIKE ${len(params)} OR bio ILIKE ${len(params)})")
		if user_type:
			params.append(user_type)
			conditions.append(f"user_type = ${len(params)}")
		if location:
			params.append(f"%{location}%")
			conditions.append(f"location ILIKE ${len(params)}")
		where_clause = " AND ".join(conditions)
		pool = await get_pool()
		async with pool.acquire() as conn:
			total = await conn.fetchval(f"SELECT COUNT(*) FROM users WHERE {where_clause}", *params)
			rows = await conn.fetch(
				f"""
				SELECT {PROFILE_COLUMNS}
				FROM users
				WHERE {where_clause}
				ORDER BY name
				LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}
				""",
				*params,
				limit,
				offset,
			)
		return [_profile(row) for row in rows], int(total or 0)
