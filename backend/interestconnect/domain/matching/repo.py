"""Interest membership store backed by Postgres."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Protocol, Sequence, Set, Tuple

from interestconnect.infra.postgres import get_pool


class InterestMembershipStore(Protocol):
	async def interests_of_user(self, user_id: str) -> Set[str]: ...

	async def users_sharing(self, interest_ids: Set[str], *, exclude_user_id: str) -> Dict[str, Set[str]]: ...

	async def user_interests(self, user_ids: Sequence[str]) -> Dict[str, List[Tuple[str, str]]]: ...

	async def community_interests(self, community_ids: Sequence[str]) -> Dict[str, Tuple[Set[str], List[str]]]: ...

	async def catalog(self) -> List[dict]: ...


class PostgresInterestStore:
	async def interests_of_user(self, user_id: str) -> Set[str]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch("SELECT interest_id FROM user_interests WHERE user_id = $1::uuid", user_id)
		return {str(row["interest_id"]) for row in rows}

	async def users_sharing(self, interest_ids: Set[str], *, exclude_user_id: str) -> Dict[str, Set[str]]:
		"""Map every other user holding at least one of ``interest_ids`` to their interest ids."""
		if not interest_ids:
			return {}
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT ui.user_id, ui.interest_id
				FROM user_interests ui
				WHERE ui.user_id IN (
					SELECT DISTINCT user_id FROM user_interests
					WHERE interest_id = ANY($1::uuid[]) AND user_id <> $2::uuid
				)
				""",
				list(interest_ids),
				exclude_user_id,
			)
		result: Dict[str, Set[str]] = defaultdict(set)
		for row in rows:
			result[str(row["user_id"])].add(str(row["interest_id"]))
		return dict(result)

	async def user_interests(self, user_ids: Sequence[str]) -> Dict[str, List[Tuple[str, str]]]:
		"""Map user id to (interest id, interest name) pairs."""
		if not user_ids:
			return {}
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT ui.user_id, ui.interest_id, i.name
				FROM user_interests ui
				JOIN interests i ON i.id = ui.interest_id
				WHERE ui.user_id = ANY($1::uuid[])
				ORDER BY i.name
				""",
				list(user_ids),
			)
		pairs: Dict[str, List[Tuple[str, str]]] = defaultdict(list)
		for row in rows:
			pairs[str(row["user_id"])].append((str(row["interest_id"]), row["name"]))
		return dict(pairs)

	async def community_interests(self, community_ids: Sequence[str]) -> Dict[str, Tuple[Set[str], List[str]]]:
		"""Map community id to (interest ids, interest names)."""
		if not community_ids:
			return {}
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT ci.community_id, ci.interest_id, i.name
				FROM community_interests ci
				JOIN interests i ON i.id = ci.interest_id
				WHERE ci.community_id = ANY($1::uuid[])
				ORDER BY i.name
				""",
				list(community_ids),
			)
		result: Dict[str, Tuple[Set[str], List[str]]] = {}
		for row in rows:
			ids, names = result.setdefault(str(row["community_id"]), (set(), []))
			ids.add(str(row["interest_id"]))
			names.append(row["name"])
		return result

	async def catalog(self) -> List[dict]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch("SELECT id, name, category FROM interests ORDER BY category, name")
		return [{**dict(row), "id": str(row["id"])} for row in rows]
