"""Message and notification stores backed by Postgres."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from interestconnect.domain.chat.models import MessageRecord
from interestconnect.domain.common.exceptions import ValidationFailed
from interestconnect.infra.postgres import get_pool


class MessageStore(Protocol):
	async def create(
		self,
		sender_id: str,
		receiver_id: Optional[str],
		community_id: Optional[str],
		content: str,
		message_type: str,
	) -> MessageRecord: ...

	async def mark_read(self, message_id: str, reader_id: str) -> bool: ...

	async def sender_of(self, message_id: str) -> Optional[str]: ...


class NotificationStore(Protocol):
	async def create(
		self,
		recipient_id: str,
		sender_id: str,
		type: str,
		title: str,
		body: str,
		link: str,
		related_id: Optional[str] = None,
	) -> None: ...


class PostgresMessageStore:
	"""Message persistence plus the history queries used by the REST layer."""

	async def create(
		self,
		sender_id: str,
		receiver_id: Optional[str],
		community_id: Optional[str],
		content: str,
		message_type: str,
	) -> MessageRecord:
		if (receiver_id is None) == (community_id is None):
			raise ValidationFailed("Either receiverId or communityId is required")
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"""
				INSERT INTO messages (sender_id, receiver_id, community_id, content, message_type)
				VALUES ($1::uuid, $2::uuid, $3::uuid, $4, $5)
				RETURNING id, sender_id, receiver_id, community_id, content, message_type, is_read, created_at
				""",
				sender_id,
				receiver_id,
				community_id,
				content,
				message_type,
			)
		return MessageRecord.from_record(row)

	async def mark_read(self, message_id: str, reader_id: str) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(
				"UPDATE messages SET is_read = TRUE WHERE id = $1::uuid AND receiver_id = $2::uuid",
				message_id,
				reader_id,
			)
		return status.endswith(" 1")

	async def sender_of(self, message_id: str) -> Optional[str]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			sender_id = await conn.fetchval("SELECT sender_id FROM messages WHERE id = $1::uuid", message_id)
		return str(sender_id) if sender_id is not None else None

	async def list_direct(self, user_id: str, partner_id: str, *, limit: int, offset: int) -> tuple[List[MessageRecord], int]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT id, sender_id, receiver_id, community_id, content, message_type, is_read, created_at
				FROM messages
				WHERE community_id IS NULL
					AND ((sender_id = $1::uuid AND receiver_id = $2::uuid)
						OR (sender_id = $2::uuid AND receiver_id = $1::uuid))
				ORDER BY created_at DESC
				LIMIT $3 OFFSET $4
				""",
				user_id,
				partner_id,
				limit,
				offset,
			)
			total = await conn.fetchval(
				"""
				SELECT COUNT(*) FROM messages
				WHERE community_id IS NULL
					AND ((sender_id = $1::uuid AND receiver_id = $2::uuid)
						OR (sender_id = $2::uuid AND receiver_id = $1::uuid))
				""",
				user_id,
				partner_id,
			)
			await conn.execute(
				"""
				UPDATE messages SET is_read = TRUE
				WHERE sender_id = $2::uuid AND receiver_id = $1::uuid AND is_read = FALSE
				""",
				user_id,
				partner_id,
			)
		return [MessageRecord.from_record(row) for row in reversed(rows)], int(total or 0)

	async def list_community(self, community_id: str, *, limit: int, offset: int) -> tuple[List[MessageRecord], int]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT id, sender_id, receiver_id, community_id, content, message_type, is_read, created_at
				FROM messages
				WHERE community_id = $1::uuid
				ORDER BY created_at DESC
				LIMIT $2 OFFSET $3
				""",
				community_id,
				limit,
				offset,
			)
			total = await conn.fetchval("SELECT COUNT(*) FROM messages WHERE community_id = $1::uuid", community_id)
		return [MessageRecord.from_record(row) for row in reversed(rows)], int(total or 0)

	async def conversations(self, user_id: str) -> List[Dict[str, Any]]:
		"""Return one row per direct-message partner with the latest message and unread count."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				WITH pairs AS (
					SELECT CASE WHEN sender_id = $1::uuid THEN receiver_id ELSE sender_id END AS partner_id,
						id, sender_id, content, created_at
					FROM messages
					WHERE community_id IS NULL AND (sender_id = $1::uuid OR receiver_id = $1::uuid)
				), latest AS (
					SELECT DISTINCT ON (partner_id) partner_id, sender_id, content, created_at
					FROM pairs
					ORDER BY partner_id, created_at DESC
				)
				SELECT l.partner_id, l.sender_id, l.content, l.created_at,
					u.name, u.profile_picture, u.is_online,
					(SELECT COUNT(*) FROM messages m
						WHERE m.sender_id = l.partner_id AND m.receiver_id = $1::uuid AND m.is_read = FALSE) AS unread_count
				FROM latest l
				JOIN users u ON u.id = l.partner_id
				ORDER BY l.created_at DESC
				""",
				user_id,
			)
		return [dict(row) for row in rows]

	async def unread_count(self, user_id: str) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			count = await conn.fetchval(
				"SELECT COUNT(*) FROM messages WHERE receiver_id = $1::uuid AND is_read = FALSE",
				user_id,
			)
		return int(count or 0)


class PostgresNotificationStore:
	async def create(
		self,
		recipient_id: str,
		sender_id: str,
		type: str,
		title: str,
		body: str,
		link: str,
		related_id: Optional[str] = None,
	) -> None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(
				"""
				INSERT INTO notifications (recipient_id, sender_id, type, title, message, link, related_id)
				VALUES ($1::uuid, $2::uuid, $3, $4, $5, $6, $7::uuid)
				""",
				recipient_id,
				sender_id,
				type,
				title,
				body,
				link,
				related_id,
			)
