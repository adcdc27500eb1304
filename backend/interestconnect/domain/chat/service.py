"""Message history and REST-originated sends.

Sends and read receipts go through the presence hub so that connected users
receive the same live events whether the action came over HTTP or a socket.
"""

from __future__ import annotations

import math
from typing import Dict, List, Optional

from interestconnect.domain.chat.models import MinimalIdentity
from interestconnect.domain.chat.repo import PostgresMessageStore
from interestconnect.domain.chat.schemas import (
	Conversation,
	ConversationPartner,
	ConversationsResponse,
	HistoryMessage,
	LastMessage,
	MessageHistoryResponse,
	SendMessageRequest,
	SendMessageResponse,
	StoredMessage,
)
from interestconnect.domain.common.exceptions import Forbidden
from interestconnect.domain.common.timeouts import bounded
from interestconnect.domain.communities.repo import PostgresCommunityStore
from interestconnect.domain.realtime.hub import PresenceHub, get_hub
from interestconnect.domain.users.repo import PostgresUserDirectory

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


def _page_window(page: int, limit: int) -> tuple[int, int, int]:
	limit = max(1, min(limit, MAX_PAGE_SIZE))
	page = max(1, page)
	return page, limit, (page - 1) * limit


class ChatService:
	def __init__(
		self,
		*,
		messages: Optional[PostgresMessageStore] = None,
		users: Optional[PostgresUserDirectory] = None,
		communities: Optional[PostgresCommunityStore] = None,
		hub: Optional[PresenceHub] = None,
	) -> None:
		self._messages = messages or PostgresMessageStore()
		self._users = users or PostgresUserDirectory()
		self._communities = communities or PostgresCommunityStore()
		self._hub = hub

	@property
	def hub(self) -> PresenceHub:
		return self._hub or get_hub()

	async def conversations(self, viewer: MinimalIdentity) -> ConversationsResponse:
		rows = await bounded("messages.conversations", self._messages.conversations(viewer.id))
		conversations: List[Conversation] = []
		for row in rows:
			partner_id = str(row["partner_id"])
			conversations.append(
				Conversation(
					partner=ConversationPartner(
						id=partner_id,
						name=row.get("name") or "",
						profile_picture=row.get("profile_picture"),
						is_online=bool(row.get("is_online")) or self.hub.is_online(partner_id),
					),
					last_message=LastMessage(
						content=row["content"],
						created_at=row["created_at"],
						is_from_me=str(row["sender_id"]) == viewer.id,
					),
					unread_count=int(row.get("unread_count") or 0),
				)
			)
		return ConversationsResponse(conversations=conversations)

	async def direct_history(
		self,
		viewer: MinimalIdentity,
		partner_id: str,
		*,
		page: int = 1,
		limit: int = DEFAULT_PAGE_SIZE,
	) -> MessageHistoryResponse:
		"""Return one page of the direct thread, oldest first, marking the partner's messages read."""
		page, limit, offset = _page_window(page, limit)
		records, total = await bounded(
			"messages.list_direct",
			self._messages.list_direct(viewer.id, partner_id, limit=limit, offset=offset),
		)
		return MessageHistoryResponse(
			messages=[HistoryMessage.from_record(record, viewer.id) for record in records],
			total=total,
			page=page,
			total_pages=math.ceil(total / limit) if total else 0,
		)

	async def community_history(
		self,
		viewer: MinimalIdentity,
		community_id: str,
		*,
		page: int = 1,
		limit: int = DEFAULT_PAGE_SIZE,
	) -> MessageHistoryResponse:
		if not await bounded("communities.is_member", self._communities.is_member(community_id, viewer.id)):
			raise Forbidden("You must be a member to view messages")
		page, limit, offset = _page_window(page, limit)
		records, total = await bounded(
			"messages.list_community",
			self._messages.list_community(community_id, limit=limit, offset=offset),
		)
		sender_ids = sorted({record.sender_id for record in records})
		profiles = await bounded("users.fetch_profiles", self._users.fetch_profiles(sender_ids))
		senders: Dict[str, MinimalIdentity] = {row["id"]: MinimalIdentity.from_record(row) for row in profiles}
		return MessageHistoryResponse(
			messages=[
				HistoryMessage.from_record(record, viewer.id, senders.get(record.sender_id))
				for record in records
			],
			total=total,
			page=page,
			total_pages=math.ceil(total / limit) if total else 0,
		)

	async def send(self, sender: MinimalIdentity, payload: SendMessageRequest) -> SendMessageResponse:
		if payload.receiver_id is not None:
			outcome = await self.hub.route_direct_message(
				sender, payload.receiver_id, payload.content, payload.message_type
			)
		else:
			# REST posts always require membership, whatever the realtime toggle says.
			if not await bounded(
				"communities.is_member", self._communities.is_member(payload.community_id, sender.id)
			):
				raise Forbidden("You must be a member to send messages")
			outcome = await self.hub.route_community_message(
				sender, payload.community_id, payload.content, payload.message_type
			)
		record = outcome.raise_for_error()
		return SendMessageResponse(data=StoredMessage.from_record(record))

	async def mark_read(self, reader: MinimalIdentity, message_id: str) -> None:
		await self.hub.relay_read_receipt(reader.id, message_id)

	async def unread_count(self, viewer: MinimalIdentity) -> int:
		return await bounded("messages.unread_count", self._messages.unread_count(viewer.id))


_service: Optional[ChatService] = None


def get_chat_service() -> ChatService:
	global _service
	if _service is None:
		_service = ChatService()
	return _service
