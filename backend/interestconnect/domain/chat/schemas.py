"""Pydantic schemas for the messages API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from interestconnect.domain.realtime.events import SendMessagePayload

from .models import MessageRecord, MinimalIdentity


class _Wire(BaseModel):
	model_config = ConfigDict(populate_by_name=True)


class Sender(_Wire):
	id: str
	name: str
	profile_picture: Optional[str] = Field(default=None, alias="profilePicture")

	@classmethod
	def from_identity(cls, identity: MinimalIdentity) -> "Sender":
		return cls(id=identity.id, name=identity.name, profile_picture=identity.profile_picture)


class HistoryMessage(_Wire):
	id: str
	content: str
	message_type: str = Field(alias="messageType")
	is_from_me: bool = Field(alias="isFromMe")
	is_read: bool = Field(default=False, alias="isRead")
	created_at: datetime = Field(alias="createdAt")
	sender: Optional[Sender] = None

	@classmethod
	def from_record(
		cls,
		record: MessageRecord,
		viewer_id: str,
		sender: Optional[MinimalIdentity] = None,
	) -> "HistoryMessage":
		return cls(
			id=record.id,
			content=record.content,
			message_type=record.message_type,
			is_from_me=record.sender_id == viewer_id,
			is_read=record.is_read,
			created_at=record.created_at,
			sender=Sender.from_identity(sender) if sender else None,
		)


class MessageHistoryResponse(_Wire):
	messages: List[HistoryMessage] = Field(default_factory=list)
	total: int = 0
	page: int = 1
	total_pages: int = Field(default=0, alias="totalPages")


class ConversationPartner(_Wire):
	id: str
	name: str
	profile_picture: Optional[str] = Field(default=None, alias="profilePicture")
	is_online: bool = Field(default=False, alias="isOnline")


class LastMessage(_Wire):
	content: str
	created_at: datetime = Field(alias="createdAt")
	is_from_me: bool = Field(alias="isFromMe")


class Conversation(_Wire):
	partner: ConversationPartner
	last_message: Optional[LastMessage] = Field(default=None, alias="lastMessage")
	unread_count: int = Field(default=0, alias="unreadCount")


class ConversationsResponse(_Wire):
	conversations: List[Conversation] = Field(default_factory=list)


class SendMessageRequest(SendMessagePayload):
	"""Same shape as the socket ``send_message`` payload."""


class StoredMessage(_Wire):
	id: str
	sender_id: str = Field(alias="senderId")
	receiver_id: Optional[str] = Field(default=None, alias="receiverId")
	community_id: Optional[str] = Field(default=None, alias="communityId")
	content: str
	message_type: str = Field(alias="messageType")
	is_read: bool = Field(default=False, alias="isRead")
	created_at: datetime = Field(alias="createdAt")

	@classmethod
	def from_record(cls, record: MessageRecord) -> "StoredMessage":
		return cls(
			id=record.id,
			sender_id=record.sender_id,
			receiver_id=record.receiver_id,
			community_id=record.community_id,
			content=record.content,
			message_type=record.message_type,
			is_read=record.is_read,
			created_at=record.created_at,
		)


class SendMessageResponse(BaseModel):
	message: str = "Message sent"
	data: StoredMessage


class StatusResponse(BaseModel):
	message: str


class UnreadCountResponse(BaseModel):
	count: int = 0
