"""Wire schemas for every realtime event.

Outbound events carry their Socket.IO event name as ``event`` and serialise to
the camelCase payloads the web client reads. Inbound payload models validate
what clients send before the hub sees it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from interestconnect.domain.chat.models import MessageRecord, MinimalIdentity

MAX_CONTENT_LENGTH = 2000


class _Wire(BaseModel):
	model_config = ConfigDict(populate_by_name=True, frozen=True)


class WireUser(_Wire):
	id: str
	name: str
	profile_picture: Optional[str] = Field(default=None, alias="profilePicture")

	@classmethod
	def from_identity(cls, identity: MinimalIdentity) -> "WireUser":
		return cls(id=identity.id, name=identity.name, profile_picture=identity.profile_picture)


class RealtimeEvent(_Wire):
	event: ClassVar[str]

	def to_wire(self) -> Any:
		return self.model_dump(mode="json", by_alias=True)


class OnlineUsers(RealtimeEvent):
	event: ClassVar[str] = "online_users"

	users: List[WireUser]

	def to_wire(self) -> Any:
		return [user.model_dump(mode="json", by_alias=True) for user in self.users]


class UserOnline(RealtimeEvent):
	event: ClassVar[str] = "user_online"

	user_id: str = Field(alias="userId")
	user: WireUser


class UserOffline(RealtimeEvent):
	event: ClassVar[str] = "user_offline"

	user_id: str = Field(alias="userId")


class _MessageEvent(RealtimeEvent):
	id: str
	content: str
	message_type: str = Field(alias="messageType")
	sender: WireUser
	created_at: datetime = Field(alias="createdAt")
	is_read: bool = Field(default=False, alias="isRead")

	@classmethod
	def build(cls, record: MessageRecord, sender: MinimalIdentity, **extra: Any):
		return cls(
			id=record.id,
			content=record.content,
			message_type=record.message_type,
			sender=WireUser.from_identity(sender),
			created_at=record.created_at,
			is_read=record.is_read,
			**extra,
		)


class MessageSent(_MessageEvent):
	event: ClassVar[str] = "message_sent"

	receiver_id: str = Field(alias="receiverId")
	is_from_me: bool = Field(default=True, alias="isFromMe")


class NewMessage(_MessageEvent):
	event: ClassVar[str] = "new_message"

	is_from_me: bool = Field(default=False, alias="isFromMe")


class CommunityMessage(_MessageEvent):
	event: ClassVar[str] = "community_message"

	community_id: str = Field(alias="communityId")


class MessageError(RealtimeEvent):
	event: ClassVar[str] = "message_error"

	error: str


class UserTyping(RealtimeEvent):
	event: ClassVar[str] = "user_typing"

	user_id: str = Field(alias="userId")
	user: WireUser
	is_typing: bool = Field(alias="isTyping")
	community_id: Optional[str] = Field(default=None, alias="communityId")

	def to_wire(self) -> Any:
		exclude = {"community_id"} if self.community_id is None else None
		return self.model_dump(mode="json", by_alias=True, exclude=exclude)


class MessageRead(RealtimeEvent):
	event: ClassVar[str] = "message_read"

	message_id: str = Field(alias="messageId")


class NewNotification(RealtimeEvent):
	event: ClassVar[str] = "new_notification"

	type: str
	sender: WireUser
	preview: str


class _Inbound(BaseModel):
	model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class _Targeted(_Inbound):
	receiver_id: Optional[str] = Field(default=None, alias="receiverId")
	community_id: Optional[str] = Field(default=None, alias="communityId")

	@field_validator("receiver_id", "community_id", mode="before")
	@classmethod
	def _blank_is_none(cls, value: Any) -> Any:
		if value is None or (isinstance(value, str) and not value.strip()):
			return None
		return str(value)

	@model_validator(mode="after")
	def _exactly_one_target(self):
		if (self.receiver_id is None) == (self.community_id is None):
			raise ValueError("Either receiverId or communityId is required")
		return self


class SendMessagePayload(_Targeted):
	content: str = Field(..., min_length=1, max_length=MAX_CONTENT_LENGTH)
	message_type: str = Field(default="text", alias="messageType", min_length=1, max_length=32)


class TypingPayload(_Targeted):
	is_typing: bool = Field(default=True, alias="isTyping")


class MarkReadPayload(_Inbound):
	message_id: str = Field(..., min_length=1, alias="messageId")


class CommunityChannelPayload(_Inbound):
	community_id: str = Field(..., min_length=1, alias="communityId")

	@classmethod
	def parse(cls, data: Any) -> "CommunityChannelPayload":
		"""Accept either a bare community id or ``{"communityId": ...}``."""
		if isinstance(data, (str, int)):
			return cls(community_id=str(data))
		return cls.model_validate(data or {})
