"""Domain models for users and chat messages."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional


@dataclass(slots=True, frozen=True)
class MinimalIdentity:
	"""Denormalised user snapshot carried by sessions and message payloads."""

	id: str
	name: str
	profile_picture: Optional[str] = None

	@classmethod
	def from_record(cls, row: Mapping[str, Any]) -> "MinimalIdentity":
		return cls(
			id=str(row["id"]),
			name=str(row.get("name") or ""),
			profile_picture=row.get("profile_picture"),
		)

	def to_wire(self) -> dict:
		return {"id": self.id, "name": self.name, "profilePicture": self.profile_picture}


@dataclass(slots=True)
class MessageRecord:
	id: str
	sender_id: str
	content: str
	message_type: str
	created_at: datetime
	receiver_id: Optional[str] = None
	community_id: Optional[str] = None
	is_read: bool = False

	@classmethod
	def from_record(cls, row: Mapping[str, Any]) -> "MessageRecord":
		return cls(
			id=str(row["id"]),
			sender_id=str(row["sender_id"]),
			receiver_id=str(row["receiver_id"]) if row.get("receiver_id") is not None else None,
			community_id=str(row["community_id"]) if row.get("community_id") is not None else None,
			content=row["content"],
			message_type=row.get("message_type") or "text",
			is_read=bool(row.get("is_read")),
			created_at=row["created_at"],
		)
