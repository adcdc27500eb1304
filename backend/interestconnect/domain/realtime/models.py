"""Connection-scoped realtime models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from interestconnect.domain.chat.models import MinimalIdentity


@dataclass(slots=True, frozen=True)
class ConnectedSession:
	"""Snapshot of who is behind a socket, taken at connect time."""

	user_id: str
	connection_id: str
	display_name: str
	avatar_ref: Optional[str] = None

	@classmethod
	def for_identity(cls, identity: MinimalIdentity, connection_id: str) -> "ConnectedSession":
		return cls(
			user_id=identity.id,
			connection_id=connection_id,
			display_name=identity.name,
			avatar_ref=identity.profile_picture,
		)

	@property
	def identity(self) -> MinimalIdentity:
		return MinimalIdentity(id=self.user_id, name=self.display_name, profile_picture=self.avatar_ref)


@dataclass(slots=True, frozen=True)
class TypingSignal:
	from_user_id: str
	is_typing: bool
	to_user_id: Optional[str] = None
	community_id: Optional[str] = None
