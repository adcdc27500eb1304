"""In-memory presence registry and community broadcast groups.

The registry is process-local and starts empty; nothing survives a restart.
It is only mutated from Socket.IO event callbacks running on the event loop,
so no locking is needed.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional

from interestconnect.domain.realtime.models import ConnectedSession

SINGLE_ACTIVE_CONNECTION_PER_USER = "single_active_connection_per_user"


class PresenceRegistry:
	"""Maps each online user to exactly one reachable connection.

	Policy ``single_active_connection_per_user``: registering a user who already
	has a session replaces it. The replaced connection loses its reverse entry,
	so it is no longer reachable and its eventual disconnect does not take the
	user offline. Fanning out to several devices would mean changing this policy.
	"""

	policy = SINGLE_ACTIVE_CONNECTION_PER_USER

	def __init__(self) -> None:
		self._by_user: Dict[str, ConnectedSession] = {}
		self._by_connection: Dict[str, str] = {}
		# dicts used as insertion-ordered sets
		self._groups: Dict[str, Dict[str, None]] = {}
		self._memberships: Dict[str, Dict[str, None]] = {}

	def __len__(self) -> int:
		return len(self._by_user)

	def __contains__(self, user_id: object) -> bool:
		return user_id in self._by_user

	def __iter__(self) -> Iterator[ConnectedSession]:
		return iter(list(self._by_user.values()))

	def register(self, session: ConnectedSession) -> Optional[ConnectedSession]:
		"""Insert or replace the session for ``session.user_id`` and return the replaced one."""
		previous = self._by_user.get(session.user_id)
		if previous is not None and previous.connection_id != session.connection_id:
			self._by_connection.pop(previous.connection_id, None)
		stale_owner = self._by_connection.get(session.connection_id)
		if stale_owner is not None and stale_owner != session.user_id:
			self._by_user.pop(stale_owner, None)
		self._by_user[session.user_id] = session
		self._by_connection[session.connection_id] = session.user_id
		if previous is not None and previous.connection_id != session.connection_id:
			return previous
		return None

	def deregister(self, connection_id: str) -> Optional[ConnectedSession]:
		"""Remove the session owned by ``connection_id``; unknown ids return None."""
		user_id = self._by_connection.pop(connection_id, None)
		if user_id is None:
			return None
		return self._by_user.pop(user_id, None)

	def connection_for_user(self, user_id: str) -> Optional[str]:
		session = self._by_user.get(user_id)
		return session.connection_id if session else None

	def user_for_connection(self, connection_id: str) -> Optional[str]:
		return self._by_connection.get(connection_id)

	def sessions(self) -> List[ConnectedSession]:
		return list(self._by_user.values())

	def connections(self, *, exclude: Optional[str] = None) -> List[str]:
		return [session.connection_id for session in self._by_user.values() if session.connection_id != exclude]

	def join(self, connection_id: str, community_id: str) -> None:
		self._groups.setdefault(community_id, {})[connection_id] = None
		self._memberships.setdefault(connection_id, {})[community_id] = None

	def leave(self, connection_id: str, community_id: str) -> None:
		group = self._groups.get(community_id)
		if group is not None:
			group.pop(connection_id, None)
			if not group:
				del self._groups[community_id]
		joined = self._memberships.get(connection_id)
		if joined is not None:
			joined.pop(community_id, None)
			if not joined:
				del self._memberships[connection_id]

	def drop_groups(self, connection_id: str) -> None:
		for community_id in list(self._memberships.get(connection_id, {})):
			self.leave(connection_id, community_id)

	def members(self, community_id: str) -> List[str]:
		return list(self._groups.get(community_id, {}))

	def communities_of(self, connection_id: str) -> List[str]:
		return list(self._memberships.get(connection_id, {}))
