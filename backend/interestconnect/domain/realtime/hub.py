"""Presence and message routing for connected clients.

The hub owns no sockets. It decides who should receive which event and hands
each one to a transport keyed by connection id. Every delivery is a single
hop: events for a user without a registered connection are dropped and never
queued. Persistence happens in the message store before anything is emitted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

from interestconnect.domain.chat.models import MessageRecord, MinimalIdentity
from interestconnect.domain.chat.repo import (
	MessageStore,
	NotificationStore,
	PostgresMessageStore,
	PostgresNotificationStore,
)
from interestconnect.domain.common.exceptions import (
	Forbidden,
	InterestConnectError,
	NotFound,
	StoreUnavailable,
	Unauthorized,
)
from interestconnect.domain.common.timeouts import bounded
from interestconnect.domain.communities.repo import CommunityStore, PostgresCommunityStore
from interestconnect.domain.realtime import events
from interestconnect.domain.realtime.models import ConnectedSession, TypingSignal
from interestconnect.domain.realtime.registry import PresenceRegistry
from interestconnect.domain.users.repo import PostgresUserDirectory, UserDirectory
from interestconnect.infra import jwt
from interestconnect.obs import metrics as obs_metrics
from interestconnect.settings import settings

logger = logging.getLogger(__name__)

SEND_FAILED = "Failed to send message"
READ_FAILED = "Failed to mark message as read"
JOIN_FAILED = "Failed to join community"
NOT_A_MEMBER = "Not a community member"
NOTIFICATION_TYPE = "new_message"


class Transport(Protocol):
	async def send(self, connection_id: str, event: events.RealtimeEvent) -> None: ...


@dataclass(slots=True)
class DeliveryOutcome:
	record: Optional[MessageRecord] = None
	error: Optional[InterestConnectError] = None
	recipient_online: bool = False

	@property
	def ok(self) -> bool:
		return self.error is None

	def raise_for_error(self) -> MessageRecord:
		if self.error is not None:
			raise self.error
		assert self.record is not None
		return self.record


class PresenceHub:
	def __init__(
		self,
		registry: PresenceRegistry,
		*,
		users: UserDirectory,
		messages: MessageStore,
		notifications: NotificationStore,
		communities: CommunityStore,
		transport: Optional[Transport] = None,
		enforce_membership: Optional[bool] = None,
	) -> None:
		self.registry = registry
		self._users = users
		self._messages = messages
		self._notifications = notifications
		self._communities = communities
		self._transport = transport
		self._enforce_membership = (
			settings.realtime_enforce_membership if enforce_membership is None else enforce_membership
		)

	def attach_transport(self, transport: Transport) -> None:
		self._transport = transport

	async def _send(self, connection_id: Optional[str], event: events.RealtimeEvent) -> None:
		if connection_id is None:
			return
		if self._transport is None:
			logger.debug("no transport attached, dropping event", extra={"event": event.event})
			return
		await self._transport.send(connection_id, event)

	# presence

	async def authenticate_connection(self, credential: Optional[str]) -> MinimalIdentity:
		"""Resolve a bearer credential to the identity behind it or raise Unauthorized."""
		user_id = jwt.verify(credential)
		try:
			return await bounded("users.fetch_minimal_identity", self._users.fetch_minimal_identity(user_id))
		except NotFound:
			raise Unauthorized("User not found") from None
		except StoreUnavailable:
			raise Unauthorized("Authentication unavailable") from None

	async def register_connection(self, identity: MinimalIdentity, connection_id: str) -> None:
		session = ConnectedSession.for_identity(identity, connection_id)
		replaced = self.registry.register(session)
		if replaced is not None:
			obs_metrics.inc_presence_replaced()
			logger.info(
				"session replaced",
				extra={"user_id": identity.id, "connection_id": connection_id, "replaced": replaced.connection_id},
			)
		obs_metrics.set_online_users(len(self.registry))
		announcement = events.UserOnline(user_id=identity.id, user=events.WireUser.from_identity(identity))
		for other in self.registry.connections(exclude=connection_id):
			await self._send(other, announcement)
		await self._send(connection_id, self._roster())
		await self._mark_online(identity.id, True)

	async def deregister_connection(self, connection_id: str) -> None:
		self.registry.drop_groups(connection_id)
		session = self.registry.deregister(connection_id)
		if session is None:
			return
		obs_metrics.set_online_users(len(self.registry))
		departure = events.UserOffline(user_id=session.user_id)
		for other in self.registry.connections():
			await self._send(other, departure)
		await self._mark_online(session.user_id, False)

	def _roster(self) -> events.OnlineUsers:
		return events.OnlineUsers(users=[events.WireUser.from_identity(identity) for identity in self.online_users()])

	def online_users(self) -> List[MinimalIdentity]:
		return [session.identity for session in self.registry.sessions()]

	def is_online(self, user_id: str) -> bool:
		return user_id in self.registry

	async def _mark_online(self, user_id: str, online: bool) -> None:
		# the registry is authoritative; the directory flag is advisory
		try:
			await bounded("users.set_online", self._users.set_online(user_id, online))
		except InterestConnectError:
			logger.warning("directory presence update failed", extra={"user_id": user_id, "online": online})

	# messaging

	async def route_direct_message(
		self,
		sender: MinimalIdentity,
		to_user_id: str,
		content: str,
		message_type: str = "text",
		*,
		origin: Optional[str] = None,
	) -> DeliveryOutcome:
		try:
			record = await bounded(
				"messages.create",
				self._messages.create(sender.id, to_user_id, None, content, message_type),
			)
		except InterestConnectError as exc:
			return await self._failed(sender, exc, origin=origin, kind="direct")
		await self._send(
			origin or self.registry.connection_for_user(sender.id),
			events.MessageSent.build(record, sender, receiver_id=to_user_id),
		)
		recipient = self.registry.connection_for_user(to_user_id)
		if recipient is None:
			obs_metrics.inc_chat_dropped(events.NewMessage.event)
		else:
			await self._send(recipient, events.NewMessage.build(record, sender))
		await self._notify(record, sender, to_user_id, recipient)
		obs_metrics.inc_chat_sent("direct")
		return DeliveryOutcome(record=record, recipient_online=recipient is not None)

	async def route_community_message(
		self,
		sender: MinimalIdentity,
		community_id: str,
		content: str,
		message_type: str = "text",
		*,
		origin: Optional[str] = None,
	) -> DeliveryOutcome:
		try:
			await self._require_member(community_id, sender.id)
			record = await bounded(
				"messages.create",
				self._messages.create(sender.id, None, community_id, content, message_type),
			)
		except InterestConnectError as exc:
			return await self._failed(sender, exc, origin=origin, kind="community")
		broadcast = events.CommunityMessage.build(record, sender, community_id=community_id)
		for member in self.registry.members(community_id):
			await self._send(member, broadcast)
		obs_metrics.inc_chat_sent("community")
		return DeliveryOutcome(record=record)

	async def _failed(
		self,
		sender: MinimalIdentity,
		exc: InterestConnectError,
		*,
		origin: Optional[str],
		kind: str,
	) -> DeliveryOutcome:
		obs_metrics.inc_chat_failed(type(exc).__name__)
		logger.warning("message not persisted", extra={"user_id": sender.id, "kind": kind, "reason": exc.reason})
		if origin is not None:
			error = SEND_FAILED if isinstance(exc, StoreUnavailable) else exc.reason
			await self._send(origin, events.MessageError(error=error))
		return DeliveryOutcome(error=exc)

	async def _notify(
		self,
		record: MessageRecord,
		sender: MinimalIdentity,
		recipient_id: str,
		recipient_connection: Optional[str],
	) -> None:
		try:
			await bounded(
				"notifications.create",
				self._notifications.create(
					recipient_id,
					sender.id,
					NOTIFICATION_TYPE,
					"New Message",
					f"{sender.name} sent you a message",
					f"/chat/{sender.id}",
					related_id=record.id,
				),
			)
		except InterestConnectError:
			logger.warning("notification create failed", extra={"user_id": recipient_id, "message_id": record.id})
		if recipient_connection is not None:
			await self._send(
				recipient_connection,
				events.NewNotification(
					type=NOTIFICATION_TYPE,
					sender=events.WireUser.from_identity(sender),
					preview=record.content[: settings.notification_preview_chars],
				),
			)

	async def _require_member(self, community_id: str, user_id: str) -> None:
		if not self._enforce_membership:
			return
		if not await bounded("communities.is_member", self._communities.is_member(community_id, user_id)):
			raise Forbidden(NOT_A_MEMBER)

	# community channels

	async def join_community_channel(self, connection_id: str, community_id: str, *, user_id: str) -> bool:
		try:
			await self._require_member(community_id, user_id)
		except InterestConnectError as exc:
			logger.info("community join refused", extra={"user_id": user_id, "community_id": community_id})
			error = JOIN_FAILED if isinstance(exc, StoreUnavailable) else exc.reason
			await self._send(connection_id, events.MessageError(error=error))
			return False
		self.registry.join(connection_id, community_id)
		return True

	async def leave_community_channel(self, connection_id: str, community_id: str) -> None:
		self.registry.leave(connection_id, community_id)

	# ephemeral signals

	async def relay_typing(
		self,
		sender: MinimalIdentity,
		signal: TypingSignal,
		*,
		origin: Optional[str] = None,
	) -> None:
		user = events.WireUser.from_identity(sender)
		if signal.to_user_id is not None:
			target = self.registry.connection_for_user(signal.to_user_id)
			if target is None:
				obs_metrics.inc_chat_dropped(events.UserTyping.event)
				return
			await self._send(target, events.UserTyping(user_id=sender.id, user=user, is_typing=signal.is_typing))
			return
		if signal.community_id is None:
			return
		own = origin or self.registry.connection_for_user(sender.id)
		notice = events.UserTyping(
			community_id=signal.community_id,
			user_id=sender.id,
			user=user,
			is_typing=signal.is_typing,
		)
		for member in self.registry.members(signal.community_id):
			if member != own:
				await self._send(member, notice)

	async def relay_read_receipt(self, reader_id: str, message_id: str, *, origin: Optional[str] = None) -> bool:
		"""Mark ``message_id`` read by ``reader_id`` and tell the sender if it changed.

		``message_read`` goes out only when the store updated a row. A reader
		who is not the recipient, or a message that was already read, leaves
		the sender untouched even though the store call itself succeeded.

		Store failures go back to ``origin`` as ``message_error``; without an
		origin connection they are raised to the caller.
		"""
		try:
			updated = await bounded("messages.mark_read", self._messages.mark_read(message_id, reader_id))
			if not updated:
				return False
			sender_id = await bounded("messages.sender_of", self._messages.sender_of(message_id))
		except InterestConnectError as exc:
			logger.warning("read receipt failed", extra={"user_id": reader_id, "message_id": message_id})
			if origin is None:
				raise
			await self._send(origin, events.MessageError(error=READ_FAILED if isinstance(exc, StoreUnavailable) else exc.reason))
			return False
		if sender_id is not None:
			await self._send(self.registry.connection_for_user(sender_id), events.MessageRead(message_id=message_id))
		return True


_hub: Optional[PresenceHub] = None


def set_hub(hub: Optional[PresenceHub]) -> None:
	global _hub
	_hub = hub


def get_hub() -> PresenceHub:
	global _hub
	if _hub is None:
		_hub = PresenceHub(
			PresenceRegistry(),
			users=PostgresUserDirectory(),
			messages=PostgresMessageStore(),
			notifications=PostgresNotificationStore(),
			communities=PostgresCommunityStore(),
		)
	return _hub
