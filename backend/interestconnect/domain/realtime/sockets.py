"""Socket.IO namespace that feeds client events into the presence hub."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import socketio
from pydantic import ValidationError
from redis.exceptions import RedisError

from interestconnect.domain.chat.models import MinimalIdentity
from interestconnect.domain.common.exceptions import Unauthorized, ValidationFailed
from interestconnect.domain.realtime import events
from interestconnect.domain.realtime.hub import PresenceHub, get_hub
from interestconnect.domain.realtime.models import TypingSignal
from interestconnect.infra.rate_limit import allow as rate_allow
from interestconnect.obs import logging as obs_logging
from interestconnect.obs import metrics as obs_metrics
from interestconnect.settings import settings

logger = logging.getLogger(__name__)

RATE_LIMITED = "rate_limited"


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


def _credential(environ: dict, auth: Any) -> Optional[str]:
	"""Pull the bearer token from the handshake auth payload or the Authorization header."""
	if isinstance(auth, dict) and auth.get("token"):
		return str(auth["token"])
	scope = environ.get("asgi.scope", environ)
	header = environ.get("HTTP_AUTHORIZATION") or _header(scope, "authorization")
	if header and header.lower().startswith("bearer "):
		return header[7:].strip()
	return None


class RealtimeNamespace(socketio.AsyncNamespace):
	"""Default namespace: one authenticated user per sid, routed through the hub."""

	def __init__(self, hub: Optional[PresenceHub] = None) -> None:
		super().__init__("/")
		self._hub = hub
		self._sessions: Dict[str, MinimalIdentity] = {}
		if hub is not None:
			hub.attach_transport(self)

	@property
	def hub(self) -> PresenceHub:
		if self._hub is None:
			self._hub = get_hub()
			self._hub.attach_transport(self)
		return self._hub

	@property
	def sessions(self) -> Dict[str, MinimalIdentity]:
		return self._sessions

	async def send(self, connection_id: str, event: events.RealtimeEvent) -> None:
		obs_metrics.socket_event(self.namespace, event.event)
		await self.emit(event.event, event.to_wire(), room=connection_id)

	async def trigger_event(self, event: str, *args: Any) -> Any:
		sid = args[0] if args else None
		identity = self._sessions.get(sid) if sid else None
		tokens = obs_logging.bind_context(
			connection_id=sid,
			user_id=identity.id if identity is not None else None,
		)
		try:
			return await super().trigger_event(event, *args)
		finally:
			obs_logging.reset_context(tokens)

	async def _allow(self, kind: str, user_id: str, limit: int) -> bool:
		try:
			allowed = await rate_allow(
				f"chat.{kind}",
				user_id,
				limit=limit,
				window_seconds=settings.chat_rate_window_seconds,
			)
		except (RedisError, OSError):
			logger.warning("rate limiter unavailable, allowing event", extra={"kind": kind, "user_id": user_id})
			return True
		if not allowed:
			obs_metrics.inc_rate_limited(kind)
		return allowed

	async def on_connect(self, sid: str, environ: dict, auth: Any = None) -> None:
		obs_metrics.socket_connected(self.namespace)
		try:
			identity = await self.hub.authenticate_connection(_credential(environ, auth))
		except Unauthorized as exc:
			obs_metrics.socket_disconnected(self.namespace)
			logger.info("socket refused", extra={"reason": exc.reason})
			raise ConnectionRefusedError(exc.reason) from None
		self._sessions[sid] = identity
		logger.info("socket connected", extra={"user_id": identity.id})
		await self.hub.register_connection(identity, sid)

	async def on_disconnect(self, sid: str, reason: Any = None) -> None:
		obs_metrics.socket_disconnected(self.namespace)
		identity = self._sessions.pop(sid, None)
		if identity is not None:
			logger.info("socket disconnected")
		await self.hub.deregister_connection(sid)

	async def on_join_community(self, sid: str, data: Any) -> None:
		obs_metrics.socket_event(self.namespace, "join_community")
		identity = self._sessions.get(sid)
		if identity is None:
			return
		try:
			payload = events.CommunityChannelPayload.parse(data)
		except ValidationError:
			await self.send(sid, events.MessageError(error=ValidationFailed.reason))
			return
		await self.hub.join_community_channel(sid, payload.community_id, user_id=identity.id)

	async def on_leave_community(self, sid: str, data: Any) -> None:
		obs_metrics.socket_event(self.namespace, "leave_community")
		if sid not in self._sessions:
			return
		try:
			payload = events.CommunityChannelPayload.parse(data)
		except ValidationError:
			return
		await self.hub.leave_community_channel(sid, payload.community_id)

	async def on_send_message(self, sid: str, data: Any) -> None:
		obs_metrics.socket_event(self.namespace, "send_message")
		identity = self._sessions.get(sid)
		if identity is None:
			return
		if not await self._allow("send", identity.id, settings.chat_send_limit):
			await self.send(sid, events.MessageError(error=RATE_LIMITED))
			return
		try:
			payload = events.SendMessagePayload.model_validate(data or {})
		except ValidationError:
			await self.send(sid, events.MessageError(error=ValidationFailed.reason))
			return
		if payload.receiver_id is not None:
			await self.hub.route_direct_message(
				identity,
				payload.receiver_id,
				payload.content,
				payload.message_type,
				origin=sid,
			)
		else:
			await self.hub.route_community_message(
				identity,
				payload.community_id,
				payload.content,
				payload.message_type,
				origin=sid,
			)

	async def on_typing(self, sid: str, data: Any) -> None:
		obs_metrics.socket_event(self.namespace, "typing")
		identity = self._sessions.get(sid)
		if identity is None:
			return
		if not await self._allow("typing", identity.id, settings.chat_typing_limit):
			return
		try:
			payload = events.TypingPayload.model_validate(data or {})
		except ValidationError:
			return
		signal = TypingSignal(
			from_user_id=identity.id,
			is_typing=payload.is_typing,
			to_user_id=payload.receiver_id,
			community_id=payload.community_id,
		)
		await self.hub.relay_typing(identity, signal, origin=sid)

	async def on_mark_read(self, sid: str, data: Any) -> None:
		obs_metrics.socket_event(self.namespace, "mark_read")
		identity = self._sessions.get(sid)
		if identity is None:
			return
		try:
			payload = events.MarkReadPayload.model_validate(data or {})
		except ValidationError:
			await self.send(sid, events.MessageError(error=ValidationFailed.reason))
			return
		await self.hub.relay_read_receipt(identity.id, payload.message_id, origin=sid)
