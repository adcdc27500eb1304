import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from interestconnect.domain.chat import service as chat_service
from interestconnect.domain.chat.models import MessageRecord, MinimalIdentity
from interestconnect.domain.common.exceptions import NotFound
from interestconnect.domain.matching import service as matching_service
from interestconnect.domain.realtime import hub as hub_module
from interestconnect.domain.realtime.hub import PresenceHub
from interestconnect.domain.realtime.registry import PresenceRegistry
from interestconnect.infra import auth, postgres
from interestconnect.main import app
from interestconnect.settings import settings

ALICE = MinimalIdentity(id="user-a", name="Alice", profile_picture="https://cdn.example/a.png")
BOB = MinimalIdentity(id="user-b", name="Bob")
CAROL = MinimalIdentity(id="user-c", name="Carol")

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class RecordingTransport:
	"""Collects every event the hub hands out, keyed by connection id."""

	def __init__(self) -> None:
		self.sent = []

	async def send(self, connection_id, event) -> None:
		self.sent.append((connection_id, event))

	def events_for(self, connection_id):
		return [event for cid, event in self.sent if cid == connection_id]

	def names_for(self, connection_id):
		return [event.event for event in self.events_for(connection_id)]

	def clear(self) -> None:
		self.sent.clear()


class FakeUserDirectory:
	def __init__(self, *identities: MinimalIdentity) -> None:
		self.users = {identity.id: identity for identity in identities}
		self.online = {}
		self.fail_set_online = False

	async def fetch_minimal_identity(self, user_id):
		if user_id not in self.users:
			raise NotFound("User not found")
		return self.users[user_id]

	async def set_online(self, user_id, online):
		if self.fail_set_online:
			raise RuntimeError("directory down")
		self.online[user_id] = online

	async def fetch_profiles(self, user_ids):
		return [
			{"id": uid, "name": self.users[uid].name, "profile_picture": self.users[uid].profile_picture}
			for uid in user_ids
			if uid in self.users
		]


class FakeMessageStore:
	def __init__(self) -> None:
		self.records = {}
		self.fail = None
		self._seq = 0

	async def create(self, sender_id, receiver_id, community_id, content, message_type):
		if self.fail is not None:
			raise self.fail
		self._seq += 1
		record = MessageRecord(
			id=f"msg-{self._seq}",
			sender_id=sender_id,
			content=content,
			message_type=message_type,
			created_at=BASE_TIME + timedelta(minutes=self._seq),
			receiver_id=receiver_id,
			community_id=community_id,
		)
		self.records[record.id] = record
		return record

	async def mark_read(self, message_id, reader_id):
		if self.fail is not None:
			raise self.fail
		record = self.records.get(message_id)
		if record is None or record.receiver_id != reader_id:
			return False
		record.is_read = True
		return True

	async def sender_of(self, message_id):
		record = self.records.get(message_id)
		return record.sender_id if record else None

	async def list_direct(self, user_id, partner_id, *, limit, offset):
		thread = [
			record
			for record in self.records.values()
			if record.community_id is None and {record.sender_id, record.receiver_id} == {user_id, partner_id}
		]
		for record in thread:
			if record.sender_id == partner_id:
				record.is_read = True
		newest_first = sorted(thread, key=lambda record: record.created_at, reverse=True)
		return list(reversed(newest_first[offset : offset + limit])), len(thread)

	async def list_community(self, community_id, *, limit, offset):
		thread = [record for record in self.records.values() if record.community_id == community_id]
		newest_first = sorted(thread, key=lambda record: record.created_at, reverse=True)
		return list(reversed(newest_first[offset : offset + limit])), len(thread)

	async def conversations(self, user_id):
		latest = {}
		for record in sorted(self.records.values(), key=lambda record: record.created_at):
			if record.community_id is not None or user_id not in (record.sender_id, record.receiver_id):
				continue
			partner = record.receiver_id if record.sender_id == user_id else record.sender_id
			latest[partner] = record
		rows = []
		for partner, record in sorted(latest.items(), key=lambda item: item[1].created_at, reverse=True):
			unread = sum(
				1
				for other in self.records.values()
				if other.sender_id == partner and other.receiver_id == user_id and not other.is_read
			)
			rows.append(
				{
					"partner_id": partner,
					"sender_id": record.sender_id,
					"content": record.content,
					"created_at": record.created_at,
					"name": partner.title(),
					"profile_picture": None,
					"is_online": False,
					"unread_count": unread,
				}
			)
		return rows

	async def unread_count(self, user_id):
		return sum(1 for record in self.records.values() if record.receiver_id == user_id and not record.is_read)


class FakeNotificationStore:
	def __init__(self) -> None:
		self.created = []
		self.fail = None

	async def create(self, recipient_id, sender_id, type, title, body, link, related_id=None):
		if self.fail is not None:
			raise self.fail
		self.created.append(
			{
				"recipient_id": recipient_id,
				"sender_id": sender_id,
				"type": type,
				"title": title,
				"body": body,
				"link": link,
				"related_id": related_id,
			}
		)


class FakeCommunityStore:
	def __init__(self) -> None:
		self.members = {}

	def add_member(self, community_id, user_id) -> None:
		self.members.setdefault(community_id, set()).add(user_id)

	async def is_member(self, community_id, user_id):
		return user_id in self.members.get(community_id, set())


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from interestconnect.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests authenticate via the X-User-Id header, which is only accepted in
	dev mode.
	"""
	original_env = settings.environment
	original_enforce = settings.realtime_enforce_membership
	settings.environment = "dev"
	settings.realtime_enforce_membership = True
	try:
		yield
	finally:
		settings.environment = original_env
		settings.realtime_enforce_membership = original_enforce


@pytest.fixture(autouse=True)
def isolate_singletons(monkeypatch):
	monkeypatch.setattr(hub_module, "_hub", hub_module._hub)
	monkeypatch.setattr(chat_service, "_service", chat_service._service)
	monkeypatch.setattr(matching_service, "_service", matching_service._service)
	monkeypatch.setattr(auth, "_directory", auth._directory)


@pytest.fixture
def users_dir():
	return FakeUserDirectory(ALICE, BOB, CAROL)


@pytest.fixture
def message_store():
	return FakeMessageStore()


@pytest.fixture
def notification_store():
	return FakeNotificationStore()


@pytest.fixture
def community_store():
	return FakeCommunityStore()


@pytest.fixture
def transport():
	return RecordingTransport()


@pytest.fixture
def hub(users_dir, message_store, notification_store, community_store, transport):
	return PresenceHub(
		PresenceRegistry(),
		users=users_dir,
		messages=message_store,
		notifications=notification_store,
		communities=community_store,
		transport=transport,
	)


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
