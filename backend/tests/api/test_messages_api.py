import pytest

from interestconnect.domain.chat.models import MinimalIdentity
from interestconnect.domain.chat.service import ChatService, get_chat_service
from interestconnect.domain.realtime.hub import PresenceHub, set_hub
from interestconnect.domain.realtime.registry import PresenceRegistry
from interestconnect.main import app

ALICE_HEADERS = {"X-User-Id": "user-a", "X-User-Name": "Alice"}
BOB_HEADERS = {"X-User-Id": "user-b", "X-User-Name": "Bob"}


@pytest.fixture
def chat(hub, message_store, users_dir, community_store):
	set_hub(hub)
	service = ChatService(messages=message_store, users=users_dir, communities=community_store, hub=hub)
	app.dependency_overrides[get_chat_service] = lambda: service
	try:
		yield service
	finally:
		app.dependency_overrides.pop(get_chat_service, None)


@pytest.mark.asyncio
async def test_send_direct_message_delivers_live(api_client, chat, hub, transport, notification_store):
	await hub.register_connection(MinimalIdentity(id="user-b", name="Bob"), "c-b")
	transport.clear()

	resp = await api_client.post(
		"/api/messages/send",
		json={"receiverId": "user-b", "content": "hello from http"},
		headers=ALICE_HEADERS,
	)

	assert resp.status_code == 201
	body = resp.json()
	assert body["message"] == "Message sent"
	assert body["data"]["receiverId"] == "user-b"
	assert body["data"]["senderId"] == "user-a"
	assert body["data"]["messageType"] == "text"
	assert transport.names_for("c-b") == ["new_message", "new_notification"]
	assert notification_store.created[0]["body"] == "Alice sent you a message"


@pytest.mark.asyncio
async def test_send_requires_exactly_one_target(api_client, chat):
	missing = await api_client.post("/api/messages/send", json={"content": "to nobody"}, headers=ALICE_HEADERS)
	both = await api_client.post(
		"/api/messages/send",
		json={"content": "to everyone", "receiverId": "user-b", "communityId": "g1"},
		headers=ALICE_HEADERS,
	)
	assert missing.status_code == 400
	assert both.status_code == 400
	assert "receiverId or communityId" in missing.json()["error"]


@pytest.mark.asyncio
async def test_send_rejects_oversized_content(api_client, chat):
	resp = await api_client.post(
		"/api/messages/send",
		json={"receiverId": "user-b", "content": "x" * 2001},
		headers=ALICE_HEADERS,
	)
	assert resp.status_code == 400


@pytest.mark.asyncio
async def test_send_to_community_requires_membership(api_client, chat, message_store):
	resp = await api_client.post(
		"/api/messages/send",
		json={"communityId": "g1", "content": "hi"},
		headers=ALICE_HEADERS,
	)
	assert resp.status_code == 403
	assert resp.json()["error"] == "You must be a member to send messages"
	assert message_store.records == {}


@pytest.mark.asyncio
async def test_send_store_failure_is_500(api_client, chat, message_store):
	message_store.fail = RuntimeError("insert failed")
	resp = await api_client.post(
		"/api/messages/send",
		json={"receiverId": "user-b", "content": "hi"},
		headers=ALICE_HEADERS,
	)
	assert resp.status_code == 500
	assert resp.json()["error"] == "Internal server error"


@pytest.mark.asyncio
async def test_direct_history_marks_partner_messages_read(api_client, chat):
	for content in ("first", "second"):
		await api_client.post(
			"/api/messages/send",
			json={"receiverId": "user-b", "content": content},
			headers=ALICE_HEADERS,
		)

	unread = await api_client.get("/api/messages/unread/count", headers=BOB_HEADERS)
	assert unread.json() == {"count": 2}

	resp = await api_client.get("/api/messages/user/user-a", headers=BOB_HEADERS)
	assert resp.status_code == 200
	body = resp.json()
	assert [m["content"] for m in body["messages"]] == ["first", "second"]
	assert all(m["isFromMe"] is False for m in body["messages"])
	assert body["total"] == 2 and body["totalPages"] == 1

	unread = await api_client.get("/api/messages/unread/count", headers=BOB_HEADERS)
	assert unread.json() == {"count": 0}


@pytest.mark.asyncio
async def test_community_history_requires_membership(api_client, chat, community_store):
	resp = await api_client.get("/api/messages/community/g1", headers=ALICE_HEADERS)
	assert resp.status_code == 403
	assert resp.json()["error"] == "You must be a member to view messages"

	community_store.add_member("g1", "user-a")
	await api_client.post("/api/messages/send", json={"communityId": "g1", "content": "welcome"}, headers=ALICE_HEADERS)
	resp = await api_client.get("/api/messages/community/g1", headers=ALICE_HEADERS)
	assert resp.status_code == 200
	message = resp.json()["messages"][0]
	assert message["isFromMe"] is True
	assert message["sender"]["name"] == "Alice"


@pytest.mark.asyncio
async def test_mark_read_relays_receipt(api_client, chat, hub, transport):
	await hub.register_connection(MinimalIdentity(id="user-a", name="Alice"), "c-a")
	sent = await api_client.post(
		"/api/messages/send",
		json={"receiverId": "user-b", "content": "read me"},
		headers=ALICE_HEADERS,
	)
	message_id = sent.json()["data"]["id"]
	transport.clear()

	resp = await api_client.put(f"/api/messages/read/{message_id}", headers=BOB_HEADERS)

	assert resp.status_code == 200
	assert resp.json() == {"message": "Message marked as read"}
	assert transport.names_for("c-a") == ["message_read"]


@pytest.mark.asyncio
async def test_conversations_list_latest_first(api_client, chat):
	await api_client.post("/api/messages/send", json={"receiverId": "user-b", "content": "to bob"}, headers=ALICE_HEADERS)
	await api_client.post("/api/messages/send", json={"receiverId": "user-c", "content": "to carol"}, headers=ALICE_HEADERS)

	resp = await api_client.get("/api/messages/conversations", headers=ALICE_HEADERS)

	conversations = resp.json()["conversations"]
	assert [c["partner"]["id"] for c in conversations] == ["user-c", "user-b"]
	assert conversations[0]["lastMessage"]["isFromMe"] is True
	assert conversations[0]["unreadCount"] == 0


@pytest.mark.asyncio
async def test_community_send_checks_membership_without_realtime_enforcement(
	api_client, users_dir, message_store, notification_store, community_store, transport
):
	lenient = PresenceHub(
		PresenceRegistry(),
		users=users_dir,
		messages=message_store,
		notifications=notification_store,
		communities=community_store,
		transport=transport,
		enforce_membership=False,
	)
	set_hub(lenient)
	service = ChatService(messages=message_store, users=users_dir, communities=community_store, hub=lenient)
	app.dependency_overrides[get_chat_service] = lambda: service
	try:
		resp = await api_client.post(
			"/api/messages/send",
			json={"communityId": "g1", "content": "hi"},
			headers=ALICE_HEADERS,
		)
	finally:
		app.dependency_overrides.pop(get_chat_service, None)

	assert resp.status_code == 403
	assert resp.json()["error"] == "You must be a member to send messages"
	assert message_store.records == {}
