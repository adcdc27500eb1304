"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"ic_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"ic_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"ic_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"ic_socketio_events_total",
	"Socket.IO events handled per namespace",
	["namespace", "event"],
)

PRESENCE_ONLINE = Gauge(
	"ic_presence_online_users",
	"Users with a registered realtime connection",
)

PRESENCE_REPLACED = Counter(
	"ic_presence_replaced_total",
	"Registrations that replaced an existing connection for the same user",
)

CHAT_SENT = Counter(
	"ic_chat_messages_total",
	"Chat messages persisted",
	["kind"],
)

CHAT_DROPPED = Counter(
	"ic_chat_live_drops_total",
	"Live events dropped because the target was not connected",
	["event"],
)

CHAT_FAILED = Counter(
	"ic_chat_send_failures_total",
	"Chat sends that failed before delivery",
	["reason"],
)

STORE_TIMEOUTS = Counter(
	"ic_store_timeouts_total",
	"External store calls that exceeded the realtime timeout",
	["operation"],
)

RATE_LIMITED_EVENTS = Counter(
	"ic_rate_limited_total",
	"Events dropped due to rate limiting",
	["kind"],
)

RANKING_REQUESTS = Counter(
	"ic_ranking_requests_total",
	"Interest-overlap ranking requests",
	["variant"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def set_online_users(count: int) -> None:
	PRESENCE_ONLINE.set(float(count))


def inc_presence_replaced() -> None:
	PRESENCE_REPLACED.inc()


def inc_chat_sent(kind: str) -> None:
	CHAT_SENT.labels(kind=kind).inc()


def inc_chat_dropped(event: str) -> None:
	CHAT_DROPPED.labels(event=event).inc()


def inc_chat_failed(reason: str) -> None:
	CHAT_FAILED.labels(reason=reason).inc()


def inc_store_timeout(operation: str) -> None:
	STORE_TIMEOUTS.labels(operation=operation).inc()


def inc_rate_limited(kind: str) -> None:
	RATE_LIMITED_EVENTS.labels(kind=kind).inc()


def inc_ranking_request(variant: str) -> None:
	RANKING_REQUESTS.labels(variant=variant).inc()
