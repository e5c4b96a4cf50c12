"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNTER = Counter(
	"studymatch_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"studymatch_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"studymatch_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"studymatch_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

POSTGRES_UP = Gauge("studymatch_postgres_up", "Postgres availability (1=up,0=down)")

MATCH_INTERACTIONS = Counter(
	"studymatch_match_interactions_total",
	"Like/skip actions recorded on suggestions",
	["action"],
)

MATCH_RANKINGS = Counter(
	"studymatch_match_rankings_total",
	"Suggestion lists ranked",
)

MATCH_CANDIDATES = Histogram(
	"studymatch_match_candidates",
	"Candidates scored per ranking",
	buckets=(0, 5, 10, 25, 50, 100, 200, 500),
)

CONNECTION_TRANSITIONS = Counter(
	"studymatch_connection_transitions_total",
	"Connection edge transitions",
	["kind"],
)

CONNECTION_NOTIFY_FAILURES = Counter(
	"studymatch_connection_notify_failures_total",
	"Committed connection transitions whose audit or push failed",
)

CONVERSATIONS_CREATED = Counter(
	"studymatch_conversations_created_total",
	"Conversations created",
	["kind"],
)

CONVERSATION_RACES = Counter(
	"studymatch_conversation_create_races_total",
	"Direct conversation creates that lost to a concurrent writer",
)

MESSAGES_SENT = Counter(
	"studymatch_messages_sent_total",
	"Messages appended to conversation logs",
)

FEED_PUBLISH_FAILURES = Counter(
	"studymatch_feed_publish_failures_total",
	"Realtime feed publishes that failed after the message was stored",
)

ACTIVE_SUBSCRIPTIONS = Gauge(
	"studymatch_active_subscriptions",
	"Live message stream subscriptions",
)

SUBSCRIPTION_BACKFILLS = Counter(
	"studymatch_subscription_backfills_total",
	"Store reads issued to close a gap in a live subscription",
)

EVENT_RSVPS = Counter(
	"studymatch_event_rsvps_total",
	"Event RSVP changes",
	["action"],
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


def mark_postgres(ok: bool) -> None:
	POSTGRES_UP.set(1 if ok else 0)


def inc_match_interaction(action: str) -> None:
	MATCH_INTERACTIONS.labels(action=action).inc()


def inc_match_ranking(candidates: int) -> None:
	MATCH_RANKINGS.inc()
	MATCH_CANDIDATES.observe(candidates)


def inc_connection_transition(kind: str) -> None:
	CONNECTION_TRANSITIONS.labels(kind=kind).inc()


def inc_connection_notify_failure() -> None:
	CONNECTION_NOTIFY_FAILURES.inc()


def inc_conversation_created(kind: str) -> None:
	CONVERSATIONS_CREATED.labels(kind=kind).inc()


def inc_conversation_race() -> None:
	CONVERSATION_RACES.inc()


def inc_message_sent() -> None:
	MESSAGES_SENT.inc()


def inc_feed_publish_failure() -> None:
	FEED_PUBLISH_FAILURES.inc()


def subscription_opened() -> None:
	ACTIVE_SUBSCRIPTIONS.inc()


def subscription_closed() -> None:
	ACTIVE_SUBSCRIPTIONS.dec()


def inc_subscription_backfill() -> None:
	SUBSCRIPTION_BACKFILLS.inc()


def inc_event_rsvp(action: str) -> None:
	EVENT_RSVPS.labels(action=action).inc()
