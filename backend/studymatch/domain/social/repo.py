"""Storage for connection edges keyed by canonical pair."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from studymatch.domain.common.pairs import CanonicalPair
from studymatch.domain.social.models import Connection, ConnectionStatus
from studymatch.infra.postgres import PostgresRepository, connection

CREATED = "created"
ACCEPTED = "accepted"
REOPENED = "reopened"
UNCHANGED = "unchanged"


@dataclass(frozen=True, slots=True)
class ConnectionWrite:
	connection: Connection
	outcome: str

	@property
	def changed(self) -> bool:
		return self.outcome != UNCHANGED


class ConnectionStore(Protocol):
	async def upsert_request(self, pair: CanonicalPair, requester_id: str, now: datetime) -> ConnectionWrite:
		...

	async def respond(
		self,
		pair: CanonicalPair,
		responder_id: str,
		status: ConnectionStatus,
		now: datetime,
	) -> Optional[Connection]:
		...

	async def get(self, pair: CanonicalPair) -> Optional[Connection]:
		...

	async def list_for(self, user_id: str, status: Optional[ConnectionStatus] = None) -> List[Connection]:
		...


def _outcome(before: Optional[Connection], after: Connection) -> str:
	if before is None:
		return CREATED
	if before == after:
		return UNCHANGED
	if after.status is ConnectionStatus.ACCEPTED:
		return ACCEPTED
	return REOPENED


class InMemoryConnectionStore:
	"""Process-local edge store; every mutation happens under one lock without awaiting."""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._edges: Dict[CanonicalPair, Connection] = {}

	async def upsert_request(self, pair: CanonicalPair, requester_id: str, now: datetime) -> ConnectionWrite:
		async with self._lock:
			before = self._edges.get(pair)
			if before is None:
				after = Connection(pair, str(requester_id), ConnectionStatus.PENDING, now, now)
			else:
				after = before.after_request(requester_id, now)
			self._edges[pair] = after
			return ConnectionWrite(after, _outcome(before, after))

	async def respond(
		self,
		pair: CanonicalPair,
		responder_id: str,
		status: ConnectionStatus,
		now: datetime,
	) -> Optional[Connection]:
		async with self._lock:
			edge = self._edges.get(pair)
			if edge is None or edge.status is not ConnectionStatus.PENDING or edge.requester_id == str(responder_id):
				return None
			updated = Connection(pair, edge.requester_id, status, edge.created_at, now)
			self._edges[pair] = updated
			return updated

	async def get(self, pair: CanonicalPair) -> Optional[Connection]:
		async with self._lock:
			return self._edges.get(pair)

	async def list_for(self, user_id: str, status: Optional[ConnectionStatus] = None) -> List[Connection]:
		async with self._lock:
			edges = [
				edge
				for pair, edge in self._edges.items()
				if pair.contains(user_id) and (status is None or edge.status is status)
			]
		return sorted(edges, key=lambda edge: edge.updated_at, reverse=True)


_MEMORY_STORE = InMemoryConnectionStore()


class ConnectionRepository(PostgresRepository):
	"""Edge store backed by the ``connections`` table (primary key ``(user_a, user_b)``)."""

	def __init__(self, memory: InMemoryConnectionStore | None = None) -> None:
		super().__init__()
		self._memory = memory or _MEMORY_STORE

	async def upsert_request(self, pair: CanonicalPair, requester_id: str, now: datetime) -> ConnectionWrite:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.upsert_request(pair, requester_id, now)
		async with connection(pool) as conn:
			# The DO UPDATE only fires for real transitions, so RETURNING is empty for no-ops.
			row = await conn.fetchrow(
				"""
				INSERT INTO connections (user_a, user_b, requester_id, status, created_at, updated_at)
				VALUES ($1, $2, $3, 'pending', $4, $4)
				ON CONFLICT (user_a, user_b) DO UPDATE SET
					status = CASE
						WHEN connections.status = 'declined' THEN 'pending'
						ELSE 'accepted'
					END,
					requester_id = CASE
						WHEN connections.status = 'declined' THEN EXCLUDED.requester_id
						ELSE connections.requester_id
					END,
					updated_at = EXCLUDED.updated_at
				WHERE connections.status = 'declined'
				   OR (connections.status = 'pending' AND connections.requester_id <> EXCLUDED.requester_id)
				RETURNING *, (xmax = 0) AS inserted
				""",
				pair.user_a,
				pair.user_b,
				str(requester_id),
				now,
			)
			if row is None:
				current = await conn.fetchrow(
					"SELECT * FROM connections WHERE user_a = $1 AND user_b = $2",
					pair.user_a,
					pair.user_b,
				)
				return ConnectionWrite(Connection.from_record(current), UNCHANGED)
		edge = Connection.from_record(row)
		if row["inserted"]:
			return ConnectionWrite(edge, CREATED)
		return ConnectionWrite(edge, ACCEPTED if edge.status is ConnectionStatus.ACCEPTED else REOPENED)

	async def respond(
		self,
		pair: CanonicalPair,
		responder_id: str,
		status: ConnectionStatus,
		now: datetime,
	) -> Optional[Connection]:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.respond(pair, responder_id, status, now)
		async with connection(pool) as conn:
			row = await conn.fetchrow(
				"""
				UPDATE connections
				SET status = $4, updated_at = $5
				WHERE user_a = $1 AND user_b = $2
				  AND status = 'pending'
				  AND requester_id <> $3
				RETURNING *
				""",
				pair.user_a,
				pair.user_b,
				str(responder_id),
				status.value,
				now,
			)
		return Connection.from_record(row) if row else None

	async def get(self, pair: CanonicalPair) -> Optional[Connection]:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.get(pair)
		async with connection(pool) as conn:
			row = await conn.fetchrow(
				"SELECT * FROM connections WHERE user_a = $1 AND user_b = $2",
				pair.user_a,
				pair.user_b,
			)
		return Connection.from_record(row) if row else None

	async def list_for(self, user_id: str, status: Optional[ConnectionStatus] = None) -> List[Connection]:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.list_for(user_id, status)
		params: list[object] = [str(user_id)]
		where_status = ""
		if status is not None:
			params.append(status.value)
			where_status = " AND status = $2"
		async with connection(pool) as conn:
			rows = await conn.fetch(
				"SELECT * FROM connections WHERE (user_a = $1 OR user_b = $1)"
				+ where_status
				+ " ORDER BY updated_at DESC",
				*params,
			)
		return [Connection.from_record(row) for row in rows]
