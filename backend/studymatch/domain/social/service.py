"""Connection graph: bilateral request/accept state keyed by canonical pair."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from studymatch.domain.common.pairs import CanonicalPair
from studymatch.domain.errors import Conflict, NotFound
from studymatch.domain.profiles.models import Profile
from studymatch.domain.profiles.repo import ProfileDirectory
from studymatch.domain.social import audit, policy, sockets
from studymatch.domain.social.models import Connection, ConnectionState, ConnectionStatus
from studymatch.domain.social.repo import ACCEPTED, ConnectionStore, ConnectionWrite
from studymatch.domain.social.schemas import ConnectionUpdatePayload
from studymatch.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

_MAX_CONFLICT_RETRIES = 3


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


class ConnectionGraph:
	"""Idempotent connection writes plus the per-viewer derived index.

	Every write goes through a single store operation keyed by the canonical
	pair, so two users requesting each other concurrently converge on one
	accepted edge regardless of interleaving.
	"""

	def __init__(
		self,
		store: ConnectionStore,
		directory: ProfileDirectory,
		*,
		clock: Callable[[], datetime] = _utcnow,
		enforce_limits: bool = True,
	) -> None:
		self._store = store
		self._directory = directory
		self._clock = clock
		self._enforce_limits = enforce_limits

	async def request_connection(self, requester_id: str, target_id: str) -> Optional[Connection]:
		"""Ask ``target_id`` to connect; returns the resulting edge, ``None`` for self."""
		requester_id, target_id = str(requester_id), str(target_id)
		if requester_id == target_id:
			return None
		await policy.ensure_target_exists(self._directory, target_id)
		if self._enforce_limits:
			await policy.enforce_request_limit(requester_id)
		pair = CanonicalPair.of(requester_id, target_id)
		write = await self._upsert_with_retry(pair, requester_id)
		if write.changed:
			await self._publish(write, actor_id=requester_id)
		return write.connection

	async def accept_connection(self, accepter_id: str, requester_id: str) -> Connection:
		accepter_id, requester_id = str(accepter_id), str(requester_id)
		if accepter_id == requester_id:
			raise NotFound("connection_not_found")
		pair = CanonicalPair.of(accepter_id, requester_id)
		updated = await self._store.respond(pair, accepter_id, ConnectionStatus.ACCEPTED, self._clock())
		if updated is not None:
			await self._publish(ConnectionWrite(updated, ACCEPTED), actor_id=accepter_id)
			return updated
		current = await self._store.get(pair)
		if current is not None and current.status is ConnectionStatus.ACCEPTED:
			return current
		raise NotFound("connection_not_found")

	async def decline_connection(self, decliner_id: str, requester_id: str) -> Connection:
		decliner_id, requester_id = str(decliner_id), str(requester_id)
		if decliner_id == requester_id:
			raise NotFound("connection_not_found")
		pair = CanonicalPair.of(decliner_id, requester_id)
		updated = await self._store.respond(pair, decliner_id, ConnectionStatus.DECLINED, self._clock())
		if updated is None:
			raise NotFound("connection_not_found")
		await self._publish(ConnectionWrite(updated, "declined"), actor_id=decliner_id)
		return updated

	async def status_for(self, viewer_id: str, other_id: str) -> ConnectionState:
		if str(viewer_id) == str(other_id):
			return ConnectionState.NONE
		edge = await self._store.get(CanonicalPair.of(viewer_id, other_id))
		if edge is None:
			return ConnectionState.NONE
		return edge.state_for(viewer_id)

	async def connection_index(self, viewer_id: str) -> Dict[str, ConnectionState]:
		"""Map every counterpart with a live edge to the viewer-relative state."""
		index: Dict[str, ConnectionState] = {}
		for edge in await self._store.list_for(viewer_id):
			state = edge.state_for(viewer_id)
			if state is not ConnectionState.NONE:
				index[edge.other(viewer_id)] = state
		return index

	async def count_accepted(self, user_id: str) -> int:
		return len(await self._store.list_for(user_id, ConnectionStatus.ACCEPTED))

	async def list_accepted(self, user_id: str) -> List[Profile]:
		edges = await self._store.list_for(user_id, ConnectionStatus.ACCEPTED)
		ids = [edge.other(user_id) for edge in edges]
		profiles = await self._directory.get_many(ids)
		return [profiles[uid] for uid in ids if uid in profiles]

	async def _upsert_with_retry(self, pair: CanonicalPair, requester_id: str) -> ConnectionWrite:
		for attempt in range(1, _MAX_CONFLICT_RETRIES + 1):
			try:
				return await self._store.upsert_request(pair, requester_id, self._clock())
			except Conflict:
				if attempt == _MAX_CONFLICT_RETRIES:
					raise
				logger.info("connection upsert conflict; retrying", extra={"pair": pair.key})
		raise Conflict("connection_conflict")

	async def _publish(self, write: ConnectionWrite, *, actor_id: str) -> None:
		"""Audit and push a committed transition. The edge is already stored, so failures are only logged."""
		edge = write.connection
		audit.inc_transition(write.outcome)
		payload = ConnectionUpdatePayload(
			event=write.outcome,
			user_a=edge.pair.user_a,
			user_b=edge.pair.user_b,
			requester_id=edge.requester_id,
			status=edge.status.value,
		).model_dump()
		try:
			await audit.log_connection_event(
				write.outcome,
				{
					"user_a": edge.pair.user_a,
					"user_b": edge.pair.user_b,
					"requester_id": edge.requester_id,
					"actor_id": actor_id,
					"status": edge.status.value,
				},
			)
		except Exception:
			obs_metrics.inc_connection_notify_failure()
			logger.warning("connection audit write failed", exc_info=True, extra={"pair": edge.pair.key})
		for user_id in edge.pair.participants():
			try:
				await sockets.emit_connection_update(user_id, payload)
			except Exception:
				obs_metrics.inc_connection_notify_failure()
				logger.warning(
					"connection update push failed",
					exc_info=True,
					extra={"pair": edge.pair.key, "user_id": user_id},
				)
