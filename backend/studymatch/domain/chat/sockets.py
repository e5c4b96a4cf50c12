"""Socket.IO namespace bridging conversation subscriptions to clients."""

from __future__ import annotations

from typing import Callable, Dict, Optional

import socketio

from studymatch.domain.chat.models import Message
from studymatch.domain.chat.stream import MessageStream, Subscription
from studymatch.domain.errors import StudyMatchError
from studymatch.infra.auth import socket_user_id
from studymatch.obs import metrics as obs_metrics


def _parse_after_seq(raw) -> Optional[int]:
	if raw is None:
		return None
	if isinstance(raw, bool):
		raise TypeError("after_seq must be an integer")
	return int(raw)


class ChatNamespace(socketio.AsyncNamespace):
	"""Each joined conversation holds one stream subscription per socket."""

	def __init__(self, stream_provider: Callable[[], MessageStream]) -> None:
		super().__init__("/chat")
		self._stream_provider = stream_provider
		self._sessions: Dict[str, str] = {}
		self._subscriptions: Dict[str, Dict[str, Subscription]] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		obs_metrics.socket_connected(self.namespace)
		user_id = socket_user_id(environ, auth)
		if not user_id:
			obs_metrics.socket_disconnected(self.namespace)
			raise ConnectionRefusedError("missing user id")
		self._sessions[sid] = user_id
		self._subscriptions[sid] = {}
		await self.emit("chat:ack", {"ok": True}, room=sid)

	async def on_disconnect(self, sid: str) -> None:
		obs_metrics.socket_disconnected(self.namespace)
		self._sessions.pop(sid, None)
		for subscription in self._subscriptions.pop(sid, {}).values():
			subscription.unsubscribe()

	async def on_join(self, sid: str, payload: Optional[dict] = None) -> dict:
		obs_metrics.socket_event(self.namespace, "join")
		user_id = self._sessions.get(sid)
		if not user_id:
			raise ConnectionRefusedError("unauthenticated")
		payload = payload or {}
		conversation_id = str(payload.get("conversation_id") or "")
		try:
			after_seq = _parse_after_seq(payload.get("after_seq"))
		except (TypeError, ValueError):
			return {"ok": False, "error": "invalid_after_seq"}
		stream = self._stream_provider()
		try:
			await stream.conversation_for(conversation_id, user_id)
			subscription = await stream.subscribe(
				conversation_id,
				self._forwarder(sid),
				after_seq=after_seq,
				on_error=self._error_reporter(sid, conversation_id),
			)
		except StudyMatchError as exc:
			return {"ok": False, "error": exc.reason}
		joined = self._subscriptions.get(sid)
		if joined is None:
			# The socket went away while the subscription was being opened
			subscription.unsubscribe()
			return {"ok": False, "error": "disconnected"}
		previous = joined.pop(conversation_id, None)
		if previous is not None:
			previous.unsubscribe()
		joined[conversation_id] = subscription
		return {"ok": True, "conversation_id": conversation_id, "last_seq": subscription.last_seq}

	async def on_leave(self, sid: str, payload: Optional[dict] = None) -> dict:
		obs_metrics.socket_event(self.namespace, "leave")
		conversation_id = str((payload or {}).get("conversation_id") or "")
		subscription = self._subscriptions.get(sid, {}).pop(conversation_id, None)
		if subscription is not None:
			subscription.unsubscribe()
		return {"ok": True, "conversation_id": conversation_id}

	def subscription_count(self, sid: str) -> int:
		return len(self._subscriptions.get(sid, {}))

	def _forwarder(self, sid: str):
		async def forward(message: Message) -> None:
			obs_metrics.socket_event(self.namespace, "chat:message")
			await self.emit("chat:message", message.to_dict(), room=sid)

		return forward

	def _error_reporter(self, sid: str, conversation_id: str):
		async def report(exc: BaseException) -> None:
			joined = self._subscriptions.get(sid, {})
			# A rejoin may already have replaced the failed subscription
			current = joined.get(conversation_id)
			if current is not None and current.closed:
				del joined[conversation_id]
			await self.emit(
				"chat:error",
				{"conversation_id": conversation_id, "error": getattr(exc, "reason", "subscription_failed")},
				room=sid,
			)

		return report
