"""Socket.IO namespace for connection updates."""

from __future__ import annotations

from typing import Optional

import socketio

from studymatch.infra.auth import socket_user_id
from studymatch.obs import metrics as obs_metrics

_namespace: "SocialNamespace" | None = None


class SocialNamespace(socketio.AsyncNamespace):
	"""Namespace that keeps each client in their personal room."""

	def __init__(self) -> None:
		super().__init__("/social")
		self._sessions: dict[str, str] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		obs_metrics.socket_connected(self.namespace)
		user_id = socket_user_id(environ, auth)
		if not user_id:
			obs_metrics.socket_disconnected(self.namespace)
			raise ConnectionRefusedError("missing user id")
		self._sessions[sid] = user_id
		await self.enter_room(sid, self.user_room(user_id))
		await self.emit("social:ack", {"ok": True}, room=sid)

	async def on_disconnect(self, sid: str) -> None:
		obs_metrics.socket_disconnected(self.namespace)
		user_id = self._sessions.pop(sid, None)
		if user_id:
			await self.leave_room(sid, self.user_room(user_id))

	@staticmethod
	def user_room(user_id: str) -> str:
		return f"user:{user_id}"


def set_namespace(ns: SocialNamespace | None) -> None:
	global _namespace
	_namespace = ns


async def emit_connection_update(user_id: str, payload: dict) -> None:
	if _namespace is None:
		return
	obs_metrics.socket_event(_namespace.namespace, "connection:update")
	await _namespace.emit("connection:update", payload, room=SocialNamespace.user_room(user_id))
