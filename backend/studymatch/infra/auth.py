"""Identity helpers for FastAPI endpoints and Socket.IO handshakes.

Authentication happens at the gateway; by the time a request reaches this
service the caller's id is carried in the ``X-User-Id`` header.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional, Protocol

from fastapi import Header

from studymatch.domain.errors import Unauthenticated
from studymatch.obs import logging as obs_logging


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	display_name: Optional[str] = None


class IdentityProvider(Protocol):
	def current_user_id(self) -> Optional[str]:
		...


_CURRENT_USER: ContextVar[Optional[str]] = ContextVar("studymatch_current_user", default=None)


class RequestIdentity:
	"""Identity provider reading the user bound for the current task."""

	def current_user_id(self) -> Optional[str]:
		return _CURRENT_USER.get()

	@staticmethod
	def bind(user_id: Optional[str]) -> None:
		_CURRENT_USER.set(user_id)


def require_user_id(provider: IdentityProvider) -> str:
	user_id = provider.current_user_id()
	if not user_id:
		raise Unauthenticated()
	return user_id


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_name: Optional[str] = Header(default=None, alias="X-User-Name"),
) -> AuthenticatedUser:
	"""Resolve the caller from gateway headers; 401 when absent."""
	user_id = (x_user_id or "").strip()
	RequestIdentity.bind(user_id or None)
	user_id = require_user_id(RequestIdentity())
	obs_logging.bind_user(user_id)
	return AuthenticatedUser(id=user_id, display_name=x_user_name)


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


def socket_user_id(environ: dict, auth: Optional[dict] = None) -> Optional[str]:
	"""Pull the user id from a Socket.IO handshake (auth payload, then headers)."""
	scope = environ.get("asgi.scope", environ)
	# python-socketio >=5 passes client-provided auth as a separate argument
	auth_payload = auth or environ.get("auth") or scope.get("auth") or {}
	user_id = auth_payload.get("userId") or _header(scope, "x-user-id")
	if not user_id:
		user_id = environ.get("HTTP_X_USER_ID")
	if not user_id:
		return None
	return str(user_id).strip() or None
