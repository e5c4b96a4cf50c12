"""Guard checks for connection requests."""

from __future__ import annotations

from studymatch.domain.errors import NotFound, RateLimited
from studymatch.domain.profiles.repo import ProfileDirectory
from studymatch.infra import rate_limit
from studymatch.infra.redis_guard import redis_call
from studymatch.settings import settings


async def enforce_request_limit(user_id: str) -> None:
	async with redis_call():
		allowed = await rate_limit.allow(
			"connection_request",
			str(user_id),
			limit=settings.connection_requests_per_minute,
			window_seconds=60,
		)
	if not allowed:
		raise RateLimited("connection_request_rate_limited")


async def ensure_target_exists(directory: ProfileDirectory, target_id: str) -> None:
	if await directory.get(target_id) is None:
		raise NotFound("user_not_found")
