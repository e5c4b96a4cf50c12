"""AsyncPG pool management for the backend."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import asyncpg

from studymatch.domain.errors import Conflict, Unavailable
from studymatch.obs import metrics as obs_metrics
from studymatch.settings import settings

logger = logging.getLogger(__name__)

_pool: Optional[asyncpg.pool.Pool] = None

# Failures that mean the store could not answer, as opposed to a rejected write
_TRANSPORT_ERRORS = (
	asyncpg.PostgresConnectionError,
	asyncpg.InterfaceError,
	asyncpg.TooManyConnectionsError,
	OSError,
	asyncio.TimeoutError,
)


async def init_pool() -> asyncpg.pool.Pool:
	global _pool
	if _pool is None:
		# Force 127.0.0.1 instead of localhost to avoid IPv6 issues on Windows
		dsn = settings.postgres_url.replace("localhost", "127.0.0.1")
		_pool = await asyncpg.create_pool(
			dsn=dsn,
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			ssl="require" if settings.postgres_ssl else "disable",
		)
	return _pool


async def warm_pool() -> bool:
	"""Open the pool at startup; False when the in-memory stores are used instead."""
	try:
		await init_pool()
	except _TRANSPORT_ERRORS:
		if not settings.allows_memory_fallback():
			obs_metrics.mark_postgres(False)
			raise
		logger.warning("postgres unreachable; using in-memory stores", exc_info=True)
		obs_metrics.mark_postgres(False)
		return False
	obs_metrics.mark_postgres(True)
	return True


def set_pool(pool: Optional[asyncpg.pool.Pool]) -> None:
	global _pool
	_pool = pool


async def get_pool() -> asyncpg.pool.Pool:
	pool = _pool if _pool is not None else await init_pool()
	if pool is None:
		raise Unavailable("store_unavailable")
	return pool


async def close_pool() -> None:
	global _pool
	if _pool is not None:
		await _pool.close()
		_pool = None


@asynccontextmanager
async def connection(pool: asyncpg.pool.Pool) -> AsyncIterator[asyncpg.Connection]:
	"""Acquire a connection and classify store failures for the domain layer."""
	try:
		async with pool.acquire() as conn:
			yield conn
	except asyncpg.UniqueViolationError as exc:
		raise Conflict(exc.constraint_name or "unique_violation") from exc
	except asyncpg.SerializationError as exc:
		raise Conflict("serialization_failure") from exc
	except _TRANSPORT_ERRORS as exc:
		obs_metrics.mark_postgres(False)
		raise Unavailable("store_unavailable") from exc


class PostgresRepository:
	"""Base for repositories backed by asyncpg with an in-memory fallback.

	The fallback is only taken when ``settings.allows_memory_fallback()``; otherwise
	an unreachable pool surfaces as ``Unavailable``.
	"""

	def __init__(self) -> None:
		self._pool_checked = False
		self._pool: Optional[asyncpg.pool.Pool] = None

	async def _pool_or_none(self) -> Optional[asyncpg.pool.Pool]:
		if self._pool_checked:
			return self._pool
		try:
			pool = await get_pool()
		except (Unavailable, *_TRANSPORT_ERRORS) as exc:
			if not settings.allows_memory_fallback():
				obs_metrics.mark_postgres(False)
				raise Unavailable("store_unavailable") from exc
			pool = None
		self._pool_checked = True
		self._pool = pool
		return pool
