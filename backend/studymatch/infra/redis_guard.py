"""Classify Redis transport failures for the domain layer."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from redis import exceptions as redis_exceptions

from studymatch.domain.errors import Unavailable
from studymatch.infra.redis import RedisProxy, redis_client

# Failures that mean Redis could not answer, as opposed to a bad command
_TRANSPORT_ERRORS = (
	redis_exceptions.ConnectionError,
	redis_exceptions.TimeoutError,
	asyncio.TimeoutError,
)


@asynccontextmanager
async def redis_call() -> AsyncIterator[RedisProxy]:
	"""Yield the shared client; transport failures surface as ``Unavailable``."""
	try:
		yield redis_client
	except _TRANSPORT_ERRORS as exc:
		raise Unavailable("store_unavailable") from exc
