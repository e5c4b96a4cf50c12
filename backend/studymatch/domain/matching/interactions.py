"""Like/skip bookkeeping for the suggestion feed, kept in Redis sets."""

from __future__ import annotations

from typing import Set

from studymatch.infra.redis_guard import redis_call
from studymatch.obs import metrics as obs_metrics


def _like_key(user_id: str) -> str:
	return f"match:like:{user_id}"


def _skip_key(user_id: str) -> str:
	return f"match:skip:{user_id}"


async def _record(user_id: str, target_id: str, *, add_to: str, remove_from: str) -> None:
	async with redis_call() as client:
		async with client.pipeline(transaction=True) as pipe:
			pipe.sadd(add_to, str(target_id))
			pipe.srem(remove_from, str(target_id))
			await pipe.execute()


async def like(user_id: str, target_id: str) -> None:
	await _record(user_id, target_id, add_to=_like_key(user_id), remove_from=_skip_key(user_id))
	obs_metrics.inc_match_interaction("like")


async def skip(user_id: str, target_id: str) -> None:
	await _record(user_id, target_id, add_to=_skip_key(user_id), remove_from=_like_key(user_id))
	obs_metrics.inc_match_interaction("skip")


async def _members(key: str) -> Set[str]:
	async with redis_call() as client:
		return {str(item) for item in await client.smembers(key) or []}


async def liked_ids(user_id: str) -> Set[str]:
	return await _members(_like_key(user_id))


async def skipped_ids(user_id: str) -> Set[str]:
	return await _members(_skip_key(user_id))


async def seen_ids(user_id: str) -> Set[str]:
	"""Every id the user already liked or skipped."""
	return await liked_ids(user_id) | await skipped_ids(user_id)
