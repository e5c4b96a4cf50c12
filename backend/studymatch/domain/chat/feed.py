"""Realtime fan-out of appended messages, per conversation.

A feed only carries notifications; the message log in the store stays the
source of truth and subscribers backfill from it when they see a gap.
"""

from __future__ import annotations

import asyncio
import json
from typing import Dict, Protocol, Set

from studymatch.domain.chat.models import Message
from studymatch.domain.errors import Unavailable
from studymatch.infra.redis import redis_client

_CONFIRM_TIMEOUT_SECONDS = 5.0
_POLL_TIMEOUT_SECONDS = 1.0


def channel_for(conversation_id: str) -> str:
	return f"chat:conv:{conversation_id}"


class FeedListener(Protocol):
	async def next_message(self) -> Message:
		...

	async def close(self) -> None:
		...


class RealtimeFeed(Protocol):
	async def publish(self, message: Message) -> None:
		...

	async def listen(self, conversation_id: str) -> FeedListener:
		"""Register a listener; returns once messages published afterwards are guaranteed to reach it."""
		...


class _LocalListener:
	def __init__(self, feed: "LocalFeed", conversation_id: str) -> None:
		self._feed = feed
		self._conversation_id = conversation_id
		self.queue: asyncio.Queue[Message] = asyncio.Queue()

	async def next_message(self) -> Message:
		return await self.queue.get()

	async def close(self) -> None:
		self._feed._detach(self._conversation_id, self)


class LocalFeed:
	"""In-process feed for a single worker (tests, local dev)."""

	def __init__(self) -> None:
		self._listeners: Dict[str, Set[_LocalListener]] = {}

	async def publish(self, message: Message) -> None:
		for listener in list(self._listeners.get(message.conversation_id, ())):
			listener.queue.put_nowait(message)

	async def listen(self, conversation_id: str) -> _LocalListener:
		listener = _LocalListener(self, str(conversation_id))
		self._listeners.setdefault(str(conversation_id), set()).add(listener)
		return listener

	def listener_count(self, conversation_id: str) -> int:
		return len(self._listeners.get(str(conversation_id), ()))

	def _detach(self, conversation_id: str, listener: _LocalListener) -> None:
		listeners = self._listeners.get(conversation_id)
		if not listeners:
			return
		listeners.discard(listener)
		if not listeners:
			self._listeners.pop(conversation_id, None)


class _RedisListener:
	def __init__(self, pubsub, channel: str) -> None:
		self._pubsub = pubsub
		self._channel = channel
		self._closed = False

	async def next_message(self) -> Message:
		while True:
			raw = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=_POLL_TIMEOUT_SECONDS)
			if raw is None or raw.get("type") != "message":
				continue
			return Message.from_dict(json.loads(raw["data"]))

	async def close(self) -> None:
		if self._closed:
			return
		self._closed = True
		try:
			await self._pubsub.unsubscribe(self._channel)
		finally:
			await self._pubsub.aclose()


class RedisFeed:
	"""Feed over Redis pub/sub, one channel per conversation."""

	def __init__(self, client=None) -> None:
		self._client = client or redis_client

	async def publish(self, message: Message) -> None:
		await self._client.publish(channel_for(message.conversation_id), json.dumps(message.to_dict()))

	async def listen(self, conversation_id: str) -> _RedisListener:
		channel = channel_for(conversation_id)
		pubsub = self._client.pubsub()
		await pubsub.subscribe(channel)
		listener = _RedisListener(pubsub, channel)
		try:
			await self._await_confirmation(pubsub)
		except BaseException:
			await listener.close()
			raise
		return listener

	@staticmethod
	async def _await_confirmation(pubsub) -> None:
		loop = asyncio.get_running_loop()
		deadline = loop.time() + _CONFIRM_TIMEOUT_SECONDS
		while loop.time() < deadline:
			raw = await pubsub.get_message(timeout=_POLL_TIMEOUT_SECONDS)
			if raw is not None and raw.get("type") == "subscribe":
				return
		raise Unavailable("feed_subscribe_timeout")


def build_feed(backend: str) -> RealtimeFeed:
	if backend == "local":
		return LocalFeed()
	return RedisFeed()


__all__ = ["FeedListener", "LocalFeed", "RealtimeFeed", "RedisFeed", "build_feed", "channel_for"]
