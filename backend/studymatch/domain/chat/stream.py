"""Per-conversation message log with history and live subscriptions."""

from __future__ import annotations

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Set, Tuple, Union

from studymatch.domain.chat.feed import FeedListener, RealtimeFeed
from studymatch.domain.chat.models import Conversation, Message
from studymatch.domain.chat.repo import ConversationStore, MessageStore
from studymatch.domain.errors import InvalidArgument, NotFound
from studymatch.domain.events.models import EventItem
from studymatch.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

MessageCallback = Callable[[Message], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[BaseException], Union[None, Awaitable[None]]]

# Listener releases scheduled from sync unsubscribe() need a strong reference
_PENDING_RELEASES: Set[asyncio.Task] = set()


class EventChecker(Protocol):
	async def ensure_event(self, event_id: str) -> object:
		...

	async def events_by_id(self, event_ids: Iterable[str]) -> Dict[str, EventItem]:
		...


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


async def _invoke(callback: Callable, arg) -> None:
	result = callback(arg)
	if inspect.isawaitable(result):
		await result


class Subscription:
	"""Handle for one live subscription to a conversation.

	Messages reach ``on_message`` at most once each and in ``seq`` order.
	``unsubscribe()`` may be called from anywhere, any number of times; once it
	returns no further callbacks are made.
	"""

	def __init__(self, conversation_id: str, listener: FeedListener, *, last_seq: int) -> None:
		self.conversation_id = conversation_id
		self.last_seq = last_seq
		self._listener = listener
		self._task: Optional[asyncio.Task] = None
		self._closed = False
		self._released = False

	@property
	def closed(self) -> bool:
		return self._closed

	def unsubscribe(self) -> None:
		if self._closed:
			return
		self._closed = True
		if self._task is not None and not self._task.done():
			self._task.cancel()

	async def aclose(self) -> None:
		"""Unsubscribe and wait until the feed listener has been released."""
		self.unsubscribe()
		if self._task is not None:
			await asyncio.wait({self._task})
		await self._release()

	def _start(self, pump: Awaitable[None]) -> None:
		self._task = asyncio.create_task(pump)
		self._task.add_done_callback(self._on_done)

	def _on_done(self, task: asyncio.Task) -> None:
		# A task cancelled before its first step never runs its finally block
		self._closed = True
		if not self._released:
			release = asyncio.get_running_loop().create_task(self._release())
			_PENDING_RELEASES.add(release)
			release.add_done_callback(_PENDING_RELEASES.discard)

	async def _release(self) -> None:
		if self._released:
			return
		self._released = True
		obs_metrics.subscription_closed()
		await self._listener.close()

	async def _deliver(self, message: Message, on_message: MessageCallback) -> None:
		if self._closed or message.seq <= self.last_seq:
			return
		await _invoke(on_message, message)
		self.last_seq = message.seq


class MessageStream:
	"""Append-only conversation logs plus gap-free realtime delivery."""

	def __init__(
		self,
		conversations: ConversationStore,
		messages: MessageStore,
		feed: RealtimeFeed,
		*,
		events: Optional[EventChecker] = None,
		clock: Callable[[], datetime] = _utcnow,
	) -> None:
		self._conversations = conversations
		self._messages = messages
		self._feed = feed
		self._events = events
		self._clock = clock

	async def conversation_for(self, conversation_id: str, user_id: str) -> Conversation:
		"""Return the conversation if ``user_id`` takes part in it, else ``NotFound``."""
		conversation = await self._conversations.get(conversation_id)
		if conversation is None or not conversation.has_participant(user_id):
			raise NotFound("conversation_not_found")
		return conversation

	async def send(
		self,
		conversation_id: str,
		sender_id: str,
		body: Optional[str],
		event_ref: Optional[str] = None,
	) -> Message:
		text = (body or "").strip()
		event_ref = (event_ref or "").strip() or None
		if not text and event_ref is None:
			raise InvalidArgument("empty_message")
		await self.conversation_for(conversation_id, sender_id)
		if event_ref is not None and self._events is not None:
			await self._events.ensure_event(event_ref)
		message = await self._messages.append(str(conversation_id), str(sender_id), text, event_ref, self._clock())
		obs_metrics.inc_message_sent()
		try:
			await self._feed.publish(message)
		except Exception:
			# Subscribers recover the message from the store on their next gap check
			obs_metrics.inc_feed_publish_failure()
			logger.warning(
				"message feed publish failed",
				exc_info=True,
				extra={"conversation_id": message.conversation_id, "seq": message.seq},
			)
		return message

	async def history(self, conversation_id: str) -> List[Message]:
		"""Full log ordered by creation time, ties broken by ``seq``."""
		if await self._conversations.get(conversation_id) is None:
			raise NotFound("conversation_not_found")
		return await self._messages.history(str(conversation_id))

	async def shared_events(self, messages: Iterable[Message]) -> Dict[str, EventItem]:
		"""Events referenced by ``messages``, keyed by id; refs to deleted events are left out."""
		refs = {message.event_ref for message in messages if message.event_ref}
		if not refs or self._events is None:
			return {}
		return await self._events.events_by_id(refs)

	async def subscribe(
		self,
		conversation_id: str,
		on_message: MessageCallback,
		*,
		after_seq: Optional[int] = None,
		on_error: Optional[ErrorCallback] = None,
	) -> Subscription:
		"""Deliver messages appended to the conversation from now on.

		With ``after_seq`` every message with a greater ``seq`` is delivered,
		including ones stored before this call.
		"""
		conversation_id = str(conversation_id)
		if await self._conversations.get(conversation_id) is None:
			raise NotFound("conversation_not_found")
		# Register on the feed before reading the store so nothing falls in between
		listener = await self._feed.listen(conversation_id)
		try:
			if after_seq is None:
				start_seq = await self._messages.latest_seq(conversation_id)
				backlog: Sequence[Message] = ()
			else:
				start_seq = max(0, int(after_seq))
				backlog = await self._messages.after_seq(conversation_id, start_seq)
		except BaseException:
			await listener.close()
			raise
		subscription = Subscription(conversation_id, listener, last_seq=start_seq)
		obs_metrics.subscription_opened()
		subscription._start(self._pump(subscription, listener, backlog, on_message, on_error))
		return subscription

	async def follow(
		self,
		conversation_id: str,
		on_message: MessageCallback,
		*,
		on_error: Optional[ErrorCallback] = None,
	) -> Tuple[List[Message], Subscription]:
		"""Read the history, then subscribe from its last message without gaps."""
		history = await self.history(conversation_id)
		last_seq = max((item.seq for item in history), default=0)
		subscription = await self.subscribe(conversation_id, on_message, after_seq=last_seq, on_error=on_error)
		return history, subscription

	async def _pump(
		self,
		subscription: Subscription,
		listener: FeedListener,
		backlog: Sequence[Message],
		on_message: MessageCallback,
		on_error: Optional[ErrorCallback],
	) -> None:
		try:
			for message in backlog:
				await subscription._deliver(message, on_message)
			while not subscription.closed:
				message = await listener.next_message()
				if message.seq <= subscription.last_seq:
					continue
				if message.seq > subscription.last_seq + 1:
					obs_metrics.inc_subscription_backfill()
					for missed in await self._messages.after_seq(subscription.conversation_id, subscription.last_seq):
						await subscription._deliver(missed, on_message)
				await subscription._deliver(message, on_message)
		except Exception as exc:
			subscription._closed = True
			logger.warning(
				"message subscription failed",
				exc_info=True,
				extra={"conversation_id": subscription.conversation_id},
			)
			if on_error is not None:
				await self._report(on_error, exc)
		finally:
			await subscription._release()

	@staticmethod
	async def _report(on_error: ErrorCallback, exc: BaseException) -> None:
		try:
			await _invoke(on_error, exc)
		except Exception:
			logger.exception("subscription error handler failed")
