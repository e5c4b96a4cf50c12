"""Persistence for conversations, participants and message logs."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

import ulid

from studymatch.domain.chat.models import Conversation, ConversationKind, Message, history_order
from studymatch.domain.common.pairs import CanonicalPair
from studymatch.domain.errors import Conflict
from studymatch.infra.postgres import PostgresRepository, connection


def new_id() -> str:
	return str(ulid.new())


class ConversationStore(Protocol):
	async def find_direct(self, pair: CanonicalPair) -> Optional[str]:
		...

	async def create_direct(self, pair: CanonicalPair, now: datetime) -> Conversation:
		...

	async def create_group(self, name: str, participant_ids: Sequence[str], now: datetime) -> Conversation:
		...

	async def get(self, conversation_id: str) -> Optional[Conversation]:
		...

	async def list_for(self, user_id: str) -> List[Conversation]:
		...


class MessageStore(Protocol):
	async def append(
		self,
		conversation_id: str,
		sender_id: str,
		body: str,
		event_ref: Optional[str],
		now: datetime,
	) -> Message:
		...

	async def history(self, conversation_id: str) -> List[Message]:
		...

	async def after_seq(self, conversation_id: str, seq: int) -> List[Message]:
		...

	async def latest_seq(self, conversation_id: str) -> int:
		...

	async def latest_for(self, conversation_ids: Iterable[str]) -> Dict[str, Message]:
		...


class InMemoryConversationStore:
	"""Process-local conversations; the direct index is checked and written under one lock."""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._conversations: Dict[str, Conversation] = {}
		self._direct_index: Dict[CanonicalPair, str] = {}

	async def find_direct(self, pair: CanonicalPair) -> Optional[str]:
		async with self._lock:
			return self._direct_index.get(pair)

	async def create_direct(self, pair: CanonicalPair, now: datetime) -> Conversation:
		async with self._lock:
			if pair in self._direct_index:
				raise Conflict("direct_conversation_index_pkey")
			conversation = Conversation(
				id=new_id(),
				kind=ConversationKind.DIRECT,
				display_name=None,
				participant_ids=pair.participants(),
				created_at=now,
			)
			self._conversations[conversation.id] = conversation
			self._direct_index[pair] = conversation.id
			return conversation

	async def create_group(self, name: str, participant_ids: Sequence[str], now: datetime) -> Conversation:
		async with self._lock:
			conversation = Conversation(
				id=new_id(),
				kind=ConversationKind.GROUP,
				display_name=name,
				participant_ids=tuple(participant_ids),
				created_at=now,
			)
			self._conversations[conversation.id] = conversation
			return conversation

	async def get(self, conversation_id: str) -> Optional[Conversation]:
		async with self._lock:
			return self._conversations.get(str(conversation_id))

	async def list_for(self, user_id: str) -> List[Conversation]:
		async with self._lock:
			return [item for item in self._conversations.values() if item.has_participant(user_id)]


class InMemoryMessageStore:
	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._messages: Dict[str, List[Message]] = {}

	async def append(
		self,
		conversation_id: str,
		sender_id: str,
		body: str,
		event_ref: Optional[str],
		now: datetime,
	) -> Message:
		async with self._lock:
			log = self._messages.setdefault(str(conversation_id), [])
			if log and log[-1].created_at > now:
				now = log[-1].created_at
			message = Message(
				id=new_id(),
				conversation_id=str(conversation_id),
				seq=log[-1].seq + 1 if log else 1,
				sender_id=str(sender_id),
				body=body,
				event_ref=event_ref,
				created_at=now,
			)
			log.append(message)
			return message

	async def history(self, conversation_id: str) -> List[Message]:
		async with self._lock:
			return sorted(self._messages.get(str(conversation_id), []), key=history_order)

	async def after_seq(self, conversation_id: str, seq: int) -> List[Message]:
		async with self._lock:
			return [item for item in self._messages.get(str(conversation_id), []) if item.seq > seq]

	async def latest_seq(self, conversation_id: str) -> int:
		async with self._lock:
			log = self._messages.get(str(conversation_id))
			return log[-1].seq if log else 0

	async def latest_for(self, conversation_ids: Iterable[str]) -> Dict[str, Message]:
		async with self._lock:
			latest: Dict[str, Message] = {}
			for conversation_id in map(str, conversation_ids):
				log = self._messages.get(conversation_id)
				if log:
					latest[conversation_id] = max(log, key=history_order)
			return latest


_MEMORY_CONVERSATIONS = InMemoryConversationStore()
_MEMORY_MESSAGES = InMemoryMessageStore()


_CONVERSATION_SELECT = """
	SELECT c.id, c.kind, c.display_name, c.created_at,
		array_agg(p.user_id ORDER BY p.user_id) AS participant_ids
	FROM conversations c
	JOIN conversation_participants p ON p.conversation_id = c.id
"""


class ConversationRepository(PostgresRepository):
	"""Conversations backed by ``conversations``, ``conversation_participants`` and
	``direct_conversation_index``; the index's primary key on ``(user_a, user_b)``
	is what makes a direct conversation unique per pair.
	"""

	def __init__(self, memory: InMemoryConversationStore | None = None) -> None:
		super().__init__()
		self._memory = memory or _MEMORY_CONVERSATIONS

	async def find_direct(self, pair: CanonicalPair) -> Optional[str]:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.find_direct(pair)
		async with connection(pool) as conn:
			value = await conn.fetchval(
				"SELECT conversation_id FROM direct_conversation_index WHERE user_a = $1 AND user_b = $2",
				pair.user_a,
				pair.user_b,
			)
		return str(value) if value else None

	async def create_direct(self, pair: CanonicalPair, now: datetime) -> Conversation:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.create_direct(pair, now)
		conversation_id = new_id()
		async with connection(pool) as conn:
			async with conn.transaction():
				await self._insert_conversation(conn, conversation_id, ConversationKind.DIRECT, None, pair.participants(), now)
				# Unique violation here rolls back the whole conversation and surfaces as Conflict
				await conn.execute(
					"""
					INSERT INTO direct_conversation_index (user_a, user_b, conversation_id)
					VALUES ($1, $2, $3)
					""",
					pair.user_a,
					pair.user_b,
					conversation_id,
				)
		return Conversation(conversation_id, ConversationKind.DIRECT, None, pair.participants(), now)

	async def create_group(self, name: str, participant_ids: Sequence[str], now: datetime) -> Conversation:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.create_group(name, participant_ids, now)
		conversation_id = new_id()
		members = tuple(participant_ids)
		async with connection(pool) as conn:
			async with conn.transaction():
				await self._insert_conversation(conn, conversation_id, ConversationKind.GROUP, name, members, now)
		return Conversation(conversation_id, ConversationKind.GROUP, name, members, now)

	async def get(self, conversation_id: str) -> Optional[Conversation]:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.get(conversation_id)
		async with connection(pool) as conn:
			row = await conn.fetchrow(
				_CONVERSATION_SELECT + " WHERE c.id = $1 GROUP BY c.id",
				str(conversation_id),
			)
		return Conversation.from_record(row, row["participant_ids"]) if row else None

	async def list_for(self, user_id: str) -> List[Conversation]:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.list_for(user_id)
		async with connection(pool) as conn:
			rows = await conn.fetch(
				_CONVERSATION_SELECT
				+ """
				WHERE c.id IN (SELECT conversation_id FROM conversation_participants WHERE user_id = $1)
				GROUP BY c.id
				""",
				str(user_id),
			)
		return [Conversation.from_record(row, row["participant_ids"]) for row in rows]

	@staticmethod
	async def _insert_conversation(conn, conversation_id, kind, name, participant_ids, now) -> None:
		await conn.execute(
			"INSERT INTO conversations (id, kind, display_name, created_at) VALUES ($1, $2, $3, $4)",
			conversation_id,
			kind.value,
			name,
			now,
		)
		await conn.executemany(
			"INSERT INTO conversation_participants (conversation_id, user_id) VALUES ($1, $2)",
			[(conversation_id, participant) for participant in participant_ids],
		)


class MessageRepository(PostgresRepository):
	"""Append-only message log backed by ``chat_messages`` with ``chat_seq`` counters."""

	def __init__(self, memory: InMemoryMessageStore | None = None) -> None:
		super().__init__()
		self._memory = memory or _MEMORY_MESSAGES

	async def append(
		self,
		conversation_id: str,
		sender_id: str,
		body: str,
		event_ref: Optional[str],
		now: datetime,
	) -> Message:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.append(conversation_id, sender_id, body, event_ref, now)
		message_id = new_id()
		async with connection(pool) as conn:
			async with conn.transaction():
				seq, created_at = await self._allocate(conn, str(conversation_id), now)
				row = await conn.fetchrow(
					"""
					INSERT INTO chat_messages (id, conversation_id, seq, sender_id, body, event_ref, created_at)
					VALUES ($1, $2, $3, $4, $5, $6, $7)
					RETURNING *
					""",
					message_id,
					str(conversation_id),
					seq,
					str(sender_id),
					body,
					event_ref,
					created_at,
				)
		return Message.from_record(row)

	async def history(self, conversation_id: str) -> List[Message]:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.history(conversation_id)
		async with connection(pool) as conn:
			rows = await conn.fetch(
				"SELECT * FROM chat_messages WHERE conversation_id = $1 ORDER BY created_at, seq",
				str(conversation_id),
			)
		return [Message.from_record(row) for row in rows]

	async def after_seq(self, conversation_id: str, seq: int) -> List[Message]:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.after_seq(conversation_id, seq)
		async with connection(pool) as conn:
			rows = await conn.fetch(
				"SELECT * FROM chat_messages WHERE conversation_id = $1 AND seq > $2 ORDER BY seq",
				str(conversation_id),
				int(seq),
			)
		return [Message.from_record(row) for row in rows]

	async def latest_seq(self, conversation_id: str) -> int:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.latest_seq(conversation_id)
		async with connection(pool) as conn:
			value = await conn.fetchval(
				"SELECT last_seq FROM chat_seq WHERE conversation_id = $1",
				str(conversation_id),
			)
		return int(value or 0)

	async def latest_for(self, conversation_ids: Iterable[str]) -> Dict[str, Message]:
		ids = [str(item) for item in conversation_ids]
		if not ids:
			return {}
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.latest_for(ids)
		async with connection(pool) as conn:
			rows = await conn.fetch(
				"""
				SELECT DISTINCT ON (conversation_id) *
				FROM chat_messages
				WHERE conversation_id = ANY($1::text[])
				ORDER BY conversation_id, created_at DESC, seq DESC
				""",
				ids,
			)
		return {str(row["conversation_id"]): Message.from_record(row) for row in rows}

	@staticmethod
	async def _allocate(conn, conversation_id: str, now: datetime) -> Tuple[int, datetime]:
		"""Take the next ``seq`` and a ``created_at`` that never runs behind earlier messages.

		The upsert holds the ``chat_seq`` row lock until the transaction ends, so
		concurrent senders are numbered and stamped in the same order.
		"""
		row = await conn.fetchrow(
			"""
			INSERT INTO chat_seq (conversation_id, last_seq, last_created_at) VALUES ($1, 1, $2)
			ON CONFLICT (conversation_id) DO UPDATE SET
				last_seq = chat_seq.last_seq + 1,
				last_created_at = GREATEST(chat_seq.last_created_at, EXCLUDED.last_created_at)
			RETURNING last_seq, last_created_at
			""",
			conversation_id,
			now,
		)
		return int(row["last_seq"]), row["last_created_at"]
