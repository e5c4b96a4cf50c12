"""Find-or-create for direct and group conversations."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from studymatch.domain.chat.models import (
	DIRECT_FALLBACK_TITLE,
	GROUP_FALLBACK_TITLE,
	Conversation,
	ConversationKind,
	ConversationSummary,
)
from studymatch.domain.chat.repo import ConversationStore, MessageStore
from studymatch.domain.common.pairs import CanonicalPair
from studymatch.domain.errors import Conflict, InvalidArgument, NotFound, Unavailable
from studymatch.domain.profiles.models import Profile
from studymatch.domain.profiles.repo import ProfileDirectory
from studymatch.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

_LABEL_NAMES = 3


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


def _group_label(members: Iterable[Profile]) -> str:
	names = [profile.display_name for profile in members if profile.display_name]
	if not names:
		return GROUP_FALLBACK_TITLE
	label = ", ".join(names[:_LABEL_NAMES])
	if len(names) > _LABEL_NAMES:
		label += f" +{len(names) - _LABEL_NAMES}"
	return label


def _ordered_unique(values: Iterable[str]) -> List[str]:
	seen: Dict[str, None] = {}
	for value in values:
		text = str(value).strip()
		if text:
			seen.setdefault(text, None)
	return list(seen)


class ConversationResolver:
	"""Maps a user pair to its single direct conversation and creates groups."""

	def __init__(
		self,
		conversations: ConversationStore,
		messages: MessageStore,
		directory: ProfileDirectory,
		*,
		clock: Callable[[], datetime] = _utcnow,
	) -> None:
		self._conversations = conversations
		self._messages = messages
		self._directory = directory
		self._clock = clock

	async def resolve_direct(self, user_id: str, peer_id: str) -> str:
		"""Return the id of the direct conversation between the two users, creating it once."""
		user_id, peer_id = str(user_id), str(peer_id)
		if user_id == peer_id:
			raise InvalidArgument("self_conversation")
		known = await self._directory.get_many([user_id, peer_id])
		if user_id not in known or peer_id not in known:
			raise NotFound("user_not_found")
		pair = CanonicalPair.of(user_id, peer_id)
		existing = await self._conversations.find_direct(pair)
		if existing:
			return existing
		try:
			conversation = await self._conversations.create_direct(pair, self._clock())
		except Conflict:
			obs_metrics.inc_conversation_race()
			winner = await self._conversations.find_direct(pair)
			if winner is None:
				raise
			return winner
		except Unavailable:
			# The create may have committed before the store went away
			winner = await self._conversations.find_direct(pair)
			if winner is None:
				raise
			logger.info("direct conversation recovered after unavailable create", extra={"pair": pair.key})
			return winner
		obs_metrics.inc_conversation_created(ConversationKind.DIRECT.value)
		return conversation.id

	async def create_group(
		self,
		creator_id: str,
		member_ids: Iterable[str],
		name: Optional[str] = None,
	) -> str:
		"""Create a fresh group; unknown member ids are dropped."""
		creator_id = str(creator_id)
		requested = [uid for uid in _ordered_unique(member_ids) if uid != creator_id]
		known = await self._directory.get_many([creator_id, *requested])
		if creator_id not in known:
			raise NotFound("user_not_found")
		members = [uid for uid in requested if uid in known]
		if not members:
			raise InvalidArgument("empty_group")
		label = (name or "").strip() or _group_label(known[uid] for uid in members)
		conversation = await self._conversations.create_group(label, [creator_id, *members], self._clock())
		obs_metrics.inc_conversation_created(ConversationKind.GROUP.value)
		return conversation.id

	async def get_conversation(self, conversation_id: str) -> Conversation:
		conversation = await self._conversations.get(conversation_id)
		if conversation is None:
			raise NotFound("conversation_not_found")
		return conversation

	async def list_conversations_for(self, user_id: str) -> List[ConversationSummary]:
		"""Every conversation the user belongs to, most recent activity first."""
		user_id = str(user_id)
		conversations = await self._conversations.list_for(user_id)
		if not conversations:
			return []
		latest = await self._messages.latest_for(item.id for item in conversations)
		counterparts = [item.counterpart(user_id) for item in conversations]
		profiles = await self._directory.get_many(uid for uid in counterparts if uid)
		summaries = [
			ConversationSummary(
				conversation=conversation,
				title=self._title(conversation, counterpart, profiles),
				latest_message=latest.get(conversation.id),
			)
			for conversation, counterpart in zip(conversations, counterparts)
		]
		summaries.sort(key=lambda item: (item.last_activity, item.conversation.id), reverse=True)
		return summaries

	@staticmethod
	def _title(conversation: Conversation, counterpart: Optional[str], profiles: Dict[str, Profile]) -> str:
		if conversation.kind is ConversationKind.GROUP:
			return conversation.display_name or GROUP_FALLBACK_TITLE
		profile = profiles.get(counterpart) if counterpart else None
		if profile is not None and profile.display_name:
			return profile.display_name
		return DIRECT_FALLBACK_TITLE
