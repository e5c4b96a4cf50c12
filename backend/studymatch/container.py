"""Default service instances shared by the HTTP and Socket.IO surfaces.

Built lazily on first use so tests can swap stores (or call ``reset``) before
anything is constructed.
"""

from __future__ import annotations

from typing import Optional

from studymatch.domain.chat.feed import RealtimeFeed, build_feed
from studymatch.domain.chat.repo import ConversationRepository, MessageRepository
from studymatch.domain.chat.resolver import ConversationResolver
from studymatch.domain.chat.stream import MessageStream
from studymatch.domain.events.repo import EventRepository
from studymatch.domain.events.service import EventBoard
from studymatch.domain.matching.service import MatchService
from studymatch.domain.profiles.repo import ProfileRepository
from studymatch.domain.social.repo import ConnectionRepository
from studymatch.domain.social.service import ConnectionGraph
from studymatch.settings import settings

_directory: Optional[ProfileRepository] = None
_graph: Optional[ConnectionGraph] = None
_resolver: Optional[ConversationResolver] = None
_stream: Optional[MessageStream] = None
_matches: Optional[MatchService] = None
_events: Optional[EventBoard] = None
_feed: Optional[RealtimeFeed] = None
_conversations: Optional[ConversationRepository] = None
_messages: Optional[MessageRepository] = None


def get_directory() -> ProfileRepository:
	global _directory
	if _directory is None:
		_directory = ProfileRepository()
	return _directory


def get_feed() -> RealtimeFeed:
	global _feed
	if _feed is None:
		_feed = build_feed(settings.realtime_backend)
	return _feed


def _conversation_store() -> ConversationRepository:
	global _conversations
	if _conversations is None:
		_conversations = ConversationRepository()
	return _conversations


def _message_store() -> MessageRepository:
	global _messages
	if _messages is None:
		_messages = MessageRepository()
	return _messages


def get_connection_graph() -> ConnectionGraph:
	global _graph
	if _graph is None:
		_graph = ConnectionGraph(ConnectionRepository(), get_directory())
	return _graph


def get_resolver() -> ConversationResolver:
	global _resolver
	if _resolver is None:
		_resolver = ConversationResolver(_conversation_store(), _message_store(), get_directory())
	return _resolver


def get_event_board() -> EventBoard:
	global _events
	if _events is None:
		_events = EventBoard(EventRepository())
	return _events


def get_stream() -> MessageStream:
	global _stream
	if _stream is None:
		_stream = MessageStream(
			_conversation_store(),
			_message_store(),
			get_feed(),
			events=get_event_board(),
		)
	return _stream


def get_match_service() -> MatchService:
	global _matches
	if _matches is None:
		_matches = MatchService(get_directory(), get_connection_graph())
	return _matches


def set_feed(feed: Optional[RealtimeFeed]) -> None:
	"""Swap the realtime feed; services built afterwards pick it up."""
	global _feed, _stream
	_feed = feed
	_stream = None


def reset() -> None:
	global _directory, _graph, _resolver, _stream, _matches, _events, _feed, _conversations, _messages
	_directory = None
	_graph = None
	_resolver = None
	_stream = None
	_matches = None
	_events = None
	_feed = None
	_conversations = None
	_messages = None
