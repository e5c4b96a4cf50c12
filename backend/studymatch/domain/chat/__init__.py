"""Conversations and their message streams."""

from studymatch.domain.chat.feed import LocalFeed, RealtimeFeed, RedisFeed
from studymatch.domain.chat.models import Conversation, ConversationKind, ConversationSummary, Message
from studymatch.domain.chat.resolver import ConversationResolver
from studymatch.domain.chat.stream import MessageStream, Subscription

__all__ = [
	"Conversation",
	"ConversationKind",
	"ConversationResolver",
	"ConversationSummary",
	"LocalFeed",
	"Message",
	"MessageStream",
	"RealtimeFeed",
	"RedisFeed",
	"Subscription",
]
