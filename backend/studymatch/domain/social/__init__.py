"""Connection requests between students."""

from studymatch.domain.social.models import Connection, ConnectionState, ConnectionStatus
from studymatch.domain.social.repo import ConnectionRepository, InMemoryConnectionStore
from studymatch.domain.social.service import ConnectionGraph

__all__ = [
	"Connection",
	"ConnectionGraph",
	"ConnectionRepository",
	"ConnectionState",
	"ConnectionStatus",
	"InMemoryConnectionStore",
]
