"""Error taxonomy shared by the matching, social and chat domains."""

from __future__ import annotations

from studymatch.infra.rate_limit import RateLimitExceeded


class StudyMatchError(Exception):
	"""Base class for domain errors; ``reason`` is a short machine-readable code."""

	reason: str = "unknown"

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class Unauthenticated(StudyMatchError):
	reason = "unauthenticated"


class NotFound(StudyMatchError):
	reason = "not_found"


class InvalidArgument(StudyMatchError):
	reason = "invalid_argument"


class Conflict(StudyMatchError):
	"""A write lost a race against a uniqueness constraint."""

	reason = "conflict"


class Unavailable(StudyMatchError):
	"""The store or transport did not answer; callers may retry."""

	reason = "unavailable"


class RateLimited(RateLimitExceeded):
	"""Raised when a user exceeds a per-action quota."""
