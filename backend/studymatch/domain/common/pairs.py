"""Canonical unordered pair keys."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True, slots=True)
class CanonicalPair:
	"""Unordered two-user key normalised so that (a, b) and (b, a) compare equal."""

	user_a: str
	user_b: str

	@classmethod
	def of(cls, user_one: str, user_two: str) -> "CanonicalPair":
		ordered = tuple(sorted((str(user_one), str(user_two))))
		return cls(user_a=ordered[0], user_b=ordered[1])

	@property
	def key(self) -> str:
		return f"{self.user_a}:{self.user_b}"

	def participants(self) -> Tuple[str, str]:
		return (self.user_a, self.user_b)

	def other(self, user_id: str) -> str:
		user_id = str(user_id)
		if user_id == self.user_a:
			return self.user_b
		if user_id == self.user_b:
			return self.user_a
		raise ValueError("user not in pair")

	def contains(self, user_id: str) -> bool:
		return str(user_id) in (self.user_a, self.user_b)
