"""Profile records as read from the profile store."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Tuple


def string_tuple(raw: Any) -> Tuple[str, ...]:
	"""Normalise list/set/JSON-string columns to an ordered, de-duplicated tuple."""
	if raw is None:
		return ()
	if isinstance(raw, str):
		text = raw.strip()
		if not text:
			return ()
		try:
			raw = json.loads(text) if text.startswith("[") else [text]
		except json.JSONDecodeError:
			raw = [text]
	if not isinstance(raw, Iterable):
		return ()
	seen: dict[str, None] = {}
	for item in raw:
		value = str(item).strip() if item is not None else ""
		if value and value not in seen:
			seen[value] = None
	return tuple(seen)


def _optional_text(raw: Any) -> Optional[str]:
	if raw is None:
		return None
	text = str(raw).strip()
	return text or None


@dataclass(frozen=True, slots=True)
class Profile:
	"""A candidate's identity, academic attributes, interests, goals and availability."""

	id: str
	display_name: str
	university: Optional[str] = None
	course_label: Optional[str] = None
	major: Optional[str] = None
	interests: Tuple[str, ...] = field(default_factory=tuple)
	academic_goals: Tuple[str, ...] = field(default_factory=tuple)
	availability_slots: Tuple[str, ...] = field(default_factory=tuple)

	@property
	def course_code(self) -> Optional[str]:
		"""First whitespace-delimited token of the course label, e.g. ``FIT2004``."""
		if not self.course_label:
			return None
		tokens = self.course_label.split()
		return tokens[0] if tokens else None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Profile":
		# Older rows carry academic goals under "goals"
		goals = record.get("academic_goals")
		if goals is None:
			goals = record.get("goals")
		return cls(
			id=str(record["id"]),
			display_name=_optional_text(record.get("display_name")) or "Student",
			university=_optional_text(record.get("university")),
			course_label=_optional_text(record.get("course_label")),
			major=_optional_text(record.get("major")),
			interests=string_tuple(record.get("interests")),
			academic_goals=string_tuple(goals),
			availability_slots=string_tuple(record.get("availability_slots")),
		)

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"display_name": self.display_name,
			"university": self.university,
			"course_label": self.course_label,
			"major": self.major,
			"interests": list(self.interests),
			"academic_goals": list(self.academic_goals),
			"availability_slots": list(self.availability_slots),
		}
