"""Rule-based compatibility scoring between two profiles.

The score is a fixed-point weighted sum evaluated from "me"'s perspective. Every
rule compares the same attribute on both sides, so the value is commutative;
only the order of the interest names in ``reasons`` follows ``me``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence, Tuple

from studymatch.domain.profiles.models import Profile

COURSE_WEIGHT = Decimal("2")
UNIVERSITY_WEIGHT = Decimal("2")
INTEREST_WEIGHT = Decimal("1.5")
GOAL_WEIGHT = Decimal("1.5")
AVAILABILITY_WEIGHT = Decimal("1.25")

MAX_REASONS = 4
MAX_INTEREST_REASONS = 3
GENERIC_REASON = "General compatibility"

_ONE_DECIMAL = Decimal("0.1")


@dataclass(frozen=True, slots=True)
class CompatibilityScore:
	value: float = 0.0
	reasons: Tuple[str, ...] = field(default_factory=tuple)


def _shared(mine: Sequence[str], theirs: Sequence[str]) -> list[str]:
	other = set(theirs)
	return [item for item in mine if item in other]


def _same_course(me: Profile, other: Profile) -> Optional[str]:
	mine = me.course_code
	if mine and mine == other.course_code:
		return mine
	return None


def _same_university(me: Profile, other: Profile) -> Optional[str]:
	if me.university and me.university == other.university:
		return me.university
	return None


def score(me: Optional[Profile], other: Optional[Profile]) -> CompatibilityScore:
	"""Score ``other`` as a study partner for ``me``. Never raises."""
	if me is None or other is None:
		return CompatibilityScore()

	total = Decimal("0")
	course = _same_course(me, other)
	if course:
		total += COURSE_WEIGHT
	university = _same_university(me, other)
	if university:
		total += UNIVERSITY_WEIGHT
	interests = _shared(me.interests, other.interests)
	total += INTEREST_WEIGHT * len(interests)
	total += GOAL_WEIGHT * len(_shared(me.academic_goals, other.academic_goals))
	availability = _shared(me.availability_slots, other.availability_slots)
	total += AVAILABILITY_WEIGHT * len(availability)

	value = float(total.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))
	return CompatibilityScore(
		value=value,
		reasons=_reasons(university, course, interests, availability),
	)


def _reasons(
	university: Optional[str],
	course: Optional[str],
	interests: Sequence[str],
	availability: Sequence[str],
) -> Tuple[str, ...]:
	reasons: list[str] = []
	if university:
		reasons.append(f"Same university: {university}")
	if course:
		reasons.append(f"Also enrolled in {course}")
	for interest in interests[:MAX_INTEREST_REASONS]:
		reasons.append(f"Shared interest: {interest}")
	if availability:
		reasons.append(f"Overlapping availability: {availability[0]}")
	if not reasons:
		return (GENERIC_REASON,)
	return tuple(reasons[:MAX_REASONS])
