"""Pydantic schemas for the suggestion feed."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from studymatch.domain.matching.ranking import CandidateScore
from studymatch.domain.profiles.models import Profile


class ProfileCard(BaseModel):
	id: str
	display_name: str
	university: Optional[str] = None
	course_label: Optional[str] = None
	major: Optional[str] = None
	interests: List[str] = []
	academic_goals: List[str] = []
	availability_slots: List[str] = []

	@classmethod
	def from_model(cls, profile: Profile) -> "ProfileCard":
		return cls(**profile.to_dict())


class CandidateResponse(BaseModel):
	candidate_id: str
	score: float
	reasons: List[str]
	profile: Optional[ProfileCard] = None

	@classmethod
	def from_model(cls, item: CandidateScore) -> "CandidateResponse":
		return cls(
			candidate_id=item.candidate_id,
			score=item.score,
			reasons=list(item.reasons),
			profile=ProfileCard.from_model(item.profile) if item.profile else None,
		)


class SuggestionPage(BaseModel):
	items: List[CandidateResponse]
	page: int
	page_size: int
	total: int
	has_next: bool


class GroupSuggestionResponse(BaseModel):
	members: List[ProfileCard]
