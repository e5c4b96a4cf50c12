"""Compatibility scoring, ranking and the suggestion feed."""

from studymatch.domain.matching.ranking import CandidateScore, MatchFilters, Page, apply_filters, paginate, rank, suggest_group
from studymatch.domain.matching.scoring import CompatibilityScore, score

__all__ = [
	"CandidateScore",
	"CompatibilityScore",
	"MatchFilters",
	"Page",
	"apply_filters",
	"paginate",
	"rank",
	"score",
	"suggest_group",
]
