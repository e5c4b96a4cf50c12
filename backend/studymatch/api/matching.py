"""REST API surface for study-buddy suggestions."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from studymatch import container
from studymatch.domain.matching.ranking import MatchFilters
from studymatch.domain.matching.schemas import CandidateResponse, GroupSuggestionResponse, ProfileCard, SuggestionPage
from studymatch.domain.matching.service import MatchService
from studymatch.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/matches", tags=["matches"])


@router.get("", response_model=SuggestionPage)
async def list_matches(
	page: int = Query(default=1, ge=1),
	page_size: int | None = Query(default=None, ge=1, le=100),
	same_university: bool = False,
	same_course: bool = False,
	shared_interest: bool = False,
	shared_availability: bool = False,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	matches: MatchService = Depends(container.get_match_service),
) -> SuggestionPage:
	filters = MatchFilters(
		same_university=same_university,
		same_course=same_course,
		shared_interest=shared_interest,
		shared_availability=shared_availability,
	)
	result = await matches.suggestions(auth_user.id, filters=filters, page=page, page_size=page_size)
	return SuggestionPage(
		items=[CandidateResponse.from_model(item) for item in result.items],
		page=result.page,
		page_size=result.page_size,
		total=result.total,
		has_next=result.has_next,
	)


@router.post("/{target_id}/like", status_code=status.HTTP_204_NO_CONTENT)
async def like_candidate(
	target_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	matches: MatchService = Depends(container.get_match_service),
) -> None:
	await matches.like(auth_user.id, target_id)


@router.post("/{target_id}/skip", status_code=status.HTTP_204_NO_CONTENT)
async def skip_candidate(
	target_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	matches: MatchService = Depends(container.get_match_service),
) -> None:
	await matches.skip(auth_user.id, target_id)


@router.get("/group-suggestion", response_model=GroupSuggestionResponse)
async def group_suggestion(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	matches: MatchService = Depends(container.get_match_service),
) -> GroupSuggestionResponse:
	members = await matches.group_suggestion(auth_user.id)
	return GroupSuggestionResponse(members=[ProfileCard.from_model(profile) for profile in members])
