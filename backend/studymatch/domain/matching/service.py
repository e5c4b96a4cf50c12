"""Suggestion feed for one viewer: directory, exclusions, ranking, paging."""

from __future__ import annotations

from typing import List, Optional

from studymatch.domain.errors import InvalidArgument, NotFound
from studymatch.domain.matching import interactions, ranking
from studymatch.domain.matching.ranking import CandidateScore, MatchFilters, Page
from studymatch.domain.profiles.models import Profile
from studymatch.domain.profiles.repo import ProfileDirectory
from studymatch.domain.social.service import ConnectionGraph
from studymatch.obs import metrics as obs_metrics
from studymatch.settings import settings


class MatchService:
	def __init__(self, directory: ProfileDirectory, graph: ConnectionGraph) -> None:
		self._directory = directory
		self._graph = graph

	async def _viewer(self, user_id: str) -> Profile:
		me = await self._directory.get(user_id)
		if me is None:
			raise NotFound("profile_not_found")
		return me

	async def suggestions(
		self,
		user_id: str,
		*,
		filters: MatchFilters = MatchFilters(),
		page: int = 1,
		page_size: Optional[int] = None,
	) -> Page[CandidateScore]:
		"""Ranked candidates the viewer has not acted on and is not connected to."""
		me = await self._viewer(user_id)
		pool = await self._directory.list_candidates(me.id, limit=settings.match_candidate_pool)
		excluded = await interactions.seen_ids(me.id)
		excluded.update((await self._graph.connection_index(me.id)).keys())
		ranked = ranking.rank(me, pool, exclude=excluded)
		obs_metrics.inc_match_ranking(len(ranked))
		narrowed = ranking.apply_filters(me, ranked, filters)
		return ranking.paginate(narrowed, page=page, page_size=page_size or settings.match_page_size)

	async def like(self, user_id: str, target_id: str) -> None:
		await self._check_target(user_id, target_id)
		await interactions.like(str(user_id), str(target_id))

	async def skip(self, user_id: str, target_id: str) -> None:
		await self._check_target(user_id, target_id)
		await interactions.skip(str(user_id), str(target_id))

	async def group_suggestion(self, user_id: str) -> List[Profile]:
		"""The best-matching liked profiles, as seed members for a study group."""
		me = await self._viewer(user_id)
		liked_ids = sorted(await interactions.liked_ids(me.id))
		profiles = await self._directory.get_many(liked_ids)
		liked = [profiles[uid] for uid in liked_ids if uid in profiles]
		return ranking.suggest_group(me, liked, size=settings.group_suggestion_size)

	async def _check_target(self, user_id: str, target_id: str) -> None:
		if str(user_id) == str(target_id):
			raise InvalidArgument("self_interaction")
		if await self._directory.get(target_id) is None:
			raise NotFound("user_not_found")
