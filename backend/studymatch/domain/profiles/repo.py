"""Read access to stored profiles (the candidate directory)."""

from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Optional, Protocol

from studymatch.domain.profiles.models import Profile
from studymatch.infra.postgres import PostgresRepository, connection

_PROFILE_COLUMNS = """
	id, display_name, university, course_label, major,
	interests, academic_goals, availability_slots
"""


class ProfileDirectory(Protocol):
	async def get(self, user_id: str) -> Optional[Profile]:
		...

	async def get_many(self, user_ids: Iterable[str]) -> Dict[str, Profile]:
		...

	async def list_candidates(self, exclude_id: str, *, limit: int) -> List[Profile]:
		...

	async def save(self, profile: Profile) -> Profile:
		...


class InMemoryProfileStore:
	"""Process-local directory used by tests and when Postgres is unavailable in dev."""

	def __init__(self, profiles: Iterable[Profile] = ()) -> None:
		self._lock = asyncio.Lock()
		self._profiles: Dict[str, Profile] = {}
		for profile in profiles:
			self._profiles[profile.id] = profile

	async def get(self, user_id: str) -> Optional[Profile]:
		async with self._lock:
			return self._profiles.get(str(user_id))

	async def get_many(self, user_ids: Iterable[str]) -> Dict[str, Profile]:
		async with self._lock:
			return {uid: self._profiles[uid] for uid in map(str, user_ids) if uid in self._profiles}

	async def list_candidates(self, exclude_id: str, *, limit: int) -> List[Profile]:
		async with self._lock:
			items = [p for p in self._profiles.values() if p.id != str(exclude_id)]
			return items[:limit]

	async def save(self, profile: Profile) -> Profile:
		async with self._lock:
			self._profiles[profile.id] = profile
			return profile


_MEMORY_STORE = InMemoryProfileStore()


class ProfileRepository(PostgresRepository):
	"""Profile directory backed by the ``users`` table."""

	def __init__(self, memory: InMemoryProfileStore | None = None) -> None:
		super().__init__()
		self._memory = memory or _MEMORY_STORE

	async def get(self, user_id: str) -> Optional[Profile]:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.get(user_id)
		async with connection(pool) as conn:
			row = await conn.fetchrow(
				f"SELECT {_PROFILE_COLUMNS} FROM users WHERE id = $1 AND deleted_at IS NULL",
				str(user_id),
			)
		return Profile.from_record(row) if row else None

	async def get_many(self, user_ids: Iterable[str]) -> Dict[str, Profile]:
		ids = list({str(uid) for uid in user_ids})
		if not ids:
			return {}
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.get_many(ids)
		async with connection(pool) as conn:
			rows = await conn.fetch(
				f"SELECT {_PROFILE_COLUMNS} FROM users WHERE id = ANY($1::text[]) AND deleted_at IS NULL",
				ids,
			)
		return {str(row["id"]): Profile.from_record(row) for row in rows}

	async def list_candidates(self, exclude_id: str, *, limit: int) -> List[Profile]:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.list_candidates(exclude_id, limit=limit)
		async with connection(pool) as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_PROFILE_COLUMNS}
				FROM users
				WHERE id <> $1 AND deleted_at IS NULL
				ORDER BY created_at ASC, id ASC
				LIMIT $2
				""",
				str(exclude_id),
				limit,
			)
		return [Profile.from_record(row) for row in rows]

	async def save(self, profile: Profile) -> Profile:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.save(profile)
		async with connection(pool) as conn:
			await conn.execute(
				"""
				INSERT INTO users (id, display_name, university, course_label, major, interests, academic_goals, availability_slots)
				VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
				ON CONFLICT (id) DO UPDATE SET
					display_name = EXCLUDED.display_name,
					university = EXCLUDED.university,
					course_label = EXCLUDED.course_label,
					major = EXCLUDED.major,
					interests = EXCLUDED.interests,
					academic_goals = EXCLUDED.academic_goals,
					availability_slots = EXCLUDED.availability_slots,
					updated_at = NOW()
				""",
				profile.id,
				profile.display_name,
				profile.university,
				profile.course_label,
				profile.major,
				list(profile.interests),
				list(profile.academic_goals),
				list(profile.availability_slots),
			)
		return profile
