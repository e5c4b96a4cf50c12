import sys
from pathlib import Path

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from studymatch import container
from studymatch.domain.chat import repo as chat_repo
from studymatch.domain.chat.feed import LocalFeed
from studymatch.domain.events import repo as events_repo
from studymatch.domain.profiles import repo as profiles_repo
from studymatch.domain.profiles.models import Profile
from studymatch.domain.social import repo as social_repo
from studymatch.infra import postgres
from studymatch.infra.redis import redis_client, set_redis_client
from studymatch.main import app
from studymatch.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Run against the in-memory stores with an in-process realtime feed."""
	original_env = settings.environment
	original_backend = settings.realtime_backend
	settings.environment = "test"
	settings.realtime_backend = "local"
	try:
		yield
	finally:
		settings.environment = original_env
		settings.realtime_backend = original_backend


@pytest.fixture(autouse=True)
def fresh_stores(monkeypatch):
	"""Give every test empty in-memory stores and freshly built services."""
	monkeypatch.setattr(profiles_repo, "_MEMORY_STORE", profiles_repo.InMemoryProfileStore())
	monkeypatch.setattr(social_repo, "_MEMORY_STORE", social_repo.InMemoryConnectionStore())
	monkeypatch.setattr(chat_repo, "_MEMORY_CONVERSATIONS", chat_repo.InMemoryConversationStore())
	monkeypatch.setattr(chat_repo, "_MEMORY_MESSAGES", chat_repo.InMemoryMessageStore())
	monkeypatch.setattr(events_repo, "_MEMORY_STORE", events_repo.InMemoryEventStore())
	container.reset()
	container.set_feed(LocalFeed())
	yield
	container.reset()


@pytest.fixture
def make_profile():
	def _make(user_id: str, **fields) -> Profile:
		fields.setdefault("display_name", user_id.title())
		return Profile(id=user_id, **fields)

	return _make


@pytest_asyncio.fixture
async def seed_profiles():
	"""Save profiles into the default directory used by the API."""

	async def _seed(*profiles: Profile) -> None:
		directory = container.get_directory()
		for profile in profiles:
			await directory.save(profile)

	return _seed


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
