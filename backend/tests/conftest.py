import asyncio
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

from academyhub.api import search as search_api
from academyhub.domain.search import capability
from academyhub.domain.search.capability import CapabilityProber
from academyhub.domain.search.history import PopularityTracker, SearchHistoryService
from academyhub.domain.search.service import SearchService
from academyhub.infra import postgres
from academyhub.main import app
from academyhub.settings import settings
from search_memory import MemorySearchHistoryRepository, MemorySearchRepository


if hasattr(asyncio, "WindowsSelectorEventLoopPolicy"):
	asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


U_STANFORD = "10000000-0000-0000-0000-000000000001"
U_MIT = "10000000-0000-0000-0000-000000000002"
U_BERKELEY = "10000000-0000-0000-0000-000000000003"
USER_ALICE = "20000000-0000-0000-0000-000000000001"
USER_BOB = "20000000-0000-0000-0000-000000000002"


def university(uid, name, *, alias=(), city=None, state=None, description=None, created_at="2024-01-01T00:00:00+00:00"):
	return {
		"id": uid,
		"name": name,
		"alias": list(alias),
		"city": city,
		"state": state,
		"country": "USA",
		"description": description,
		"logo_url": f"https://cdn.example/{uid}/logo.png",
		"cover_url": None,
		"rating": 4.5,
		"review_count": 0,
		"student_count": 10000,
		"is_active": True,
		"created_at": created_at,
	}


def user(uid, username, first, last, *, bio=None, university_id=None):
	return {
		"id": uid,
		"username": username,
		"first_name": first,
		"last_name": last,
		"full_name": f"{first} {last}",
		"bio": bio,
		"profile_picture": None,
		"is_verified_student": True,
		"university_id": university_id,
		"created_at": "2024-01-02T00:00:00+00:00",
	}


def post(pid, title, content, *, user_id, university_id, tags=(), category="general", likes=0, status="active", created_at):
	return {
		"id": pid,
		"title": title,
		"content": content,
		"category": category,
		"tags": list(tags),
		"likes_count": likes,
		"reply_count": 0,
		"view_count": 0,
		"is_question": False,
		"is_answered": False,
		"status": status,
		"user_id": user_id,
		"university_id": university_id,
		"created_at": created_at,
	}


def note(nid, title, subject, *, author_id, university_id, description=None, course=None, tags=(), note_type="lecture", downloads=0, is_public=True, status="active", created_at):
	return {
		"id": nid,
		"title": title,
		"description": description,
		"subject": subject,
		"course": course,
		"note_type": note_type,
		"tags": list(tags),
		"thumbnail": None,
		"likes_count": 0,
		"download_count": downloads,
		"is_public": is_public,
		"status": status,
		"author_id": author_id,
		"university_id": university_id,
		"created_at": created_at,
	}


def review(rid, title, content, *, author_id, university_id, rating, pros=None, cons=None, anonymous=False, created_at):
	return {
		"id": rid,
		"title": title,
		"content": content,
		"pros": pros,
		"cons": cons,
		"overall_rating": rating,
		"helpful_count": 0,
		"is_anonymous": anonymous,
		"status": "active",
		"author_id": author_id,
		"university_id": university_id,
		"created_at": created_at,
	}


CORPUS = {
	"universities": [
		university(
			U_STANFORD,
			"Stanford University",
			alias=["Stanford"],
			city="Stanford",
			state="CA",
			description="Private research university in Silicon Valley",
		),
		university(
			U_MIT,
			"Massachusetts Institute of Technology",
			alias=["MIT"],
			city="Cambridge",
			state="MA",
			description="Engineering and computer science powerhouse",
		),
		university(
			U_BERKELEY,
			"University of California, Berkeley",
			alias=["UC Berkeley", "Cal"],
			city="Berkeley",
			state="CA",
			description="Public research university",
		),
	],
	"users": [
		user(USER_ALICE, "alice", "Alice", "Nguyen", bio="Computer science student", university_id=U_STANFORD),
		user(USER_BOB, "bobbuilder", "Bob", "Smith", bio="Mechanical engineering", university_id=U_MIT),
	],
	"posts": [
		post(
			"30000000-0000-0000-0000-000000000001",
			"Stanford housing tips",
			"Where to live near campus",
			user_id=USER_ALICE,
			university_id=U_STANFORD,
			tags=["housing", "stanford"],
			category="housing",
			likes=10,
			created_at="2024-03-01T00:00:00+00:00",
		),
		post(
			"30000000-0000-0000-0000-000000000002",
			"Best computer science electives",
			"Looking for CS elective recommendations",
			user_id=USER_BOB,
			university_id=U_MIT,
			tags=["computer-science", "courses"],
			category="academics",
			likes=25,
			created_at="2024-03-05T00:00:00+00:00",
		),
		post(
			"30000000-0000-0000-0000-000000000003",
			"Old stanford thread",
			"Removed by moderators",
			user_id=USER_ALICE,
			university_id=U_STANFORD,
			tags=["stanford"],
			status="deleted",
			created_at="2024-02-01T00:00:00+00:00",
		),
	],
	"notes": [
		note(
			"40000000-0000-0000-0000-000000000001",
			"Intro to Algorithms lecture notes",
			"Computer Science",
			author_id=USER_ALICE,
			university_id=U_STANFORD,
			description="Sorting and graph algorithms",
			course="CS161",
			tags=["algorithms"],
			downloads=40,
			created_at="2024-04-01T00:00:00+00:00",
		),
		note(
			"40000000-0000-0000-0000-000000000002",
			"Thermodynamics summary",
			"Mechanical Engineering",
			author_id=USER_BOB,
			university_id=U_MIT,
			course="2.005",
			tags=["thermo"],
			note_type="summary",
			downloads=5,
			created_at="2024-04-02T00:00:00+00:00",
		),
		note(
			"40000000-0000-0000-0000-000000000003",
			"Private networking notes",
			"Computer Networks",
			author_id=USER_BOB,
			university_id=U_MIT,
			is_public=False,
			created_at="2024-04-03T00:00:00+00:00",
		),
	],
	"reviews": [
		review(
			"50000000-0000-0000-0000-000000000001",
			"Stanford changed my life",
			"Incredible faculty and research",
			author_id=USER_ALICE,
			university_id=U_STANFORD,
			rating=5.0,
			pros="Research",
			cons="Expensive",
			created_at="2024-05-01T00:00:00+00:00",
		),
		review(
			"50000000-0000-0000-0000-000000000002",
			"Great but pricey",
			"Stanford housing is expensive",
			author_id=USER_BOB,
			university_id=U_STANFORD,
			rating=3.5,
			anonymous=True,
			created_at="2024-05-02T00:00:00+00:00",
		),
		review(
			"50000000-0000-0000-0000-000000000003",
			"Intense workload",
			"MIT is hard but rewarding",
			author_id=USER_BOB,
			university_id=U_MIT,
			rating=4.0,
			created_at="2024-05-03T00:00:00+00:00",
		),
	],
}


class DisabledClient:
	"""Advanced-tier client for fallback-only tests; any call is a test failure."""

	def __init__(self):
		self.calls = 0

	async def probe(self):
		self.calls += 1
		raise AssertionError("advanced tier should not be probed")

	async def search_entity(self, *args, **kwargs):
		self.calls += 1
		raise AssertionError("advanced tier should not be queried")

	async def autocomplete_universities(self, **kwargs):
		self.calls += 1
		raise AssertionError("advanced tier should not be queried")

	async def autocomplete_subjects(self, **kwargs):
		self.calls += 1
		raise AssertionError("advanced tier should not be queried")


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from academyhub.infra.redis import redis_client, set_redis_client

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
	"""Dev mode so tests can authenticate with X-User-Id."""
	original_env = settings.environment
	original_backend = settings.search_backend
	original_rate = settings.search_rate_limit_per_minute
	settings.environment = "dev"
	settings.search_backend = "postgres"
	try:
		yield
	finally:
		settings.environment = original_env
		settings.search_backend = original_backend
		settings.search_rate_limit_per_minute = original_rate


@pytest.fixture(autouse=True)
def reset_capability():
	capability.prober.reset()
	yield
	capability.prober.reset()


@pytest_asyncio.fixture
async def memory_repo():
	repo = MemorySearchRepository()
	await repo.seed(**CORPUS)
	return repo


@pytest.fixture
def history_repo():
	return MemorySearchHistoryRepository()


@pytest.fixture
def history_service(history_repo):
	return SearchHistoryService(repository=history_repo, tracker=PopularityTracker(ranking_size=20, resort_every=100))


@pytest.fixture
def disabled_client():
	return DisabledClient()


@pytest.fixture
def search_service(memory_repo, disabled_client, history_service):
	return SearchService(
		repository=memory_repo,
		search_client=disabled_client,
		prober=CapabilityProber(client=disabled_client, enabled=False),
		history=history_service,
	)


@pytest_asyncio.fixture
async def api_client(monkeypatch, search_service):
	monkeypatch.setattr(search_api, "_service", search_service)
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
