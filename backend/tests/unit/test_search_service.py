import pytest

from academyhub.domain.search.models import EntityType
from academyhub.domain.search.service import SearchService

from conftest import USER_ALICE


class FailingRepo:
	async def text_count(self, *args, **kwargs):
		raise RuntimeError("db down")

	async def substring_count(self, *args, **kwargs):
		raise RuntimeError("db down")


@pytest.mark.asyncio
async def test_global_total_is_sum_of_entity_counts(search_service):
	response = await search_service.global_search("stanford", limit=5)

	counts = dict(response.counts)
	total = counts.pop("total")
	assert set(counts) == {"universities", "users", "posts", "notes"}
	assert total == counts["universities"] + counts["users"] + counts["posts"] + counts["notes"]
	assert counts["universities"] == 1
	assert counts["posts"] == 1
	assert total == 2
	assert set(response.results) == set(counts)
	assert all(len(items) <= 5 for items in response.results.values())


@pytest.mark.asyncio
async def test_global_search_respects_shared_limit(search_service):
	response = await search_service.global_search("university", limit=1)

	assert response.counts["universities"] == 2
	assert len(response.results["universities"]) == 1


@pytest.mark.asyncio
async def test_global_search_records_history_and_popularity(search_service, history_repo):
	await search_service.global_search("Computer Science", user_id=USER_ALICE)
	await search_service.history.flush()

	assert await history_repo.recent(USER_ALICE, limit=10) == ["computer science"]
	assert search_service.history.tracker.count("computer science") == 1


@pytest.mark.asyncio
async def test_anonymous_global_search_skips_history(search_service, history_repo):
	await search_service.global_search("stanford")
	await search_service.history.flush()

	assert await history_repo.aggregate_popular(limit=10) == []
	assert search_service.history.tracker.ranking() == ["stanford"]


@pytest.mark.asyncio
async def test_typed_search_returns_single_entity(search_service, history_repo):
	response = await search_service.typed_search("algorithms", EntityType.NOTES, user_id=USER_ALICE)
	await search_service.history.flush()

	assert response.type == "notes"
	assert response.total == 1
	assert response.results[0]["title"] == "Intro to Algorithms lecture notes"
	assert response.results[0]["author"]["username"] == "alice"
	assert await history_repo.recent(USER_ALICE, limit=10) == ["algorithms"]


@pytest.mark.asyncio
async def test_typed_search_applies_entity_scope(search_service):
	scope = {"min_rating": 5.0, "category": "housing", "subject": "ignored"}
	typed = await search_service.typed_search("stanford", EntityType.REVIEWS, scope_filters=scope)
	dedicated = await search_service.search_reviews("stanford", min_rating=5.0)

	assert typed.total == dedicated.total == 1
	assert [item["id"] for item in typed.results] == [item["id"] for item in dedicated.results]


@pytest.mark.asyncio
async def test_typed_search_pages_and_sorts(search_service):
	first = await search_service.typed_search("university", EntityType.UNIVERSITIES, limit=1, sort_by="name")
	second = await search_service.typed_search("university", EntityType.UNIVERSITIES, page=2, limit=1, sort_by="name")

	assert first.total == second.total == 2
	assert first.results[0]["name"] < second.results[0]["name"]


@pytest.mark.asyncio
async def test_global_search_propagates_strategy_failures(disabled_client, history_service):
	from academyhub.domain.search.capability import CapabilityProber

	service = SearchService(
		repository=FailingRepo(),
		search_client=disabled_client,
		prober=CapabilityProber(client=disabled_client, enabled=False),
		history=history_service,
	)

	with pytest.raises(RuntimeError):
		await service.global_search("stanford")


@pytest.mark.asyncio
async def test_notes_scope_filters_and_visibility(search_service):
	private = await search_service.search_notes("networking")
	assert private.total == 0

	by_subject = await search_service.search_notes("notes", subject="computer")
	assert [item["subject"] for item in by_subject.results] == ["Computer Science"]

	by_type = await search_service.search_notes("thermodynamics", note_type="lecture")
	assert by_type.total == 0


@pytest.mark.asyncio
async def test_post_sort_options(search_service):
	newest = await search_service.search_posts("cs", sort_by="newest")
	assert newest.total == 1

	likes = await search_service.search_posts("stanford", sort_by="likes")
	assert likes.results[0]["likes_count"] == 10
