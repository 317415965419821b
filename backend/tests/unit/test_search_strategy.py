import math

import pytest

from academyhub.domain.search import guards
from academyhub.domain.search.capability import CapabilityProber
from academyhub.domain.search.entities import POSTS, REVIEWS, UNIVERSITIES
from academyhub.domain.search.models import SearchQuery
from academyhub.domain.search.strategy import EntitySearchStrategy

from conftest import U_MIT, U_STANFORD, university
from search_memory import MemorySearchRepository


class IndexBackedByMemory:
	"""Advanced-tier double answering from the memory store's token index."""

	def __init__(self, repo):
		self._repo = repo
		self.searches = 0

	async def probe(self):
		return None

	async def search_entity(self, entity, *, query, filters, plan, skip, limit):
		self.searches += 1
		terms = guards.text_terms(query)
		total = await self._repo.text_count(entity, terms=terms, filters=filters)
		rows = await self._repo.text_search(entity, terms=terms, filters=filters, plan=plan, skip=skip, limit=limit)
		return rows, total


class BrokenIndex:
	async def probe(self):
		return None

	async def search_entity(self, *args, **kwargs):
		raise RuntimeError("index missing")


class TextIndexMissing(MemorySearchRepository):
	async def text_count(self, entity, *, terms, filters):
		raise RuntimeError("text index not found")


def _strategy(entity, repo, client, *, advanced):
	return EntitySearchStrategy(
		entity,
		repository=repo,
		search_client=client,
		prober=CapabilityProber(client=client, enabled=advanced),
	)


@pytest.mark.asyncio
async def test_tiers_return_the_same_entities(memory_repo):
	client = IndexBackedByMemory(memory_repo)
	advanced = _strategy(POSTS, memory_repo, client, advanced=True)
	fallback = _strategy(POSTS, memory_repo, client, advanced=False)
	query = SearchQuery(text="stanford housing", limit=10)

	advanced_result = await advanced.search(query)
	fallback_result = await fallback.search(query)

	assert advanced_result.backend == "opensearch"
	assert fallback_result.backend == "postgres-text"
	assert client.searches == 1
	assert [item["id"] for item in advanced_result.results] == [item["id"] for item in fallback_result.results]
	assert advanced_result.total == fallback_result.total == 1
	assert advanced_result.results[0]["user"]["username"] == "alice"


@pytest.mark.asyncio
async def test_advanced_failure_falls_back_per_request(memory_repo):
	strategy = _strategy(UNIVERSITIES, memory_repo, BrokenIndex(), advanced=True)

	result = await strategy.search(SearchQuery(text="stanford"))

	assert result.backend == "postgres-text"
	assert [item["name"] for item in result.results] == ["Stanford University"]


@pytest.mark.asyncio
async def test_mid_word_fragment_reaches_substring_tier(memory_repo, disabled_client):
	strategy = _strategy(UNIVERSITIES, memory_repo, disabled_client, advanced=False)

	result = await strategy.search(SearchQuery(text="tanford"))

	assert result.backend == "postgres-substring"
	assert result.total == 1
	assert result.results[0]["name"] == "Stanford University"
	assert "score" not in result.results[0]
	assert disabled_client.calls == 0


@pytest.mark.asyncio
async def test_stanford_scenario_tokens_versus_substrings(disabled_client):
	names = [
		"Stanford University",
		"Westanford Academy",
		"Stanford Online",
		"Stanfordville Institute",
		"NotStanford College",
	]
	docs = [university(f"60000000-0000-0000-0000-00000000000{i}", name) for i, name in enumerate(names)]

	indexed = MemorySearchRepository()
	await indexed.seed(universities=docs)
	text_result = await _strategy(UNIVERSITIES, indexed, disabled_client, advanced=False).search(
		SearchQuery(text="Stanford")
	)
	assert text_result.backend == "postgres-text"
	assert text_result.total == 2
	assert {item["name"] for item in text_result.results} == {"Stanford University", "Stanford Online"}

	unindexed = TextIndexMissing()
	await unindexed.seed(universities=docs)
	scan_result = await _strategy(UNIVERSITIES, unindexed, disabled_client, advanced=False).search(
		SearchQuery(text="Stanford")
	)
	assert scan_result.backend == "postgres-substring"
	assert scan_result.total == 5
	assert [item["name"] for item in scan_result.results] == [
		"NotStanford College",
		"Stanford Online",
		"Stanford University",
		"Stanfordville Institute",
		"Westanford Academy",
	]


@pytest.mark.asyncio
@pytest.mark.parametrize("page,limit", [(1, 1), (2, 1), (3, 1), (1, 50), (7, 3)])
async def test_pagination_invariant(memory_repo, disabled_client, page, limit):
	strategy = _strategy(UNIVERSITIES, memory_repo, disabled_client, advanced=False)

	result = await strategy.search(SearchQuery(text="university", page=page, limit=limit))

	assert result.total == 2
	assert len(result.results) <= limit
	assert result.total >= len(result.results)
	expected = max(0, min(limit, result.total - (page - 1) * limit))
	assert len(result.results) == expected
	assert math.ceil(result.total / limit) >= 1


@pytest.mark.asyncio
async def test_scope_filters_narrow_both_tiers(memory_repo, disabled_client):
	strategy = _strategy(POSTS, memory_repo, disabled_client, advanced=False)

	housing = await strategy.search(SearchQuery(text="stanford", scope_filters={"category": "housing"}))
	assert housing.total == 1

	elsewhere = await strategy.search(SearchQuery(text="stanford", scope_filters={"university_id": U_MIT}))
	assert elsewhere.total == 0
	assert elsewhere.results == []
	assert elsewhere.backend == "postgres-substring"


@pytest.mark.asyncio
async def test_inactive_rows_never_match(memory_repo, disabled_client):
	strategy = _strategy(POSTS, memory_repo, disabled_client, advanced=False)

	result = await strategy.search(SearchQuery(text="moderators"))

	assert result.total == 0


@pytest.mark.asyncio
async def test_reviews_hide_anonymous_authors_and_filter_rating(memory_repo, disabled_client):
	strategy = _strategy(REVIEWS, memory_repo, disabled_client, advanced=False)

	result = await strategy.search(SearchQuery(text="stanford", scope_filters={"university_id": U_STANFORD}))
	by_title = {item["title"]: item for item in result.results}

	assert result.total == 2
	assert by_title["Great but pricey"]["author"] is None
	assert by_title["Stanford changed my life"]["author"]["username"] == "alice"
	assert by_title["Great but pricey"]["university"]["city"] == "Stanford"

	rated = await strategy.search(SearchQuery(text="stanford", scope_filters={"min_rating": 4.0}))
	assert [item["title"] for item in rated.results] == ["Stanford changed my life"]
