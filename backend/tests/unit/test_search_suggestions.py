import pytest

from academyhub.domain.search.capability import CapabilityProber
from academyhub.domain.search.suggestions import SuggestionEngine


class RecordingRepo:
	def __init__(self):
		self.calls = 0

	async def university_name_prefix(self, prefix, *, limit):
		self.calls += 1
		return []

	async def note_subject_prefix(self, prefix, *, limit):
		self.calls += 1
		return []

	async def post_tag_prefix(self, prefix, *, limit):
		self.calls += 1
		return []


class AutocompleteClient:
	def __init__(self, *, fail=False):
		self.fail = fail

	async def probe(self):
		return None

	async def autocomplete_universities(self, *, query, limit):
		if self.fail:
			raise RuntimeError("autocomplete index missing")
		return ["Stanford University"]

	async def autocomplete_subjects(self, *, query, limit):
		return ["Statistics"]


def _engine(repo, client, *, advanced):
	return SuggestionEngine(
		repository=repo,
		search_client=client,
		prober=CapabilityProber(client=client, enabled=advanced),
	)


@pytest.mark.asyncio
@pytest.mark.parametrize("text", [None, "", "a", "  b  "])
async def test_short_queries_return_empty_without_lookups(disabled_client, text):
	repo = RecordingRepo()
	engine = _engine(repo, disabled_client, advanced=True)

	assert await engine.get_suggestions(text) == []
	assert repo.calls == 0
	assert disabled_client.calls == 0


@pytest.mark.asyncio
async def test_fallback_merges_sources_alphabetically(memory_repo, disabled_client):
	engine = _engine(memory_repo, disabled_client, advanced=False)

	suggestions = await engine.get_suggestions("co")

	assert [(item.type, item.text) for item in suggestions] == [
		("subject", "Computer Networks"),
		("subject", "Computer Science"),
		("tag", "computer-science"),
		("tag", "courses"),
	]


@pytest.mark.asyncio
async def test_fallback_truncates_to_limit(memory_repo, disabled_client):
	engine = _engine(memory_repo, disabled_client, advanced=False)

	suggestions = await engine.get_suggestions("st", limit=1)

	assert [(item.type, item.text) for item in suggestions] == [("tag", "stanford")]


@pytest.mark.asyncio
async def test_advanced_tier_uses_autocomplete(memory_repo):
	engine = _engine(memory_repo, AutocompleteClient(), advanced=True)

	suggestions = await engine.get_suggestions("sta")

	assert [(item.type, item.text) for item in suggestions] == [
		("university", "Stanford University"),
		("subject", "Statistics"),
	]


@pytest.mark.asyncio
async def test_advanced_failure_falls_through_to_prefix_lookup(memory_repo):
	engine = _engine(memory_repo, AutocompleteClient(fail=True), advanced=True)

	suggestions = await engine.get_suggestions("sta")

	assert [(item.type, item.text) for item in suggestions] == [
		("tag", "stanford"),
		("university", "Stanford University"),
	]
