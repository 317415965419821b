"""Service layer orchestrating entity search, global search and suggestions."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Mapping, Optional

from academyhub.domain.search import guards, schemas
from academyhub.domain.search.capability import CapabilityProber, prober as default_prober
from academyhub.domain.search.clients import OpenSearchSearchClient
from academyhub.domain.search.entities import ENTITY_SPECS
from academyhub.domain.search.history import SearchHistoryService
from academyhub.domain.search.models import EntityType, SearchQuery, SearchResultSet
from academyhub.domain.search.repository import PostgresSearchRepository
from academyhub.domain.search.strategy import EntitySearchStrategy
from academyhub.domain.search.suggestions import SuggestionEngine
from academyhub.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)
_GLOBAL_KIND = "global"
_SUGGEST_KIND = "suggestions"
# reviews are reachable through typed and dedicated search only
GLOBAL_TYPES: tuple[EntityType, ...] = (
	EntityType.UNIVERSITIES,
	EntityType.USERS,
	EntityType.POSTS,
	EntityType.NOTES,
)


class SearchService:
	"""Coordinate strategies, the global fan-out and history side effects."""

	def __init__(
		self,
		*,
		repository: Any | None = None,
		search_client: Any | None = None,
		prober: CapabilityProber | None = None,
		history: SearchHistoryService | None = None,
	) -> None:
		self._repo = repository or PostgresSearchRepository()
		self._client = search_client or OpenSearchSearchClient()
		self._prober = prober or default_prober
		self.history = history or SearchHistoryService()
		self._strategies = {
			entity_type: EntitySearchStrategy(
				spec,
				repository=self._repo,
				search_client=self._client,
				prober=self._prober,
			)
			for entity_type, spec in ENTITY_SPECS.items()
		}
		self._suggestions = SuggestionEngine(
			repository=self._repo,
			search_client=self._client,
			prober=self._prober,
		)

	async def search_entity(self, entity_type: EntityType, query: SearchQuery) -> SearchResultSet:
		kind = entity_type.value
		obs_metrics.inc_search_query(kind)
		started = time.perf_counter()
		try:
			return await self._strategies[entity_type].search(query)
		finally:
			obs_metrics.observe_search_latency(kind, time.perf_counter() - started)

	async def search_universities(
		self,
		text: str,
		*,
		page: int = 1,
		limit: int = guards.DEFAULT_PAGE_SIZE,
		sort_by: Optional[str] = None,
	) -> SearchResultSet:
		query = SearchQuery(text=text, entity_filter=EntityType.UNIVERSITIES, page=page, limit=limit, sort_by=sort_by)
		return await self.search_entity(EntityType.UNIVERSITIES, query)

	async def search_users(self, text: str, *, page: int = 1, limit: int = guards.DEFAULT_PAGE_SIZE) -> SearchResultSet:
		query = SearchQuery(text=text, entity_filter=EntityType.USERS, page=page, limit=limit)
		return await self.search_entity(EntityType.USERS, query)

	async def search_posts(
		self,
		text: str,
		*,
		page: int = 1,
		limit: int = guards.DEFAULT_PAGE_SIZE,
		category: Optional[str] = None,
		university_id: Optional[str] = None,
		sort_by: Optional[str] = None,
	) -> SearchResultSet:
		query = SearchQuery(
			text=text,
			entity_filter=EntityType.POSTS,
			page=page,
			limit=limit,
			sort_by=sort_by,
			scope_filters={"category": category, "university_id": university_id},
		)
		return await self.search_entity(EntityType.POSTS, query)

	async def search_notes(
		self,
		text: str,
		*,
		page: int = 1,
		limit: int = guards.DEFAULT_PAGE_SIZE,
		university_id: Optional[str] = None,
		subject: Optional[str] = None,
		note_type: Optional[str] = None,
		sort_by: Optional[str] = None,
	) -> SearchResultSet:
		query = SearchQuery(
			text=text,
			entity_filter=EntityType.NOTES,
			page=page,
			limit=limit,
			sort_by=sort_by,
			scope_filters={"university_id": university_id, "subject": subject, "note_type": note_type},
		)
		return await self.search_entity(EntityType.NOTES, query)

	async def search_reviews(
		self,
		text: str,
		*,
		page: int = 1,
		limit: int = guards.DEFAULT_PAGE_SIZE,
		university_id: Optional[str] = None,
		min_rating: Optional[float] = None,
	) -> SearchResultSet:
		query = SearchQuery(
			text=text,
			entity_filter=EntityType.REVIEWS,
			page=page,
			limit=limit,
			scope_filters={"university_id": university_id, "min_rating": min_rating},
		)
		return await self.search_entity(EntityType.REVIEWS, query)

	async def global_search(
		self,
		text: str,
		*,
		limit: int = guards.DEFAULT_GLOBAL_LIMIT,
		user_id: Optional[str] = None,
	) -> schemas.GlobalSearchResponse:
		"""Fan out to the global entity types; any strategy failure fails the request."""
		obs_metrics.inc_search_query(_GLOBAL_KIND)
		started = time.perf_counter()
		order = GLOBAL_TYPES
		result_sets = await asyncio.gather(
			*(self.search_entity(entity_type, SearchQuery(text=text, limit=limit)) for entity_type in order)
		)
		obs_metrics.observe_search_latency(_GLOBAL_KIND, time.perf_counter() - started)

		results = {entity_type.value: result.results for entity_type, result in zip(order, result_sets)}
		counts = {entity_type.value: result.total for entity_type, result in zip(order, result_sets)}
		counts["total"] = sum(counts.values())

		self.record_search(text, user_id=user_id)
		return schemas.GlobalSearchResponse(query=text, results=results, counts=counts)

	async def typed_search(
		self,
		text: str,
		entity_type: EntityType,
		*,
		page: int = 1,
		limit: int = guards.DEFAULT_PAGE_SIZE,
		sort_by: Optional[str] = None,
		scope_filters: Optional[Mapping[str, Any]] = None,
		user_id: Optional[str] = None,
	) -> schemas.TypedSearchResponse:
		"""Run one entity search; scope parameters the entity does not define are ignored."""
		query = SearchQuery(
			text=text,
			entity_filter=entity_type,
			page=page,
			limit=limit,
			sort_by=sort_by,
			scope_filters=scope_filters or {},
		)
		result = await self.search_entity(entity_type, query)
		if user_id:
			self.history.record_in_background(user_id, text)
		return schemas.TypedSearchResponse(
			query=text,
			type=entity_type.value,
			results=result.results,
			total=result.total,
		)

	def record_search(self, text: str, *, user_id: Optional[str]) -> None:
		self.history.update_popular_searches(text)
		if user_id:
			self.history.record_in_background(user_id, text)

	async def get_suggestions(self, text: str | None, *, limit: int = guards.DEFAULT_SUGGESTION_LIMIT) -> list[schemas.Suggestion]:
		obs_metrics.inc_search_query(_SUGGEST_KIND)
		started = time.perf_counter()
		try:
			return await self._suggestions.get_suggestions(text, limit=limit)
		finally:
			obs_metrics.observe_search_latency(_SUGGEST_KIND, time.perf_counter() - started)


__all__ = ["GLOBAL_TYPES", "SearchService"]
