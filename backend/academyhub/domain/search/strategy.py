"""Two-tier search strategy shared by every entity type."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from academyhub.domain.search import guards
from academyhub.domain.search.capability import CapabilityProber
from academyhub.domain.search.entities import EntitySpec
from academyhub.domain.search.models import CapabilityTier, ScopeFilter, SearchQuery, SearchResultSet, SortPlan
from academyhub.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)


class EntitySearchStrategy:
	"""Search one entity type through the advanced tier, falling back to Postgres.

	Fallback order: advanced index, structured text query, substring scan. The
	total always comes from the same filter that produced the page.
	"""

	def __init__(
		self,
		entity: EntitySpec,
		*,
		repository: Any,
		search_client: Any,
		prober: CapabilityProber,
	) -> None:
		self.entity = entity
		self._repo = repository
		self._client = search_client
		self._prober = prober

	async def search(self, query: SearchQuery) -> SearchResultSet:
		plan = self.entity.resolve_sort(query.sort_by)
		filters = self.entity.scope_filters(query.scope_filters)
		kind = self.entity.type.value

		tier = await self._prober.ensure_capability()
		if tier is CapabilityTier.ADVANCED:
			try:
				result = await self._search_advanced(query, filters, plan)
			except Exception as exc:
				obs_metrics.inc_search_fallback(kind, "advanced")
				_LOG.warning(
					"search.fallback",
					extra={"entity": kind, "stage": "advanced", "error": type(exc).__name__},
				)
			else:
				obs_metrics.inc_search_backend(kind, result.backend)
				return result

		result = await self._search_fallback(query, filters, plan)
		obs_metrics.inc_search_backend(kind, result.backend)
		return result

	async def _search_advanced(
		self,
		query: SearchQuery,
		filters: Sequence[ScopeFilter],
		plan: SortPlan,
	) -> SearchResultSet:
		rows, total = await self._client.search_entity(
			self.entity,
			query=query.text,
			filters=filters,
			plan=plan,
			skip=query.skip,
			limit=query.limit,
		)
		return SearchResultSet(results=await self._populate(rows), total=total, backend="opensearch")

	async def _search_fallback(
		self,
		query: SearchQuery,
		filters: Sequence[ScopeFilter],
		plan: SortPlan,
	) -> SearchResultSet:
		kind = self.entity.type.value
		terms = guards.text_terms(query.text)
		if terms:
			try:
				total = await self._repo.text_count(self.entity, terms=terms, filters=filters)
				rows: list[dict[str, Any]] = []
				if total and query.skip < total:
					rows = await self._repo.text_search(
						self.entity,
						terms=terms,
						filters=filters,
						plan=plan,
						skip=query.skip,
						limit=query.limit,
					)
			except Exception as exc:
				_LOG.warning(
					"search.fallback",
					extra={"entity": kind, "stage": "text_error", "error": type(exc).__name__},
				)
			else:
				if total:
					return SearchResultSet(results=await self._populate(rows), total=total, backend="postgres-text")
		obs_metrics.inc_search_fallback(kind, "text")

		total = await self._repo.substring_count(self.entity, text=query.text, filters=filters)
		rows = []
		if total and query.skip < total:
			rows = await self._repo.substring_search(
				self.entity,
				text=query.text,
				filters=filters,
				plan=plan,
				skip=query.skip,
				limit=query.limit,
			)
		return SearchResultSet(results=await self._populate(rows), total=total, backend="postgres-substring")

	async def _populate(self, rows: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
		if not rows:
			return []
		lookups = await self._repo.load_references(self.entity, rows) if self.entity.references else {}
		return [self.entity.build_summary(row, lookups) for row in rows]


__all__ = ["EntitySearchStrategy"]
