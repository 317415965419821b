"""Client wrapper for the advanced (OpenSearch) search tier."""

from __future__ import annotations

from typing import Any, Sequence

from academyhub.domain.search import builders, exceptions
from academyhub.domain.search.entities import UNIVERSITIES, EntitySpec
from academyhub.domain.search.models import ScopeFilter, SortPlan
from academyhub.infra import opensearch
from academyhub.settings import settings

_NOTES_INDEX = "notes_search"


class OpenSearchSearchClient:
	"""Run entity and autocomplete queries; every failure surfaces as BackendError."""

	def __init__(self, *, transport: Any | None = None) -> None:
		self._transport = transport

	def _resolve_transport(self) -> Any:
		return self._transport or opensearch.get_transport()

	async def probe(self) -> None:
		await self._execute_search(index=UNIVERSITIES.index, body=builders.build_probe_query())

	async def search_entity(
		self,
		entity: EntitySpec,
		*,
		query: str,
		filters: Sequence[ScopeFilter],
		plan: SortPlan,
		skip: int,
		limit: int,
	) -> tuple[list[dict[str, Any]], int]:
		body = builders.build_entity_search_query(
			entity,
			query=query,
			filters=filters,
			plan=plan,
			skip=skip,
			limit=limit,
		)
		response = await self._execute_search(index=entity.index, body=body)
		return self._parse_hits(response), self._parse_total(response)

	async def autocomplete_universities(self, *, query: str, limit: int) -> list[str]:
		body = builders.build_university_autocomplete_query(query=query, limit=limit)
		response = await self._execute_search(index=UNIVERSITIES.index, body=body)
		names: list[str] = []
		for hit in response.get("hits", {}).get("hits", []):
			name = (hit.get("_source") or {}).get("name")
			if name:
				names.append(str(name))
		return names

	async def autocomplete_subjects(self, *, query: str, limit: int) -> list[str]:
		body = builders.build_subject_autocomplete_query(query=query, limit=limit)
		response = await self._execute_search(index=_NOTES_INDEX, body=body)
		buckets = response.get("aggregations", {}).get("subjects", {}).get("buckets", [])
		return [str(bucket["key"]) for bucket in buckets if bucket.get("key")]

	async def _execute_search(self, *, index: str, body: dict[str, Any]) -> dict[str, Any]:
		try:
			return await self._resolve_transport().search(index=settings.index_name(index), body=body)
		except Exception as exc:
			raise exceptions.BackendError("search_unavailable") from exc

	@staticmethod
	def _parse_total(response: dict[str, Any]) -> int:
		total = response.get("hits", {}).get("total", 0)
		if isinstance(total, dict):
			return int(total.get("value", 0))
		return int(total or 0)

	@staticmethod
	def _parse_hits(response: dict[str, Any]) -> list[dict[str, Any]]:
		rows: list[dict[str, Any]] = []
		for hit in response.get("hits", {}).get("hits", []):
			source = dict(hit.get("_source") or {})
			doc_id = source.get("id") or hit.get("_id")
			if not doc_id:
				continue
			source["id"] = str(doc_id)
			score = hit.get("_score")
			source["score"] = float(score) if score is not None else None
			rows.append(source)
		return rows


__all__ = ["OpenSearchSearchClient"]
