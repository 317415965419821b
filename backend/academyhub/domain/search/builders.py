"""OpenSearch query builders for entity search and autocomplete."""

from __future__ import annotations

from typing import Any, Sequence

from academyhub.domain.search import guards
from academyhub.domain.search.entities import EntitySpec
from academyhub.domain.search.models import ScopeFilter, SortPlan

FUZZY_EDITS = 1
FUZZY_PREFIX_LENGTH = 2


def _field_path(entity: EntitySpec, name: str) -> str:
	if name in entity.keyword_fields:
		return f"{name}.keyword"
	return name


def build_filter_clauses(entity: EntitySpec, filters: Sequence[ScopeFilter]) -> list[dict[str, Any]]:
	clauses: list[dict[str, Any]] = []
	for item in filters:
		path = _field_path(entity, item.field)
		if item.op == "eq":
			clauses.append({"term": {path: item.value}})
		elif item.op == "gte":
			clauses.append({"range": {path: {"gte": item.value}}})
		elif item.op == "icontains":
			pattern = f"*{guards.escape_wildcard(str(item.value))}*"
			clauses.append({"wildcard": {path: {"value": pattern, "case_insensitive": True}}})
		else:
			raise ValueError(f"unsupported filter op: {item.op}")
	return clauses


def build_sort(entity: EntitySpec, plan: SortPlan) -> list[dict[str, Any]]:
	sort: list[dict[str, Any]] = []
	if plan.by_score:
		sort.append({"_score": {"order": "desc"}})
	for key in plan.keys:
		sort.append({_field_path(entity, key.field): {"order": "desc" if key.descending else "asc"}})
	return sort


def build_entity_search_query(
	entity: EntitySpec,
	*,
	query: str,
	filters: Sequence[ScopeFilter],
	plan: SortPlan,
	skip: int,
	limit: int,
) -> dict[str, Any]:
	"""Return a fuzzy ranked query; scope filters narrow hits without touching scores."""

	fields = [f"{name}^{boost:g}" if boost != 1 else name for name, boost in entity.search_fields]
	body: dict[str, Any] = {
		"from": skip,
		"size": limit,
		"track_total_hits": True,
		"query": {
			"multi_match": {
				"query": query,
				"fields": fields,
				"type": "best_fields",
				"fuzziness": FUZZY_EDITS,
				"prefix_length": FUZZY_PREFIX_LENGTH,
			}
		},
		"sort": build_sort(entity, plan),
		"highlight": {"fields": {name: {} for name in entity.field_names}},
	}
	clauses = build_filter_clauses(entity, filters)
	if clauses:
		body["post_filter"] = {"bool": {"filter": clauses}}
	return body


def _autocomplete_clause(field: str, query: str) -> dict[str, Any]:
	return {
		"bool": {
			"should": [
				{"match_phrase_prefix": {field: {"query": query, "max_expansions": 20}}},
				{
					"match_bool_prefix": {
						field: {
							"query": query,
							"fuzziness": FUZZY_EDITS,
							"prefix_length": FUZZY_PREFIX_LENGTH,
						}
					}
				},
			],
			"minimum_should_match": 1,
		}
	}


def build_university_autocomplete_query(*, query: str, limit: int) -> dict[str, Any]:
	return {
		"size": limit,
		"_source": ["id", "name"],
		"query": {
			"bool": {
				"must": [_autocomplete_clause("name", query)],
				"filter": [{"term": {"is_active": True}}],
			}
		},
	}


def build_subject_autocomplete_query(*, query: str, limit: int) -> dict[str, Any]:
	"""Distinct subjects of active notes matching the prefix, via a terms aggregation."""

	return {
		"size": 0,
		"query": {
			"bool": {
				"must": [_autocomplete_clause("subject", query)],
				"filter": [{"term": {"status": "active"}}],
			}
		},
		"aggs": {"subjects": {"terms": {"field": "subject.keyword", "size": limit}}},
	}


def build_probe_query() -> dict[str, Any]:
	return {"size": 1, "query": {"match_all": {}}}


__all__ = [
	"build_entity_search_query",
	"build_filter_clauses",
	"build_probe_query",
	"build_sort",
	"build_subject_autocomplete_query",
	"build_university_autocomplete_query",
]
