"""PostgreSQL access for the fallback search tier."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence
from uuid import UUID

import asyncpg

from academyhub.domain.search import guards
from academyhub.domain.search.entities import EntitySpec, Reference
from academyhub.domain.search.models import ScopeFilter, SortPlan
from academyhub.infra.postgres import get_pool

_TS_CONFIG = "english"
_CASTS = {"university_id": "uuid", "overall_rating": "float8"}
_REFERENCE_TABLES = {"user": "users", "university": "universities"}


def _jsonable(value: Any) -> Any:
	if isinstance(value, UUID):
		return str(value)
	if isinstance(value, (datetime, date)):
		return value.isoformat()
	if isinstance(value, Decimal):
		return float(value)
	if isinstance(value, list):
		return [_jsonable(item) for item in value]
	return value


def _record_to_dict(record: asyncpg.Record | Mapping[str, Any]) -> dict[str, Any]:
	return {key: _jsonable(value) for key, value in dict(record).items()}


class _Params:
	"""Collect positional parameters while building SQL."""

	def __init__(self) -> None:
		self.values: list[Any] = []

	def add(self, value: Any, *, cast: str | None = None) -> str:
		self.values.append(value)
		placeholder = f"${len(self.values)}"
		return f"{placeholder}::{cast}" if cast else placeholder


def document_sql(entity: EntitySpec, *, alias: str = "t") -> str:
	"""The tsvector expression mirrored by the GIN expression index of each table."""
	parts = []
	for name in entity.field_names:
		if name in entity.array_fields:
			parts.append(f"search_array_text({alias}.{name})")
		else:
			parts.append(f"coalesce({alias}.{name}, '')")
	joined = " || ' ' || ".join(parts)
	return f"to_tsvector('{_TS_CONFIG}', {joined})"


def _filter_sql(filters: Iterable[ScopeFilter], params: _Params) -> list[str]:
	conditions: list[str] = []
	for item in filters:
		column = f"t.{item.field}"
		cast = _CASTS.get(item.field)
		if item.op == "eq":
			conditions.append(f"{column} = {params.add(item.value, cast=cast)}")
		elif item.op == "gte":
			conditions.append(f"{column} >= {params.add(item.value, cast=cast)}")
		elif item.op == "icontains":
			pattern = f"%{guards.escape_like(str(item.value))}%"
			conditions.append(f"{column} ILIKE {params.add(pattern)}")
		else:
			raise ValueError(f"unsupported filter op: {item.op}")
	return conditions


def _substring_sql(entity: EntitySpec, placeholder: str) -> str:
	clauses = []
	for name in entity.field_names:
		if name in entity.array_fields:
			clauses.append(f"EXISTS (SELECT 1 FROM unnest(t.{name}) AS item WHERE item ILIKE {placeholder})")
		else:
			clauses.append(f"t.{name} ILIKE {placeholder}")
	return "(" + " OR ".join(clauses) + ")"


def _order_sql(plan: SortPlan) -> str:
	parts = ["score DESC"] if plan.by_score else []
	for key in plan.keys:
		parts.append(f"t.{key.field} {'DESC' if key.descending else 'ASC'}")
	return ", ".join(parts)


def _columns_sql(entity: EntitySpec) -> str:
	return ", ".join(f"t.{column}" for column in entity.selected_columns)


class PostgresSearchRepository:
	"""Structured text and substring queries over the entity tables."""

	async def _fetch(self, sql: str, *params: Any) -> list[dict[str, Any]]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(sql, *params)
		return [_record_to_dict(row) for row in rows]

	async def _fetchval(self, sql: str, *params: Any) -> Any:
		pool = await get_pool()
		async with pool.acquire() as conn:
			return await conn.fetchval(sql, *params)

	def _text_where(
		self,
		entity: EntitySpec,
		terms: Sequence[str],
		filters: Sequence[ScopeFilter],
		params: _Params,
	) -> tuple[str, str]:
		tsquery = f"websearch_to_tsquery('{_TS_CONFIG}', {params.add(' or '.join(terms))})"
		conditions = [f"{document_sql(entity)} @@ {tsquery}", *_filter_sql(filters, params)]
		return " AND ".join(conditions), tsquery

	async def text_count(
		self,
		entity: EntitySpec,
		*,
		terms: Sequence[str],
		filters: Sequence[ScopeFilter],
	) -> int:
		params = _Params()
		where, _ = self._text_where(entity, terms, filters, params)
		count = await self._fetchval(f"SELECT COUNT(*) FROM {entity.table} AS t WHERE {where}", *params.values)
		return int(count or 0)

	async def text_search(
		self,
		entity: EntitySpec,
		*,
		terms: Sequence[str],
		filters: Sequence[ScopeFilter],
		plan: SortPlan,
		skip: int,
		limit: int,
	) -> list[dict[str, Any]]:
		params = _Params()
		where, tsquery = self._text_where(entity, terms, filters, params)
		sql = f"""
			SELECT {_columns_sql(entity)}, ts_rank_cd({document_sql(entity)}, {tsquery}) AS score
			FROM {entity.table} AS t
			WHERE {where}
			ORDER BY {_order_sql(plan)}
			OFFSET {params.add(skip)} LIMIT {params.add(limit)}
		"""
		return await self._fetch(sql, *params.values)

	def _substring_where(
		self,
		entity: EntitySpec,
		text: str,
		filters: Sequence[ScopeFilter],
		params: _Params,
	) -> str:
		placeholder = params.add(f"%{guards.escape_like(text)}%")
		return " AND ".join([_substring_sql(entity, placeholder), *_filter_sql(filters, params)])

	async def substring_count(
		self,
		entity: EntitySpec,
		*,
		text: str,
		filters: Sequence[ScopeFilter],
	) -> int:
		params = _Params()
		where = self._substring_where(entity, text, filters, params)
		count = await self._fetchval(f"SELECT COUNT(*) FROM {entity.table} AS t WHERE {where}", *params.values)
		return int(count or 0)

	async def substring_search(
		self,
		entity: EntitySpec,
		*,
		text: str,
		filters: Sequence[ScopeFilter],
		plan: SortPlan,
		skip: int,
		limit: int,
	) -> list[dict[str, Any]]:
		params = _Params()
		where = self._substring_where(entity, text, filters, params)
		sql = f"""
			SELECT {_columns_sql(entity)}
			FROM {entity.table} AS t
			WHERE {where}
			ORDER BY {_order_sql(entity.unranked(plan))}
			OFFSET {params.add(skip)} LIMIT {params.add(limit)}
		"""
		return await self._fetch(sql, *params.values)

	async def load_references(
		self,
		entity: EntitySpec,
		rows: Sequence[Mapping[str, Any]],
	) -> dict[str, dict[str, dict[str, Any]]]:
		lookups: dict[str, dict[str, dict[str, Any]]] = {}
		for ref in entity.references:
			ids = sorted({str(row[ref.column]) for row in rows if row.get(ref.column)})
			lookups[ref.key] = await self._load_summaries(ref, ids)
		return lookups

	async def _load_summaries(self, ref: Reference, ids: Sequence[str]) -> dict[str, dict[str, Any]]:
		if not ids:
			return {}
		columns = ", ".join(ref.fields)
		table = _REFERENCE_TABLES[ref.kind]
		rows = await self._fetch(f"SELECT {columns} FROM {table} WHERE id = ANY($1::uuid[])", list(ids))
		return {row["id"]: row for row in rows}

	async def university_name_prefix(self, prefix: str, *, limit: int) -> list[str]:
		rows = await self._fetch(
			"""
			SELECT name FROM universities
			WHERE is_active AND name ILIKE $1
			ORDER BY name
			LIMIT $2
			""",
			f"{guards.escape_like(prefix)}%",
			limit,
		)
		return [row["name"] for row in rows]

	async def note_subject_prefix(self, prefix: str, *, limit: int) -> list[str]:
		rows = await self._fetch(
			"""
			SELECT DISTINCT subject FROM notes
			WHERE status = 'active' AND subject ILIKE $1
			ORDER BY subject
			LIMIT $2
			""",
			f"{guards.escape_like(prefix)}%",
			limit,
		)
		return [row["subject"] for row in rows]

	async def post_tag_prefix(self, prefix: str, *, limit: int) -> list[str]:
		rows = await self._fetch(
			"""
			SELECT DISTINCT tag FROM posts, unnest(posts.tags) AS tag
			WHERE posts.status = 'active' AND tag ILIKE $1
			ORDER BY tag
			LIMIT $2
			""",
			f"{guards.escape_like(prefix)}%",
			limit,
		)
		return [row["tag"] for row in rows]


__all__ = ["PostgresSearchRepository", "document_sql"]
