"""Per-user search history and approximate popularity tracking."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from academyhub.domain.search import guards
from academyhub.infra.cache import CacheKeys, CacheTTL, SearchCache
from academyhub.infra.postgres import get_pool
from academyhub.obs import metrics as obs_metrics
from academyhub.settings import settings

_LOG = logging.getLogger(__name__)

MAX_STORED_QUERY_LENGTH = 200


def normalize_history_query(query: str | None) -> str:
	return (query or "").strip().lower()[:MAX_STORED_QUERY_LENGTH]


class PostgresSearchHistoryRepository:
	async def upsert_and_prune(self, user_id: str, query: str, *, keep: int) -> None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				await conn.execute(
					"""
					INSERT INTO search_history (user_id, query, count, created_at, updated_at)
					VALUES ($1, $2, 1, NOW(), clock_timestamp())
					ON CONFLICT (user_id, query)
					DO UPDATE SET count = search_history.count + 1, updated_at = clock_timestamp()
					""",
					user_id,
					query,
				)
				await conn.execute(
					"""
					DELETE FROM search_history
					WHERE id IN (
						SELECT id FROM search_history
						WHERE user_id = $1
						ORDER BY updated_at DESC, id DESC
						OFFSET $2
					)
					""",
					user_id,
					keep,
				)

	async def recent(self, user_id: str, *, limit: int) -> list[str]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT query FROM search_history
				WHERE user_id = $1
				ORDER BY updated_at DESC, id DESC
				LIMIT $2
				""",
				user_id,
				limit,
			)
		return [row["query"] for row in rows]

	async def clear(self, user_id: str) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			result = await conn.execute("DELETE FROM search_history WHERE user_id = $1", user_id)
		# asyncpg returns the command tag, e.g. "DELETE 3"
		return int(result.split()[-1]) if result else 0

	async def aggregate_popular(self, *, limit: int) -> list[str]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT query, SUM(count) AS total
				FROM search_history
				GROUP BY query
				ORDER BY total DESC, query ASC
				LIMIT $1
				""",
				limit,
			)
		return [row["query"] for row in rows]


class PopularityTracker:
	"""Process-local query counter with a lazily re-sorted top-N ranking.

	The ranking is rebuilt when empty and then once every `resort_every`
	updates, so it can lag the counter between rebuilds.
	"""

	def __init__(self, *, ranking_size: Optional[int] = None, resort_every: Optional[int] = None) -> None:
		self.ranking_size = ranking_size or settings.search_popular_ranking_size
		self.resort_every = resort_every or settings.search_popular_resort_every
		self._counts: dict[str, int] = {}
		self._ranking: list[str] = []
		self._updates_since_sort = 0

	def record(self, query: str | None) -> None:
		normalized = (query or "").strip().lower()
		if not normalized:
			return
		self._counts[normalized] = self._counts.get(normalized, 0) + 1
		self._updates_since_sort += 1
		if not self._ranking or self._updates_since_sort >= self.resort_every:
			self._resort()

	def _resort(self) -> None:
		ranked = sorted(self._counts.items(), key=lambda item: (-item[1], item[0]))
		self._ranking = [query for query, _ in ranked[: self.ranking_size]]
		self._updates_since_sort = 0

	def count(self, query: str) -> int:
		return self._counts.get(query.strip().lower(), 0)

	def ranking(self) -> list[str]:
		return list(self._ranking)

	def reset(self) -> None:
		self._counts.clear()
		self._ranking = []
		self._updates_since_sort = 0


class SearchHistoryService:
	"""History writes, recent/popular reads and background recording."""

	def __init__(
		self,
		*,
		repository: Any | None = None,
		tracker: PopularityTracker | None = None,
		cache: SearchCache | None = None,
		keep: Optional[int] = None,
	) -> None:
		self._repo = repository or PostgresSearchHistoryRepository()
		self.tracker = tracker or PopularityTracker()
		self._cache = cache or SearchCache()
		self._keep = keep or settings.search_history_limit
		self._tasks: set[asyncio.Task[None]] = set()

	async def save_search_history(self, user_id: str, query: str | None) -> None:
		normalized = normalize_history_query(query)
		if len(normalized) < guards.MIN_QUERY_LENGTH:
			return
		try:
			await self._repo.upsert_and_prune(user_id, normalized, keep=self._keep)
		except Exception:
			obs_metrics.inc_search_history_failure()
			_LOG.warning("search.history.save_failed", extra={"user_id": user_id}, exc_info=True)

	def record_in_background(self, user_id: str, query: str) -> None:
		"""Schedule a history write that never delays or fails the caller."""
		task = asyncio.create_task(self.save_search_history(user_id, query))
		self._tasks.add(task)
		task.add_done_callback(self._tasks.discard)

	async def flush(self) -> None:
		"""Wait for outstanding background writes."""
		while self._tasks:
			await asyncio.gather(*list(self._tasks), return_exceptions=True)

	async def get_recent_searches(self, user_id: str, *, limit: int = guards.DEFAULT_HISTORY_LIMIT) -> list[str]:
		return await self._repo.recent(user_id, limit=limit)

	async def clear_search_history(self, user_id: str) -> int:
		removed = await self._repo.clear(user_id)
		_LOG.info("search.history.cleared", extra={"user_id": user_id, "removed": removed})
		return removed

	def update_popular_searches(self, query: str) -> None:
		self.tracker.record(query)

	async def get_popular_searches(self, *, limit: int = guards.DEFAULT_HISTORY_LIMIT) -> list[str]:
		ranking = self.tracker.ranking()
		if ranking:
			return ranking[:limit]

		async def _build() -> list[str]:
			return await self._repo.aggregate_popular(limit=limit)

		return await self._cache.get_or_build(
			CacheKeys.popular_searches(limit),
			ttl=CacheTTL.POPULAR_SEARCHES,
			builder=_build,
		)


__all__ = [
	"PopularityTracker",
	"PostgresSearchHistoryRepository",
	"SearchHistoryService",
	"normalize_history_query",
]
