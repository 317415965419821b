"""Redis-backed JSON cache for expensive aggregate read paths."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable

from academyhub.infra.redis import RedisProxy, redis_client
from academyhub.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)

CacheBuilder = Callable[[], Awaitable[Any]]


class CacheTTL:
	"""TTL constants in seconds."""

	POPULAR_SEARCHES = 300


class CacheKeys:
	"""Cache key builders."""

	@staticmethod
	def popular_searches(limit: int) -> str:
		return f"popular_searches:{limit}"


class SearchCache:
	"""Thin wrapper over Redis providing JSON caching with singleflight.

	Redis failures are logged and behave like a miss; callers always fall back
	to computing the value.
	"""

	def __init__(self, redis: RedisProxy | None = None, *, namespace: str = "ah:") -> None:
		self.redis = redis or redis_client
		self.namespace = namespace
		self._locks: dict[str, asyncio.Lock] = {}

	def _key(self, suffix: str) -> str:
		return f"{self.namespace}{suffix}"

	def _lock(self, suffix: str) -> asyncio.Lock:
		if suffix not in self._locks:
			self._locks[suffix] = asyncio.Lock()
		return self._locks[suffix]

	async def get(self, suffix: str) -> Any | None:
		try:
			raw = await self.redis.get(self._key(suffix))
		except Exception:
			_LOG.warning("cache.get_failed", extra={"key": suffix}, exc_info=True)
			return None
		if not raw:
			obs_metrics.cache_lookup(hit=False)
			return None
		try:
			decoded = raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)
			value = json.loads(decoded)
		except json.JSONDecodeError:
			obs_metrics.cache_lookup(hit=False)
			return None
		obs_metrics.cache_lookup(hit=True)
		return value

	async def set(self, suffix: str, value: Any, *, ttl: int) -> None:
		try:
			await self.redis.set(self._key(suffix), json.dumps(value), ex=ttl)
		except Exception:
			_LOG.warning("cache.set_failed", extra={"key": suffix}, exc_info=True)

	async def delete(self, suffix: str) -> None:
		try:
			await self.redis.delete(self._key(suffix))
		except Exception:
			_LOG.warning("cache.delete_failed", extra={"key": suffix}, exc_info=True)

	async def delete_pattern(self, pattern: str) -> int:
		"""Delete every key matching a glob pattern (relative to the namespace)."""
		removed = 0
		try:
			keys = [key async for key in self.redis.scan_iter(match=self._key(pattern))]
			if keys:
				removed = int(await self.redis.delete(*keys))
		except Exception:
			_LOG.warning("cache.delete_pattern_failed", extra={"pattern": pattern}, exc_info=True)
		return removed

	async def get_or_build(self, suffix: str, *, ttl: int, builder: CacheBuilder) -> Any:
		cached = await self.get(suffix)
		if cached is not None:
			return cached
		lock = self._lock(suffix)
		async with lock:
			cached = await self.get(suffix)
			if cached is not None:
				return cached
			value = await builder()
			await self.set(suffix, value, ttl=ttl)
			return value


__all__ = ["CacheKeys", "CacheTTL", "SearchCache"]
