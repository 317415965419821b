"""Health check helpers for liveness and readiness probes."""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Dict, Tuple

from academyhub.domain.search.capability import prober
from academyhub.infra import postgres
from academyhub.infra.redis import redis_client
from academyhub.obs import metrics

LOGGER = logging.getLogger(__name__)


async def _redis_status(timeout: float = 0.2) -> Dict[str, Any]:
	start = perf_counter()
	try:
		await asyncio.wait_for(redis_client.ping(), timeout=timeout)
	except Exception as exc:
		metrics.mark_redis(False)
		LOGGER.warning("health.redis_failed", exc_info=True)
		return {"ok": False, "error": str(exc)}
	latency = perf_counter() - start
	metrics.mark_redis(True, latency_seconds=latency)
	return {"ok": True, "latency_ms": round(latency * 1000, 2)}


async def _postgres_status(timeout: float = 0.3) -> Dict[str, Any]:
	start = perf_counter()
	try:
		pool = await postgres.get_pool()
		async with pool.acquire() as conn:
			await asyncio.wait_for(conn.execute("SELECT 1"), timeout=timeout)
	except Exception as exc:
		metrics.mark_postgres(False)
		LOGGER.warning("health.postgres_failed", exc_info=True)
		return {"ok": False, "error": str(exc)}
	latency = perf_counter() - start
	metrics.mark_postgres(True, latency_seconds=latency)
	return {"ok": True, "latency_ms": round(latency * 1000, 2)}


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


async def readiness() -> Tuple[int, Dict[str, Any]]:
	"""Readiness requires Postgres; Redis only degrades history and caching."""
	redis_state, postgres_state = await asyncio.gather(_redis_status(), _postgres_status())
	ok = bool(postgres_state.get("ok"))
	degraded = not redis_state.get("ok")
	status_label = "ok" if ok and not degraded else ("degraded" if ok else "unavailable")
	return (
		200 if ok else 503,
		{
			"status": status_label,
			"checks": {
				"redis": redis_state,
				"postgres": postgres_state,
				"search_tier": prober.tier.value,
			},
		},
	)
