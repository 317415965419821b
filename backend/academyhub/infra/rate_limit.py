"""Fixed-window request budgets kept in Redis."""

from __future__ import annotations

import time
from typing import Optional

from academyhub.infra.redis import redis_client

KEY_PREFIX = "rl"


def window_key(kind: str, actor_id: str, *, window_seconds: int, now: float) -> str:
	window = max(1, int(window_seconds))
	return f"{KEY_PREFIX}:{kind}:{actor_id}:{int(now // window)}:{window}"


async def hit(kind: str, actor_id: str, *, window_seconds: int = 60, now: Optional[float] = None) -> int:
	"""Count one request against the current window and return the window total."""

	key = window_key(kind, actor_id, window_seconds=window_seconds, now=now or time.time())
	async with redis_client.pipeline(transaction=True) as pipe:
		pipe.incr(key)
		pipe.expire(key, max(1, int(window_seconds)))
		count, _ = await pipe.execute()
	return int(count)


async def allow(
	kind: str,
	actor_id: str,
	*,
	limit: int,
	window_seconds: int = 60,
	now: Optional[float] = None,
) -> bool:
	"""True while the actor is within `limit` requests for the window; a zero budget denies."""

	if limit <= 0:
		return False
	return await hit(kind, actor_id, window_seconds=window_seconds, now=now) <= limit


__all__ = ["allow", "hit", "window_key"]
