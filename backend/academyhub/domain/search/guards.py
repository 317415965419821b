"""Validation and normalisation helpers for search inputs."""

from __future__ import annotations

import re
from typing import Optional

from academyhub.domain.search import exceptions
from academyhub.infra.rate_limit import allow
from academyhub.settings import settings

MIN_QUERY_LENGTH = 2
MAX_QUERY_LENGTH = 200
MAX_PAGE_SIZE = 50
DEFAULT_PAGE_SIZE = 20
DEFAULT_GLOBAL_LIMIT = 5
DEFAULT_SUGGESTION_LIMIT = 8
DEFAULT_HISTORY_LIMIT = 10

_TERM_RE = re.compile(r"\w+", re.UNICODE)
_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")
_LEADING_FLOAT_RE = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+))")


def normalize_query(value: str | None) -> str:
	"""Collapse whitespace and trim surrounding spaces."""

	if not value:
		return ""
	return " ".join(value.strip().split())


def ensure_query_allowed(query: str) -> str:
	"""Validate query length."""

	length = len(query)
	if length < MIN_QUERY_LENGTH:
		raise exceptions.QueryValidationError("Search query must be at least 2 characters")
	if length > MAX_QUERY_LENGTH:
		raise exceptions.QueryValidationError("Search query must be at most 200 characters")
	return query


def parse_int(value: int | str | None) -> Optional[int]:
	"""Read a leading integer from a query parameter; junk yields None."""

	if value is None or isinstance(value, int):
		return value
	match = _LEADING_INT_RE.match(value)
	return int(match.group(1)) if match else None


def parse_float(value: float | str | None) -> Optional[float]:
	if value is None or isinstance(value, (int, float)):
		return value
	match = _LEADING_FLOAT_RE.match(value)
	return float(match.group(1)) if match else None


def clamp_page(value: int | str | None) -> int:
	page = parse_int(value)
	if not page or page < 1:
		return 1
	return page


def clamp_limit(value: int | str | None, *, default: int, maximum: int = MAX_PAGE_SIZE) -> int:
	size = parse_int(value)
	if not size or size < 1:
		return default
	return min(size, maximum)


def text_terms(query: str) -> list[str]:
	"""Split raw input into word tokens for token-based text matching."""

	return [term.lower() for term in _TERM_RE.findall(query)]


def escape_like(value: str) -> str:
	"""Escape LIKE/ILIKE metacharacters so user input matches literally."""

	return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def escape_wildcard(value: str) -> str:
	"""Escape OpenSearch wildcard metacharacters."""

	return value.replace("\\", "\\\\").replace("*", "\\*").replace("?", "\\?")


async def enforce_rate_limit(actor_id: str, *, kind: str = "search") -> None:
	"""Apply the shared Redis-backed budget for search requests."""

	limit = settings.search_rate_limit_per_minute
	if limit <= 0:
		return
	allowed = await allow(kind, actor_id, limit=limit)
	if not allowed:
		raise exceptions.RateLimitError()
