"""Prometheus metrics for the search service."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Summary

REQUEST_COUNTER = Counter(
	"academyhub_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"academyhub_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

RATE_LIMITED_EVENTS = Counter(
	"academyhub_rate_limited_total",
	"Requests rejected due to rate limiting",
	["kind"],
)

REDIS_UP = Gauge("academyhub_redis_up", "Redis availability (1=up,0=down)")
REDIS_LATENCY = Summary("academyhub_redis_latency_seconds", "Redis ping latency (seconds)")

POSTGRES_UP = Gauge("academyhub_postgres_up", "Postgres availability (1=up,0=down)")
POSTGRES_LATENCY = Summary("academyhub_postgres_latency_seconds", "Postgres ping latency (seconds)")

SEARCH_QUERIES = Counter(
	"academyhub_search_queries_total",
	"Search queries executed",
	["kind"],
)

SEARCH_LATENCY = Histogram(
	"academyhub_search_latency_seconds",
	"Search latency in seconds",
	["kind"],
	buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0),
)

SEARCH_BACKEND_QUERIES = Counter(
	"academyhub_search_backend_queries_total",
	"Entity searches answered per backend path",
	["entity", "backend"],
)

SEARCH_FALLBACKS = Counter(
	"academyhub_search_fallbacks_total",
	"Search fallbacks taken, by stage that gave up",
	["entity", "stage"],
)

SEARCH_BACKEND_TIER = Gauge(
	"academyhub_search_capability_tier",
	"Resolved search capability tier (1=advanced, 0=fallback)",
)

SEARCH_HISTORY_FAILURES = Counter(
	"academyhub_search_history_failures_total",
	"Search history writes that failed",
)

CACHE_LOOKUPS = Counter(
	"academyhub_cache_lookups_total",
	"Cache lookups by outcome",
	["result"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_rate_limited(kind: str) -> None:
	RATE_LIMITED_EVENTS.labels(kind=kind).inc()


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)


def inc_search_query(kind: str) -> None:
	SEARCH_QUERIES.labels(kind=kind).inc()


def observe_search_latency(kind: str, latency_seconds: float) -> None:
	SEARCH_LATENCY.labels(kind=kind).observe(latency_seconds)


def inc_search_backend(entity: str, backend: str) -> None:
	SEARCH_BACKEND_QUERIES.labels(entity=entity, backend=backend).inc()


def inc_search_fallback(entity: str, stage: str) -> None:
	SEARCH_FALLBACKS.labels(entity=entity, stage=stage).inc()


def set_search_tier(advanced: bool) -> None:
	SEARCH_BACKEND_TIER.set(1 if advanced else 0)


def inc_search_history_failure() -> None:
	SEARCH_HISTORY_FAILURES.inc()


def cache_lookup(*, hit: bool) -> None:
	CACHE_LOOKUPS.labels(result="hit" if hit else "miss").inc()
