"""Optional OpenTelemetry tracing for the search service."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI

from academyhub.settings import settings

try:  # pragma: no cover - imported conditionally
	from opentelemetry import trace
	from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
	from opentelemetry.instrumentation.asyncpg import AsyncPGInstrumentor
	from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
	from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
	from opentelemetry.sdk.resources import Resource
	from opentelemetry.sdk.trace import TracerProvider
	from opentelemetry.sdk.trace.export import BatchSpanProcessor
	export_available = True
except Exception:  # pragma: no cover - tracing extra not installed
	export_available = False
	trace = None  # type: ignore

LOGGER = logging.getLogger(__name__)
_instrumented = False


def init_tracing(app: FastAPI) -> Optional[Any]:
	"""Initialise tracing when enabled and the tracing extra is installed."""
	global _instrumented
	if not settings.obs_tracing_enabled:
		return None
	if not export_available or trace is None:
		LOGGER.warning("tracing.unavailable", extra={"reason": "missing_dependencies"})
		return None
	if settings.otel_exporter_otlp_endpoint is None:
		LOGGER.warning("tracing.unavailable", extra={"reason": "missing_endpoint"})
		return None
	if _instrumented:
		return trace.get_tracer_provider()

	resource = Resource.create(
		{
			"service.name": settings.service_name,
			"service.version": settings.git_commit,
			"deployment.environment": settings.environment,
		}
	)
	provider = TracerProvider(resource=resource)
	provider.add_span_processor(
		BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint, insecure=True))
	)
	trace.set_tracer_provider(provider)

	FastAPIInstrumentor.instrument_app(app)
	# OpenSearch calls go through httpx.
	HTTPXClientInstrumentor().instrument()
	AsyncPGInstrumentor().instrument()

	_instrumented = True
	LOGGER.info("tracing.initialised", extra={"endpoint": settings.otel_exporter_otlp_endpoint})
	return provider


def shutdown_tracing() -> None:
	if not export_available or trace is None or not _instrumented:
		return
	provider = trace.get_tracer_provider()
	if hasattr(provider, "shutdown"):
		provider.shutdown()
