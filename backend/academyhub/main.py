"""FastAPI application entrypoint for the Academy Hub search service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from academyhub.api import ops, search
from academyhub.api.errors import install_error_handlers
from academyhub.infra import opensearch, postgres
from academyhub.obs import init as obs_init
from academyhub.obs import tracing
from academyhub.settings import settings

_LOG = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	_LOG.info(
		"app.startup",
		extra={"search_backend": settings.search_backend, "env": settings.environment},
	)
	try:
		yield
	finally:
		await search._service.history.flush()
		await opensearch.close_transport()
		await postgres.close_pool()
		tracing.shutdown_tracing()


app = FastAPI(title="Academy Hub Search", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["GET", "DELETE", "OPTIONS"],
	allow_headers=["*"],
)
obs_init(app)

app.include_router(search.router)
app.include_router(ops.router)
