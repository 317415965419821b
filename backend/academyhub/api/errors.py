"""Global error handlers for the search API."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from academyhub.api.request_id import get_request_id
from academyhub.domain.search.exceptions import RateLimitError, SearchError
from academyhub.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(SearchError)
	async def search_exc_handler(request: Request, exc: SearchError):  # type: ignore[override]
		if isinstance(exc, RateLimitError):
			obs_metrics.inc_rate_limited("search")
		headers = {"X-Request-Id": get_request_id(request)}
		return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=headers)

	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		payload = {"detail": exc.detail, "request_id": get_request_id(request)}
		return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		payload = {"detail": "validation_error", "errors": exc.errors(), "request_id": get_request_id(request)}
		return JSONResponse(status_code=422, content=payload)

	@app.exception_handler(Exception)
	async def unhandled_exc_handler(request: Request, exc: Exception):  # type: ignore[override]
		_LOG.error("http.unhandled_error", extra={"path": request.url.path}, exc_info=exc)
		payload = {"detail": "internal_error", "request_id": get_request_id(request)}
		return JSONResponse(status_code=500, content=payload)
