"""Async OpenSearch transport over the REST API."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from academyhub.settings import settings

_LOG = logging.getLogger(__name__)


class OpenSearchTransport:
	"""Minimal async client for the handful of OpenSearch endpoints we call."""

	def __init__(
		self,
		*,
		base_url: str | None = None,
		timeout: float | None = None,
		client: httpx.AsyncClient | None = None,
	) -> None:
		if client is None:
			auth = None
			if settings.opensearch_username and settings.opensearch_password:
				auth = httpx.BasicAuth(settings.opensearch_username, settings.opensearch_password)
			client = httpx.AsyncClient(
				base_url=(base_url or settings.opensearch_url).rstrip("/"),
				timeout=timeout or settings.opensearch_timeout_seconds,
				auth=auth,
				headers={"Content-Type": "application/json"},
			)
		self._client = client

	async def search(self, *, index: str, body: dict[str, Any]) -> dict[str, Any]:
		response = await self._client.post(f"/{index}/_search", json=body)
		response.raise_for_status()
		return response.json()

	async def put_index(self, name: str, body: dict[str, Any]) -> None:
		response = await self._client.put(f"/{name}", json=body)
		if response.status_code == 400 and "resource_already_exists_exception" in response.text:
			_LOG.info("opensearch.index_exists", extra={"index": name})
			return
		response.raise_for_status()
		_LOG.info("opensearch.put_index", extra={"index": name})

	async def close(self) -> None:
		await self._client.aclose()


_transport: Optional[OpenSearchTransport] = None


def get_transport() -> OpenSearchTransport:
	global _transport
	if _transport is None:
		_transport = OpenSearchTransport()
	return _transport


async def close_transport() -> None:
	global _transport
	if _transport is not None:
		await _transport.close()
		_transport = None


__all__ = ["OpenSearchTransport", "close_transport", "get_transport"]
