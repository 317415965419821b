"""Bootstrap utilities for provisioning OpenSearch indexes."""

from __future__ import annotations

import json
import logging
from importlib import resources
from typing import Any, Dict

from academyhub.domain.search.entities import ENTITY_SPECS
from academyhub.infra import opensearch
from academyhub.settings import settings

_LOG = logging.getLogger(__name__)


def _load_resource(path: str) -> Dict[str, Any]:
	resource = resources.files(__package__).joinpath("resources").joinpath(path)
	return json.loads(resource.read_text(encoding="utf-8"))


def index_definitions() -> dict[str, Dict[str, Any]]:
	"""Index bodies keyed by base index name, one per searchable entity."""
	return {spec.index: _load_resource(f"indexes/{spec.index}.json") for spec in ENTITY_SPECS.values()}


class SearchBootstrapper:
	"""Create the entity indexes; existing indexes are left untouched."""

	def __init__(self, *, transport: Any | None = None) -> None:
		self._transport = transport

	async def install_all(self) -> list[str]:
		transport = self._transport or opensearch.get_transport()
		installed: list[str] = []
		for base_name, body in index_definitions().items():
			name = settings.index_name(base_name)
			await transport.put_index(name, body)
			_LOG.info("search.bootstrap.index", extra={"index": name})
			installed.append(name)
		return installed


__all__ = ["SearchBootstrapper", "index_definitions"]
