"""Process-wide detection of which search tier is live."""

from __future__ import annotations

import logging
from typing import Any, Optional

from academyhub.domain.search.clients import OpenSearchSearchClient
from academyhub.domain.search.models import CapabilityTier
from academyhub.obs import metrics as obs_metrics
from academyhub.settings import settings

_LOG = logging.getLogger(__name__)


class CapabilityProber:
	"""Resolve the search tier once and cache it for the process lifetime.

	The first call probes the advanced backend. Concurrent first callers may
	each probe; the first verdict recorded wins and the tier never reverts.
	"""

	def __init__(self, *, client: Any | None = None, enabled: Optional[bool] = None) -> None:
		self._client = client
		self._enabled = enabled
		self._tier = CapabilityTier.UNKNOWN

	@property
	def tier(self) -> CapabilityTier:
		return self._tier

	def _resolve_client(self) -> Any:
		if self._client is None:
			self._client = OpenSearchSearchClient()
		return self._client

	async def ensure_capability(self) -> CapabilityTier:
		if self._tier is not CapabilityTier.UNKNOWN:
			return self._tier

		enabled = settings.advanced_search_enabled() if self._enabled is None else self._enabled
		reason = "probe_ok"
		if not enabled:
			resolved = CapabilityTier.FALLBACK
			reason = "disabled"
		else:
			try:
				await self._resolve_client().probe()
				resolved = CapabilityTier.ADVANCED
			except Exception as exc:
				resolved = CapabilityTier.FALLBACK
				reason = type(exc).__name__

		if self._tier is CapabilityTier.UNKNOWN:
			self._tier = resolved
			obs_metrics.set_search_tier(resolved is CapabilityTier.ADVANCED)
			_LOG.info("search.capability", extra={"tier": resolved.value, "reason": reason})
		return self._tier

	def reset(self) -> None:
		self._tier = CapabilityTier.UNKNOWN


prober = CapabilityProber()


__all__ = ["CapabilityProber", "prober"]
