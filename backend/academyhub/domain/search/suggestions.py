"""Autocomplete suggestions across universities, note subjects and post tags."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from academyhub.domain.search import guards, schemas
from academyhub.domain.search.capability import CapabilityProber
from academyhub.domain.search.models import CapabilityTier

_LOG = logging.getLogger(__name__)

PER_SOURCE_LIMIT = 3


class SuggestionEngine:
	def __init__(self, *, repository: Any, search_client: Any, prober: CapabilityProber) -> None:
		self._repo = repository
		self._client = search_client
		self._prober = prober

	async def get_suggestions(self, text: str | None, *, limit: int = guards.DEFAULT_SUGGESTION_LIMIT) -> list[schemas.Suggestion]:
		query = (text or "").strip()
		if len(query) < guards.MIN_QUERY_LENGTH:
			return []

		tier = await self._prober.ensure_capability()
		if tier is CapabilityTier.ADVANCED:
			try:
				return (await self._advanced(query))[:limit]
			except Exception as exc:
				_LOG.warning("search.suggestions.fallback", extra={"error": type(exc).__name__})
		return (await self._fallback(query))[:limit]

	async def _advanced(self, query: str) -> list[schemas.Suggestion]:
		names, subjects = await asyncio.gather(
			self._client.autocomplete_universities(query=query, limit=PER_SOURCE_LIMIT),
			self._client.autocomplete_subjects(query=query, limit=PER_SOURCE_LIMIT),
		)
		return [schemas.Suggestion(type="university", text=name) for name in names] + [
			schemas.Suggestion(type="subject", text=subject) for subject in subjects
		]

	async def _fallback(self, query: str) -> list[schemas.Suggestion]:
		names, subjects, tags = await asyncio.gather(
			self._repo.university_name_prefix(query, limit=PER_SOURCE_LIMIT),
			self._repo.note_subject_prefix(query, limit=PER_SOURCE_LIMIT),
			self._repo.post_tag_prefix(query, limit=PER_SOURCE_LIMIT),
		)
		suggestions = (
			[schemas.Suggestion(type="university", text=name) for name in names]
			+ [schemas.Suggestion(type="subject", text=subject) for subject in subjects]
			+ [schemas.Suggestion(type="tag", text=tag) for tag in tags]
		)
		lowered = query.lower()
		suggestions.sort(key=lambda item: (not item.text.lower().startswith(lowered), item.text.lower()))
		return suggestions


__all__ = ["PER_SOURCE_LIMIT", "SuggestionEngine"]
