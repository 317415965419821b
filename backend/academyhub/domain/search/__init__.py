"""Federated search across universities, users, posts, notes and reviews."""

from academyhub.domain.search.models import CapabilityTier, EntityType, SearchQuery, SearchResultSet
from academyhub.domain.search.service import SearchService

__all__ = ["CapabilityTier", "EntityType", "SearchQuery", "SearchResultSet", "SearchService"]
