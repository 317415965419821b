"""Domain models backing federated search."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Literal, Mapping, Optional


class EntityType(str, Enum):
	UNIVERSITIES = "universities"
	USERS = "users"
	POSTS = "posts"
	NOTES = "notes"
	REVIEWS = "reviews"


class CapabilityTier(str, Enum):
	UNKNOWN = "unknown"
	ADVANCED = "advanced"
	FALLBACK = "fallback"


FilterOp = Literal["eq", "gte", "icontains"]


@dataclass(frozen=True, slots=True)
class ScopeFilter:
	"""Backend-neutral scope condition applied on top of the text match."""

	field: str
	op: FilterOp
	value: Any


@dataclass(frozen=True, slots=True)
class SortKey:
	field: str
	descending: bool = False


@dataclass(frozen=True, slots=True)
class SortPlan:
	"""Resolved ordering for one request.

	When `by_score` is set the relevance score leads and `keys` break ties.
	"""

	by_score: bool
	keys: tuple[SortKey, ...]


@dataclass(frozen=True, slots=True)
class SearchQuery:
	"""Immutable per-request search parameters."""

	text: str
	entity_filter: Optional[EntityType] = None
	page: int = 1
	limit: int = 20
	sort_by: Optional[str] = None
	scope_filters: Mapping[str, Any] = field(default_factory=dict)

	def __post_init__(self) -> None:
		object.__setattr__(self, "scope_filters", MappingProxyType(dict(self.scope_filters)))

	@property
	def skip(self) -> int:
		return (self.page - 1) * self.limit


@dataclass(slots=True)
class SearchResultSet:
	"""One page of summaries plus the count of every match."""

	results: list[dict[str, Any]]
	total: int
	backend: str = "postgres"
