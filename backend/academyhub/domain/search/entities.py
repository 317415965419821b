"""Per-entity search descriptors.

One descriptor captures everything that differs between the five searchable
entity types: storage names, searchable fields, display projection, referenced
entities, scope filters and the sort vocabulary. Strategies, repositories and
query builders are all driven from these descriptors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from academyhub.domain.search.models import EntityType, ScopeFilter, SortKey, SortPlan

USER_SUMMARY_FIELDS = ("id", "username", "first_name", "last_name", "profile_picture", "is_verified_student")
UNIVERSITY_SUMMARY_FIELDS = ("id", "name", "logo_url")
UNIVERSITY_LOCATED_SUMMARY_FIELDS = UNIVERSITY_SUMMARY_FIELDS + ("city", "state")

_NEWEST = (SortKey("created_at", descending=True), SortKey("id"))


@dataclass(frozen=True, slots=True)
class Reference:
	"""A foreign key that gets replaced by the referenced entity summary."""

	key: str
	column: str
	kind: str
	fields: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ScopeParam:
	field: str
	op: str = "eq"


@dataclass(frozen=True, slots=True)
class EntitySpec:
	type: EntityType
	table: str
	index: str
	# (field, boost) pairs; boosts only apply to the advanced tier
	search_fields: tuple[tuple[str, float], ...]
	array_fields: frozenset[str]
	projection: tuple[str, ...]
	references: tuple[Reference, ...] = ()
	base_filters: tuple[ScopeFilter, ...] = ()
	scope_params: Mapping[str, ScopeParam] = field(default_factory=dict)
	sorts: Mapping[str, SortPlan] = field(default_factory=dict)
	default_sort: str = "relevance"
	other_sort: Optional[str] = None
	unranked_keys: tuple[SortKey, ...] = _NEWEST
	# text fields carrying a `.keyword` subfield in the advanced index
	keyword_fields: frozenset[str] = frozenset()
	hide_reference_when: Optional[str] = None

	@property
	def field_names(self) -> tuple[str, ...]:
		return tuple(name for name, _ in self.search_fields)

	@property
	def selected_columns(self) -> tuple[str, ...]:
		columns = list(self.projection)
		for ref in self.references:
			if ref.column not in columns:
				columns.append(ref.column)
		if self.hide_reference_when and self.hide_reference_when not in columns:
			columns.append(self.hide_reference_when)
		return tuple(columns)

	def resolve_sort(self, sort_by: Optional[str]) -> SortPlan:
		key = sort_by or self.default_sort
		if key in self.sorts:
			return self.sorts[key]
		return self.sorts[self.other_sort or self.default_sort]

	def unranked(self, plan: SortPlan) -> SortPlan:
		"""Ordering to use when the plan wants a score the tier cannot provide."""
		if not plan.by_score:
			return plan
		return SortPlan(by_score=False, keys=self.unranked_keys)

	def scope_filters(self, params: Mapping[str, Any]) -> tuple[ScopeFilter, ...]:
		filters = list(self.base_filters)
		for name, param in self.scope_params.items():
			value = params.get(name)
			if value is None or value == "":
				continue
			filters.append(ScopeFilter(field=param.field, op=param.op, value=value))  # type: ignore[arg-type]
		return tuple(filters)

	def build_summary(
		self,
		row: Mapping[str, Any],
		lookups: Mapping[str, Mapping[str, dict[str, Any]]],
	) -> dict[str, Any]:
		"""Project one stored row plus resolved references into a response item."""
		summary = {name: row.get(name) for name in self.projection}
		hidden = bool(self.hide_reference_when and row.get(self.hide_reference_when))
		for ref in self.references:
			ref_id = row.get(ref.column)
			if hidden and ref.kind == "user":
				summary[ref.key] = None
				continue
			summary[ref.key] = lookups.get(ref.key, {}).get(str(ref_id)) if ref_id is not None else None
		if row.get("score") is not None:
			summary["score"] = float(row["score"])
		return summary


def _ranked(*keys: SortKey) -> SortPlan:
	return SortPlan(by_score=True, keys=keys or _NEWEST)


def _plain(*keys: SortKey) -> SortPlan:
	return SortPlan(by_score=False, keys=keys)


UNIVERSITIES = EntitySpec(
	type=EntityType.UNIVERSITIES,
	table="universities",
	index="universities_search",
	search_fields=(("name", 3.0), ("alias", 2.0), ("city", 1.0), ("state", 1.0), ("description", 1.0)),
	array_fields=frozenset({"alias"}),
	projection=(
		"id",
		"name",
		"city",
		"state",
		"country",
		"logo_url",
		"cover_url",
		"rating",
		"review_count",
		"student_count",
	),
	base_filters=(ScopeFilter("is_active", "eq", True),),
	sorts={
		"score": _ranked(),
		"name": _plain(SortKey("name"), SortKey("id")),
	},
	default_sort="score",
	other_sort="name",
	unranked_keys=(SortKey("name"), SortKey("id")),
	keyword_fields=frozenset({"name"}),
)

USERS = EntitySpec(
	type=EntityType.USERS,
	table="users",
	index="users_search",
	search_fields=(
		("username", 3.0),
		("full_name", 2.0),
		("first_name", 2.0),
		("last_name", 2.0),
		("bio", 1.0),
	),
	array_fields=frozenset(),
	projection=(
		"id",
		"username",
		"first_name",
		"last_name",
		"full_name",
		"profile_picture",
		"is_verified_student",
	),
	references=(Reference("university", "university_id", "university", UNIVERSITY_SUMMARY_FIELDS),),
	sorts={"relevance": _ranked()},
	unranked_keys=(SortKey("username"), SortKey("id")),
	keyword_fields=frozenset({"username"}),
)

POSTS = EntitySpec(
	type=EntityType.POSTS,
	table="posts",
	index="posts_search",
	search_fields=(("title", 3.0), ("content", 1.0), ("tags", 2.0)),
	array_fields=frozenset({"tags"}),
	projection=(
		"id",
		"title",
		"content",
		"category",
		"tags",
		"likes_count",
		"reply_count",
		"view_count",
		"is_question",
		"is_answered",
		"created_at",
	),
	references=(
		Reference("user", "user_id", "user", USER_SUMMARY_FIELDS),
		Reference("university", "university_id", "university", UNIVERSITY_SUMMARY_FIELDS),
	),
	base_filters=(ScopeFilter("status", "eq", "active"),),
	scope_params={"category": ScopeParam("category"), "university_id": ScopeParam("university_id")},
	sorts={
		"relevance": _ranked(),
		"newest": _plain(*_NEWEST),
		"likes": _plain(SortKey("likes_count", descending=True), *_NEWEST),
	},
	other_sort="likes",
)

NOTES = EntitySpec(
	type=EntityType.NOTES,
	table="notes",
	index="notes_search",
	search_fields=(("title", 3.0), ("subject", 2.0), ("course", 2.0), ("description", 1.0), ("tags", 2.0)),
	array_fields=frozenset({"tags"}),
	projection=(
		"id",
		"title",
		"description",
		"subject",
		"course",
		"note_type",
		"tags",
		"thumbnail",
		"likes_count",
		"download_count",
		"created_at",
	),
	references=(
		Reference("author", "author_id", "user", USER_SUMMARY_FIELDS),
		Reference("university", "university_id", "university", UNIVERSITY_SUMMARY_FIELDS),
	),
	base_filters=(ScopeFilter("status", "eq", "active"), ScopeFilter("is_public", "eq", True)),
	scope_params={
		"university_id": ScopeParam("university_id"),
		"subject": ScopeParam("subject", "icontains"),
		"note_type": ScopeParam("note_type"),
	},
	sorts={
		"relevance": _ranked(),
		"newest": _plain(*_NEWEST),
		"downloads": _plain(SortKey("download_count", descending=True), *_NEWEST),
	},
	other_sort="downloads",
	keyword_fields=frozenset({"subject"}),
)

REVIEWS = EntitySpec(
	type=EntityType.REVIEWS,
	table="reviews",
	index="reviews_search",
	search_fields=(("title", 3.0), ("content", 1.0), ("pros", 1.0), ("cons", 1.0)),
	array_fields=frozenset(),
	projection=(
		"id",
		"title",
		"content",
		"pros",
		"cons",
		"overall_rating",
		"helpful_count",
		"is_anonymous",
		"created_at",
	),
	references=(
		Reference("author", "author_id", "user", USER_SUMMARY_FIELDS),
		Reference("university", "university_id", "university", UNIVERSITY_LOCATED_SUMMARY_FIELDS),
	),
	base_filters=(ScopeFilter("status", "eq", "active"),),
	scope_params={
		"university_id": ScopeParam("university_id"),
		"min_rating": ScopeParam("overall_rating", "gte"),
	},
	sorts={"relevance": _ranked()},
	hide_reference_when="is_anonymous",
)

ENTITY_SPECS: dict[EntityType, EntitySpec] = {
	spec.type: spec for spec in (UNIVERSITIES, USERS, POSTS, NOTES, REVIEWS)
}
