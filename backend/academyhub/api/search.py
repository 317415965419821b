"""REST endpoints for federated search, suggestions and search history."""

from __future__ import annotations

import logging
from typing import Awaitable, Optional, TypeVar

from fastapi import APIRouter, Depends, Query, Request

from academyhub.domain.search import guards, schemas
from academyhub.domain.search.exceptions import SearchError
from academyhub.domain.search.models import EntityType
from academyhub.domain.search.service import SearchService
from academyhub.infra.auth import AuthenticatedUser, get_current_user, get_optional_user

router = APIRouter(
	prefix="/search",
	tags=["search"],
	responses={
		400: {"model": schemas.ErrorResponse},
		429: {"model": schemas.ErrorResponse},
		500: {"model": schemas.ErrorResponse},
	},
)

_LOG = logging.getLogger(__name__)
_service = SearchService()

T = TypeVar("T")

_SEARCH_TYPES = {entity_type.value: entity_type for entity_type in EntityType}


def _actor(request: Request, user: Optional[AuthenticatedUser]) -> str:
	if user is not None:
		return f"user:{user.id}"
	client = request.client
	return f"ip:{client.host if client else 'unknown'}"


def _validated_query(q: Optional[str]) -> str:
	return guards.ensure_query_allowed(guards.normalize_query(q))


async def _guarded(awaitable: Awaitable[T], *, failure: str, endpoint: str) -> T:
	try:
		return await awaitable
	except SearchError:
		raise
	except Exception as exc:
		_LOG.error("search.request_failed", extra={"endpoint": endpoint}, exc_info=exc)
		raise SearchError(failure, status_code=500) from exc


def _pagination(page: int, limit: int, total: int) -> schemas.Pagination:
	return schemas.Pagination.build(page=page, limit=limit, total=total)


@router.get("", response_model=schemas.GlobalSearchResponse | schemas.TypedSearchResponse)
async def global_search_endpoint(
	request: Request,
	q: Optional[str] = Query(default=None),
	type: Optional[str] = Query(default=None),
	page: Optional[str] = Query(default=None),
	limit: Optional[str] = Query(default=None),
	sort_by: Optional[str] = Query(default=None, alias="sortBy"),
	category: Optional[str] = Query(default=None),
	university_id: Optional[str] = Query(default=None, alias="universityId"),
	subject: Optional[str] = Query(default=None),
	note_type: Optional[str] = Query(default=None, alias="noteType"),
	min_rating: Optional[str] = Query(default=None, alias="minRating"),
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> schemas.GlobalSearchResponse | schemas.TypedSearchResponse:
	text = _validated_query(q)
	await guards.enforce_rate_limit(_actor(request, user))
	user_id = user.id if user else None

	if type and type != "all":
		entity_type = _SEARCH_TYPES.get(type)
		if entity_type is None:
			raise SearchError("Invalid search type", status_code=400)
		typed_limit = guards.clamp_limit(limit, default=guards.DEFAULT_PAGE_SIZE)
		# each entity keeps only the scope parameters it defines
		scope = {
			"category": category,
			"university_id": university_id,
			"subject": subject,
			"note_type": note_type,
			"min_rating": guards.parse_float(min_rating),
		}
		return await _guarded(
			_service.typed_search(
				text,
				entity_type,
				page=guards.clamp_page(page),
				limit=typed_limit,
				sort_by=sort_by,
				scope_filters=scope,
				user_id=user_id,
			),
			failure="Search failed",
			endpoint="global",
		)

	global_limit = guards.clamp_limit(limit, default=guards.DEFAULT_GLOBAL_LIMIT)
	return await _guarded(
		_service.global_search(text, limit=global_limit, user_id=user_id),
		failure="Search failed",
		endpoint="global",
	)


@router.get("/universities", response_model=schemas.UniversitySearchResponse)
async def search_universities_endpoint(
	request: Request,
	q: Optional[str] = Query(default=None),
	page: Optional[str] = Query(default=None),
	limit: Optional[str] = Query(default=None),
	sort_by: Optional[str] = Query(default=None, alias="sortBy"),
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> schemas.UniversitySearchResponse:
	text = _validated_query(q)
	await guards.enforce_rate_limit(_actor(request, user))
	page_no = guards.clamp_page(page)
	page_size = guards.clamp_limit(limit, default=guards.DEFAULT_PAGE_SIZE)
	result = await _guarded(
		_service.search_universities(text, page=page_no, limit=page_size, sort_by=sort_by),
		failure="Search failed",
		endpoint="universities",
	)
	return schemas.UniversitySearchResponse(
		query=text,
		universities=result.results,
		pagination=_pagination(page_no, page_size, result.total),
	)


@router.get("/users", response_model=schemas.UserSearchResponse)
async def search_users_endpoint(
	request: Request,
	q: Optional[str] = Query(default=None),
	page: Optional[str] = Query(default=None),
	limit: Optional[str] = Query(default=None),
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> schemas.UserSearchResponse:
	text = _validated_query(q)
	await guards.enforce_rate_limit(_actor(request, user))
	page_no = guards.clamp_page(page)
	page_size = guards.clamp_limit(limit, default=guards.DEFAULT_PAGE_SIZE)
	result = await _guarded(
		_service.search_users(text, page=page_no, limit=page_size),
		failure="Search failed",
		endpoint="users",
	)
	return schemas.UserSearchResponse(
		query=text,
		users=result.results,
		pagination=_pagination(page_no, page_size, result.total),
	)


@router.get("/posts", response_model=schemas.PostSearchResponse)
async def search_posts_endpoint(
	request: Request,
	q: Optional[str] = Query(default=None),
	page: Optional[str] = Query(default=None),
	limit: Optional[str] = Query(default=None),
	category: Optional[str] = Query(default=None),
	university_id: Optional[str] = Query(default=None, alias="universityId"),
	sort_by: Optional[str] = Query(default=None, alias="sortBy"),
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> schemas.PostSearchResponse:
	text = _validated_query(q)
	await guards.enforce_rate_limit(_actor(request, user))
	page_no = guards.clamp_page(page)
	page_size = guards.clamp_limit(limit, default=guards.DEFAULT_PAGE_SIZE)
	result = await _guarded(
		_service.search_posts(
			text,
			page=page_no,
			limit=page_size,
			category=category,
			university_id=university_id,
			sort_by=sort_by,
		),
		failure="Search failed",
		endpoint="posts",
	)
	return schemas.PostSearchResponse(
		query=text,
		posts=result.results,
		pagination=_pagination(page_no, page_size, result.total),
	)


@router.get("/notes", response_model=schemas.NoteSearchResponse)
async def search_notes_endpoint(
	request: Request,
	q: Optional[str] = Query(default=None),
	page: Optional[str] = Query(default=None),
	limit: Optional[str] = Query(default=None),
	university_id: Optional[str] = Query(default=None, alias="universityId"),
	subject: Optional[str] = Query(default=None),
	note_type: Optional[str] = Query(default=None, alias="noteType"),
	sort_by: Optional[str] = Query(default=None, alias="sortBy"),
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> schemas.NoteSearchResponse:
	text = _validated_query(q)
	await guards.enforce_rate_limit(_actor(request, user))
	page_no = guards.clamp_page(page)
	page_size = guards.clamp_limit(limit, default=guards.DEFAULT_PAGE_SIZE)
	result = await _guarded(
		_service.search_notes(
			text,
			page=page_no,
			limit=page_size,
			university_id=university_id,
			subject=subject,
			note_type=note_type,
			sort_by=sort_by,
		),
		failure="Search failed",
		endpoint="notes",
	)
	return schemas.NoteSearchResponse(
		query=text,
		notes=result.results,
		pagination=_pagination(page_no, page_size, result.total),
	)


@router.get("/reviews", response_model=schemas.ReviewSearchResponse)
async def search_reviews_endpoint(
	request: Request,
	q: Optional[str] = Query(default=None),
	page: Optional[str] = Query(default=None),
	limit: Optional[str] = Query(default=None),
	university_id: Optional[str] = Query(default=None, alias="universityId"),
	min_rating: Optional[str] = Query(default=None, alias="minRating"),
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> schemas.ReviewSearchResponse:
	text = _validated_query(q)
	await guards.enforce_rate_limit(_actor(request, user))
	page_no = guards.clamp_page(page)
	page_size = guards.clamp_limit(limit, default=guards.DEFAULT_PAGE_SIZE)
	result = await _guarded(
		_service.search_reviews(
			text,
			page=page_no,
			limit=page_size,
			university_id=university_id,
			min_rating=guards.parse_float(min_rating),
		),
		failure="Search failed",
		endpoint="reviews",
	)
	return schemas.ReviewSearchResponse(
		query=text,
		reviews=result.results,
		pagination=_pagination(page_no, page_size, result.total),
	)


@router.get("/suggestions", response_model=schemas.SuggestionsResponse)
async def suggestions_endpoint(
	request: Request,
	q: Optional[str] = Query(default=None),
	limit: Optional[str] = Query(default=None),
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> schemas.SuggestionsResponse:
	text = guards.normalize_query(q)
	if len(text) < guards.MIN_QUERY_LENGTH:
		return schemas.SuggestionsResponse(suggestions=[])
	await guards.enforce_rate_limit(_actor(request, user), kind="suggestions")
	size = guards.clamp_limit(limit, default=guards.DEFAULT_SUGGESTION_LIMIT)
	suggestions = await _guarded(
		_service.get_suggestions(text, limit=size),
		failure="Failed to get suggestions",
		endpoint="suggestions",
	)
	return schemas.SuggestionsResponse(suggestions=suggestions)


@router.get("/recent", response_model=schemas.SearchesResponse)
async def recent_searches_endpoint(
	limit: Optional[str] = Query(default=None),
	user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.SearchesResponse:
	size = guards.clamp_limit(limit, default=guards.DEFAULT_HISTORY_LIMIT)
	searches = await _guarded(
		_service.history.get_recent_searches(user.id, limit=size),
		failure="Failed to get recent searches",
		endpoint="recent",
	)
	return schemas.SearchesResponse(searches=searches)


@router.delete("/recent", response_model=schemas.MessageResponse)
async def clear_recent_searches_endpoint(
	user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.MessageResponse:
	await _guarded(
		_service.history.clear_search_history(user.id),
		failure="Failed to clear search history",
		endpoint="clear_recent",
	)
	return schemas.MessageResponse(message="Search history cleared")


@router.get("/popular", response_model=schemas.SearchesResponse)
async def popular_searches_endpoint(
	limit: Optional[str] = Query(default=None),
) -> schemas.SearchesResponse:
	size = guards.clamp_limit(limit, default=guards.DEFAULT_HISTORY_LIMIT)
	searches = await _guarded(
		_service.history.get_popular_searches(limit=size),
		failure="Failed to get popular searches",
		endpoint="popular",
	)
	return schemas.SearchesResponse(searches=searches)
