"""Pydantic schemas for the search API."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field

EntityItem = Dict[str, Any]


class Pagination(BaseModel):
	page: int = Field(..., ge=1)
	limit: int = Field(..., ge=1)
	total: int = Field(..., ge=0)
	pages: int = Field(..., ge=0)

	@classmethod
	def build(cls, *, page: int, limit: int, total: int) -> Pagination:
		return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


class GlobalSearchResponse(BaseModel):
	query: str
	results: Dict[str, List[EntityItem]]
	counts: Dict[str, int]


class TypedSearchResponse(BaseModel):
	query: str
	type: str
	results: List[EntityItem]
	total: int


class UniversitySearchResponse(BaseModel):
	query: str
	universities: List[EntityItem]
	pagination: Pagination


class UserSearchResponse(BaseModel):
	query: str
	users: List[EntityItem]
	pagination: Pagination


class PostSearchResponse(BaseModel):
	query: str
	posts: List[EntityItem]
	pagination: Pagination


class NoteSearchResponse(BaseModel):
	query: str
	notes: List[EntityItem]
	pagination: Pagination


class ReviewSearchResponse(BaseModel):
	query: str
	reviews: List[EntityItem]
	pagination: Pagination


class Suggestion(BaseModel):
	type: Literal["university", "subject", "tag"]
	text: str


class SuggestionsResponse(BaseModel):
	suggestions: List[Suggestion]


class SearchesResponse(BaseModel):
	searches: List[str]


class MessageResponse(BaseModel):
	message: str


class ErrorResponse(BaseModel):
	error: str
