"""Custom exceptions for search operations."""

from __future__ import annotations


class SearchError(Exception):
	"""Base class for search errors surfaced through the HTTP layer."""

	def __init__(self, detail: str, *, status_code: int = 400) -> None:
		super().__init__(detail)
		self.detail = detail
		self.status_code = status_code


class QueryValidationError(SearchError):
	"""Raised when search input fails validation."""

	def __init__(self, detail: str, *, status_code: int = 400) -> None:
		super().__init__(detail, status_code=status_code)


class RateLimitError(SearchError):
	"""Raised when the caller exceeds the search rate limit."""

	def __init__(self) -> None:
		super().__init__("Too many search requests, please try again later", status_code=429)


class BackendError(SearchError):
	"""Raised when the advanced search backend rejects or fails a request."""

	def __init__(self, detail: str = "backend_error", *, status_code: int = 503) -> None:
		super().__init__(detail, status_code=status_code)
