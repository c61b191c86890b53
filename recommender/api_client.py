"""
HTTP client for the Movie Recommender API.
Mirrors how the web frontend pages through the catalog: a page shorter than
the requested limit is the last one.
"""

from dataclasses import dataclass  # page container
from typing import Any, Dict, List, Optional  # type hints

import requests  # HTTP client
from loguru import logger  # console logger

from .errors import NotFoundError, RecommenderError, UpstreamError, ValidationError  # envelope errors

DEFAULT_API_URL = "http://localhost:8000"  # default API base URL


@dataclass
class MoviePage:
	items: List[Dict[str, Any]]
	page: int
	limit: int
	has_next_page: bool


class MovieApiClient:
	"""Small wrapper around the /api/v1/movies endpoints."""

	def __init__(self, base_url: str = DEFAULT_API_URL, timeout: float = 10.0, session: Optional[requests.Session] = None):
		self.base_url = base_url.rstrip('/')
		self.timeout = timeout
		self.session = session or requests.Session()

	def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
		url = f"{self.base_url}/api/v1/movies{path}"
		try:
			response = self.session.get(url, params=params, timeout=self.timeout)
		except requests.RequestException as e:
			logger.warning(f"[ApiClient] Request to {url} failed: {e}")
			raise UpstreamError("Movie API is unreachable") from e

		try:
			body = response.json()
		except ValueError:
			body = {}

		if not response.ok:
			message = body.get('message') if isinstance(body, dict) else None
			if response.status_code == 400:
				raise ValidationError(message)
			if response.status_code == 404:
				raise NotFoundError(message)
			raise RecommenderError(message, status_code=response.status_code)
		return body.get('data')

	def fetch_page(self, page: int = 1, limit: int = 20) -> MoviePage:
		"""Fetch one page; has_next_page is False once a page comes back short."""
		items = self._get('', params={'page': page, 'limit': limit}) or []
		return MoviePage(items=items, page=page, limit=limit, has_next_page=len(items) == limit)

	def get_movie(self, movie_id: int) -> Dict[str, Any]:
		return self._get(f"/{movie_id}")

	def get_recommendations(self, movie_id: int, limit: int = 10) -> List[Dict[str, Any]]:
		return self._get(f"/{movie_id}/recommendations", params={'limit': limit}) or []
