"""
Catalog module.
Read-only queries behind the HTTP API: paginated listing and recommendations
from the vector store, full details from the document store.
"""

from typing import Any, Dict, List, Optional  # type hints

from loguru import logger  # console logger

from .errors import NotFoundError, ValidationError  # client-facing errors
from .models import MovieSummary, SimilarMovie  # lean result records

MAX_LIMIT = 40  # largest page or recommendation list served at once
MAX_MOVIE_ID = 2 ** 64 - 1  # Qdrant point ids are unsigned 64-bit integers
DEFAULT_PAGE_LIMIT = 20
DEFAULT_RECOMMENDATION_LIMIT = 10


def parse_int_param(raw: Optional[str], name: str, default: Optional[int] = None) -> int:
	"""Parse an integer request parameter; missing or blank values use the default."""
	if raw is None or str(raw).strip() == '':
		if default is None:
			raise ValidationError(f"{name} is required")
		return default
	text = str(raw).strip()
	try:
		return int(text)
	except ValueError:
		raise ValidationError(f"Invalid {name} format") from None


class MovieCatalog:
	"""Query façade over the vector store and the document store."""

	def __init__(self, vector_store, document_store, collection_name: str = "movies"):
		self.vector_store = vector_store
		self.document_store = document_store
		self.collection_name = collection_name

	@staticmethod
	def _check_limit(limit: int) -> None:
		if limit < 1:
			raise ValidationError("Limit must be a positive integer")
		if limit > MAX_LIMIT:
			raise ValidationError(f"Limit cannot exceed {MAX_LIMIT} items")

	@staticmethod
	def _check_movie_id(movie_id: int) -> None:
		if movie_id < 0 or movie_id > MAX_MOVIE_ID:
			raise ValidationError("Invalid Movie ID format")

	def list_movies(self, page: int = 1, limit: int = DEFAULT_PAGE_LIMIT) -> List[MovieSummary]:
		"""One page of lean movie entries; pages start at 1."""
		if page < 1:
			raise ValidationError("Page must be a positive integer")
		self._check_limit(limit)
		offset = (page - 1) * limit
		logger.debug(f"[Catalog] list page={page} limit={limit} offset={offset}")
		return self.vector_store.scroll_page(self.collection_name, limit, offset)

	def get_movie(self, movie_id: int) -> Dict[str, Any]:
		self._check_movie_id(movie_id)
		movie = self.document_store.get_by_id(movie_id)
		if movie is None:
			raise NotFoundError("Movie not found")
		return movie

	def recommendations(self, movie_id: int, limit: int = DEFAULT_RECOMMENDATION_LIMIT) -> List[SimilarMovie]:
		"""Movies most similar to movie_id; an unknown id surfaces as NotFoundError from the store."""
		self._check_movie_id(movie_id)
		self._check_limit(limit)
		return self.vector_store.search_similar(self.collection_name, movie_id, limit)
