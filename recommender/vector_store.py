"""
Vector store module using Qdrant.
Handles (re)creating the movie collection, upserting points, and the
similarity and listing queries served by the API.
"""

from contextlib import contextmanager  # error translation around client calls
from typing import Iterator, List, Optional, Sequence  # type hints

# Qdrant client and its request/response models
from qdrant_client import QdrantClient, models  # vector database SDK
from qdrant_client.http.exceptions import UnexpectedResponse  # non-2xx responses

# Import our record types for inputs and results
from .models import MovieSummary, SimilarMovie, VectorPoint  # store boundary records
from .errors import NotFoundError, RecommenderError, UpstreamError  # domain errors

# Console logging
from loguru import logger  # console logger


class QdrantVectorStore:
	"""
	Thin wrapper over QdrantClient translating movie records into Qdrant calls.
	Every failure surfaces as NotFoundError (404 from Qdrant) or UpstreamError.
	"""

	def __init__(self, client: Optional[QdrantClient] = None, host: str = "localhost", port: int = 6333):
		"""
		Use the given client, or connect to host:port.
		"""
		self.client = client or QdrantClient(host=host, port=port)
		logger.debug(f"[Qdrant] Client ready | host={host} | port={port}")

	@contextmanager
	def _errors(self, context: str) -> Iterator[None]:
		"""Log the raw failure and re-raise it as a domain error."""
		try:
			yield
		except RecommenderError:
			raise
		except UnexpectedResponse as e:
			logger.error(f"[Qdrant] Error in {context}: status={e.status_code} content={e.content!r}")
			if e.status_code == 404:
				raise NotFoundError("Qdrant resource not found") from e
			raise UpstreamError() from e
		except Exception as e:
			logger.exception(f"[Qdrant] Error in {context}: {e}")
			raise UpstreamError() from e

	def recreate_collection(self, collection_name: str, dimension: int, distance: str = "Cosine") -> None:
		"""Drop the collection if present and create it empty. Destructive; only for seeding."""
		logger.info(f"[Qdrant] Recreating collection '{collection_name}' with dim: {dimension} | distance={distance}...")
		with self._errors("recreate_collection"):
			if self.client.collection_exists(collection_name):
				self.client.delete_collection(collection_name)
			self.client.create_collection(
				collection_name=collection_name,
				vectors_config=models.VectorParams(size=dimension, distance=models.Distance(distance)),
			)

	def create_collection(self, collection_name: str, dimension: int, distance: str = "Cosine") -> bool:
		"""Create the collection unless it exists. Returns True when it was created."""
		with self._errors("create_collection"):
			if self.client.collection_exists(collection_name):
				logger.info(f"[Qdrant] Collection {collection_name} already exists.")
				return False
			self.client.create_collection(
				collection_name=collection_name,
				vectors_config=models.VectorParams(size=dimension, distance=models.Distance(distance)),
			)
			return True

	def upsert(self, collection_name: str, points: Sequence[VectorPoint]) -> None:
		"""Upsert a batch and wait until Qdrant has applied it. Empty batches are skipped."""
		if not points:
			return
		structs = [
			models.PointStruct(id=p.id, vector=p.vector, payload=p.to_dict()['payload'])
			for p in points
		]
		with self._errors("upsert"):
			self.client.upsert(collection_name=collection_name, points=structs, wait=True)

	def search_similar(self, collection_name: str, seed_id: int, limit: int = 10) -> List[SimilarMovie]:
		"""Movies closest to the stored vector of seed_id, best first. The seed itself is excluded by Qdrant."""
		with self._errors("search_similar"):
			response = self.client.query_points(
				collection_name=collection_name,
				query=models.RecommendQuery(recommend=models.RecommendInput(positive=[seed_id])),
				limit=limit,
				with_payload=True,
				with_vectors=False,
			)
		results = []
		for point in response.points:
			payload = point.payload or {}
			results.append(SimilarMovie(
				id=int(point.id),
				score=float(point.score),
				title=payload.get('title'),
				poster_url=payload.get('posterUrl'),
				vote_average=payload.get('vote_average'),
			))
		return results

	def scroll_page(self, collection_name: str, limit: int, offset: int = 0) -> List[MovieSummary]:
		"""
		Return `limit` points starting at position `offset`, ordered by id.
		The offset counts points, unlike Qdrant's scroll cursor which is a point id.
		"""
		with self._errors("scroll_page"):
			response = self.client.query_points(
				collection_name=collection_name,
				limit=limit,
				offset=offset,
				with_payload=True,
				with_vectors=False,
			)
		return [
			MovieSummary(
				id=int(point.id),
				title=(point.payload or {}).get('title'),
				poster_url=(point.payload or {}).get('posterUrl'),
				vote_average=(point.payload or {}).get('vote_average'),
			)
			for point in response.points
		]
