"""
Seeding module.
Rebuilds the vector collection and writes every merged movie to both stores in
sequential batches.
"""

import time  # elapsed time reporting
from dataclasses import dataclass  # report container
from typing import Any, Dict, List, Sequence  # type hints

from loguru import logger  # console logger

from .models import EmbeddingPayload, MergedMovieRecord, VectorPoint  # store boundary records
from .poster_cache import PosterCache  # poster URL resolution without network calls


@dataclass
class SeedReport:
	total_processed: int  # merged records visited, with or without embedding
	vectors_upserted: int
	documents_written: int
	batches: int
	dimension: int
	elapsed_seconds: float


class Seeder:
	"""
	Dual-writes merged movie records into the vector store and the document store.
	The store arguments only need the adapter methods used here, so fakes work in tests.
	"""

	def __init__(
		self,
		vector_store,
		document_store,
		poster_cache: PosterCache,
		collection_name: str = "movies",
		batch_size: int = 90,
		distance: str = "Cosine",
	):
		if batch_size < 1:
			raise ValueError("batch_size must be at least 1")
		self.vector_store = vector_store
		self.document_store = document_store
		self.poster_cache = poster_cache
		self.collection_name = collection_name
		self.batch_size = batch_size
		self.distance = distance

	def build_vector_batch(self, records: Sequence[MergedMovieRecord]) -> List[VectorPoint]:
		"""One point per record that has an embedding; the rest are left out."""
		points = []
		for record in records:
			embedding = record.embedding
			if embedding is None:
				continue
			title = embedding.payload.title
			if title is None and record.metadata.title:
				title = record.metadata.title  # fall back to the metadata title
			points.append(VectorPoint(
				id=record.metadata.id,
				vector=embedding.vector,
				payload=EmbeddingPayload(
					title=title,
					posterUrl=self.poster_cache.poster_url(record.metadata.id),
					vote_average=embedding.payload.vote_average,
				),
			))
		return points

	def build_document_batch(self, records: Sequence[MergedMovieRecord]) -> List[Dict[str, Any]]:
		"""Full metadata for every record, embedding or not."""
		return [record.metadata.to_document() for record in records]

	def run(self, records: Dict[int, MergedMovieRecord], dimension: int) -> SeedReport:
		"""
		Wipe and rebuild the collection, then write all records batch by batch.
		Batches never overlap; any store failure propagates and aborts the run.
		"""
		start = time.time()

		self.vector_store.recreate_collection(self.collection_name, dimension, self.distance)

		movie_ids = list(records.keys())
		total = 0
		vectors = 0
		documents = 0
		batches = 0

		for i in range(0, len(movie_ids), self.batch_size):
			batch = [records[movie_id] for movie_id in movie_ids[i:i + self.batch_size]]

			points = self.build_vector_batch(batch)
			docs = self.build_document_batch(batch)

			# Vectors first; upsert waits for Qdrant to apply the batch
			if points:
				self.vector_store.upsert(self.collection_name, points)

			# Documents are committed as one atomic write per batch
			if docs:
				for doc in docs:
					self.document_store.add_to_batch(doc)
				self.document_store.commit_batch()

			total += len(batch)
			vectors += len(points)
			documents += len(docs)
			batches += 1
			logger.info(f"[Seeder] CHECKPOINT: Processed {total} movies...")

		return SeedReport(
			total_processed=total,
			vectors_upserted=vectors,
			documents_written=documents,
			batches=batches,
			dimension=dimension,
			elapsed_seconds=time.time() - start,
		)
