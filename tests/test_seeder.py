"""
Tests for Seeder: batching, dual writes and poster resolution.
"""

import pytest

from recommender.errors import UpstreamError
from recommender.models import EmbeddingPayload, MergedMovieRecord, MovieEmbedding, MovieMetadata
from recommender.poster_cache import PosterCache
from recommender.seeder import Seeder


def record(movie_id, with_embedding=True, title=None):
	metadata = MovieMetadata.from_dict({'id': movie_id, 'title': title or f"Movie {movie_id}"})
	embedding = None
	if with_embedding:
		embedding = MovieEmbedding(
			id=movie_id,
			vector=[float(movie_id), 0.5],
			payload=EmbeddingPayload(title=f"Movie {movie_id}", vote_average=6.5),
		)
	return MergedMovieRecord(metadata=metadata, embedding=embedding)


@pytest.fixture
def cache(tmp_path):
	cache = PosterCache(tmp_path / 'cache.json', image_base_url="https://img.test/w500")
	cache.set(1, '/one.jpg')
	cache.set(2, None)
	return cache


def test_run_recreates_then_writes_in_batches(vector_store, document_store, cache):
	records = {i: record(i, with_embedding=(i % 2 == 1)) for i in range(1, 6)}
	seeder = Seeder(vector_store, document_store, cache, batch_size=2)

	report = seeder.run(records, dimension=2)

	assert vector_store.calls[0] == ('recreate', 'movies', 2, 'Cosine')
	upserts = [c[2] for c in vector_store.calls if c[0] == 'upsert']
	assert upserts == [[1], [3], [5]]
	assert document_store.commits == [[1, 2], [3, 4], [5]]
	assert sorted(document_store.documents) == [1, 2, 3, 4, 5]
	assert report.total_processed == 5
	assert report.vectors_upserted == 3
	assert report.documents_written == 5
	assert report.batches == 3


def test_batch_without_embeddings_skips_vector_upsert(vector_store, document_store, cache):
	records = {1: record(1, with_embedding=False), 2: record(2, with_embedding=False)}

	Seeder(vector_store, document_store, cache, batch_size=90).run(records, dimension=8)

	assert [c[0] for c in vector_store.calls] == ['recreate']
	assert document_store.commits == [[1, 2]]


def test_vector_payload_uses_poster_cache(cache):
	seeder = Seeder(None, None, cache)

	points = seeder.build_vector_batch([record(1), record(2), record(3, with_embedding=False)])

	assert [p.id for p in points] == [1, 2]
	assert points[0].payload.posterUrl == "https://img.test/w500/one.jpg"
	assert points[0].payload.vote_average == 6.5
	assert points[1].payload.posterUrl is None


def test_title_falls_back_to_metadata(cache):
	rec = record(9, title='Fallback')
	rec.embedding.payload.title = None

	points = Seeder(None, None, cache).build_vector_batch([rec])

	assert points[0].payload.title == 'Fallback'


def test_store_failure_aborts_run(vector_store, cache):
	class BrokenDocuments:
		def add_to_batch(self, record):
			pass

		def commit_batch(self):
			raise UpstreamError("Failed to commit batch to Firestore.")

	records = {1: record(1), 2: record(2)}
	seeder = Seeder(vector_store, BrokenDocuments(), cache, batch_size=1)

	with pytest.raises(UpstreamError):
		seeder.run(records, dimension=2)

	assert [c[2] for c in vector_store.calls if c[0] == 'upsert'] == [[1]]


def test_invalid_batch_size(cache):
	with pytest.raises(ValueError):
		Seeder(None, None, cache, batch_size=0)


def test_documents_keep_every_source_key(vector_store, document_store, cache):
	metadata = MovieMetadata.from_dict({'id': 1, 'title': 'A', 'imdbId': 'tt1', 'vote_average': 7.2})
	records = {1: MergedMovieRecord(metadata=metadata)}

	Seeder(vector_store, document_store, cache).run(records, dimension=2)

	assert document_store.documents[1]['imdbId'] == 'tt1'
	assert document_store.documents[1]['title'] == 'A'
