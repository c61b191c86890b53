"""
Tests for the poster cache and the batched TMDB prefetch.
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from conftest import write_jsonl
from recommender.errors import UpstreamError
from recommender.poster_cache import PosterCache, PosterCacheBuilder, PosterLookup, TmdbClient


class FakeTmdb:
	"""Returns canned lookups; ids in `failing` raise, ids in `missing` are 404s."""

	def __init__(self, failing=(), missing=(), no_poster=()):
		self.failing = set(failing)
		self.missing = set(missing)
		self.no_poster = set(no_poster)
		self.requested = []

	def fetch_poster_path(self, movie_id):
		self.requested.append(movie_id)
		if movie_id in self.failing:
			raise UpstreamError(f"TMDB returned 500 for movie {movie_id}")
		if movie_id in self.missing:
			return PosterLookup(movie_id=movie_id, poster_path=None, not_found=True)
		if movie_id in self.no_poster:
			return PosterLookup(movie_id=movie_id, poster_path=None)
		return PosterLookup(movie_id=movie_id, poster_path=f"/p{movie_id}.jpg")


class CountingCache(PosterCache):
	saves = 0

	def save(self):
		self.saves += 1
		super().save()


def make_builder(cache, client, **kwargs):
	sleeps = []
	builder = PosterCacheBuilder(cache, client, sleep=sleeps.append, **kwargs)
	return builder, sleeps


def test_cached_ids_are_never_looked_up_again(tmp_path):
	cache_file = tmp_path / 'poster-cache.json'
	cache_file.write_text(json.dumps({'1': '/a.jpg', '2': None}))
	meta = write_jsonl(tmp_path / 'meta.jsonl', [{'id': 1}, {'id': 2}, {'id': 3}])

	client = FakeTmdb()
	builder, _ = make_builder(PosterCache.load(cache_file), client)
	stats = builder.run(str(meta))

	assert client.requested == [3]
	assert stats.requested == 1
	assert json.loads(cache_file.read_text()) == {'1': '/a.jpg', '2': None, '3': '/p3.jpg'}


def test_nothing_to_fetch_makes_no_calls(tmp_path):
	cache_file = tmp_path / 'poster-cache.json'
	cache_file.write_text(json.dumps({'1': None}))
	meta = write_jsonl(tmp_path / 'meta.jsonl', [{'id': 1}])

	client = FakeTmdb()
	builder, sleeps = make_builder(PosterCache.load(cache_file), client)
	stats = builder.run(str(meta))

	assert client.requested == []
	assert sleeps == []
	assert stats.cached_total == 1


def test_counters_and_failure_policy(tmp_path):
	meta = write_jsonl(tmp_path / 'meta.jsonl', [{'id': i} for i in range(1, 5)])
	cache = PosterCache.load(tmp_path / 'cache.json')

	builder, _ = make_builder(cache, FakeTmdb(failing=[2], missing=[3], no_poster=[4]))
	stats = builder.run(str(meta))

	assert (stats.succeeded, stats.errors, stats.not_found, stats.no_poster) == (1, 1, 1, 1)
	assert '3' in cache and cache.get(3) is None
	assert '4' in cache and cache.get(4) is None
	# transient failures stay uncached so the next run retries them
	assert '2' not in cache


def test_failures_can_be_cached_as_null(tmp_path):
	meta = write_jsonl(tmp_path / 'meta.jsonl', [{'id': 1}])
	cache = PosterCache.load(tmp_path / 'cache.json')

	builder, _ = make_builder(cache, FakeTmdb(failing=[1]), cache_failures=True)
	builder.run(str(meta))

	assert '1' in cache and cache.get(1) is None


def test_batches_sleep_between_and_checkpoint(tmp_path):
	meta = write_jsonl(tmp_path / 'meta.jsonl', [{'id': i} for i in range(1, 6)])
	cache = CountingCache(tmp_path / 'cache.json')

	builder, sleeps = make_builder(cache, FakeTmdb(), concurrency=2, rate_limit_delay=0.1, checkpoint_every=2)
	builder.run(str(meta))

	# 3 batches: checkpoints after batches 0 and 2, plus the final save
	assert cache.saves == 3
	assert sleeps == [0.1, 0.1]
	assert len(cache) == 5


def test_duplicate_ids_are_fetched_once(tmp_path):
	meta = write_jsonl(tmp_path / 'meta.jsonl', [{'id': 1}, {'id': 1}, {'id': '1'}])

	client = FakeTmdb()
	builder, _ = make_builder(PosterCache.load(tmp_path / 'cache.json'), client)
	builder.run(str(meta))

	assert client.requested == [1]


def test_poster_url_joins_base_and_path(tmp_path):
	cache = PosterCache(tmp_path / 'cache.json', image_base_url="https://image.tmdb.org/t/p/w500/")
	cache.set(1, '/abc.jpg')
	cache.set(2, None)

	assert cache.poster_url(1) == "https://image.tmdb.org/t/p/w500/abc.jpg"
	assert cache.poster_url(2) is None
	assert cache.poster_url(3) is None


def test_save_creates_parent_directories(tmp_path):
	cache = PosterCache(tmp_path / 'data' / 'nested' / 'cache.json')
	cache.set(5, '/x.jpg')
	cache.save()

	assert json.loads((tmp_path / 'data' / 'nested' / 'cache.json').read_text()) == {'5': '/x.jpg'}
	assert list((tmp_path / 'data' / 'nested').iterdir()) == [tmp_path / 'data' / 'nested' / 'cache.json']


def _response(status_code, payload=None):
	response = MagicMock()
	response.status_code = status_code
	response.ok = 200 <= status_code < 400
	response.json.return_value = payload or {}
	return response


def test_tmdb_client_maps_responses():
	session = MagicMock()
	session.headers = {}
	client = TmdbClient('token', session=session)

	session.get.return_value = _response(200, {'poster_path': '/z.jpg'})
	assert client.fetch_poster_path(10) == PosterLookup(movie_id=10, poster_path='/z.jpg')
	assert session.headers['Authorization'] == 'Bearer token'
	assert session.get.call_args.kwargs['timeout'] == 10.0

	session.get.return_value = _response(404)
	assert client.fetch_poster_path(11).not_found is True

	session.get.return_value = _response(429)
	with pytest.raises(UpstreamError):
		client.fetch_poster_path(12)

	session.get.side_effect = requests.ConnectionError("boom")
	with pytest.raises(UpstreamError):
		client.fetch_poster_path(13)
