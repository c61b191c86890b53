"""
Shared fixtures: in-memory stand-ins for the two stores and a JSONL writer.
"""

import json
from typing import Dict, List

import pytest

from recommender.errors import NotFoundError
from recommender.models import MovieSummary, SimilarMovie


class FakeVectorStore:
	"""Records calls and serves points from a dict, ordered by id like Qdrant."""

	def __init__(self):
		self.points: Dict[int, dict] = {}
		self.calls: List[tuple] = []

	def recreate_collection(self, collection_name, dimension, distance="Cosine"):
		self.calls.append(('recreate', collection_name, dimension, distance))
		self.points = {}

	def upsert(self, collection_name, points):
		self.calls.append(('upsert', collection_name, [p.id for p in points]))
		for p in points:
			self.points[p.id] = p.to_dict()

	def scroll_page(self, collection_name, limit, offset=0):
		ids = sorted(self.points)[offset:offset + limit]
		return [
			MovieSummary(
				id=i,
				title=self.points[i]['payload']['title'],
				poster_url=self.points[i]['payload']['posterUrl'],
				vote_average=self.points[i]['payload']['vote_average'],
			)
			for i in ids
		]

	def search_similar(self, collection_name, seed_id, limit=10):
		if seed_id not in self.points:
			raise NotFoundError("Qdrant resource not found")
		others = [i for i in sorted(self.points) if i != seed_id][:limit]
		return [
			SimilarMovie(
				id=i,
				score=1.0 / (rank + 1),
				title=self.points[i]['payload']['title'],
				poster_url=self.points[i]['payload']['posterUrl'],
				vote_average=self.points[i]['payload']['vote_average'],
			)
			for rank, i in enumerate(others)
		]


class FakeDocumentStore:
	"""Batches writes and only exposes them after commit."""

	def __init__(self):
		self.documents: Dict[int, dict] = {}
		self.pending: List[dict] = []
		self.commits: List[List[int]] = []

	def add_to_batch(self, record):
		self.pending.append(record)

	def commit_batch(self):
		for record in self.pending:
			self.documents[record['id']] = record
		self.commits.append([r['id'] for r in self.pending])
		self.pending = []

	def get_by_id(self, movie_id):
		return self.documents.get(movie_id)


def write_jsonl(path, rows):
	"""Write rows as JSON lines; str rows are written verbatim (for malformed lines)."""
	with open(path, 'w', encoding='utf-8') as f:
		for row in rows:
			f.write(row if isinstance(row, str) else json.dumps(row))
			f.write('\n')
	return path


@pytest.fixture
def vector_store():
	return FakeVectorStore()


@pytest.fixture
def document_store():
	return FakeDocumentStore()
