"""
Tests for the Firestore adapter and record cleaning.
"""

from unittest.mock import MagicMock

import pytest

from recommender.document_store import FirestoreDocumentStore, clean_for_firestore
from recommender.errors import ConfigurationError, UpstreamError
from recommender.models import UNSET, MovieMetadata


def test_clean_strips_unset_recursively():
	raw = {'a': UNSET, 'b': {'c': UNSET, 'd': 1}, 'e': [UNSET, 2]}

	assert clean_for_firestore(raw) == {'b': {'d': 1}, 'e': [2]}


def test_clean_keeps_none_and_nested_lists():
	raw = {'a': None, 'b': [[UNSET, None], {'x': UNSET}]}

	assert clean_for_firestore(raw) == {'a': None, 'b': [[None], {}]}


def make_store():
	db = MagicMock()
	store = FirestoreDocumentStore(app_id='app1', collection_name='movie_metadata', client=db)
	return store, db


def test_add_to_batch_writes_cleaned_document_under_movie_id():
	store, db = make_store()
	metadata = MovieMetadata.from_dict({'id': 42, 'title': 'Heat', 'tagline': None})

	store.add_to_batch(metadata.to_document())

	db.collection.assert_called_with('artifacts/app1/movie_metadata')
	db.collection.return_value.document.assert_called_with('42')
	doc_ref, written = db.batch.return_value.set.call_args.args
	assert written == {'id': 42, 'title': 'Heat', 'tagline': None}


def test_commit_starts_fresh_batch():
	store, db = make_store()
	first = store.batch

	store.commit_batch()

	first.commit.assert_called_once()
	assert db.batch.call_count == 2


def test_commit_failure_is_upstream_error():
	store, db = make_store()
	store.batch.commit.side_effect = RuntimeError("deadline exceeded")

	with pytest.raises(UpstreamError):
		store.commit_batch()


def test_get_by_id():
	store, db = make_store()
	snapshot = db.collection.return_value.document.return_value.get.return_value

	snapshot.exists = True
	snapshot.to_dict.return_value = {'id': 1, 'title': 'Up'}
	assert store.get_by_id(1) == {'id': 1, 'title': 'Up'}

	snapshot.exists = False
	assert store.get_by_id(2) is None

	db.collection.return_value.document.return_value.get.side_effect = RuntimeError("unavailable")
	with pytest.raises(UpstreamError):
		store.get_by_id(3)


def test_missing_service_account_is_configuration_error(tmp_path):
	with pytest.raises(ConfigurationError):
		FirestoreDocumentStore(app_id='app1', service_account_file=str(tmp_path / 'missing.json'))
