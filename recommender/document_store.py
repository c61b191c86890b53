"""
Document store module using Cloud Firestore through the Firebase Admin SDK.
Stores one document per movie under artifacts/{app_id}/{collection}/{movie_id}.
"""

from pathlib import Path  # service account file check
from typing import Any, Dict, Optional  # type hints

import firebase_admin  # Firebase Admin SDK
from firebase_admin import credentials, firestore  # credential loading and Firestore client
from loguru import logger  # console logger

from .errors import ConfigurationError, RecommenderError, UpstreamError  # domain errors
from .models import UNSET  # marker for absent fields


def clean_for_firestore(value: Any) -> Any:
	"""
	Recursively drop UNSET values from dicts and lists; None is preserved.
	Firestore has no representation for an absent value.
	"""
	if isinstance(value, dict):
		cleaned = {}
		for key, item in value.items():
			item = clean_for_firestore(item)
			if item is not UNSET:
				cleaned[key] = item
		return cleaned
	if isinstance(value, (list, tuple)):
		return [clean_for_firestore(item) for item in value if item is not UNSET]
	return value


class FirestoreDocumentStore:
	"""Reads and batch-writes movie metadata documents."""

	def __init__(
		self,
		app_id: str,
		collection_name: str = "movie_metadata",
		service_account_file: Optional[str] = None,
		client: Any = None,
	):
		"""
		Pass `client` to reuse an existing Firestore client; otherwise the default
		Firebase app is initialised from `service_account_file`.
		"""
		self.app_id = app_id
		self.collection_name = collection_name
		self.db = client if client is not None else self._initialize(service_account_file)
		self.batch = self.db.batch()  # pending writes, replaced after each commit

	@staticmethod
	def _initialize(service_account_file: Optional[str]):
		if not service_account_file or not Path(service_account_file).exists():
			raise ConfigurationError(
				f"Service account file '{service_account_file}' not found. Firestore cannot be used."
			)
		try:
			try:
				firebase_admin.get_app()  # already initialised in this process
			except ValueError:
				firebase_admin.initialize_app(credentials.Certificate(service_account_file))
				logger.info("[Firestore] Firebase Admin SDK initialized successfully.")
			return firestore.client()
		except Exception as e:
			logger.error(f"[Firestore] Error initializing Firebase Admin SDK: {e}")
			raise ConfigurationError("Failed to initialize Firebase Admin SDK.") from e

	@property
	def collection_path(self) -> str:
		return f"artifacts/{self.app_id}/{self.collection_name}"

	def _document(self, movie_id: int):
		return self.db.collection(self.collection_path).document(str(movie_id))

	def get_by_id(self, movie_id: int) -> Optional[Dict[str, Any]]:
		"""Return the stored metadata for a movie, or None when there is no document."""
		try:
			snapshot = self._document(movie_id).get()
		except Exception as e:
			logger.error(f"[Firestore] Error fetching movie {movie_id}: {e}")
			raise UpstreamError("Failed to fetch movie details.") from e

		if not snapshot.exists:
			logger.warning(f"[Firestore] No movie found with ID: {movie_id}")
			return None
		return snapshot.to_dict()

	def add_to_batch(self, record: Dict[str, Any]) -> None:
		"""Queue a full overwrite of the movie's document, keyed by its id."""
		try:
			self.batch.set(self._document(record['id']), clean_for_firestore(record))
		except RecommenderError:
			raise
		except Exception as e:
			logger.error(f"[Firestore] Error adding movie {record.get('id')} to batch: {e}")
			raise UpstreamError("Failed to add movie to batch.") from e

	def commit_batch(self) -> None:
		"""Commit all queued writes atomically and start a fresh batch."""
		try:
			self.batch.commit()
		except Exception as e:
			logger.error(f"[Firestore] Error committing batch: {e}")
			raise UpstreamError("Failed to commit batch to Firestore.") from e
		self.batch = self.db.batch()
		logger.debug("[Firestore] Batch committed successfully.")
