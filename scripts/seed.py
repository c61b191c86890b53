"""
Seed Qdrant and Firestore from the offline metadata and embedding files.

This script:
1) Validates the input files and the TMDB token
2) Loads the poster cache (run scripts.fetch_posters first)
3) Detects the vector dimension and recreates the Qdrant collection
4) Loads and merges metadata with embeddings
5) Writes vectors and documents in batches of 90

Usage:
    poetry run python -m scripts.seed

Seeding always wipes the collection and rebuilds it; never point it at a
collection that serves live traffic.
"""

import sys  # exit codes
import time  # measure step timings

from loguru import logger  # console logging

from recommender.config import Settings, configure_logging, require_file, require_value  # environment settings
from recommender.data_loader import DataLoader  # JSONL streaming and merge
from recommender.document_store import FirestoreDocumentStore  # Firestore adapter
from recommender.errors import ConfigurationError  # fatal startup errors
from recommender.poster_cache import PosterCache  # poster URL resolution
from recommender.seeder import Seeder  # batched dual-write
from recommender.vector_store import QdrantVectorStore  # Qdrant adapter


def main(settings: Settings = None, vector_store=None, document_store=None) -> int:
	settings = settings or Settings.from_env()
	configure_logging(settings.log_level)
	start = time.time()

	# 1) Validation, before any store is touched
	try:
		embedding_file = require_file(settings.movies_embedding_file, "Embedding file (MOVIES_EMBEDDING_FILE)")
		metadata_file = require_file(settings.movies_metadata_file, "Metadata file (MOVIES_METADATA_FILE)")
		require_value(settings.tmdb_read_access_token, "TMDB_READ_ACCESS_TOKEN")
	except ConfigurationError as e:
		logger.error(f"Error: {e.message}")
		return 1

	logger.info("=" * 60)
	logger.info("Seed Qdrant and Firestore")
	logger.info("=" * 60)

	try:
		# 2) Poster cache
		logger.info("[1/5] Loading poster cache...")
		cache = PosterCache.load(settings.poster_cache_file, image_base_url=settings.tmdb_image_base_url)
		if not len(cache):
			logger.warning("Poster cache is empty. Run scripts.fetch_posters first; continuing without posters...")

		# 3) Dimension
		logger.info("[2/5] Determining vector dimension from file...")
		loader = DataLoader()
		dimension = loader.detect_vector_dimension(str(embedding_file), settings.qdrant_embedding_dimension)
		logger.info(f"[OK] Detected vector dimension: {dimension}")

		# Stores
		logger.info("[3/5] Connecting to Qdrant and Firestore...")
		vector_store = vector_store or QdrantVectorStore(host=settings.qdrant_host, port=settings.qdrant_port)
		document_store = document_store or FirestoreDocumentStore(
			app_id=settings.firebase_app_id,
			collection_name=settings.firebase_collection_name,
			service_account_file=settings.firebase_service_account_file,
		)

		# 4) Merge
		logger.info("[4/5] Loading all movie data into memory...")
		records = loader.load_and_merge(str(metadata_file), str(embedding_file), dimension)
		logger.info(f"[OK] Loaded a total of {len(records)} movies.")

		# 5) Seed
		logger.info("[5/5] Recreating collection and writing batches...")
		seeder = Seeder(
			vector_store,
			document_store,
			cache,
			collection_name=settings.qdrant_collection_name,
			batch_size=settings.seed_batch_size,
			distance=settings.qdrant_distance,
		)
		report = seeder.run(records, dimension)
	except ConfigurationError as e:
		logger.error(f"Error: {e.message}")
		return 1
	except Exception as e:
		logger.exception(f"A critical error occurred during the seeding process: {e}")
		return 1

	logger.info("-" * 60)
	logger.info("Seeding successful!")
	logger.info(f"Total documents processed: {report.total_processed}")
	logger.info(f"Vectors upserted: {report.vectors_upserted}")
	logger.info(f"Time taken: {time.time() - start:.2f} seconds")
	logger.info("-" * 60)
	return 0


if __name__ == '__main__':
	sys.exit(main())  # invoke seeder
