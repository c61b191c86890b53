"""
Prefetch TMDB poster paths into the poster cache.

This script:
1) Loads the existing poster cache (if any)
2) Reads every movie id from the metadata file
3) Looks up the ids that have no cache entry yet, 30 at a time
4) Saves the cache every 10 batches and once more at the end

Usage:
    poetry run python -m scripts.fetch_posters

Re-running only fetches ids that are still missing from the cache, so the
seed script can resolve poster URLs without calling TMDB.
"""

import sys  # exit codes

from loguru import logger  # console logging

from recommender.config import Settings, configure_logging, require_file, require_value  # environment settings
from recommender.errors import ConfigurationError  # fatal startup errors
from recommender.poster_cache import PosterCache, PosterCacheBuilder, TmdbClient  # cache + fetcher


def main(settings: Settings = None) -> int:
	settings = settings or Settings.from_env()
	configure_logging(settings.log_level)

	# Validate required inputs before touching the network
	try:
		metadata_file = require_file(settings.movies_metadata_file, "Metadata file (MOVIES_METADATA_FILE)")
		token = require_value(settings.tmdb_read_access_token, "TMDB_READ_ACCESS_TOKEN")
	except ConfigurationError as e:
		logger.error(f"Error: {e.message}")
		return 1

	logger.info("=" * 60)
	logger.info("Fetch Posters")
	logger.info("=" * 60)

	client = TmdbClient(token, base_url=settings.tmdb_base_url, pool_size=settings.poster_concurrency)
	try:
		cache = PosterCache.load(settings.poster_cache_file, image_base_url=settings.tmdb_image_base_url)
		builder = PosterCacheBuilder(
			cache,
			client,
			concurrency=settings.poster_concurrency,
			rate_limit_delay=settings.poster_rate_limit_delay,
			checkpoint_every=settings.poster_checkpoint_every,
			cache_failures=settings.poster_cache_failures,
		)
		stats = builder.run(str(metadata_file))
	except Exception as e:
		logger.exception(f"A critical error occurred: {e}")
		return 1
	finally:
		client.close()

	# Footer with run counters
	logger.info("-" * 60)
	logger.info("Poster fetching complete!")
	logger.info(f"Total posters cached: {stats.cached_total}")
	logger.info(f"Successfully fetched: {stats.succeeded}")
	logger.info(f"No poster upstream: {stats.no_poster}")
	logger.info(f"Not found (404): {stats.not_found}")
	logger.info(f"Errors: {stats.errors}")
	logger.info(f"Time taken: {stats.elapsed_seconds:.2f} seconds")
	logger.info(f"Cache saved to: {settings.poster_cache_file}")
	logger.info("-" * 60)
	return 0


if __name__ == '__main__':
	sys.exit(main())  # invoke fetcher
