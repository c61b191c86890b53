"""
Poster cache module.
Keeps an id -> poster path mapping on disk and fills it from the TMDB API in
rate-limited batches, so seeding never has to call TMDB itself.
"""

import json  # cache file format
import os  # atomic replace
import tempfile  # temporary file next to the cache
import time  # rate limiting and timings
from concurrent.futures import ThreadPoolExecutor  # bounded concurrent lookups
from dataclasses import dataclass  # small result containers
from pathlib import Path  # filesystem paths
from typing import Callable, Dict, Iterable, List, Optional, Union  # type hints

import requests  # HTTP client for TMDB
from requests.adapters import HTTPAdapter  # connection pool sizing
from loguru import logger  # console logger

from .data_loader import DataLoader  # streams ids from the metadata file
from .errors import UpstreamError  # failed lookups


@dataclass
class PosterLookup:
	"""Outcome of one TMDB lookup."""
	movie_id: int
	poster_path: Optional[str]  # may be None even when the movie exists
	not_found: bool = False


@dataclass
class PosterFetchStats:
	requested: int = 0  # ids that were missing from the cache
	succeeded: int = 0  # lookups that returned a poster path
	no_poster: int = 0  # movie exists upstream but has no poster
	not_found: int = 0  # upstream 404
	errors: int = 0  # anything else
	cached_total: int = 0
	elapsed_seconds: float = 0.0


class PosterCache:
	"""
	In-memory view of the poster cache file.
	A key that is present (even with a None value) has already been looked up;
	only absent keys are fetched on the next run.
	"""

	def __init__(self, path: Union[str, Path], image_base_url: str = "https://image.tmdb.org/t/p/w500"):
		self.path = Path(path)
		self.image_base_url = image_base_url.rstrip('/')
		self.entries: Dict[str, Optional[str]] = {}

	@classmethod
	def load(cls, path: Union[str, Path], image_base_url: str = "https://image.tmdb.org/t/p/w500") -> 'PosterCache':
		"""Load the cache file if it exists; an absent file gives an empty cache."""
		cache = cls(path, image_base_url=image_base_url)
		if cache.path.exists():
			with open(cache.path, 'r', encoding='utf-8') as f:
				data = json.load(f)
			if not isinstance(data, dict):
				raise ValueError(f"Poster cache {cache.path} is not a JSON object")
			cache.entries = {str(k): v for k, v in data.items()}
			logger.info(f"[PosterCache] Loaded {len(cache.entries)} cached posters from {cache.path}")
		else:
			logger.info(f"[PosterCache] No cache at {cache.path}; starting empty")
		return cache

	def __len__(self) -> int:
		return len(self.entries)

	def __contains__(self, movie_id) -> bool:
		return str(movie_id) in self.entries

	def get(self, movie_id) -> Optional[str]:
		return self.entries.get(str(movie_id))

	def set(self, movie_id, poster_path: Optional[str]) -> None:
		self.entries[str(movie_id)] = poster_path

	def missing_ids(self, movie_ids: Iterable[int]) -> List[int]:
		"""Ids with no cache entry, de-duplicated, in input order."""
		missing = []
		seen = set()
		for movie_id in movie_ids:
			if movie_id in seen or movie_id in self:
				continue
			seen.add(movie_id)
			missing.append(movie_id)
		return missing

	def poster_url(self, movie_id) -> Optional[str]:
		"""Full image URL for a cached poster path, or None."""
		poster_path = self.get(movie_id)
		if not poster_path:
			return None
		return f"{self.image_base_url}/{poster_path.lstrip('/')}"

	def save(self) -> None:
		"""Overwrite the cache file with the full mapping."""
		self.path.parent.mkdir(parents=True, exist_ok=True)
		# Write next to the target and rename so a killed run never leaves half a file
		fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), prefix=self.path.name, suffix='.tmp')
		try:
			with os.fdopen(fd, 'w', encoding='utf-8') as f:
				json.dump(self.entries, f, indent=2)
			os.replace(tmp_name, self.path)
		except BaseException:
			if os.path.exists(tmp_name):
				os.remove(tmp_name)
			raise


class TmdbClient:
	"""Minimal TMDB client: one movie-details lookup per call."""

	def __init__(
		self,
		access_token: str,
		base_url: str = "https://api.themoviedb.org/3",
		timeout: float = 10.0,
		pool_size: int = 30,
		session: Optional[requests.Session] = None,
	):
		self.base_url = base_url.rstrip('/')
		self.timeout = timeout
		self.session = session or requests.Session()
		# One pooled connection per concurrent lookup
		adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
		self.session.mount('https://', adapter)
		self.session.mount('http://', adapter)
		self.session.headers.update({
			'Authorization': f"Bearer {access_token}",
			'Accept': 'application/json',
		})

	def fetch_poster_path(self, movie_id: int) -> PosterLookup:
		"""Look up a movie's poster path. 404 is a result, every other failure raises UpstreamError."""
		url = f"{self.base_url}/movie/{movie_id}"
		try:
			response = self.session.get(url, timeout=self.timeout)
		except requests.RequestException as e:
			raise UpstreamError(f"TMDB request failed for movie {movie_id}: {e}") from e

		if response.status_code == 404:
			return PosterLookup(movie_id=movie_id, poster_path=None, not_found=True)
		if not response.ok:
			raise UpstreamError(f"TMDB returned {response.status_code} for movie {movie_id}")

		try:
			data = response.json()
		except ValueError as e:
			raise UpstreamError(f"TMDB returned invalid JSON for movie {movie_id}") from e
		return PosterLookup(movie_id=movie_id, poster_path=data.get('poster_path'))

	def close(self) -> None:
		self.session.close()


class PosterCacheBuilder:
	"""
	Fills the poster cache for every metadata id that has no entry yet.
	Lookups run `concurrency` at a time; each batch completes before the next starts.
	"""

	def __init__(
		self,
		cache: PosterCache,
		client: TmdbClient,
		concurrency: int = 30,
		rate_limit_delay: float = 0.1,
		checkpoint_every: int = 10,
		cache_failures: bool = False,
		loader: Optional[DataLoader] = None,
		sleep: Callable[[float], None] = time.sleep,
	):
		if concurrency < 1:
			raise ValueError("concurrency must be at least 1")
		if checkpoint_every < 1:
			raise ValueError("checkpoint_every must be at least 1")
		self.cache = cache
		self.client = client
		self.concurrency = concurrency
		self.rate_limit_delay = rate_limit_delay
		self.checkpoint_every = checkpoint_every
		self.cache_failures = cache_failures  # persist failed lookups as None
		self.loader = loader or DataLoader()
		self.sleep = sleep

	def run(self, metadata_file: str) -> PosterFetchStats:
		"""Fetch posters for all uncached ids and persist the cache. Returns run counters."""
		start = time.time()
		logger.info(f"[PosterCache] Reading movie ids from {metadata_file}...")
		movie_ids = self.cache.missing_ids(self.loader.iter_movie_ids(metadata_file))
		stats = PosterFetchStats(requested=len(movie_ids))
		logger.info(f"[PosterCache] Found {len(movie_ids)} movies needing poster data")

		if not movie_ids:
			logger.info("[PosterCache] All posters already cached!")
			stats.cached_total = len(self.cache)
			stats.elapsed_seconds = time.time() - start
			return stats

		batches = [movie_ids[i:i + self.concurrency] for i in range(0, len(movie_ids), self.concurrency)]
		with ThreadPoolExecutor(max_workers=self.concurrency) as executor:
			for batch_index, batch in enumerate(batches):
				futures = [executor.submit(self.client.fetch_poster_path, movie_id) for movie_id in batch]
				# Settle every lookup in the batch before touching the cache
				for movie_id, future in zip(batch, futures):
					try:
						lookup = future.result()
					except UpstreamError as e:
						self._record_failure(movie_id, e, stats)
						continue
					self._record_lookup(lookup, stats)

				if batch_index % self.checkpoint_every == 0:
					self.cache.save()
					done = min((batch_index + 1) * self.concurrency, len(movie_ids))
					logger.info(f"[PosterCache] Progress: {done}/{len(movie_ids)} ({done / len(movie_ids) * 100:.1f}%)")

				if batch_index < len(batches) - 1:
					self.sleep(self.rate_limit_delay)

		self.cache.save()
		stats.cached_total = len(self.cache)
		stats.elapsed_seconds = time.time() - start
		return stats

	def _record_lookup(self, lookup: PosterLookup, stats: PosterFetchStats) -> None:
		self.cache.set(lookup.movie_id, lookup.poster_path)
		if lookup.not_found:
			stats.not_found += 1
		elif lookup.poster_path:
			stats.succeeded += 1
		else:
			stats.no_poster += 1

	def _record_failure(self, movie_id: int, error: UpstreamError, stats: PosterFetchStats) -> None:
		logger.error(f"[PosterCache] Error fetching poster for movie ID {movie_id}: {error.message}")
		stats.errors += 1
		if self.cache_failures:
			self.cache.set(movie_id, None)
