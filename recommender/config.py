"""
Environment-driven settings for the API and the seeding scripts.
Values come from the process environment, optionally seeded from a .env file.
"""

import os  # environment access
import sys  # stderr sink for the logger
from pathlib import Path  # filesystem-safe paths
from typing import List, Mapping, Optional  # type hints

from dotenv import load_dotenv  # .env support for local runs
from loguru import logger  # console logger
from pydantic import BaseModel  # typed settings container

from .errors import ConfigurationError


class Settings(BaseModel):
	"""All runtime configuration in one place."""

	# TMDB
	tmdb_base_url: str = "https://api.themoviedb.org/3"
	tmdb_read_access_token: Optional[str] = None
	tmdb_image_base_url: str = "https://image.tmdb.org/t/p/w500"

	# Qdrant
	qdrant_host: str = "localhost"
	qdrant_port: int = 6333
	qdrant_collection_name: str = "movies"
	qdrant_embedding_dimension: int = 5000
	qdrant_distance: str = "Cosine"

	# Firebase
	firebase_app_id: str = ""
	firebase_collection_name: str = "movie_metadata"
	firebase_service_account_file: str = ""

	# Server
	port: int = 8000
	cors_origins: List[str] = ["http://localhost:5173"]

	# Seeding inputs
	movies_metadata_file: Optional[str] = None
	movies_embedding_file: Optional[str] = None
	poster_cache_file: str = "./data/poster-cache.json"
	seed_batch_size: int = 90

	# Poster prefetch
	poster_concurrency: int = 30
	poster_rate_limit_delay_ms: int = 100
	poster_checkpoint_every: int = 10
	poster_cache_failures: bool = False

	log_level: str = "INFO"

	@classmethod
	def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
		"""
		Read settings from environment variables named after the fields in upper case.
		Empty values are treated as unset so the defaults apply.
		"""
		if environ is None:
			load_dotenv()  # no-op when there is no .env file
			environ = os.environ
		values = {}
		for name in cls.model_fields:
			raw = environ.get(name.upper())
			if raw is None or raw.strip() == '':
				continue
			if name == 'cors_origins':
				values[name] = [origin.strip() for origin in raw.split(',') if origin.strip()]
			else:
				values[name] = raw.strip()  # pydantic coerces ints and bools
		return cls(**values)

	@property
	def poster_rate_limit_delay(self) -> float:
		"""Delay between poster batches in seconds."""
		return self.poster_rate_limit_delay_ms / 1000.0


def require_file(path: Optional[str], label: str) -> Path:
	"""Return the path if it is set and exists, else raise ConfigurationError."""
	if not path:
		raise ConfigurationError(f"{label} path is not set.")
	resolved = Path(path)
	if not resolved.exists():
		raise ConfigurationError(f"{label} '{resolved}' does not exist.")
	return resolved


def require_value(value: Optional[str], env_name: str) -> str:
	if not value:
		raise ConfigurationError(f"{env_name} environment variable is not set.")
	return value


def configure_logging(level: str = "INFO") -> None:
	"""Replace loguru's default sink with one at the requested level."""
	logger.remove()
	logger.add(sys.stderr, level=level.upper())
