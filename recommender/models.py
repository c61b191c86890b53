"""
Data models for the Movie Recommender.
Defines the records exchanged between the loaders, the seeder and the two stores.
"""

# Import dataclass to define simple "record-like" classes without boilerplate
from dataclasses import dataclass, field  # auto-generates __init__, __repr__, etc.
# Import typing helpers for precise and self-documenting types
from typing import Any, Dict, List, Optional  # lists, dicts and optional values

# NumPy validates vectors before they reach the vector store
import numpy as np  # numeric arrays


class _Unset:
	"""Marker for a field that was absent from the source record."""

	_instance = None

	def __new__(cls):
		if cls._instance is None:
			cls._instance = super().__new__(cls)
		return cls._instance

	def __repr__(self) -> str:
		return 'UNSET'

	def __bool__(self) -> bool:
		return False


UNSET: Any = _Unset()  # single shared instance


# Metadata keys in the order they are written to the document store
METADATA_FIELDS = (
	'title',
	'tagline',
	'overview',
	'posterUrl',
	'runtime',
	'releaseDate',
	'status',
	'budget',
	'revenue',
	'director',
	'cast',
	'genres',
	'productionCompanies',
	'productionCountries',
	'spokenLanguages',
)


@dataclass
class MovieMetadata:
	"""
	Rich per-movie metadata, stored as one document keyed by the movie id.
	Fields missing from the source line stay UNSET and are never persisted;
	an explicit null in the source is kept as None.
	"""
	id: int  # primary key, shared with the vector store
	title: Optional[str] = UNSET
	tagline: Optional[str] = UNSET
	overview: Optional[str] = UNSET
	posterUrl: Optional[str] = UNSET
	runtime: Optional[float] = UNSET  # minutes
	releaseDate: Optional[str] = UNSET  # ISO date string
	status: Optional[str] = UNSET
	budget: Optional[float] = UNSET
	revenue: Optional[float] = UNSET
	director: Optional[str] = UNSET
	cast: Optional[List[str]] = UNSET
	genres: Optional[List[str]] = UNSET
	productionCompanies: Optional[List[str]] = UNSET
	productionCountries: Optional[List[str]] = UNSET
	spokenLanguages: Optional[List[str]] = UNSET
	extra: Dict[str, Any] = field(default_factory=dict)  # any other keys of the source line

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> 'MovieMetadata':
		"""Build a record from one parsed metadata line; raises ValueError without a usable id."""
		movie_id = parse_movie_id(data.get('id'))  # validated integer id
		values = {key: data.get(key, UNSET) for key in METADATA_FIELDS}  # keep absence distinct from null
		extra = {key: value for key, value in data.items() if key != 'id' and key not in METADATA_FIELDS}
		return cls(id=movie_id, extra=extra, **values)

	def to_document(self) -> Dict[str, Any]:
		"""
		Return the document-store form: every key of the source line, with the id
		normalised to int. UNSET values are still present and stripped on write.
		"""
		document = {'id': self.id}
		document.update(self.extra)
		for key in METADATA_FIELDS:
			document[key] = getattr(self, key)
		return document


@dataclass
class EmbeddingPayload:
	"""Lean projection stored next to each vector."""
	title: Optional[str] = None
	posterUrl: Optional[str] = None
	vote_average: Optional[float] = None


@dataclass
class MovieEmbedding:
	"""One line of the embedding file: the movie's vector and its lean payload."""
	id: int
	vector: List[float]
	payload: EmbeddingPayload = field(default_factory=EmbeddingPayload)

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> 'MovieEmbedding':
		movie_id = parse_movie_id(data.get('id'))
		vector = data.get('vector')
		if not is_valid_vector(vector):
			raise ValueError(f"Embedding for movie {movie_id} has no usable vector")
		raw_payload = data.get('payload')
		if not isinstance(raw_payload, dict):
			raw_payload = {}
		payload = EmbeddingPayload(
			title=raw_payload.get('title'),
			posterUrl=raw_payload.get('posterUrl'),
			vote_average=raw_payload.get('vote_average'),
		)
		return cls(id=movie_id, vector=[float(v) for v in vector], payload=payload)


@dataclass
class MergedMovieRecord:
	"""Metadata joined with its (optional) embedding. Lives only for one seeding run."""
	metadata: MovieMetadata
	embedding: Optional[MovieEmbedding] = None


@dataclass
class VectorPoint:
	"""A point as written to the vector collection."""
	id: int
	vector: List[float]
	payload: EmbeddingPayload

	def to_dict(self) -> Dict[str, Any]:
		return {
			'id': self.id,
			'vector': self.vector,
			'payload': {
				'title': self.payload.title,
				'posterUrl': self.payload.posterUrl,
				'vote_average': self.payload.vote_average,
			},
		}


@dataclass
class MovieSummary:
	"""Lean list entry served by the paginated endpoint."""
	id: int
	title: Optional[str]
	poster_url: Optional[str]
	vote_average: Optional[float]


@dataclass
class SimilarMovie:
	"""A ranked recommendation returned by the vector store."""
	id: int
	score: float
	title: Optional[str]
	poster_url: Optional[str]
	vote_average: Optional[float]


def parse_movie_id(value: Any) -> int:
	"""Coerce a raw id (int or numeric string) to int; bools and floats with fractions are rejected."""
	if isinstance(value, bool) or value is None:
		raise ValueError(f"Invalid movie id: {value!r}")
	if isinstance(value, int):
		return value
	if isinstance(value, float):
		if value.is_integer():
			return int(value)
		raise ValueError(f"Invalid movie id: {value!r}")
	if isinstance(value, str) and value.strip().lstrip('-').isdigit():
		return int(value.strip())
	raise ValueError(f"Invalid movie id: {value!r}")


def is_valid_vector(value: Any) -> bool:
	"""True for a non-empty flat list of finite numbers."""
	if not isinstance(value, list) or not value:
		return False
	if any(isinstance(v, bool) or not isinstance(v, (int, float)) for v in value):
		return False
	array = np.asarray(value, dtype=np.float64)  # NaN and inf are rejected by the vector store
	return array.ndim == 1 and bool(np.isfinite(array).all())
