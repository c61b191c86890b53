"""
Data loading module.
Streams the newline-delimited metadata and embedding files and joins them by movie id.
"""

# Standard libs for JSON parsing, typing, and paths
import json  # read JSON lines
from typing import Dict, Iterator, Optional, Tuple  # type hints
from pathlib import Path  # filesystem-safe paths

# Import our record types used across the project
from .models import (  # structured records
	MergedMovieRecord,
	MovieEmbedding,
	MovieMetadata,
	is_valid_vector,
	parse_movie_id,
)

# Console logging
from loguru import logger  # console logger


class DataLoader:
	"""
	Handles loading and merging of movie metadata and embeddings.
	Files are read line-by-line; only the merged map grows with the catalog size.
	"""

	def iter_jsonl(self, filepath: str) -> Iterator[Tuple[int, dict]]:
		"""
		Yield (line_number, object) for every well-formed JSON object in a JSONL file.
		Blank lines are ignored; malformed lines are logged and skipped.
		"""
		filepath = Path(filepath)  # normalize path

		# Validate the file presence early to give clear error messages
		if not filepath.exists():
			raise FileNotFoundError(f"Data file not found: {filepath}")

		# Read bytes line-by-line and decode each one, so a bad line is skipped alone
		with open(filepath, 'rb') as f:
			for line_num, raw in enumerate(f, 1):  # keep track of line number for diagnostics
				try:
					line = raw.decode('utf-8').strip()
				except UnicodeDecodeError as e:
					logger.warning(f"[DataLoader] Skipping undecodable line in {filepath.name} at line {line_num}: {e}")
					continue
				if not line:
					continue
				try:
					data = json.loads(line)  # parse JSON object per line
				except json.JSONDecodeError as e:
					logger.warning(f"[DataLoader] Skipping invalid JSON in {filepath.name} at line {line_num}: {e}")
					continue
				if not isinstance(data, dict):
					logger.warning(f"[DataLoader] Skipping non-object JSON in {filepath.name} at line {line_num}")
					continue
				yield line_num, data

	def iter_movie_ids(self, filepath: str) -> Iterator[int]:
		"""Yield the id of every metadata line that carries a usable one."""
		for line_num, data in self.iter_jsonl(filepath):
			try:
				yield parse_movie_id(data.get('id'))
			except ValueError as e:
				logger.warning(f"[DataLoader] Skipping metadata at line {line_num}: {e}")

	def load_metadata(self, filepath: str) -> Dict[int, MergedMovieRecord]:
		"""Read the metadata file into {movie_id: MergedMovieRecord} with no embeddings attached."""
		records: Dict[int, MergedMovieRecord] = {}
		logger.info(f"[DataLoader] Loading metadata from {filepath}...")

		for line_num, data in self.iter_jsonl(filepath):
			try:
				metadata = MovieMetadata.from_dict(data)  # convert dict -> MovieMetadata
			except ValueError as e:
				logger.warning(f"[DataLoader] Skipping metadata at line {line_num}: {e}")
				continue
			if metadata.id in records:
				logger.debug(f"[DataLoader] Duplicate metadata for movie {metadata.id} at line {line_num}; keeping the later one")
			records[metadata.id] = MergedMovieRecord(metadata=metadata)

		logger.info(f"[DataLoader] Loaded metadata for {len(records)} movies.")
		return records

	def attach_embeddings(
		self,
		records: Dict[int, MergedMovieRecord],
		filepath: str,
		dimension: Optional[int] = None,
	) -> int:
		"""
		Attach embeddings to already-loaded records.
		Embeddings for unknown ids are dropped; when `dimension` is given, vectors of
		any other length are skipped. Returns the number attached.
		"""
		attached = 0  # embeddings that found their metadata
		dropped = 0  # embeddings without metadata
		mismatched = 0  # vectors of the wrong length
		logger.info(f"[DataLoader] Merging embeddings from {filepath}...")

		for line_num, data in self.iter_jsonl(filepath):
			try:
				embedding = MovieEmbedding.from_dict(data)
			except ValueError as e:
				logger.debug(f"[DataLoader] Skipping embedding at line {line_num}: {e}")
				continue
			if dimension is not None and len(embedding.vector) != dimension:
				logger.warning(
					f"[DataLoader] Skipping embedding for movie {embedding.id} at line {line_num}: "
					f"length {len(embedding.vector)} != {dimension}"
				)
				mismatched += 1
				continue
			record = records.get(embedding.id)
			if record is None:
				dropped += 1
				continue
			if record.embedding is None:
				attached += 1
			record.embedding = embedding

		logger.info(
			f"[DataLoader] Attached {attached} embeddings | dropped {dropped} without metadata | skipped {mismatched} of wrong length."
		)
		return attached

	def load_and_merge(
		self,
		metadata_path: str,
		embedding_path: str,
		dimension: Optional[int] = None,
	) -> Dict[int, MergedMovieRecord]:
		"""Load metadata, then merge embeddings of the given length into it."""
		records = self.load_metadata(metadata_path)
		self.attach_embeddings(records, embedding_path, dimension)
		without = sum(1 for r in records.values() if r.embedding is None)
		if without:
			logger.warning(f"[DataLoader] {without} movies have no embedding and will be stored as metadata only.")
		return records

	def detect_vector_dimension(self, filepath: str, default_dimension: int) -> int:
		"""
		Return the length of the first well-formed vector in the embedding file.
		Falls back to default_dimension when the file holds no usable vector.
		"""
		for _, data in self.iter_jsonl(filepath):
			vector = data.get('vector')
			if is_valid_vector(vector):
				return len(vector)  # stop reading at the first valid line

		logger.warning(f"[DataLoader] No valid vector found in {filepath}; using default dimension {default_dimension}")
		return default_dimension
