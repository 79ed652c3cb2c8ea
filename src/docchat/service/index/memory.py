"""In-memory nearest-neighbor index over chunk embeddings."""

import logging
import threading
from typing import Protocol

from docchat.errors import DimensionMismatchError
from docchat.service.index.models import Chunk, IndexEntry, RetrievalMatch
from docchat.service.index.utils import vector_norm

logger = logging.getLogger(__name__)


class VectorIndex(Protocol):
    """Protocol for pluggable vector stores.

    The ingestion and retrieval pipeline only depends on these operations, so
    a persistent backend can replace the in-memory one.
    """

    def insert(self, chunk: Chunk, vector: list[float]) -> None:
        """Store a chunk with its embedding."""
        ...

    def query(self, vector: list[float], k: int) -> list[RetrievalMatch]:
        """Return at most k matches ranked by descending cosine similarity."""
        ...

    def delete_by_document(self, source_id: str) -> int:
        """Remove every entry owned by a document, returning the count removed."""
        ...

    def __len__(self) -> int:
        ...


class InMemoryVectorIndex:
    """Thread-safe, insert-only in-memory vector index.

    Writers hold a lock while appending or deleting; queries copy the entry
    list under the same lock and score the snapshot without it, so inserts
    that start after a query began never disturb its results.

    Args:
        dimensions: Expected embedding dimension. If None, the dimension of the
            first inserted vector is adopted.
    """

    def __init__(self, dimensions: int | None = None) -> None:
        self._dimensions = dimensions
        self._entries: list[IndexEntry] = []
        self._lock = threading.Lock()

    @property
    def dimensions(self) -> int | None:
        return self._dimensions

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _check_dimension(self, vector: list[float] | tuple[float, ...]) -> None:
        if self._dimensions is not None and len(vector) != self._dimensions:
            raise DimensionMismatchError(self._dimensions, len(vector))

    def insert(self, chunk: Chunk, vector: list[float]) -> None:
        """Store a chunk with its embedding.

        Raises:
            DimensionMismatchError: If the vector has the wrong dimension
            ValueError: If the vector is empty
        """
        if not vector:
            raise ValueError("Cannot index an empty embedding vector")

        frozen = tuple(float(v) for v in vector)
        entry = IndexEntry(chunk=chunk, vector=frozen, norm=vector_norm(frozen))

        with self._lock:
            if self._dimensions is None:
                self._dimensions = len(frozen)
                logger.info(f"📐 Vector index dimension set to {self._dimensions}")
            self._check_dimension(frozen)
            self._entries.append(entry)

    def query(self, vector: list[float], k: int) -> list[RetrievalMatch]:
        """Rank stored chunks by cosine similarity to the query vector.

        Ties keep insertion order. Fewer than k entries returns all of them.

        Raises:
            ValueError: If k is not a positive integer
            DimensionMismatchError: If the query vector has the wrong dimension
        """
        if k <= 0:
            raise ValueError(f"k must be a positive integer, got {k}")

        with self._lock:
            snapshot = list(self._entries)

        if not snapshot:
            return []
        self._check_dimension(vector)

        query_norm = vector_norm(vector)
        scored = []
        for entry in snapshot:
            if query_norm == 0 or entry.norm == 0:
                score = 0.0
            else:
                dot_product = sum(a * b for a, b in zip(vector, entry.vector))
                score = dot_product / (query_norm * entry.norm)
            scored.append(RetrievalMatch(chunk=entry.chunk, score=score))

        # sorted() is stable, so equal scores stay in insertion order
        ranked = sorted(scored, key=lambda match: match.score, reverse=True)
        return ranked[:k]

    def delete_by_document(self, source_id: str) -> int:
        """Remove every entry owned by the given document."""
        with self._lock:
            kept = [e for e in self._entries if e.chunk.source_id != source_id]
            removed = len(self._entries) - len(kept)
            self._entries = kept

        if removed:
            logger.info(f"🗑️  Removed {removed} index entries for {source_id}")
        return removed

    def document_ids(self) -> list[str]:
        """Distinct source ids present in the index, in first-insert order."""
        with self._lock:
            snapshot = list(self._entries)
        return list(dict.fromkeys(entry.chunk.source_id for entry in snapshot))
