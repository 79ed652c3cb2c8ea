"""Vector index package.

Provides the data model shared by ingestion and retrieval plus a thread-safe
in-memory index:
- SourceDocument, Chunk, IndexEntry, RetrievalMatch
- VectorIndex protocol and InMemoryVectorIndex implementation
- vector_norm helper

Usage:
    from docchat.service.index import Chunk, InMemoryVectorIndex

    index = InMemoryVectorIndex()
    index.insert(Chunk("report.pdf", "text", 0), [0.1, 0.2, 0.3])
    matches = index.query([0.1, 0.2, 0.3], k=4)
"""

from docchat.service.index.memory import InMemoryVectorIndex, VectorIndex
from docchat.service.index.models import Chunk, IndexEntry, RetrievalMatch, SourceDocument
from docchat.service.index.utils import vector_norm

__all__ = [
    # Models
    "SourceDocument",
    "Chunk",
    "IndexEntry",
    "RetrievalMatch",
    # Index
    "VectorIndex",
    "InMemoryVectorIndex",
    # Utils
    "vector_norm",
]
