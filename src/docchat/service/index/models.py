"""Data models for the vector index."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SourceDocument:
    """An ingested file.

    Attributes:
        identifier: Stable source id, the stored file name (may carry a
            generated prefix such as ``<uuid>_report.pdf``)
        filename: Original file name
        size_bytes: Size of the raw file
        content_type: Declared content type, if any
    """

    identifier: str
    filename: str
    size_bytes: int
    content_type: str | None = None


@dataclass(frozen=True)
class Chunk:
    """A passage of a source document, the unit of embedding and retrieval.

    Attributes:
        source_id: Identifier of the owning SourceDocument
        text: The passage text
        sequence_index: Position of this chunk within its document
    """

    source_id: str
    text: str
    sequence_index: int


@dataclass(frozen=True)
class IndexEntry:
    """A chunk paired with its embedding, owned by the vector index."""

    chunk: Chunk
    vector: tuple[float, ...]
    norm: float


@dataclass(frozen=True)
class RetrievalMatch:
    """A chunk ranked by similarity to a query."""

    chunk: Chunk
    score: float

    @property
    def source_id(self) -> str:
        return self.chunk.source_id
