"""Document ingestion: extraction → chunking → embedding → indexing.

Failures are contained per document and per chunk. A file that cannot be read
or extracted is reported and skipped; a chunk that fails to embed or index is
reported while the remaining chunks of the same document are still attempted.
Successfully indexed chunks are never rolled back.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from docchat.constants import DEFAULT_INGEST_WORKERS
from docchat.errors import DimensionMismatchError, EmbeddingError, IndexInsertError
from docchat.llm.base import Embedder
from docchat.service.chunking import TextChunker
from docchat.service.extraction import (
    DocumentFormat,
    ExtractionFailed,
    Unsupported,
    detect_format,
    extract_text,
)
from docchat.service.index.memory import VectorIndex
from docchat.service.index.models import Chunk, SourceDocument

logger = logging.getLogger(__name__)


@dataclass
class IngestionReport:
    """Outcome of ingesting one document.

    Attributes:
        source_id: Identifier of the document
        status: One of "indexed", "partial", "skipped", "empty", "failed"
        chunks_total: Number of chunks produced by the chunker
        chunks_indexed: Number of chunks embedded and stored
        errors: Human-readable error descriptions
    """

    source_id: str
    status: str = "indexed"
    chunks_total: int = 0
    chunks_indexed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in ("indexed", "skipped", "empty")


class Ingestor:
    """Ingests documents into a vector index.

    Args:
        chunker: Splits extracted text into passages
        embedder: Embeds each passage
        index: Receives (chunk, vector) pairs
    """

    def __init__(self, chunker: TextChunker, embedder: Embedder, index: VectorIndex) -> None:
        self.chunker = chunker
        self.embedder = embedder
        self.index = index
        self._documents: dict[str, SourceDocument] = {}
        self._lock = threading.Lock()

    @property
    def documents(self) -> list[SourceDocument]:
        """Documents with at least one indexed chunk, in ingestion order."""
        with self._lock:
            return list(self._documents.values())

    def ingest_file(
        self, path: Path, content_type: str | None = None, source_id: str | None = None
    ) -> IngestionReport:
        """Ingest a file from disk. Never raises.

        Args:
            path: Path to the file
            content_type: Optional declared content type
            source_id: Document identifier (default: the file name)

        Returns:
            IngestionReport: What happened to the file
        """
        path = Path(path)
        source_id = source_id or path.name
        if detect_format(path.name, content_type) is DocumentFormat.UNSUPPORTED:
            logger.debug(f"Skipping unsupported file: {path}")
            return IngestionReport(source_id=source_id, status="skipped")

        try:
            data = path.read_bytes()
        except OSError as e:
            logger.warning(f"⚠️ Could not read {path}: {e}")
            return IngestionReport(source_id=source_id, status="failed", errors=[str(e)])

        return self.ingest_bytes(data, path.name, content_type, source_id=source_id)

    def ingest_bytes(
        self,
        data: bytes,
        filename: str,
        content_type: str | None = None,
        source_id: str | None = None,
    ) -> IngestionReport:
        """Ingest raw document bytes. Never raises.

        Args:
            data: Raw file contents
            filename: Stored file name; decides the format
            content_type: Optional declared content type
            source_id: Document identifier (default: ``filename``)

        Returns:
            IngestionReport: What happened to the document
        """
        t0 = time.monotonic()
        source_id = source_id or filename
        report = IngestionReport(source_id=source_id)
        fmt = detect_format(filename, content_type)

        result = extract_text(data, fmt)
        if isinstance(result, Unsupported):
            logger.debug(f"Skipping unsupported file: {filename}")
            report.status = "skipped"
            return report
        if isinstance(result, ExtractionFailed):
            logger.warning(f"⚠️ Extraction failed for {filename}: {result.reason}")
            report.status = "failed"
            report.errors.append(result.reason)
            return report

        if not result.text.strip():
            logger.info(f"ℹ️ No text found in {filename}")
            report.status = "empty"
            return report

        document = SourceDocument(
            identifier=source_id,
            filename=filename,
            size_bytes=len(data),
            content_type=content_type,
        )
        chunks = self.chunker.chunk(result.text, document.identifier)
        report.chunks_total = len(chunks)

        for chunk in chunks:
            try:
                self._index_chunk(chunk)
                report.chunks_indexed += 1
            except DimensionMismatchError as e:
                logger.warning(f"⚠️ Aborting {filename} at chunk #{chunk.sequence_index}: {e}")
                report.errors.append(f"chunk #{chunk.sequence_index}: {e}")
                break
            except (EmbeddingError, IndexInsertError) as e:
                logger.warning(f"⚠️ {filename} chunk #{chunk.sequence_index} skipped: {e}")
                report.errors.append(f"chunk #{chunk.sequence_index}: {e}")

        if report.chunks_indexed:
            with self._lock:
                self._documents[document.identifier] = document

        if report.chunks_indexed == report.chunks_total:
            report.status = "indexed"
        elif report.chunks_indexed:
            report.status = "partial"
        else:
            report.status = "failed"

        elapsed_ms = int((time.monotonic() - t0) * 1000)
        logger.info(
            f"📄 Indexed {fmt.value} {filename}: {report.chunks_indexed}/{report.chunks_total} "
            f"chunks, bytes={len(data)}, costMs={elapsed_ms}"
        )
        return report

    def _index_chunk(self, chunk: Chunk) -> None:
        try:
            vector = self.embedder.embed(chunk.text)
        except Exception as e:
            raise EmbeddingError(f"{type(e).__name__}: {e}") from e

        try:
            self.index.insert(chunk, vector)
        except IndexInsertError:
            raise
        except Exception as e:
            raise IndexInsertError(f"{type(e).__name__}: {e}") from e

    def delete_document(self, source_id: str) -> int:
        """Remove a document and all of its index entries.

        Args:
            source_id: Identifier of the document

        Returns:
            int: Number of index entries removed
        """
        with self._lock:
            self._documents.pop(source_id, None)
            removed = self.index.delete_by_document(source_id)
        logger.info(f"🗑️  Deleted document {source_id} ({removed} chunks)")
        return removed

    def ingest_directory(
        self, root: Path, max_workers: int = DEFAULT_INGEST_WORKERS
    ) -> list[IngestionReport]:
        """Recursively ingest every regular file under ``root``.

        Files are ingested concurrently. Unsupported files are skipped and
        per-file failures never stop the walk. Each document is identified by
        its path relative to ``root`` (``nested/notes.txt``).

        Args:
            root: Directory to walk
            max_workers: Number of files ingested concurrently

        Returns:
            list[IngestionReport]: One report per regular file, in path order
        """
        root = Path(root)
        if not root.is_dir():
            logger.warning(f"⚠️ Directory does not exist: {root}")
            return []

        try:
            files = sorted(p for p in root.rglob("*") if p.is_file())
        except OSError as e:
            logger.warning(f"⚠️ Scan of {root} failed: {e}")
            return []

        source_ids = [p.relative_to(root).as_posix() for p in files]

        logger.info(f"📂 Ingesting {len(files)} files from {root}")
        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
            reports = list(pool.map(self._ingest_file_contained, files, source_ids))

        indexed = sum(1 for r in reports if r.status in ("indexed", "partial"))
        failed = sum(1 for r in reports if r.status == "failed")
        logger.info(f"✅ Ingestion finished: {indexed} indexed, {failed} failed, {len(files)} files")
        return reports

    def _ingest_file_contained(self, path: Path, source_id: str) -> IngestionReport:
        try:
            return self.ingest_file(path, source_id=source_id)
        except Exception as e:
            logger.warning(f"⚠️ Unexpected error ingesting {path}: {e}")
            logger.debug("Ingestion error details", exc_info=True)
            return IngestionReport(source_id=source_id, status="failed", errors=[str(e)])
