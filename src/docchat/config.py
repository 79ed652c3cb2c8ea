"""Environment-backed configuration for the RAG pipeline."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from docchat.constants import (
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_INGEST_WORKERS,
    DEFAULT_MAX_HISTORY,
    DEFAULT_STREAM_TIMEOUT_SECONDS,
    DEFAULT_STREAM_WORKERS,
    DEFAULT_TOP_K,
    DEFAULT_UPLOAD_DIR,
)

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _env_number(name: str, default, cast=int):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"⚠️ Invalid value for {name}: {raw!r}, using default {default}")
        return default


class RagConfig:
    """Configuration class for pipeline tuning and storage locations."""

    @staticmethod
    def get_upload_dir() -> Path:
        """Get the directory re-indexed on startup.

        Returns:
            Path: Upload directory (default: ./uploads)
        """
        return Path(os.getenv("UPLOAD_DIR", DEFAULT_UPLOAD_DIR))

    @staticmethod
    def get_chunk_size() -> int:
        """Get the target chunk size in characters (default: 1000)."""
        return _env_number("CHUNK_SIZE", DEFAULT_CHUNK_SIZE)

    @staticmethod
    def get_chunk_overlap() -> int:
        """Get the chunk overlap in characters (default: 100)."""
        return _env_number("CHUNK_OVERLAP", DEFAULT_CHUNK_OVERLAP)

    @staticmethod
    def get_top_k() -> int:
        """Get the number of passages retrieved per question (default: 4)."""
        return _env_number("RETRIEVAL_TOP_K", DEFAULT_TOP_K)

    @staticmethod
    def get_max_history() -> int:
        """Get the number of prior turns sent with each question (default: 10)."""
        return _env_number("MAX_HISTORY", DEFAULT_MAX_HISTORY)

    @staticmethod
    def get_stream_timeout() -> float:
        """Get the streaming idle timeout in seconds (default: 300)."""
        return _env_number("STREAM_TIMEOUT_SECONDS", DEFAULT_STREAM_TIMEOUT_SECONDS, float)

    @staticmethod
    def get_stream_workers() -> int:
        """Get the number of answers streamed concurrently (default: 64)."""
        return _env_number("STREAM_WORKERS", DEFAULT_STREAM_WORKERS)

    @staticmethod
    def get_ingest_workers() -> int:
        """Get the number of files ingested concurrently (default: 4)."""
        return _env_number("INGEST_WORKERS", DEFAULT_INGEST_WORKERS)
