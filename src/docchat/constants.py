"""Application-wide constants and defaults for DocChat.

This module provides a single source of truth for configuration defaults,
magic numbers, and other constants used throughout the application.
"""

import os

# =============================================================================
# Chunking (measured in characters project-wide)
# =============================================================================
DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 100

# =============================================================================
# Retrieval & Conversation
# =============================================================================
DEFAULT_TOP_K = 4  # Passages retrieved per question
DEFAULT_MAX_HISTORY = 10  # Prior turns sent to the generator (count, not tokens)
CONTEXT_INSTRUCTION = "Answer the question based on the following knowledge context."

# =============================================================================
# Streaming
# =============================================================================
DEFAULT_STREAM_TIMEOUT_SECONDS = 300.0  # Idle timeout of the output sink
DEFAULT_STREAM_WORKERS = 64  # Streamed answers generated concurrently

# =============================================================================
# Ingestion
# =============================================================================
DEFAULT_INGEST_WORKERS = 4
DEFAULT_UPLOAD_DIR = "./uploads"

# =============================================================================
# References
# =============================================================================
REFERENCES_SEPARATOR = "\n\n---\n\n"
REFERENCES_HEADING = "**📚 References:**"

# =============================================================================
# Display Settings
# =============================================================================
CONTENT_PREVIEW_LENGTH = 200  # Characters to show in content previews

# =============================================================================
# Default URLs and Hosts
# =============================================================================
DEFAULT_OLLAMA_HOST = "http://localhost:11434"

# =============================================================================
# Model Defaults
# =============================================================================
CHAT_MODEL_DEFAULTS = {
    "ollama": "llama3",
    "gemini": "gemini-2.5-flash",
}

EMBEDDING_DEFAULTS = {
    "ollama": "nomic-embed-text",
    "gemini": "text-embedding-004",
}


def get_embedding_model(service: str | None = None) -> str:
    """Get the default embedding model for a given LLM service.

    Checks the EMBEDDING_MODEL environment variable first, then falls back
    to service-specific defaults.

    Args:
        service: The LLM service name ("ollama" or "gemini").
                If None, uses LLM_SERVICE env var or defaults to "ollama".

    Returns:
        str: The embedding model name to use.
    """
    env_model = os.getenv("EMBEDDING_MODEL")
    if env_model:
        return env_model

    if service is None:
        service = os.getenv("LLM_SERVICE", "ollama")

    return EMBEDDING_DEFAULTS.get(service, EMBEDDING_DEFAULTS["ollama"])
