"""Core RAG services: extraction, chunking, indexing, retrieval and generation."""
