"""LLM service abstraction layer for docchat.

This package provides a unified interface for multiple LLM providers:
- OllamaService: Local LLM via Ollama
- GeminiService: Google Gemini API

All services implement the LLMService protocol: they embed text, generate
blocking answers and stream answers into a StreamSink.

Usage:
    from docchat.llm import get_llm_service, LLMService

    # Create service from environment config
    service = get_llm_service()

    # Or with explicit config
    service = get_llm_service({"service": "gemini", "model": "gemini-2.5-flash"})
"""

from docchat.llm.base import Embedder, LLMService, StreamSink
from docchat.llm.factory import get_llm_service
from docchat.llm.gemini import GeminiService
from docchat.llm.ollama import OllamaService

__all__ = [
    "Embedder",
    "LLMService",
    "StreamSink",
    "OllamaService",
    "GeminiService",
    "get_llm_service",
]
