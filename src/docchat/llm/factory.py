"""Factory function for creating LLM service instances."""

import logging
import os

from dotenv import load_dotenv

from docchat.constants import CHAT_MODEL_DEFAULTS, DEFAULT_OLLAMA_HOST
from docchat.llm.base import LLMService
from docchat.llm.gemini import GeminiService
from docchat.llm.ollama import OllamaService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def get_llm_service(config: dict | None = None) -> LLMService:
    """Factory function to create an LLM service instance.

    Args:
        config: Optional configuration dictionary. If None, uses environment variables.
                Expected keys:
                - 'service': Service type (default: from LLM_SERVICE env, or "ollama")
                - 'host': Ollama host URL (default: from OLLAMA_HOST env)
                - 'model': Chat model name (default: from LLM_MODEL env)
                - 'embedding_model': Embedding model name (default: from EMBEDDING_MODEL env)

    Returns:
        LLMService: An instance implementing the LLMService protocol.
    """
    if config is None:
        config = {}

    service_type = config.get("service", os.getenv("LLM_SERVICE", "ollama"))
    embedding_model = config.get("embedding_model", os.getenv("EMBEDDING_MODEL"))

    if service_type == "ollama":
        host = config.get("host", os.getenv("OLLAMA_HOST", DEFAULT_OLLAMA_HOST))
        model = config.get("model", os.getenv("LLM_MODEL", CHAT_MODEL_DEFAULTS["ollama"]))
        return OllamaService(host=host, model=model, embedding_model=embedding_model)

    if service_type == "gemini":
        model = config.get("model", os.getenv("LLM_MODEL", CHAT_MODEL_DEFAULTS["gemini"]))
        return GeminiService(model=model, embedding_model=embedding_model)

    raise ValueError(f"Unsupported service type: {service_type}")
