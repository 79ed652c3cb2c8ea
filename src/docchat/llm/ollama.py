"""Ollama LLM service implementation."""

import logging

import ollama

from docchat.constants import get_embedding_model
from docchat.errors import SinkClosedError
from docchat.llm.base import StreamSink

logger = logging.getLogger(__name__)


class OllamaService:
    """Ollama LLM service implementation.

    This service uses the Ollama API to generate responses and embeddings
    from local models.
    """

    def __init__(self, host: str, model: str, embedding_model: str | None = None) -> None:
        """Initialize the Ollama service.

        Args:
            host: The Ollama server host URL (e.g., "http://localhost:11434")
            model: The chat model name to use (e.g., "llama3")
            embedding_model: Embedding model name. If None, uses EMBEDDING_MODEL env var
                   or the Ollama default.
        """
        self.host = host
        self.model = model
        self.embedding_model = embedding_model or get_embedding_model("ollama")
        logger.info(
            f"🤖 Initializing OllamaService: host={host}, model={model}, "
            f"embedding_model={self.embedding_model}"
        )
        self.client = ollama.Client(host=host)

    def _log_messages(self, messages: list[dict]) -> None:
        logger.debug(f"Messages: {len(messages)} messages")
        for i, msg in enumerate(messages):
            role = msg.get("role", "unknown")
            content_preview = msg.get("content", "")[:100]
            logger.debug(f"  Message {i + 1} ({role}): {content_preview}...")

    async def generate_response(self, messages: list[dict]) -> str:
        """Generate a response using Ollama.

        Args:
            messages: List of message dictionaries with 'role' and 'content' keys.

        Returns:
            str: The generated response content from the model.
        """
        logger.info(f"🗣️  Generating response with {self.model}")
        self._log_messages(messages)

        try:
            response = self.client.chat(model=self.model, messages=messages)
            content = response.message.content or ""
            logger.info(f"✅ Response generated: {len(content)} characters")
            return content
        except Exception as e:
            logger.error(f"❌ Ollama API error: {e}", exc_info=True)
            raise

    def stream_response(self, messages: list[dict], sink: StreamSink) -> None:
        """Stream a response from Ollama into ``sink``.

        Args:
            messages: List of message dictionaries with 'role' and 'content' keys.
            sink: Receiver of fragment, completion and error events.
        """
        logger.info(f"🌊 Streaming response with {self.model}")
        self._log_messages(messages)

        fragments = 0
        try:
            for part in self.client.chat(model=self.model, messages=messages, stream=True):
                text = part.message.content if part.message else None
                if text:
                    sink.on_fragment(text)
                    fragments += 1
        except SinkClosedError:
            logger.info(f"🔌 Stream receiver closed after {fragments} fragments")
            return
        except Exception as e:
            logger.error(f"❌ Ollama streaming error: {e}", exc_info=True)
            sink.on_error(e)
            return

        logger.info(f"✅ Stream finished: {fragments} fragments")
        sink.on_complete(None)

    def generate_embeddings(self, texts: list[str], model: str | None = None) -> list[list[float]]:
        """Generate embeddings for a list of texts using Ollama.

        Args:
            texts: List of text strings to embed
            model: Optional embedding model name. If None, uses the service's
                   configured embedding model.

        Returns:
            list[list[float]]: List of embedding vectors
        """
        embedding_model = model or self.embedding_model
        embeddings = []

        for text in texts:
            response = self.client.embed(model=embedding_model, input=text)
            embeddings.append(list(response["embeddings"][0]))

        logger.debug(f"Generated {len(embeddings)} embeddings with {embedding_model}")
        return embeddings

    def embed(self, text: str) -> list[float]:
        """Embed a single text."""
        return self.generate_embeddings([text])[0]
