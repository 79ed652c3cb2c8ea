"""Google Gemini LLM service implementation."""

import logging
from typing import Any

from google import genai

from docchat.constants import get_embedding_model
from docchat.errors import SinkClosedError
from docchat.llm.base import StreamSink

logger = logging.getLogger(__name__)

# Gemini names the assistant role "model"
ROLE_MAP = {"user": "user", "assistant": "model"}


class GeminiService:
    """Google Gemini LLM service implementation.

    This service uses the Google Gemini API to generate responses and embeddings.
    The API key is automatically retrieved from the GEMINI_API_KEY environment variable.
    """

    def __init__(self, model: str, embedding_model: str | None = None) -> None:
        """Initialize the Gemini service.

        Args:
            model: The model name to use (e.g., "gemini-2.5-flash")
            embedding_model: Embedding model name. If None, uses EMBEDDING_MODEL env var
                   or the Gemini default.
        """
        self.model = model
        self.embedding_model = embedding_model or get_embedding_model("gemini")
        logger.info(
            f"🤖 Initializing GeminiService: model={model}, "
            f"embedding_model={self.embedding_model}"
        )
        # The client gets the API key from the GEMINI_API_KEY environment variable
        self.client = genai.Client()

    def _build_request(self, messages: list[dict]) -> dict[str, Any]:
        """Convert chat messages into generate_content keyword arguments.

        System messages become the system instruction; user and assistant
        messages become conversation contents. Other roles are dropped.
        """
        system_parts = []
        contents = []
        for msg in messages:
            role = msg.get("role")
            text = msg.get("content", "")
            if role == "system":
                system_parts.append(text)
            elif role in ROLE_MAP:
                contents.append(
                    genai.types.Content(role=ROLE_MAP[role], parts=[genai.types.Part(text=text)])
                )

        request: dict[str, Any] = {"model": self.model, "contents": contents}
        if system_parts:
            request["config"] = genai.types.GenerateContentConfig(
                system_instruction="\n\n".join(system_parts),
            )
        return request

    async def generate_response(self, messages: list[dict]) -> str:
        """Generate a response using Gemini.

        Args:
            messages: List of message dictionaries with 'role' and 'content' keys.

        Returns:
            str: The generated response content from the model.
        """
        logger.info(f"🗣️  Generating response with {self.model}")
        logger.debug(f"Messages: {len(messages)} messages")

        try:
            response = self.client.models.generate_content(**self._build_request(messages))
            content = response.text or ""
            logger.info(f"✅ Response generated: {len(content)} characters")
            return content
        except Exception as e:
            logger.error(f"❌ Gemini API error: {e}", exc_info=True)
            raise

    def stream_response(self, messages: list[dict], sink: StreamSink) -> None:
        """Stream a response from Gemini into ``sink``.

        Args:
            messages: List of message dictionaries with 'role' and 'content' keys.
            sink: Receiver of fragment, completion and error events.
        """
        logger.info(f"🌊 Streaming response with {self.model}")

        fragments = 0
        try:
            stream = self.client.models.generate_content_stream(**self._build_request(messages))
            for part in stream:
                if part.text:
                    sink.on_fragment(part.text)
                    fragments += 1
        except SinkClosedError:
            logger.info(f"🔌 Stream receiver closed after {fragments} fragments")
            return
        except Exception as e:
            logger.error(f"❌ Gemini streaming error: {e}", exc_info=True)
            sink.on_error(e)
            return

        logger.info(f"✅ Stream finished: {fragments} fragments")
        sink.on_complete(None)

    def generate_embeddings(self, texts: list[str], model: str | None = None) -> list[list[float]]:
        """Generate embeddings for a list of texts using Gemini.

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
            try:
                response = self.client.models.embed_content(model=embedding_model, contents=[text])
                embeddings.append(list(response.embeddings[0].values))
            except Exception as e:
                logger.error(f"❌ Gemini embedding error for text: {e}", exc_info=True)
                raise

        logger.debug(f"Generated {len(embeddings)} embeddings with {embedding_model}")
        return embeddings

    def embed(self, text: str) -> list[float]:
        """Embed a single text."""
        return self.generate_embeddings([text])[0]
