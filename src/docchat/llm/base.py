"""Protocols for the embedding and generation services."""

from typing import Protocol


class StreamSink(Protocol):
    """Receiver of incremental generation events.

    A generator calls ``on_fragment`` for each piece of text in emission order,
    then exactly one of ``on_complete`` or ``on_error``. ``on_fragment`` raises
    :class:`docchat.errors.SinkClosedError` once the receiver has stopped
    listening; the generator must then stop producing.
    """

    def on_fragment(self, text: str) -> None:
        ...

    def on_complete(self, final_text: str | None = None) -> None:
        ...

    def on_error(self, cause: BaseException) -> None:
        ...


class Embedder(Protocol):
    """Maps text to a fixed-length vector."""

    def embed(self, text: str) -> list[float]:
        """Embed a single text with the service's configured embedding model."""
        ...


class LLMService(Protocol):
    """Protocol defining the interface for LLM services.

    This protocol ensures type safety and allows for multiple LLM provider
    implementations while maintaining a consistent interface. Every service
    is both an embedder and a generator.
    """

    async def generate_response(self, messages: list[dict]) -> str:
        """Generate a response from the LLM based on the provided messages.

        Args:
            messages: List of message dictionaries with 'role' and 'content' keys.
                     Example: [{"role": "user", "content": "Hello"}]

        Returns:
            str: The generated response content from the LLM.
        """
        ...

    def stream_response(self, messages: list[dict], sink: StreamSink) -> None:
        """Stream a response into ``sink``, blocking until the stream ends.

        Provider errors are reported through ``sink.on_error`` rather than raised.

        Args:
            messages: List of message dictionaries with 'role' and 'content' keys.
            sink: Receiver of fragment, completion and error events.
        """
        ...

    def generate_embeddings(self, texts: list[str], model: str | None = None) -> list[list[float]]:
        """Generate embeddings for a list of texts.

        Args:
            texts: List of text strings to embed
            model: Optional embedding model name. If None, uses a default for the service.

        Returns:
            list[list[float]]: List of embedding vectors
        """
        ...

    def embed(self, text: str) -> list[float]:
        """Embed a single text with the service's configured embedding model."""
        ...
