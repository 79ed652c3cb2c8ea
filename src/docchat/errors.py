"""Exception hierarchy for DocChat.

Ingestion-time errors are contained per file or per chunk by the ingestor.
Query-time errors (embedding the question, generating the answer) propagate
to the caller.
"""


class DocChatError(Exception):
    """Base class for all DocChat errors."""


class EmbeddingError(DocChatError):
    """The embedding service failed to embed a piece of text."""


class IndexInsertError(DocChatError):
    """A chunk could not be inserted into the vector index."""


class DimensionMismatchError(IndexInsertError):
    """A vector's dimension does not match the index dimension.

    During ingestion this aborts the remaining chunks of the document.
    """

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected embedding dimension {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class GenerationError(DocChatError):
    """The language model failed to produce an answer."""


class HistoryUnavailableError(DocChatError):
    """Conversation history could not be read from the message store."""


class SinkClosedError(DocChatError):
    """The output sink no longer accepts events (client gone or sink released)."""
