"""Query-time retrieval of relevant passages."""

import logging

from docchat.constants import DEFAULT_TOP_K
from docchat.errors import EmbeddingError
from docchat.llm.base import Embedder
from docchat.service.index.memory import VectorIndex
from docchat.service.index.models import RetrievalMatch

logger = logging.getLogger(__name__)


class Retriever:
    """Embeds a question and looks up its nearest passages.

    Args:
        embedder: Embeds the query text
        index: Vector index searched for matches
    """

    def __init__(self, embedder: Embedder, index: VectorIndex) -> None:
        self.embedder = embedder
        self.index = index

    def retrieve(self, query: str, k: int = DEFAULT_TOP_K) -> list[RetrievalMatch]:
        """Return up to k passages ranked by similarity to the query.

        Args:
            query: Question text
            k: Maximum number of matches

        Returns:
            list[RetrievalMatch]: Ranked matches, empty when the index is empty

        Raises:
            EmbeddingError: If the query cannot be embedded
        """
        # An empty index returns no matches, so the query is not embedded.
        if len(self.index) == 0:
            logger.info("ℹ️ Vector index is empty, nothing to retrieve")
            return []

        try:
            vector = self.embedder.embed(query)
        except Exception as e:
            logger.error(f"❌ Failed to embed query: {e}")
            raise EmbeddingError(f"{type(e).__name__}: {e}") from e

        matches = self.index.query(vector, k)
        logger.info(f"🔍 Retrieved {len(matches)} passages for query ({len(query)} chars)")
        return matches
