"""Recursive, overlapping text chunking.

Text is cut into passages of at most ``chunk_size`` characters. Each cut is
placed at the last paragraph break that fits the window, falling back to a
line break, then a sentence end, then whitespace, then a hard cut at the size
limit. Every chunk after the first starts with the last ``overlap`` characters
of the previous chunk, so removing those prefixes and concatenating the chunks
reproduces the input exactly.
"""

import logging
import re

from docchat.constants import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE
from docchat.service.index.models import Chunk

logger = logging.getLogger(__name__)

# Boundary patterns in order of preference; a cut is placed at a match's end.
BOUNDARY_PATTERNS = (
    re.compile(r"\n[ \t]*\n\s*"),  # paragraph
    re.compile(r"\n"),  # line
    re.compile(r"[.!?][\"')\]]*\s+|[。！？]"),  # sentence
    re.compile(r"\s+"),  # word
)


class TextChunker:
    """Splits plain text into ordered, overlapping passages.

    Args:
        chunk_size: Maximum chunk length in characters
        overlap: Characters repeated from the end of one chunk at the start of the next

    Raises:
        ValueError: If chunk_size is not positive or overlap is not in [0, chunk_size)
    """

    def __init__(
        self, chunk_size: int = DEFAULT_CHUNK_SIZE, overlap: int = DEFAULT_CHUNK_OVERLAP
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if overlap < 0 or overlap >= chunk_size:
            raise ValueError(
                f"overlap must be >= 0 and smaller than chunk_size ({chunk_size}), got {overlap}"
            )
        self.chunk_size = chunk_size
        self.overlap = overlap

    def split_text(self, text: str) -> list[str]:
        """Split text into overlapping passages.

        Args:
            text: The text to split

        Returns:
            list[str]: Passages in document order; empty input gives an empty list
        """
        length = len(text)
        passages: list[str] = []
        position = 0  # start of text not yet covered by any chunk

        while position < length:
            start = position - self.overlap if passages else 0
            limit = start + self.chunk_size
            if limit >= length:
                end = length
            else:
                # Each chunk must cover new text and be longer than the overlap.
                earliest = max(position, start + self.overlap) + 1
                end = self._find_cut(text, start, earliest, limit)
            passages.append(text[start:end])
            position = end

        return passages

    def chunk(self, text: str, source_id: str) -> list[Chunk]:
        """Split text into Chunk objects owned by a source document.

        Args:
            text: Document text
            source_id: Identifier of the owning document

        Returns:
            list[Chunk]: Chunks with sequence indices starting at 0
        """
        chunks = [
            Chunk(source_id=source_id, text=passage, sequence_index=idx)
            for idx, passage in enumerate(self.split_text(text))
        ]
        logger.debug(f"Created {len(chunks)} chunks for {source_id}")
        return chunks

    @staticmethod
    def _find_cut(text: str, start: int, earliest: int, limit: int) -> int:
        """Return the best cut position in [earliest, limit]."""
        for pattern in BOUNDARY_PATTERNS:
            cut = None
            for match in pattern.finditer(text, start, limit):
                if match.end() >= earliest:
                    cut = match.end()
            if cut is not None:
                return cut
        return limit
