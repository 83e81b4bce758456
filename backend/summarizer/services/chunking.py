"""
Transcript Chunking

Splits long transcripts into overlapping word-aligned windows that fit the
character budget of a generation backend.
"""
import logging
from typing import List

logger = logging.getLogger(__name__)

# Target chunk size in characters
CHUNK_SIZE_CHARS = 7000
# Overlap between consecutive chunks, approximated as overlap // 10 words
CHUNK_OVERLAP_CHARS = 1000


def _joined_length(words: List[str]) -> int:
    """Length of the words when joined by single spaces"""
    if not words:
        return 0
    return sum(len(w) for w in words) + len(words) - 1


def split_transcript(
    text: str,
    chunk_size: int = CHUNK_SIZE_CHARS,
    overlap: int = CHUNK_OVERLAP_CHARS
) -> List[str]:
    """
    Greedily pack whitespace-separated words into chunks.

    A chunk is closed when the next word would push it past `chunk_size`.
    The next chunk is seeded with the last `overlap // 10` words of the closed
    one, trimmed from the front if the seed plus the next word would not fit.
    A single word longer than `chunk_size` becomes a chunk on its own.

    Args:
        text: Full transcript
        chunk_size: Character budget per chunk
        overlap: Approximate overlap in characters

    Returns:
        Ordered list of chunk strings (empty for blank input)
    """
    words = text.split()
    if not words:
        return []

    overlap_words = max(overlap // 10, 0)
    chunks: List[str] = []
    current: List[str] = []
    current_length = 0

    for word in words:
        if current and current_length + 1 + len(word) > chunk_size:
            chunks.append(" ".join(current))

            seed = current[-overlap_words:] if overlap_words else []
            while seed and _joined_length(seed) + 1 + len(word) > chunk_size:
                seed = seed[1:]

            current = list(seed)
            current_length = _joined_length(current)

        current_length = current_length + 1 + len(word) if current else len(word)
        current.append(word)

    if current:
        chunks.append(" ".join(current))

    logger.info(
        f"Chunked transcript into {len(chunks)} chunks "
        f"(avg {len(text) // max(len(chunks), 1)} chars each)"
    )
    return chunks
