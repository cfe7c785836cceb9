"""
Splits long extracted text into bounded chunks for size-limited model input.

Chunks are built greedily from paragraphs (blank-line separated). A paragraph
that does not fit in a chunk on its own is split into sentences, and a
sentence that still does not fit is truncated. Once ``max_chunks`` chunks are
complete the rest of the text is dropped, so callers must not assume the
chunks cover the whole document.
"""

import re

from studymate.core.logging_config import get_logger

logger = get_logger(__name__)

PARAGRAPH_SEPARATOR = "\n\n"
SENTENCE_SEPARATOR = " "

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")


class _ChunkAccumulator:
    """Greedy buffer that flushes into ``chunks`` when the next piece won't fit."""

    def __init__(self, max_chunk_size: int, max_chunks: int):
        self.max_chunk_size = max_chunk_size
        self.max_chunks = max_chunks
        self.chunks: list[str] = []
        self._buffer = ""

    @property
    def full(self) -> bool:
        return len(self.chunks) >= self.max_chunks

    def add(self, piece: str, separator: str) -> None:
        if self._buffer and len(self._buffer) + len(separator) + len(piece) > self.max_chunk_size:
            self.flush()
        if self.full:
            return
        self._buffer = f"{self._buffer}{separator}{piece}" if self._buffer else piece

    def flush(self) -> None:
        if self._buffer and not self.full:
            self.chunks.append(self._buffer)
        self._buffer = ""


def split_paragraphs(text: str) -> list[str]:
    """Split text on blank lines, discarding empty paragraphs."""
    return [p.strip() for p in _PARAGRAPH_BREAK.split(text) if p.strip()]


def split_sentences(paragraph: str) -> list[str]:
    """Split a paragraph after '.', '!' or '?' followed by whitespace."""
    return [s.strip() for s in _SENTENCE_BREAK.split(paragraph) if s.strip()]


def chunk_text(text: str, max_chunk_size: int = 4000, max_chunks: int = 50) -> list[str]:
    """
    Split text into at most ``max_chunks`` chunks of at most ``max_chunk_size`` characters.

    Args:
        text: Text to split
        max_chunk_size: Maximum characters per chunk
        max_chunks: Maximum number of chunks; content past the cap is dropped

    Returns:
        Ordered list of chunks. Empty input gives an empty list and input that
        already fits gives a single chunk equal to the input.
    """
    if max_chunk_size <= 0 or max_chunks <= 0:
        raise ValueError("max_chunk_size and max_chunks must be positive")

    if not text or not text.strip():
        return []
    if len(text) <= max_chunk_size:
        return [text]

    acc = _ChunkAccumulator(max_chunk_size, max_chunks)
    truncated = 0

    for paragraph in split_paragraphs(text):
        if acc.full:
            break

        if len(paragraph) <= max_chunk_size:
            acc.add(paragraph, PARAGRAPH_SEPARATOR)
            continue

        separator = PARAGRAPH_SEPARATOR
        for sentence in split_sentences(paragraph):
            if len(sentence) > max_chunk_size:
                sentence = sentence[:max_chunk_size]
                truncated += 1
            acc.add(sentence, separator)
            separator = SENTENCE_SEPARATOR

    acc.flush()

    if acc.full:
        logger.debug(f"Chunk cap of {max_chunks} reached")
    if truncated:
        logger.debug(f"Hard-truncated {truncated} oversized sentence(s) to {max_chunk_size} chars")
    logger.debug(f"Split {len(text)} chars into {len(acc.chunks)} chunks (max_size={max_chunk_size})")
    return acc.chunks
