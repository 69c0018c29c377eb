"""
Fixed-size character chunking for document embedding.

Documents are cut into overlapping windows so that text near a window edge
also appears, with surrounding context, at the start of the next window.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class TextChunk:
    """
    One window of a document.

    Attributes:
        idx: Zero-based position of the chunk within the document.
        text: The window's text with surrounding whitespace removed.
        start: Offset of the window in the original text (inclusive).
        end: Offset of the window in the original text (exclusive).
    """

    idx: int
    text: str
    start: int
    end: int


def chunk_text(text: str, chunk_size: int = 1000, overlap: int = 100) -> list[TextChunk]:
    """
    Split text into overlapping windows of at most ``chunk_size`` characters.

    ``chunk_size`` is coerced to at least 1 and ``overlap`` is clamped to
    ``[0, chunk_size - 1]`` so the window always moves forward.
    Whitespace-only windows are skipped without consuming an ``idx``.

    Args:
        text: The raw document text.
        chunk_size: Window width in characters.
        overlap: Number of characters shared by consecutive windows.

    Returns:
        Chunks in original-text order with contiguous ``idx`` values from 0.
        Empty list for empty input.
    """
    chunks: list[TextChunk] = []
    if not text:
        return chunks

    size = max(1, chunk_size)
    step_overlap = min(max(0, overlap), size - 1)
    length = len(text)

    start = 0
    idx = 0
    while start < length:
        end = min(length, start + size)
        window = text[start:end].strip()
        if window:
            chunks.append(TextChunk(idx=idx, text=window, start=start, end=end))
            idx += 1

        if end >= length:
            break

        next_start = start + (size - step_overlap)
        if next_start <= start:
            next_start = end
        start = next_start

    return chunks


def stitch_chunks(texts: list[str], max_overlap: int = 100, min_overlap: int = 20) -> str:
    """
    Join consecutive chunk texts, dropping text repeated across a boundary.

    For each boundary the longest suffix of the text so far that equals a
    prefix of the next chunk (between ``min_overlap`` and ``max_overlap``
    characters) is removed. Without such a match the chunks are joined
    with a single space.
    """
    if not texts:
        return ""

    result = texts[0]
    for current in texts[1:]:
        if not current:
            continue
        overlap_length = 0
        longest = min(max_overlap, len(result), len(current))
        for candidate in range(longest, min_overlap, -1):
            if result[-candidate:] == current[:candidate]:
                overlap_length = candidate
                break

        if overlap_length:
            result += current[overlap_length:]
        else:
            result = f"{result} {current}"

    return result
