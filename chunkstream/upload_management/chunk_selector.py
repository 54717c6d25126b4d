"""Chunk boundary selection over a source whose final size is unknown."""

from __future__ import annotations

from dataclasses import dataclass

from chunkstream.const import MIN_CHUNK_SIZE


@dataclass(frozen=True)
class ChunkRange:
    """Byte range ``[start, end)`` of one chunk request."""

    start: int
    end: int

    @property
    def size(self) -> int:
        """Number of bytes in the chunk."""
        return self.end - self.start

    def content_range(self, total_size: int | None) -> str:
        """Render the ``Content-Range`` header value.

        Args:
            total_size: Final size of the upload, or None while it is unknown.

        Returns:
            Header value such as ``bytes 0-262143/*``.
        """
        total = "*" if total_size is None else str(total_size)
        return f"bytes {self.start}-{self.end - 1}/{total}"


def _nearest_multiple(size: int, granularity: int) -> int:
    return granularity * (size // granularity)


def select_chunk(
    source_size: int,
    cursor: int,
    complete: bool,
    max_chunk_bytes: int,
    min_chunk_bytes: int = MIN_CHUNK_SIZE,
) -> ChunkRange | None:
    """Select the next chunk to send, if any.

    Must be re-evaluated on every poll since ``source_size`` grows while
    the producer appends.

    Args:
        source_size: Bytes available in the source so far.
        cursor: Bytes already acknowledged by the server.
        complete: Whether the producer has finished.
        max_chunk_bytes: Upper bound on the chunk size.
        min_chunk_bytes: Granularity of every non-final chunk.

    Returns:
        The next ChunkRange, or None when more data is needed first. A
        zero-length final range means everything has already been sent.
    """
    remaining = source_size - cursor

    if complete and remaining < min_chunk_bytes:
        return ChunkRange(cursor, cursor + remaining)

    if remaining >= min_chunk_bytes:
        if remaining >= max_chunk_bytes:
            size = max_chunk_bytes
        else:
            # Withhold the tail until a full unit or completion arrives
            size = _nearest_multiple(remaining, min_chunk_bytes)
        return ChunkRange(cursor, cursor + size)

    return None
