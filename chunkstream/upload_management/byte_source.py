"""Append-only byte buffer fed by a producer while an upload runs."""

from __future__ import annotations

import threading

from chunkstream.exceptions import InvalidStateError


class ByteSource:
    """Append-only byte buffer with a one-shot completion flag.

    - Single writer (the producer calling ``append``/``mark_complete``).
    - Single reader (the uploader's send loop).

    The writer may run on another thread, so every read and write holds
    the same lock.
    """

    def __init__(self) -> None:
        """Initialize an empty, incomplete source."""
        self._buffer = bytearray()
        self._complete = False
        self._lock = threading.Lock()

    def append(self, data: bytes) -> None:
        """Append data to the end of the source.

        :param data: the bytes to append
        :type data: bytes
        :raises InvalidStateError: if the source has been marked complete
        """
        with self._lock:
            if self._complete:
                raise InvalidStateError("cannot append to a completed source")
            if data:
                self._buffer += data

    def mark_complete(self) -> None:
        """Signal that no more data will be appended."""
        with self._lock:
            self._complete = True

    def size(self) -> int:
        """Return the number of bytes appended so far."""
        with self._lock:
            return len(self._buffer)

    def is_complete(self) -> bool:
        """Return whether the producer has finished."""
        with self._lock:
            return self._complete

    def snapshot(self) -> tuple[int, bool]:
        """Return ``(size, complete)`` read under one lock acquisition."""
        with self._lock:
            return len(self._buffer), self._complete

    def slice(self, start: int, end: int) -> bytes:
        """Return a copy of the bytes in ``[start, end)``."""
        with self._lock:
            return bytes(self._buffer[start:end])
