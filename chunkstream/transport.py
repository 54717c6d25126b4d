"""HTTP transport used to PUT chunks."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Protocol

import aiohttp

from chunkstream.const import UPLOAD_SLICE_SIZE
from chunkstream.exceptions import TransportError

logger = logging.getLogger(__name__)

BytesSentCallback = Callable[[int], None]


class ChunkTransport(Protocol):
    """Performs one PUT request at a time."""

    async def put(
        self,
        url: str,
        headers: dict[str, str],
        body: bytes,
        on_bytes_sent: BytesSentCallback | None = None,
    ) -> int:
        """Send ``body`` and return the response status code.

        ``on_bytes_sent``, when given, may be called with the cumulative
        number of body bytes written so far while the request is running.

        Raises:
            TransportError: If no HTTP response was received.
        """
        ...

    async def close(self) -> None:
        """Release any resources held by the transport."""
        ...


async def _iter_body(
    body: bytes, on_bytes_sent: BytesSentCallback, slice_size: int
) -> AsyncIterator[bytes]:
    """Yield ``body`` in slices, reporting each one once aiohttp consumed it."""
    view = memoryview(body)
    sent = 0
    for start in range(0, len(body), slice_size):
        piece = view[start : start + slice_size]
        yield bytes(piece)
        sent += len(piece)
        on_bytes_sent(sent)


class AiohttpTransport:
    """ChunkTransport backed by an aiohttp ClientSession."""

    def __init__(
        self,
        client_session: aiohttp.ClientSession | None = None,
        request_timeout: float | None = None,
        slice_size: int = UPLOAD_SLICE_SIZE,
    ) -> None:
        """Initialize the transport.

        Args:
            client_session: Session to send requests with. When omitted a
                session is created lazily and closed by ``close()``.
            request_timeout: Total timeout in seconds for each request,
                None for aiohttp's default.
            slice_size: Bytes written per step when reporting progress.
        """
        self._session = client_session
        self._owns_session = client_session is None
        self._timeout = (
            aiohttp.ClientTimeout(total=request_timeout)
            if request_timeout is not None
            else None
        )
        self._slice_size = slice_size

    async def put(
        self,
        url: str,
        headers: dict[str, str],
        body: bytes,
        on_bytes_sent: BytesSentCallback | None = None,
    ) -> int:
        """PUT a chunk and return the HTTP status.

        With ``on_bytes_sent`` the body is streamed in slices with an
        explicit Content-Length, so the request is not chunk-encoded.

        Args:
            url: Upload endpoint
            headers: Request headers, including Content-Range
            body: Raw chunk bytes
            on_bytes_sent: Called with the cumulative bytes written

        Returns:
            The response status code.

        Raises:
            TransportError: On connection errors and timeouts.
        """
        if self._session is None:
            self._session = aiohttp.ClientSession()

        data: bytes | AsyncIterator[bytes] = body
        if on_bytes_sent is not None:
            headers = {**headers, "Content-Length": str(len(body))}
            data = _iter_body(body, on_bytes_sent, self._slice_size)

        kwargs = {} if self._timeout is None else {"timeout": self._timeout}
        try:
            async with self._session.put(
                url, headers=headers, data=data, **kwargs
            ) as response:
                return response.status
        except aiohttp.ClientError as e:
            raise TransportError(f"Network error during PUT: {e}") from e
        except asyncio.TimeoutError as e:
            raise TransportError("PUT request timed out") from e

    async def close(self) -> None:
        """Close the session if this transport created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
            logger.debug("Closed transport session")
