"""Chunked uploader for growing byte sources.

This module provides the upload engine: it polls a ByteSource for the next
chunk, PUTs it with Content-Range framing, retries transient failures with
a fixed delay and halts while paused or offline.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from chunkstream.config_manager.upload_options import UploadOptions
from chunkstream.connection_management.connectivity_gate import ConnectivityGate
from chunkstream.connection_management.connectivity_monitor import (
    ConnectivityMonitor,
)
from chunkstream.const import (
    BYTES_PER_KIB,
    CONTENT_TYPE,
    SUCCESSFUL_CHUNK_UPLOAD_CODES,
    TEMPORARY_ERROR_CODES,
)
from chunkstream.event_emitter import UploadEmitter
from chunkstream.exceptions import EndpointResolutionError, TransportError
from chunkstream.models import (
    AttemptEvent,
    AttemptFailureEvent,
    ErrorEvent,
    ProgressEvent,
    UploadState,
)
from chunkstream.transport import AiohttpTransport, ChunkTransport

from .byte_source import ByteSource
from .chunk_selector import ChunkRange, select_chunk
from .retry_manager import RetryManager

logger = logging.getLogger(__name__)


class ChunkedUploader:
    """Upload a growing byte source in sequential chunks.

    Must be constructed inside a running event loop. Use ``create_upload``
    to construct, resolve the endpoint and start sending in one step.

    ``add_chunk``, ``finish``, ``pause`` and ``resume`` may be called from
    other threads. Connectivity signals and ``on`` must be used from the
    event loop thread.
    """

    def __init__(
        self,
        options: UploadOptions,
        transport: ChunkTransport | None = None,
    ) -> None:
        """Initialize the uploader.

        Args:
            options: Validated upload options
            transport: Transport used to PUT chunks; an AiohttpTransport
                owned by this uploader is created when omitted
        """
        self._options = options
        self._loop = asyncio.get_running_loop()
        self._emitter = UploadEmitter(loop=self._loop)
        self._source = ByteSource()
        self._retry_manager = RetryManager(
            options.attempts, options.delay_before_attempt
        )
        self._gate = ConnectivityGate(
            self._emitter, on_restored=self._schedule_send_loop
        )
        self._monitor: ConnectivityMonitor | None = None
        if options.connectivity_check_url is not None:
            self._monitor = ConnectivityMonitor(
                self._gate,
                options.connectivity_check_url,
                timeout=options.connectivity_check_timeout,
                check_interval=options.connectivity_check_interval,
            )

        self._owns_transport = transport is None
        self._transport: ChunkTransport = transport or AiohttpTransport(
            request_timeout=options.request_timeout
        )

        self._endpoint_value: str | None = None
        self._cursor = 0
        self._chunk_number = 0
        self._current_chunk: ChunkRange | None = None
        self._paused = False
        self._state = UploadState.RESOLVING_ENDPOINT

        self._send_task: asyncio.Task | None = None
        self._data_available = asyncio.Event()
        self._done = asyncio.Event()
        self._released = False
        self._closed = False
        self._last_percent = 0

    @property
    def state(self) -> UploadState:
        """Current lifecycle state."""
        return self._state

    @property
    def cursor(self) -> int:
        """Bytes acknowledged by the server so far."""
        return self._cursor

    @property
    def chunk_number(self) -> int:
        """Index of the chunk being (or next to be) sent."""
        return self._chunk_number

    @property
    def endpoint(self) -> str | None:
        """Resolved endpoint URL, None until resolution finishes."""
        return self._endpoint_value

    @property
    def paused(self) -> bool:
        """Whether the upload is paused."""
        return self._paused

    @property
    def offline(self) -> bool:
        """Whether the connectivity gate reports offline."""
        return not self._gate.is_online()

    @property
    def connectivity(self) -> ConnectivityGate:
        """Gate to feed online/offline signals into."""
        return self._gate

    async def start(self) -> None:
        """Resolve the endpoint and start the send loop.

        Raises:
            EndpointResolutionError: If the endpoint resolver fails.
        """
        await self._resolve_endpoint()
        self._state = UploadState.WAITING_FOR_CHUNK
        logger.info(f"Starting chunked upload to {self._endpoint_value}")
        if self._monitor is not None:
            await self._monitor.start()
        self._start_send_loop()

    def add_chunk(self, data: bytes) -> None:
        """Append produced data to the upload source.

        Raises:
            InvalidStateError: If ``finish`` has already been called.
        """
        self._source.append(data)
        self._notify_data_available()

    def finish(self) -> None:
        """Signal that no more data will be added."""
        self._source.mark_complete()
        logger.debug(f"Source complete at {self._source.size()} bytes")
        self._notify_data_available()

    def pause(self) -> None:
        """Stop sending after any in-flight request settles."""
        if not self._paused:
            logger.info("Pausing upload")
        self._paused = True

    def resume(self) -> None:
        """Resume a paused upload."""
        if self._paused:
            logger.info("Resuming upload")
            self._paused = False
            self._schedule_send_loop()

    def on(self, event: str, handler: Callable[..., Any]) -> Callable[..., Any]:
        """Subscribe to an upload event.

        Args:
            event: One of the UploadEmitter event names.
            handler: Callable or coroutine function invoked with the payload.

        Returns:
            The handler, so this can be used as a decorator.

        Raises:
            ValueError: If the event name is unknown.
        """
        if event not in UploadEmitter.EVENT_NAMES:
            raise ValueError(f"Unknown upload event: {event!r}")
        self._emitter.on(event, handler)
        return handler

    async def wait(self) -> UploadState:
        """Wait until the upload succeeds, fails or is closed.

        Returns:
            The state at that point; not terminal if ``close`` came first.
        """
        await self._done.wait()
        return self._state

    @property
    def closed(self) -> bool:
        """Whether ``close`` has been called."""
        return self._closed

    async def close(self) -> None:
        """Stop the send loop and release the transport and monitor.

        A closed uploader never sends again, even if resumed or brought
        back online.
        """
        self._closed = True
        self._done.set()
        if self._send_task is not None and not self._send_task.done():
            self._send_task.cancel()
            try:
                await self._send_task
            except asyncio.CancelledError:
                pass
        await self._release_resources()

    async def _resolve_endpoint(self) -> None:
        """Endpoint is either a URL or a coroutine function resolving to one."""
        endpoint = self._options.endpoint
        if isinstance(endpoint, str):
            self._endpoint_value = endpoint
            return

        try:
            value = await endpoint()
        except Exception as e:
            self._state = UploadState.FAILED
            raise EndpointResolutionError(
                f"Failed to resolve upload endpoint: {e}"
            ) from e

        if not isinstance(value, str) or not value:
            self._state = UploadState.FAILED
            raise EndpointResolutionError(
                f"Endpoint resolver returned {value!r}, expected a URL string"
            )
        self._endpoint_value = value

    def _is_halted(self) -> bool:
        return self._paused or not self._gate.is_online()

    def _notify_data_available(self) -> None:
        if not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._data_available.set)

    def _schedule_send_loop(self) -> None:
        if not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._start_send_loop)

    def _start_send_loop(self) -> None:
        """Start the send loop unless it is already running or finished."""
        if self._closed or self._state.is_terminal or self._endpoint_value is None:
            return
        if self._send_task is not None and not self._send_task.done():
            return
        self._send_task = self._loop.create_task(self._send_loop())

    async def _send_loop(self) -> None:
        """Send chunks one at a time until halted or terminal."""
        while not self._state.is_terminal:
            if self._is_halted():
                logger.info(
                    f"Upload halted at {self._cursor} bytes "
                    f"(paused={self._paused}, offline={self.offline})"
                )
                return

            if self._current_chunk is None:
                self._state = UploadState.WAITING_FOR_CHUNK
                chunk = await self._wait_for_chunk()
                if chunk is None:
                    continue
                if chunk.size == 0:
                    self._succeed()
                    break
                self._current_chunk = chunk

            await self._send_current_chunk()

        await self._release_resources()

    async def _wait_for_chunk(self) -> ChunkRange | None:
        """Poll the source until a chunk is selectable.

        Returns:
            The selected chunk, or None if the upload was halted while
            waiting.
        """
        while True:
            self._data_available.clear()
            size, complete = self._source.snapshot()
            chunk = select_chunk(
                size, self._cursor, complete, self._options.max_chunk_bytes
            )
            if chunk is not None:
                return chunk

            try:
                await asyncio.wait_for(
                    self._data_available.wait(), self._options.poll_interval
                )
            except asyncio.TimeoutError:
                pass
            if self._is_halted():
                return None

    async def _send_current_chunk(self) -> None:
        """Send the current chunk once and handle the outcome."""
        chunk = self._current_chunk
        assert chunk is not None

        # Completion may have arrived since selection, e.g. during a retry
        size, complete = self._source.snapshot()
        total_size = size if complete and chunk.end == size else None
        headers = {
            **self._options.headers,
            "Content-Type": CONTENT_TYPE,
            "Content-Range": chunk.content_range(total_size),
        }
        body = self._source.slice(chunk.start, chunk.end)

        self._state = UploadState.SENDING
        self._emitter.emit(
            UploadEmitter.ATTEMPT,
            AttemptEvent(
                chunk_number=self._chunk_number,
                chunk_size=chunk.size / BYTES_PER_KIB,
            ),
        )
        logger.debug(
            f"Sending chunk {self._chunk_number}: {headers['Content-Range']}"
        )

        try:
            status = await self._transport.put(
                self._endpoint_value,
                headers,
                body,
                on_bytes_sent=lambda sent: self._report_progress(chunk.start + sent),
            )
        except TransportError as e:
            logger.warning(f"Chunk {self._chunk_number} failed: {e}")
            await self._handle_transient_failure()
            return
        except Exception as e:
            logger.error(
                f"Unexpected error uploading chunk {self._chunk_number}: {e}",
                exc_info=True,
            )
            self._fail(f"Unexpected error uploading chunk {self._chunk_number}: {e}")
            return

        if status in SUCCESSFUL_CHUNK_UPLOAD_CODES:
            self._on_chunk_accepted(chunk)
        elif status in TEMPORARY_ERROR_CODES:
            logger.warning(f"Chunk {self._chunk_number} failed: HTTP {status}")
            await self._handle_transient_failure()
        elif self._is_halted():
            logger.info(
                f"Ignoring HTTP {status} for chunk {self._chunk_number} "
                "while upload is halted"
            )
        else:
            self._fail(f"Server responded with {status}. Stopping upload.")

    def _on_chunk_accepted(self, chunk: ChunkRange) -> None:
        self._cursor += chunk.size
        self._retry_manager.reset()
        self._chunk_number += 1
        self._current_chunk = None

        size, complete = self._source.snapshot()
        logger.debug(f"Uploaded chunk: {self._cursor}/{size} bytes")
        self._report_progress(self._cursor, always=True)

        if complete and self._cursor == size:
            self._succeed()

    def _report_progress(self, bytes_done: int, always: bool = False) -> None:
        """Emit ``progress`` for ``bytes_done``, never below the last value.

        The source keeps growing, and retries resend bytes already counted,
        so a fresh percentage can be lower than one already reported.
        Intermediate reports are only emitted when the percentage rises.
        """
        size = self._source.size()
        if size == 0:
            return
        percent = max(_percent(bytes_done, size), self._last_percent)
        if percent == self._last_percent and not always:
            return
        self._last_percent = percent
        self._emitter.emit(UploadEmitter.PROGRESS, ProgressEvent(percent=percent))

    async def _handle_transient_failure(self) -> None:
        """Retry the current chunk after the configured delay, or fail."""
        if self._is_halted():
            logger.info(
                f"Discarding failed attempt for chunk {self._chunk_number} "
                "while upload is halted"
            )
            return

        decision = self._retry_manager.on_failure(self._chunk_number)
        if not decision.retry:
            self._fail(
                f"An error occurred uploading chunk {self._chunk_number}. "
                "No more retries, stopping upload"
            )
            return

        self._emitter.emit(
            UploadEmitter.ATTEMPT_FAILURE,
            AttemptFailureEvent(
                message=(
                    f"An error occurred uploading chunk {self._chunk_number}. "
                    f"{decision.attempts_left} retries left."
                ),
                chunk_number=self._chunk_number,
                attempts_left=decision.attempts_left,
            ),
        )
        self._state = UploadState.RETRY_BACKOFF
        await asyncio.sleep(decision.delay)

    def _succeed(self) -> None:
        self._state = UploadState.SUCCESS
        logger.info(
            f"Upload complete: {self._cursor} bytes in {self._chunk_number} chunks"
        )
        self._emitter.emit(UploadEmitter.SUCCESS)
        self._done.set()

    def _fail(self, message: str) -> None:
        self._state = UploadState.FAILED
        self._current_chunk = None
        logger.error(f"Upload failed at {self._cursor} bytes: {message}")
        self._emitter.emit(
            UploadEmitter.ERROR,
            ErrorEvent(
                message=message,
                chunk_number=self._chunk_number,
                attempts=self._retry_manager.attempt_count,
            ),
        )
        self._done.set()

    async def _release_resources(self) -> None:
        if self._released:
            return
        self._released = True
        if self._monitor is not None:
            await self._monitor.stop()
        if self._owns_transport:
            await self._transport.close()


def _percent(bytes_done: int, total: int) -> int:
    """Percentage of ``total`` rounded half up, in [0, 100]."""
    return min(100, int(bytes_done * 100 / total + 0.5))


async def create_upload(
    options: UploadOptions | None = None,
    *,
    transport: ChunkTransport | None = None,
    **kwargs: Any,
) -> ChunkedUploader:
    """Create an upload, resolve its endpoint and start sending.

    Args:
        options: Upload options; built from ``kwargs`` when omitted.
        transport: Transport used to PUT chunks.
        **kwargs: UploadOptions fields, overriding ``options``.

    Returns:
        The running ChunkedUploader.

    Raises:
        pydantic.ValidationError: If the options are invalid.
        EndpointResolutionError: If the endpoint cannot be resolved.
    """
    if options is None:
        options = UploadOptions(**kwargs)
    elif kwargs:
        options = UploadOptions(**{**options.model_dump(), **kwargs})

    uploader = ChunkedUploader(options, transport=transport)
    try:
        await uploader.start()
    except Exception:
        await uploader.close()
        raise
    return uploader
