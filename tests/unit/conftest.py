"""Shared fixtures for chunkstream unit tests."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import pytest

KIB = 1024
TEST_ENDPOINT = "http://upload.test/session/abc"


@dataclass
class RecordedRequest:
    url: str
    headers: dict[str, str]
    body: bytes

    @property
    def content_range(self) -> str:
        return self.headers["Content-Range"]


class FakeTransport:
    """In-memory ChunkTransport with scripted responses.

    Each entry of ``responses`` is either a status code or an exception to
    raise. Once the script runs out ``default_status`` is returned.
    """

    def __init__(self, responses: list[int | BaseException] | None = None) -> None:
        self.requests: list[RecordedRequest] = []
        self.responses = list(responses or [])
        self.default_status = 200
        self.closed = False
        self.before_response: Callable[[int], Awaitable[None]] | None = None
        # body slices reported through on_bytes_sent, 0 disables reporting
        self.progress_slices = 0

    async def put(
        self,
        url: str,
        headers: dict[str, str],
        body: bytes,
        on_bytes_sent: Callable[[int], None] | None = None,
    ) -> int:
        self.requests.append(RecordedRequest(url, dict(headers), body))
        if on_bytes_sent is not None and self.progress_slices:
            step = max(1, len(body) // self.progress_slices)
            for sent in range(step, len(body) + 1, step):
                on_bytes_sent(sent)

        if self.before_response is not None:
            await self.before_response(len(self.requests))
        response = self.responses.pop(0) if self.responses else self.default_status
        if isinstance(response, BaseException):
            raise response
        return response

    async def close(self) -> None:
        self.closed = True

    @property
    def uploaded(self) -> bytes:
        return b"".join(request.body for request in self.requests)


class EventCapture:
    """Records every upload event as ``(name, payload)``."""

    EVENTS = (
        "attempt",
        "attemptFailure",
        "error",
        "offline",
        "online",
        "progress",
        "success",
    )

    def __init__(self) -> None:
        self.received: list[tuple[str, Any]] = []

    def attach(self, uploader: Any) -> EventCapture:
        for name in self.EVENTS:
            uploader.on(name, self._make_handler(name))
        return self

    def _make_handler(self, name: str) -> Callable[..., None]:
        def handler(*args: Any) -> None:
            self.received.append((name, args[0] if args else None))

        return handler

    def payloads(self, name: str) -> list[Any]:
        return [payload for event, payload in self.received if event == name]

    def names(self) -> list[str]:
        return [event for event, _ in self.received]


async def wait_until(
    predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.005
) -> None:
    """Poll ``predicate`` until it holds or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not met before timeout")
        await asyncio.sleep(interval)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def events() -> EventCapture:
    return EventCapture()


@pytest.fixture
def fast_options() -> dict[str, Any]:
    """Options that keep polling and backoff short."""
    return {
        "endpoint": TEST_ENDPOINT,
        "poll_interval": 0.01,
        "delay_before_attempt": 0,
    }


@pytest.fixture
def transport_factory() -> Callable[..., FakeTransport]:
    """Factory for transports with scripted responses."""
    return FakeTransport


@pytest.fixture(name="wait_until")
def wait_until_fixture() -> Callable[..., Awaitable[None]]:
    return wait_until
