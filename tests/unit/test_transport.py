"""Tests for AiohttpTransport."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from chunkstream.exceptions import TransportError
from chunkstream.transport import AiohttpTransport

URL = "http://upload.test/session"
HEADERS = {"Content-Range": "bytes 0-2/3"}


def _mock_session(status: int = 200) -> MagicMock:
    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=None)

    session = MagicMock()
    session.put = MagicMock(return_value=mock_response)
    session.close = AsyncMock()
    return session


@pytest.mark.asyncio
async def test_put_returns_status() -> None:
    session = _mock_session(308)
    transport = AiohttpTransport(client_session=session, request_timeout=30)

    assert await transport.put(URL, HEADERS, b"abc") == 308

    args, kwargs = session.put.call_args
    assert args == (URL,)
    assert kwargs["headers"] == HEADERS
    assert kwargs["data"] == b"abc"
    assert kwargs["timeout"].total == 30


@pytest.mark.asyncio
async def test_put_without_timeout_uses_session_default() -> None:
    session = _mock_session()
    transport = AiohttpTransport(client_session=session)

    await transport.put(URL, HEADERS, b"abc")

    assert "timeout" not in session.put.call_args.kwargs


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        aiohttp.ClientConnectionError("reset"),
        aiohttp.ServerDisconnectedError(),
        asyncio.TimeoutError(),
    ],
)
async def test_network_failures_raise_transport_error(error) -> None:
    session = _mock_session()
    session.put = MagicMock(side_effect=error)
    transport = AiohttpTransport(client_session=session)

    with pytest.raises(TransportError) as exc_info:
        await transport.put(URL, HEADERS, b"abc")
    assert exc_info.value.__cause__ is error


@pytest.mark.asyncio
async def test_close_keeps_injected_session() -> None:
    session = _mock_session()
    transport = AiohttpTransport(client_session=session)

    await transport.close()

    session.close.assert_not_called()


@pytest.mark.asyncio
async def test_owned_session_created_lazily_and_closed() -> None:
    session = _mock_session(201)
    with patch(
        "chunkstream.transport.aiohttp.ClientSession", return_value=session
    ) as session_cls:
        transport = AiohttpTransport()
        session_cls.assert_not_called()

        assert await transport.put(URL, HEADERS, b"abc") == 201
        await transport.close()

    session_cls.assert_called_once_with()
    session.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_put_streams_body_and_reports_bytes_sent() -> None:
    session = _mock_session(200)
    transport = AiohttpTransport(client_session=session, slice_size=4)
    sent = []

    status = await transport.put(URL, HEADERS, b"0123456789", on_bytes_sent=sent.append)
    assert status == 200

    _, kwargs = session.put.call_args
    assert kwargs["headers"] == {**HEADERS, "Content-Length": "10"}
    assert sent == []

    slices = [piece async for piece in kwargs["data"]]
    assert slices == [b"0123", b"4567", b"89"]
    assert sent == [4, 8, 10]
    assert HEADERS == {"Content-Range": "bytes 0-2/3"}
