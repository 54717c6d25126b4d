"""Tests for UploadOptions validation."""

import pytest
from pydantic import ValidationError

from chunkstream.config_manager.upload_options import UploadOptions

ENDPOINT = "http://upload.test/session"


def test_defaults() -> None:
    options = UploadOptions(endpoint=ENDPOINT)
    assert options.headers == {}
    assert options.max_chunk_size == 5120
    assert options.max_chunk_bytes == 5 * 1024 * 1024
    assert options.attempts == 5
    assert options.delay_before_attempt == 1
    assert options.poll_interval == 1.0
    assert options.connectivity_check_url is None


def test_accepts_resolver_endpoint() -> None:
    async def resolve() -> str:
        return ENDPOINT

    options = UploadOptions(endpoint=resolve)
    assert options.endpoint is resolve


def test_none_headers_become_empty() -> None:
    assert UploadOptions(endpoint=ENDPOINT, headers=None).headers == {}


@pytest.mark.parametrize(
    "overrides",
    [
        {"endpoint": ""},
        {"endpoint": 42},
        {"max_chunk_size": 100},
        {"max_chunk_size": 0},
        {"max_chunk_size": -256},
        {"max_chunk_size": True},
        {"attempts": 0},
        {"attempts": -1},
        {"attempts": False},
        {"delay_before_attempt": -1},
        {"poll_interval": 0},
        {"request_timeout": -5},
        {"headers": "Authorization: x"},
    ],
)
def test_invalid_values_fail_fast(overrides) -> None:
    values = {"endpoint": ENDPOINT, **overrides}
    with pytest.raises(ValidationError):
        UploadOptions(**values)


def test_validation_error_is_value_error() -> None:
    with pytest.raises(ValueError, match="multiples of 256"):
        UploadOptions(endpoint=ENDPOINT, max_chunk_size=100)


def test_missing_endpoint() -> None:
    with pytest.raises(ValidationError):
        UploadOptions()


def test_zero_delay_allowed() -> None:
    options = UploadOptions(endpoint=ENDPOINT, delay_before_attempt=0)
    assert options.delay_before_attempt == 0


def test_options_are_frozen() -> None:
    options = UploadOptions(endpoint=ENDPOINT)
    with pytest.raises(ValidationError):
        options.attempts = 3


def test_from_env(monkeypatch) -> None:
    monkeypatch.setenv("CHUNKSTREAM_ENDPOINT", ENDPOINT)
    monkeypatch.setenv("CHUNKSTREAM_MAX_CHUNK_SIZE", "512")
    monkeypatch.setenv("CHUNKSTREAM_ATTEMPTS", "7")
    monkeypatch.setenv("CHUNKSTREAM_DELAY_BEFORE_ATTEMPT", "0.5")

    options = UploadOptions.from_env(attempts=2)

    assert options.endpoint == ENDPOINT
    assert options.max_chunk_bytes == 512 * 1024
    assert options.attempts == 2
    assert options.delay_before_attempt == 0.5


def test_from_env_validates(monkeypatch) -> None:
    monkeypatch.setenv("CHUNKSTREAM_ENDPOINT", ENDPOINT)
    monkeypatch.setenv("CHUNKSTREAM_MAX_CHUNK_SIZE", "300")
    with pytest.raises(ValidationError):
        UploadOptions.from_env()
