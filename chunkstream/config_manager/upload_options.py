"""Pydantic models for chunked upload configuration."""

import os
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chunkstream.const import (
    BYTES_PER_KIB,
    CHUNK_POLL_INTERVAL_SECONDS,
    CONNECTIVITY_CHECK_INTERVAL_SECS,
    CONNECTIVITY_CHECK_TIMEOUT_SECS,
    DEFAULT_ATTEMPTS,
    DEFAULT_DELAY_BEFORE_ATTEMPT,
    DEFAULT_MAX_CHUNK_SIZE_KB,
    ENV_PREFIX,
    MIN_CHUNK_SIZE,
)

EndpointResolver = Callable[[], Awaitable[str]]

_ENV_FIELDS = {
    "ENDPOINT": "endpoint",
    "MAX_CHUNK_SIZE": "max_chunk_size",
    "ATTEMPTS": "attempts",
    "DELAY_BEFORE_ATTEMPT": "delay_before_attempt",
    "POLL_INTERVAL": "poll_interval",
    "CONNECTIVITY_CHECK_URL": "connectivity_check_url",
}


class UploadOptions(BaseModel):
    """Options for a single chunked upload.

    Attributes:
        endpoint: upload URL, or a zero-argument coroutine function that
            resolves to one.
        headers: extra headers sent with every chunk request.
        max_chunk_size: maximum chunk size in KiB, a multiple of 256.
        attempts: retries allowed for each chunk before the upload fails.
        delay_before_attempt: seconds to wait before each retry.
        poll_interval: seconds between checks for more data from the
            producer.
        request_timeout: total timeout for each chunk request, in seconds.
        connectivity_check_url: URL probed to detect connectivity loss;
            connectivity is not monitored when unset.
        connectivity_check_interval: seconds between connectivity probes.
        connectivity_check_timeout: timeout of each connectivity probe.
    """

    model_config = ConfigDict(frozen=True)

    endpoint: str | EndpointResolver
    headers: dict[str, str] = Field(default_factory=dict)
    max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE_KB
    attempts: int = DEFAULT_ATTEMPTS
    delay_before_attempt: float = DEFAULT_DELAY_BEFORE_ATTEMPT
    poll_interval: float = CHUNK_POLL_INTERVAL_SECONDS
    request_timeout: float | None = None
    connectivity_check_url: str | None = None
    connectivity_check_interval: float = CONNECTIVITY_CHECK_INTERVAL_SECS
    connectivity_check_timeout: float = CONNECTIVITY_CHECK_TIMEOUT_SECS

    @field_validator("endpoint")
    @classmethod
    def _check_endpoint(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            raise ValueError(
                "endpoint must be defined as a string or a function that "
                "returns an awaitable"
            )
        return value

    @field_validator("headers", mode="before")
    @classmethod
    def _default_headers(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("max_chunk_size", "attempts", mode="before")
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("must be an integer, not a boolean")
        return value

    @field_validator("max_chunk_size")
    @classmethod
    def _check_max_chunk_size(cls, value: int) -> int:
        granularity_kb = MIN_CHUNK_SIZE // BYTES_PER_KIB
        if value <= 0 or value % granularity_kb != 0:
            raise ValueError(
                f"max_chunk_size must be a positive number in multiples of "
                f"{granularity_kb}, got {value}"
            )
        return value

    @field_validator("attempts")
    @classmethod
    def _check_attempts(cls, value: int) -> int:
        if value <= 0:
            raise ValueError(f"attempts must be a positive number, got {value}")
        return value

    @field_validator("delay_before_attempt")
    @classmethod
    def _check_delay(cls, value: float) -> float:
        if value < 0:
            raise ValueError(
                f"delay_before_attempt must be a non-negative number, got {value}"
            )
        return value

    @field_validator(
        "poll_interval",
        "request_timeout",
        "connectivity_check_interval",
        "connectivity_check_timeout",
    )
    @classmethod
    def _check_positive(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            raise ValueError(f"must be a positive number, got {value}")
        return value

    @property
    def max_chunk_bytes(self) -> int:
        """Maximum chunk size in bytes."""
        return self.max_chunk_size * BYTES_PER_KIB

    @classmethod
    def from_env(cls, **overrides: Any) -> "UploadOptions":
        """Build options from ``CHUNKSTREAM_*`` environment variables.

        Args:
            **overrides: Values that take precedence over the environment.

        Returns:
            Validated UploadOptions.

        Raises:
            pydantic.ValidationError: If a value is missing or invalid.
        """
        values: dict[str, Any] = {}
        for env_name, field_name in _ENV_FIELDS.items():
            env_value = os.getenv(f"{ENV_PREFIX}{env_name}")
            if env_value is not None:
                values[field_name] = env_value
        values.update(overrides)
        return cls(**values)
