"""Constants for chunked uploads."""

MIN_CHUNK_SIZE = 256 * 1024  # every non-final chunk is a multiple of this
BYTES_PER_KIB = 1024

DEFAULT_MAX_CHUNK_SIZE_KB = 5120  # (5mb)
DEFAULT_ATTEMPTS = 5
DEFAULT_DELAY_BEFORE_ATTEMPT = 1

CHUNK_POLL_INTERVAL_SECONDS = 1.0

SUCCESSFUL_CHUNK_UPLOAD_CODES = frozenset({200, 201, 202, 204, 308})
# These codes imply the same chunk may be retried
TEMPORARY_ERROR_CODES = frozenset({408, 502, 503, 504})

CONTENT_TYPE = "application/octet-stream"
UPLOAD_SLICE_SIZE = 64 * 1024  # body write step for in-request progress

CONNECTIVITY_CHECK_TIMEOUT_SECS = 5.0
CONNECTIVITY_CHECK_INTERVAL_SECS = 10.0

ENV_PREFIX = "CHUNKSTREAM_"
