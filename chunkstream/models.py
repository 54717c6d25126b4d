"""Models shared by the uploader and its observers."""

from dataclasses import dataclass
from enum import Enum


class UploadState(str, Enum):
    """Lifecycle states for an upload.

    State transitions:
    - RESOLVING_ENDPOINT -> WAITING_FOR_CHUNK
    - WAITING_FOR_CHUNK -> SENDING
    - SENDING -> WAITING_FOR_CHUNK (chunk accepted, more to send)
    - SENDING -> RETRY_BACKOFF -> SENDING (transient failure)
    - SENDING -> SUCCESS
    - SENDING | RETRY_BACKOFF -> FAILED

    Pausing and going offline do not change the state; they halt the send
    loop wherever it is.
    """

    RESOLVING_ENDPOINT = "resolving_endpoint"
    WAITING_FOR_CHUNK = "waiting_for_chunk"
    SENDING = "sending"
    RETRY_BACKOFF = "retry_backoff"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Whether no further requests will be sent."""
        return self in (UploadState.SUCCESS, UploadState.FAILED)


@dataclass(frozen=True)
class AttemptEvent:
    """Payload of the ``attempt`` event.

    Attributes:
        chunk_number: Zero-based index of the chunk being sent.
        chunk_size: Size of the chunk in KiB.
    """

    chunk_number: int
    chunk_size: float


@dataclass(frozen=True)
class AttemptFailureEvent:
    """Payload of the ``attemptFailure`` event."""

    message: str
    chunk_number: int
    attempts_left: int


@dataclass(frozen=True)
class ErrorEvent:
    """Payload of the ``error`` event."""

    message: str
    chunk_number: int
    attempts: int


@dataclass(frozen=True)
class ProgressEvent:
    """Payload of the ``progress`` event, ``percent`` is in [0, 100]."""

    percent: int
