"""Resumable chunked uploads for growing byte sources."""

from .config_manager.upload_options import UploadOptions
from .event_emitter import UploadEmitter
from .exceptions import (
    ChunkStreamError,
    EndpointResolutionError,
    InvalidStateError,
    TransportError,
)
from .models import (
    AttemptEvent,
    AttemptFailureEvent,
    ErrorEvent,
    ProgressEvent,
    UploadState,
)
from .transport import AiohttpTransport, ChunkTransport
from .upload_management.chunked_uploader import ChunkedUploader, create_upload

__version__ = "0.1.0"

__all__ = [
    "AiohttpTransport",
    "AttemptEvent",
    "AttemptFailureEvent",
    "ChunkStreamError",
    "ChunkTransport",
    "ChunkedUploader",
    "EndpointResolutionError",
    "ErrorEvent",
    "InvalidStateError",
    "ProgressEvent",
    "TransportError",
    "UploadEmitter",
    "UploadOptions",
    "UploadState",
    "create_upload",
]
