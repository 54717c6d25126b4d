"""Exception classes for chunked uploads."""


class ChunkStreamError(Exception):
    """Base error for chunked uploads."""


class InvalidStateError(ChunkStreamError):
    """Raised when data is appended to a source that is already complete."""


class TransportError(ChunkStreamError):
    """Raised by a transport when a request fails below the HTTP layer."""


class EndpointResolutionError(ChunkStreamError):
    """Raised when the upload endpoint cannot be resolved."""
