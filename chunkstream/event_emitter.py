"""Event emitter used to notify upload observers."""

import asyncio
import logging
from typing import Any

from pyee.asyncio import AsyncIOEventEmitter

logger = logging.getLogger(__name__)


class UploadEmitter(AsyncIOEventEmitter):
    """Per-upload event emitter.

    Handlers may be plain callables or coroutine functions; coroutines are
    scheduled on the emitter's loop.
    """

    # Uploader -> observers
    ATTEMPT = "attempt"
    # (AttemptEvent)

    # Uploader -> observers
    ATTEMPT_FAILURE = "attemptFailure"
    # (AttemptFailureEvent)

    # Uploader -> observers, terminal
    ERROR = "error"
    # (ErrorEvent)

    # Connectivity gate -> observers
    OFFLINE = "offline"
    ONLINE = "online"
    # (no payload)

    # Uploader -> observers
    PROGRESS = "progress"
    # (ProgressEvent)

    # Uploader -> observers, terminal
    SUCCESS = "success"
    # (no payload)

    EVENT_NAMES = frozenset({
        ATTEMPT,
        ATTEMPT_FAILURE,
        ERROR,
        OFFLINE,
        ONLINE,
        PROGRESS,
        SUCCESS,
    })

    def __init__(self, *, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Initialize the event emitter.

        Args:
            loop: The event loop to use for async event handlers.
        """
        super().__init__(loop=loop)

    def emit(self, event: str, *args: Any, **kwargs: Any) -> bool:
        """Emit an event with logging.

        pyee raises when ``error`` is emitted without listeners. An upload
        failure is reported only through this event, so in that case the
        failure is logged and nothing is raised. Exceptions raised by
        handlers are logged and never reach ``error`` listeners.

        Args:
            event: The event name to emit.
            *args: Positional arguments to pass to handlers.
            **kwargs: Keyword arguments to pass to handlers.

        Returns:
            True if the event had listeners, False otherwise.
        """
        if event == self.ERROR and args and isinstance(args[0], BaseException):
            # pyee re-emits exceptions raised by handlers as "error"; those
            # belong to the observer, not to the upload
            exc = args[0]
            logger.error(
                "Upload event handler raised: %r",
                exc,
                exc_info=(type(exc), exc, exc.__traceback__),
            )
            return False

        args_str = ", ".join(_format_arg(arg) for arg in args)
        logger.debug("EVENT %s: %s", event, args_str)
        if event == self.ERROR and not self.listeners(event):
            logger.warning("Unhandled upload error event: %s", args_str)
            return False
        return super().emit(event, *args, **kwargs)


def _format_arg(arg: Any) -> str:
    if isinstance(arg, bytes) and len(arg) > 20:
        return f"<{len(arg)} bytes>"
    r = repr(arg)
    if len(r) > 100:
        return f"{r[:100]}..."
    return r
