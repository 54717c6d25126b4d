"""Online/offline gate consulted before every chunk is sent."""

import logging
import threading
from collections.abc import Callable

from chunkstream.event_emitter import UploadEmitter

logger = logging.getLogger(__name__)


class ConnectivityGate:
    """Tracks connectivity signals and emits ``offline``/``online`` events.

    Without a signal source the gate stays online forever. Signals may come
    from a ConnectivityMonitor or from application code calling
    ``set_offline``/``set_online`` directly.
    """

    def __init__(
        self,
        emitter: UploadEmitter,
        on_restored: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the gate in the online state.

        Args:
            emitter: Emitter used to publish connectivity events.
            on_restored: Called after an offline -> online transition.
        """
        self._emitter = emitter
        self._on_restored = on_restored
        self._online = True
        self._lock = threading.Lock()

    def is_online(self) -> bool:
        """Return whether sending is allowed as far as connectivity goes."""
        return self._online

    def set_offline(self) -> None:
        """Handle an offline signal.

        In-flight requests are left alone; the send loop halts on its next
        gate check.
        """
        with self._lock:
            was_online = self._online
            self._online = False
        if was_online:
            logger.info("Connection lost, suspending upload")
            self._emitter.emit(UploadEmitter.OFFLINE)

    def set_online(self) -> None:
        """Handle an online signal, ignored unless currently offline."""
        with self._lock:
            if self._online:
                return
            self._online = True
        logger.info("Connection restored, resuming upload")
        self._emitter.emit(UploadEmitter.ONLINE)
        if self._on_restored is not None:
            self._on_restored()
