"""Maintenance window gate."""

import logging
import threading

logger = logging.getLogger(__name__)


class MaintenanceGate:
    """Global switch that rejects every upload while closed.

    Only transitions are logged; setting the current value again does
    nothing.
    """

    def __init__(self, closed: bool = False):
        self._closed = closed
        self._lock = threading.Lock()

    @property
    def is_closed(self) -> bool:
        return self._closed

    def set(self, closed: bool) -> bool:
        """Move the gate to ``closed``.

        Returns:
            True if the state changed, False if it already matched
        """
        with self._lock:
            if self._closed == closed:
                return False
            self._closed = closed

        if closed:
            logger.info("Entering maintenance mode; uploads are rejected")
        else:
            logger.info("Leaving maintenance mode; uploads are accepted")
        return True
