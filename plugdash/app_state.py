"""Application readiness flag shared between the UI and background start-up."""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class AppState:
    """Tracks whether the application has finished initialising."""

    def __init__(self) -> None:
        self._ready = threading.Event()

    def set_ready(self) -> None:
        """Mark the application as ready."""
        self._ready.set()
        logger.info("Application is now ready")

    def is_ready(self) -> bool:
        """Return True once the application has been marked ready."""
        return self._ready.is_set()