"""Cache backend availability tracking.

One ServiceAvailability instance is owned by the CacheService and shared by
every component that touches the backend. It is written by connection
lifecycle callbacks and read (never awaited) by every cache operation.

Lifecycle:
    CONNECTING --ready--> AVAILABLE --error--> UNAVAILABLE --ready--> AVAILABLE
    any --close--> CLOSED
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class AvailabilityState(str, Enum):
    """Connection state of the cache backend."""

    CONNECTING = "connecting"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    CLOSED = "closed"


class ServiceAvailability:
    """Availability flag plus the manual kill-switch.

    The manual switch forces degraded mode regardless of connectivity so the
    no-cache path can be exercised against a healthy backend.
    """

    def __init__(self, manually_disabled: bool = False) -> None:
        self.manually_disabled = manually_disabled
        self._state = AvailabilityState.CONNECTING
        self._ready = asyncio.Event()
        self._last_error: str | None = None
        self._changed_at = time.time()

    @property
    def state(self) -> AvailabilityState:
        return self._state

    @property
    def is_available(self) -> bool:
        return self._state is AvailabilityState.AVAILABLE

    @property
    def degraded(self) -> bool:
        """True when cache operations must short-circuit to neutral values."""
        return self.manually_disabled or not self.is_available

    def _transition(self, state: AvailabilityState) -> None:
        self._state = state
        self._changed_at = time.time()

    def mark_connecting(self) -> None:
        self._transition(AvailabilityState.CONNECTING)
        logger.debug("Cache backend connecting")

    def mark_ready(self) -> None:
        was_available = self.is_available
        self._transition(AvailabilityState.AVAILABLE)
        self._last_error = None
        self._ready.set()
        if not was_available:
            logger.info("Cache backend ready")

    def mark_error(self, exc: BaseException | str) -> None:
        was_available = self.is_available
        self._transition(AvailabilityState.UNAVAILABLE)
        self._last_error = str(exc)
        self._ready.clear()
        if was_available:
            logger.error(f"Cache backend unavailable: {exc}")

    def mark_closed(self) -> None:
        self._transition(AvailabilityState.CLOSED)
        self._ready.clear()
        logger.info("Cache backend connection closed")

    def disable(self) -> None:
        """Engage the manual kill-switch."""
        self.manually_disabled = True
        logger.warning("Cache manually disabled; all operations run in degraded mode")

    def enable(self) -> None:
        """Release the manual kill-switch."""
        self.manually_disabled = False
        logger.warning("Cache manually re-enabled")

    async def wait_until_ready(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds for the ready signal.

        Returns False on timeout; the application keeps running in degraded
        mode in that case.
        """
        if self.is_available:
            return True
        try:
            await asyncio.wait_for(self._ready.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Cache backend not ready after {timeout:.1f}s - operations will use fallbacks"
            )
            return False
        return True

    def snapshot(self) -> dict[str, Any]:
        """Diagnostic view of the current state."""
        return {
            "state": self._state.value,
            "available": self.is_available,
            "manually_disabled": self.manually_disabled,
            "degraded": self.degraded,
            "last_error": self._last_error,
            "changed_at": self._changed_at,
        }
