"""Single-timer debouncing of restart requests."""

import asyncio
import logging
from collections.abc import Callable

from dwatcher_core.models import ChangeEvent

logger = logging.getLogger(__name__)


class DebounceController:
    """Coalesces bursts of change events into one restart.

    Every qualifying event cancels the pending timer and arms a new one, so
    the action runs once per quiet period, timed from the last event. While
    ``is_suppressed()`` returns True (a restart is in progress), events are
    dropped without touching the timer.

    Must be used from the event loop thread.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        debounce_ms: int,
        action: Callable[[], None],
        is_suppressed: Callable[[], bool] | None = None,
    ):
        """Initialize controller.

        Args:
            loop: Event loop used for scheduling
            debounce_ms: Quiet period in milliseconds
            action: Called once when the quiet period elapses
            is_suppressed: Guard; events are dropped while it returns True
        """
        self.loop = loop
        self.debounce_ms = debounce_ms
        self.action = action
        self.is_suppressed = is_suppressed or (lambda: False)
        self._timer: asyncio.TimerHandle | None = None
        self._last_event: ChangeEvent | None = None

    @property
    def pending(self) -> bool:
        """Whether a restart is armed."""
        return self._timer is not None

    @property
    def last_event(self) -> ChangeEvent | None:
        """Most recent event that (re)armed the timer."""
        return self._last_event

    def on_qualifying_event(self, event: ChangeEvent) -> bool:
        """Register a change event.

        Args:
            event: The change that passed path filtering

        Returns:
            True if the timer was (re)armed, False if the event was dropped
        """
        if self.is_suppressed():
            logger.debug(f"Dropping {event.event_type} on {event.path}: restart in progress")
            return False

        if self._timer is not None:
            self._timer.cancel()

        self._last_event = event
        self._timer = self.loop.call_later(self.debounce_ms / 1000.0, self._fire)
        return True

    def cancel(self) -> None:
        """Cancel the pending restart, if any."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        logger.debug(f"Quiet period of {self.debounce_ms}ms elapsed")
        self.action()
