"""
Routing of parsed notifications to host observers.

One foreground observer and one opened observer may be registered at a time;
setting a new one replaces the previous one. Opened notifications also fill a
single-slot initial-event latch that answers "did this process start from a
notification tap" exactly once.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from entrig.dispatch import Dispatcher
from entrig.models import NotificationEvent

logger = logging.getLogger(__name__)

NotificationListener = Callable[[NotificationEvent], None]


class NotificationRouter:
    """Dispatches notification events to observers on the ui context."""

    def __init__(self, dispatcher: Dispatcher, show_foreground_notification: bool = True):
        self.dispatcher = dispatcher
        self.show_foreground_notification = show_foreground_notification
        self._foreground_listener: NotificationListener | None = None
        self._opened_listener: NotificationListener | None = None
        self._initial_event: NotificationEvent | None = None
        self._initial_consumed = False
        self._lock = threading.Lock()

    def set_foreground_listener(self, listener: NotificationListener | None) -> None:
        self._foreground_listener = listener

    def set_opened_listener(self, listener: NotificationListener | None) -> None:
        self._opened_listener = listener

    def should_display(self, in_foreground: bool) -> bool:
        """Whether an inbound message gets a platform notification."""
        return not in_foreground or self.show_foreground_notification

    def route_foreground(self, event: NotificationEvent) -> None:
        """Deliver a message received while the app is foregrounded."""
        self.dispatcher.post(self._foreground_listener, event)

    def route_opened(self, event: NotificationEvent) -> None:
        """Deliver a notification the user opened; fills the initial latch if still open."""
        with self._lock:
            if not self._initial_consumed:
                self._initial_event = event
        self.dispatcher.post(self._opened_listener, event)

    def consume_initial(self) -> NotificationEvent | None:
        """
        Take the initial event.

        Returns:
            The cached event on the first successful call, None afterwards
        """
        with self._lock:
            event = self._initial_event
            if event is None:
                return None
            self._initial_event = None
            self._initial_consumed = True
            return event
