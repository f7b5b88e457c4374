"""
Delivery tracking for inbound push messages.

Suppresses duplicate processing of re-delivered messages and re-delivered
tap intents with bounded recent-id caches, and reports delivered/read
transitions to the backend. Reports are fire-and-forget: a failed report is
logged and dropped.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Any, Callable, Mapping

from entrig.dispatch import Dispatcher
from entrig.models import DeliveryStatus, NotificationEvent

logger = logging.getLogger(__name__)

StatusReporter = Callable[[str, DeliveryStatus], None]


class SeenSet:
    """
    Insertion-ordered set of recent message ids.

    When an insert pushes the size past ``max_size``, the oldest
    ``evict_count`` ids are dropped in one batch.
    """

    def __init__(self, max_size: int = 100, evict_count: int | None = None):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self.evict_count = evict_count if evict_count is not None else max_size // 2
        self._ids: OrderedDict[str, None] = OrderedDict()
        self._lock = threading.Lock()

    def add(self, message_id: str) -> bool:
        """
        Record ``message_id``.

        Returns:
            True if the id was new, False if it was already present
        """
        with self._lock:
            if message_id in self._ids:
                return False
            self._ids[message_id] = None
            if len(self._ids) > self.max_size:
                for _ in range(min(self.evict_count, len(self._ids))):
                    self._ids.popitem(last=False)
            return True

    def __contains__(self, message_id: object) -> bool:
        with self._lock:
            return message_id in self._ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)

    def ids(self) -> list[str]:
        """Snapshot of the ids, oldest first."""
        with self._lock:
            return list(self._ids)


class DeliveryTracker:
    """Dedup and delivered/read reporting for inbound messages."""

    def __init__(
        self,
        reporter: StatusReporter,
        dispatcher: Dispatcher,
        max_seen: int = 100,
    ):
        """
        Initialize delivery tracker.

        Args:
            reporter: Sends a status report to the backend
            dispatcher: Runs reports detached on the background context
            max_seen: Bound of each recent-id cache
        """
        self.reporter = reporter
        self.dispatcher = dispatcher
        self.arrived = SeenSet(max_seen)
        self.opened = SeenSet(max_seen)

    def on_message_arrived(
        self,
        message_id: str | None,
        message_data: Mapping[str, Any],
    ) -> NotificationEvent | None:
        """
        Process an inbound message.

        Args:
            message_id: Transport message id; None disables dedup for this message
            message_data: Raw data-only message

        Returns:
            The parsed event, or None if ``message_id`` was already processed
        """
        if message_id is not None and not self.arrived.add(message_id):
            logger.debug("Skipping duplicate message", extra={"message_id": message_id})
            return None

        event = NotificationEvent.from_message_data(message_data)
        if event.delivery_id is not None:
            self._report(event.delivery_id, DeliveryStatus.DELIVERED)
        return event

    def on_message_opened(self, message_id: str, delivery_id: str | None = None) -> bool:
        """
        Record that the user opened ``message_id``.

        Returns:
            True on the first open, False for a repeat (no report is sent)
        """
        if not self.opened.add(message_id):
            logger.debug("Skipping duplicate open", extra={"message_id": message_id})
            return False

        if delivery_id is not None:
            self._report(delivery_id, DeliveryStatus.READ)
        return True

    def _report(self, delivery_id: str, status: DeliveryStatus) -> None:
        self.dispatcher.fire_and_forget(
            lambda: self.reporter(delivery_id, status),
            description=f"Reporting {status.value} status for {delivery_id}",
        )
