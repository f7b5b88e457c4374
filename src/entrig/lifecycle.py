"""
Foreground tracking.

Holds a non-owning reference to the surface (activity, window, view) the
host reports as resumed, so the SDK can tell whether the app is in the
foreground and where to show a consent prompt without keeping the surface
alive.
"""

from __future__ import annotations

import logging
import threading
import weakref
from typing import Any

from entrig.exceptions import ValidationError

logger = logging.getLogger(__name__)


class ForegroundTracker:
    """Current foreground surface slot, updated by host lifecycle events."""

    def __init__(self) -> None:
        self._current: weakref.ReferenceType | None = None
        self._lock = threading.Lock()

    @property
    def current(self) -> Any | None:
        """The resumed surface, or None if backgrounded or collected."""
        with self._lock:
            return self._current() if self._current is not None else None

    @property
    def in_foreground(self) -> bool:
        return self.current is not None

    def resumed(self, surface: Any) -> None:
        """
        ``surface`` became the foreground surface.

        Raises:
            ValidationError: If ``surface`` does not support weak references
        """
        try:
            ref = weakref.ref(surface)
        except TypeError as e:
            raise ValidationError(
                f"Surface of type {type(surface).__name__} must support weak references"
            ) from e
        with self._lock:
            self._current = ref
        logger.debug("Surface resumed", extra={"surface": type(surface).__name__})

    def left(self, surface: Any) -> None:
        """``surface`` was paused or destroyed; clears the slot if it is current."""
        with self._lock:
            if self._current is not None and self._current() is surface:
                self._current = None
