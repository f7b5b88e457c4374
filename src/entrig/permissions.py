"""
Permission-gated registration.

On platforms that need runtime consent before notifications can be shown, a
registration requested while consent is missing is parked until the user
answers the prompt. Registration then proceeds whatever the answer was: the
token is still worth registering, since the user can grant consent later.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from entrig.exceptions import PermissionSurfaceUnavailableError
from entrig.lifecycle import ForegroundTracker
from entrig.models import PendingRegistration, RegistrationResult, ResultHandler
from entrig.platform import PermissionPrompt

logger = logging.getLogger(__name__)

RegisterFn = Callable[[str, str, ResultHandler | None], None]


class PermissionGate:
    """
    Decides whether a registration runs now or waits for consent.

    At most one registration is pending. A second request while a prompt is
    outstanding replaces the first, whose handler is never called.
    """

    def __init__(
        self,
        prompt: PermissionPrompt,
        foreground: ForegroundTracker,
        perform_registration: RegisterFn,
        post: Callable[..., Any],
        handle_permission_automatically: bool = True,
    ):
        """
        Initialize permission gate.

        Args:
            prompt: Platform consent prompt
            foreground: Source of the fallback surface for the prompt
            perform_registration: Starts the actual registration
            post: Delivers results on the ui context
            handle_permission_automatically: Prompt from register() when consent is missing
        """
        self.prompt = prompt
        self.foreground = foreground
        self.perform_registration = perform_registration
        self.post = post
        self.handle_permission_automatically = handle_permission_automatically
        self._pending: PendingRegistration | None = None
        self._permission_callbacks: list[Callable[[bool], None]] = []
        self._lock = threading.Lock()

    @property
    def pending(self) -> PendingRegistration | None:
        return self._pending

    def consent_required(self) -> bool:
        return self.prompt.requires_runtime_consent() and not self.prompt.is_granted()

    def request_registration(
        self,
        user_id: str,
        sdk_label: str,
        handler: ResultHandler | None = None,
        surface: Any | None = None,
    ) -> None:
        """Register now, or park the request and prompt for consent."""
        if not (self.handle_permission_automatically and self.consent_required()):
            self.perform_registration(user_id, sdk_label, handler)
            return

        with self._lock:
            if self._pending is not None:
                logger.debug(
                    "Replacing pending registration",
                    extra={"previous_user_id": self._pending.user_id, "user_id": user_id},
                )
            self._pending = PendingRegistration(user_id=user_id, sdk_label=sdk_label, handler=handler)

        prompt_surface = surface if surface is not None else self.foreground.current
        if prompt_surface is None:
            error = PermissionSurfaceUnavailableError()
            logger.error(f"Registration failed: {error}")
            with self._lock:
                self._pending = None
            self.post(handler, RegistrationResult.failed(error))
            return

        self.prompt.request_consent(prompt_surface)

    def request_permission(self, surface: Any | None, callback: Callable[[bool], None]) -> None:
        """
        Ask for notification consent outside of registration.

        ``callback`` receives True at once when consent is not needed or
        already granted, False at once when there is no surface to prompt on
        (neither ``surface`` nor a foreground one), otherwise the user's answer.
        """
        if not self.consent_required():
            self.post(callback, True)
            return

        prompt_surface = surface if surface is not None else self.foreground.current
        if prompt_surface is None:
            logger.error(f"Permission request failed: {PermissionSurfaceUnavailableError()}")
            self.post(callback, False)
            return

        with self._lock:
            self._permission_callbacks.append(callback)
        self.prompt.request_consent(prompt_surface)

    def on_consent_result(self, granted: bool) -> None:
        """Handle the user's answer to a consent prompt."""
        with self._lock:
            pending, self._pending = self._pending, None
            callbacks, self._permission_callbacks = self._permission_callbacks, []

        logger.info("Notification permission result", extra={"granted": granted})

        for callback in callbacks:
            self.post(callback, granted)

        if pending is None:
            return
        self.perform_registration(pending.user_id, pending.sdk_label, pending.handler)
