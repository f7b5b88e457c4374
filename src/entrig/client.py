"""
Main Entrig SDK client.

Example:
    >>> from entrig import Entrig, SdkConfig
    >>> sdk = Entrig(SdkConfig(api_key="your-api-key", app_id="com.example.app"), token_provider)
    >>> sdk.initialize(lambda result: print("ready" if result.success else result.message))
    >>> sdk.register("user-123", lambda result: print(result.success))
    >>> sdk.set_on_notification_opened_listener(lambda event: print(event.title))

One instance per process is expected; it is passed explicitly to whatever
needs it rather than reached through global state.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Mapping

from entrig.config import SdkConfig
from entrig.delivery import DeliveryTracker
from entrig.dispatch import Dispatcher
from entrig.exceptions import EntrigError, NotInitializedError
from entrig.http_client import HTTPClient
from entrig.lifecycle import ForegroundTracker
from entrig.models import NotificationEvent, RegistrationResult, ResultHandler
from entrig.permissions import PermissionGate
from entrig.platform import (
    LoggingPresenter,
    NoConsentRequired,
    NotificationPresenter,
    PermissionPrompt,
    PushTokenProvider,
)
from entrig.registration import RegistrationClient
from entrig.router import NotificationListener, NotificationRouter
from entrig.token_store import TokenStore

logger = logging.getLogger(__name__)

MESSAGE_ID_KEY = "google.message_id"
FALLBACK_MESSAGE_ID_KEY = "message_id"


class Entrig:
    """
    Entrig push notification SDK instance.

    Wires the registration lifecycle (permission gate, registration client,
    token store) and the delivery lifecycle (delivery tracker, notification
    router) together. Every public method is safe to call from the host's ui
    thread; network and storage work runs on the background context and
    results come back through the ui context.
    """

    def __init__(
        self,
        config: SdkConfig,
        token_provider: PushTokenProvider,
        permission_prompt: PermissionPrompt | None = None,
        presenter: NotificationPresenter | None = None,
        dispatcher: Dispatcher | None = None,
        http_client: HTTPClient | None = None,
        token_store: TokenStore | None = None,
    ) -> None:
        """
        Initialize the SDK instance.

        Args:
            config: Validated SDK configuration
            token_provider: Platform push token provider
            permission_prompt: Runtime consent prompt (defaults to none required)
            presenter: Platform notification presenter (defaults to logging only)
            dispatcher: Execution contexts (defaults to thread pools)
            http_client: Backend transport (defaults to one built from config)
            token_store: Registration persistence (defaults to config.storage_path)
        """
        self.config = config
        self.dispatcher = dispatcher or Dispatcher()
        self.http_client = http_client or HTTPClient(
            base_url=config.base_url,
            api_key=config.api_key,
            timeout=config.timeout,
            max_retries=config.max_retries,
        )
        self.token_store = token_store or TokenStore(config.storage_path)
        self.presenter = presenter or LoggingPresenter()

        self.registration = RegistrationClient(
            self.http_client,
            self.token_store,
            token_provider,
            default_sdk_label=config.sdk_label,
        )
        self.foreground = ForegroundTracker()
        self.router = NotificationRouter(self.dispatcher, config.show_foreground_notification)
        self.delivery = DeliveryTracker(self.registration.report_delivery_status, self.dispatcher)
        self.permissions = PermissionGate(
            permission_prompt or NoConsentRequired(),
            self.foreground,
            self._perform_registration,
            self.dispatcher.post,
            handle_permission_automatically=config.handle_permission_automatically,
        )

        self._channel_created = False
        self._initializing: Future | None = None
        self._lock = threading.Lock()

    # ==================== LIFECYCLE ====================

    @property
    def is_initialized(self) -> bool:
        return self.registration.is_bootstrapped

    @property
    def is_app_in_foreground(self) -> bool:
        return self.foreground.in_foreground

    def initialize(self, listener: ResultHandler | None = None) -> Future:
        """
        Bootstrap push transport parameters.

        Safe to call repeatedly: once initialized, later calls succeed at once,
        and calls made while a bootstrap is in flight share its outcome. A
        failed initialization may be retried.
        """
        if self.is_initialized:
            self.dispatcher.post(listener, RegistrationResult.ok())
            future: Future = Future()
            future.set_result(RegistrationResult.ok())
            return future

        with self._lock:
            in_flight = self._initializing
            if in_flight is None:
                in_flight = self._initializing = Future()
                started = True
            else:
                started = False
            create_channel, self._channel_created = not self._channel_created, True

        if not started:
            logger.debug("Initialization already in progress")
            in_flight.add_done_callback(lambda f: self.dispatcher.post(listener, f.result()))
            return in_flight

        if create_channel:
            self.presenter.create_channel(
                self.config.notification_channel_id,
                self.config.notification_channel_name,
            )

        task = self.dispatcher.run_in_background(
            lambda: self.registration.bootstrap(self.config.app_id),
            listener,
            description="SDK initialization",
        )
        task.add_done_callback(lambda t: self._finish_initialize(in_flight, t.result()))
        return in_flight

    def _finish_initialize(self, in_flight: Future, result: RegistrationResult) -> None:
        with self._lock:
            if self._initializing is in_flight and not result.success:
                self._initializing = None
        in_flight.set_result(result)

    def on_surface_created(
        self,
        surface: Any,
        intent: Mapping[str, Any] | None = None,
        launched_from_history: bool = False,
    ) -> None:
        """Host surface created; processes a notification tap that launched it."""
        self.handle_intent(intent, launched_from_history)

    def on_surface_resumed(
        self,
        surface: Any,
        intent: Mapping[str, Any] | None = None,
        launched_from_history: bool = False,
    ) -> None:
        """
        Host surface came to the foreground.

        The SDK keeps only a weak reference, so ``surface`` must be weakly
        referenceable (plain class instances are; ``str`` handles and
        ``__slots__`` classes without ``__weakref__`` are not).

        Raises:
            ValidationError: If ``surface`` cannot be weakly referenced
        """
        self.foreground.resumed(surface)
        self.handle_intent(intent, launched_from_history)

    def on_surface_paused(self, surface: Any) -> None:
        self.foreground.left(surface)

    def on_surface_destroyed(self, surface: Any) -> None:
        self.foreground.left(surface)

    def close(self) -> None:
        """Stop execution contexts and release the HTTP session."""
        self.dispatcher.shutdown()
        self.http_client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # ==================== REGISTRATION ====================

    def register(
        self,
        user_id: str,
        listener: ResultHandler | None = None,
        surface: Any | None = None,
        sdk: str | None = None,
    ) -> None:
        """
        Register ``user_id`` for push notifications.

        When consent is needed and ``handle_permission_automatically`` is set,
        the registration waits for ``on_permission_result``.

        Args:
            user_id: Host application's user identifier
            listener: Receives the RegistrationResult
            surface: Surface for the consent prompt (defaults to the foreground one)
            sdk: ``sdk`` label sent to the backend (defaults to config.sdk_label)
        """
        if not self.is_initialized:
            error = NotInitializedError()
            logger.error(f"Registration failed: {error}")
            self.dispatcher.post(listener, RegistrationResult.failed(error))
            return

        sdk_label = sdk or self.config.sdk_label

        def _check_existing() -> None:
            try:
                stored = self.token_store.load()
            except Exception as e:
                logger.exception("Failed to read registration state")
                self.dispatcher.post(listener, RegistrationResult.failed(EntrigError(str(e))))
                return

            if stored is not None and stored.matches(user_id):
                self.dispatcher.post(listener, RegistrationResult.ok())
                return

            self.dispatcher.post(
                self.permissions.request_registration, user_id, sdk_label, listener, surface
            )

        self.dispatcher.submit(_check_existing)

    def on_permission_result(self, granted: bool) -> None:
        """Report the user's answer to a notification consent prompt."""
        self.permissions.on_consent_result(granted)

    def request_permission(self, surface: Any | None, callback: Callable[[bool], None]) -> None:
        """Ask for notification consent without registering; ``surface`` defaults to the foreground one."""
        self.permissions.request_permission(surface, callback)

    def unregister(self, listener: ResultHandler | None = None) -> Future:
        """Unregister the stored user from push notifications."""
        return self.dispatcher.run_in_background(
            self.registration.unregister,
            listener,
            description="Unregistration",
        )

    def on_new_token(self, token: str) -> None:
        """Platform rotated the push token; re-register the stored user with it."""

        def _refresh() -> None:
            stored = self.token_store.load()
            if stored is None:
                return
            self.registration.refresh_token(stored.user_id, token)
            logger.info("Push token refreshed", extra={"user_id": stored.user_id})

        self.dispatcher.fire_and_forget(_refresh, description="Push token refresh")

    def _perform_registration(
        self,
        user_id: str,
        sdk_label: str,
        listener: ResultHandler | None,
    ) -> None:
        self.dispatcher.run_in_background(
            lambda: self.registration.register(user_id, sdk_label),
            listener,
            description="Registration",
        )

    # ==================== NOTIFICATIONS ====================

    def set_on_foreground_notification_listener(self, listener: NotificationListener | None) -> None:
        """Set the listener for messages received while the app is foregrounded."""
        self.router.set_foreground_listener(listener)

    def set_on_notification_opened_listener(self, listener: NotificationListener | None) -> None:
        """Set the listener for notifications the user opened."""
        self.router.set_opened_listener(listener)

    def get_initial_notification(self) -> NotificationEvent | None:
        """The notification that launched the app, returned at most once."""
        return self.router.consume_initial()

    def on_message_received(
        self,
        message_id: str | None,
        message_data: Mapping[str, Any],
    ) -> NotificationEvent | None:
        """
        Handle an inbound data-only push message.

        Returns:
            The parsed event, or None for a duplicate delivery
        """
        event = self.delivery.on_message_arrived(message_id, message_data)
        if event is None:
            return None

        in_foreground = self.foreground.in_foreground
        if self.router.should_display(in_foreground):
            tap_data = dict(message_data)
            if message_id is not None:
                tap_data[MESSAGE_ID_KEY] = message_id
            try:
                self.presenter.show(self.config.notification_channel_id, event, message_id, tap_data)
            except Exception:
                logger.exception(
                    "Failed to display notification",
                    extra={"message_id": message_id},
                )

        if in_foreground:
            self.router.route_foreground(event)
        return event

    def handle_intent(
        self,
        intent: Mapping[str, Any] | None,
        launched_from_history: bool = False,
    ) -> bool:
        """
        Process a tap intent once.

        Lifecycle hooks call this automatically; hosts may call it directly,
        e.g. when a running surface receives a new intent.

        Returns:
            True if the intent carried a notification that had not been opened yet
        """
        if not intent:
            return False

        message_id = intent.get(MESSAGE_ID_KEY) or intent.get(FALLBACK_MESSAGE_ID_KEY)
        if message_id is None or launched_from_history:
            return False

        event = NotificationEvent.from_message_data(intent)
        if not self.delivery.on_message_opened(str(message_id), event.delivery_id):
            return False

        self.router.route_opened(event)
        return True
