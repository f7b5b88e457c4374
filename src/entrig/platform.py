"""
Platform collaborators consumed by the Entrig SDK.

The SDK never talks to a push transport, a permission dialog or a
notification tray directly; hosts plug in implementations of these
interfaces.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping

from entrig.models import NotificationEvent, TransportParams

logger = logging.getLogger(__name__)


class PushTokenProvider(ABC):
    """Issues and revokes the platform push token (e.g. an FCM client)."""

    def configure(self, params: TransportParams) -> None:
        """Receive bootstrap parameters before the first token request."""
        return None

    @abstractmethod
    def get_token(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def delete_token(self) -> None:
        raise NotImplementedError


class PermissionPrompt(ABC):
    """Runtime notification consent.

    ``request_consent`` only starts the prompt. The host reports the user's
    answer through ``Entrig.on_permission_result``.
    """

    @abstractmethod
    def requires_runtime_consent(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def is_granted(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def request_consent(self, surface: Any) -> None:
        raise NotImplementedError


class NoConsentRequired(PermissionPrompt):
    """Platforms without runtime notification consent."""

    def requires_runtime_consent(self) -> bool:
        return False

    def is_granted(self) -> bool:
        return True

    def request_consent(self, surface: Any) -> None:
        return None


class NotificationPresenter(ABC):
    """Displays notifications in the platform tray."""

    @abstractmethod
    def create_channel(self, channel_id: str, channel_name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def show(
        self,
        channel_id: str,
        event: NotificationEvent,
        message_id: str | None,
        tap_data: Mapping[str, Any],
    ) -> None:
        """
        Display ``event``.

        Args:
            channel_id: Channel to post on
            event: Parsed notification
            message_id: Transport message id, carried in the tap intent
            tap_data: Raw message data to hand back through ``Entrig.handle_intent``
        """
        raise NotImplementedError


class LoggingPresenter(NotificationPresenter):
    """Presenter for headless hosts: records notifications in the log only."""

    def create_channel(self, channel_id: str, channel_name: str) -> None:
        logger.debug(
            "Notification channel created",
            extra={"channel_id": channel_id, "channel_name": channel_name},
        )

    def show(
        self,
        channel_id: str,
        event: NotificationEvent,
        message_id: str | None,
        tap_data: Mapping[str, Any],
    ) -> None:
        logger.info(
            "Notification displayed",
            extra={"channel_id": channel_id, "message_id": message_id, "title": event.title},
        )
