"""
Data structures shared across the Entrig SDK.

This module defines the registration record persisted by the token store,
the notification event handed to host observers, delivery statuses reported
to the backend, and the result object every caller-supplied handler receives.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping

from entrig.exceptions import BackendRejectedError, EntrigError

logger = logging.getLogger(__name__)

# Keys lifted out of the inbound payload into NotificationEvent fields
RESERVED_PAYLOAD_KEYS = ("title", "body", "type", "delivery_id")


class DeliveryStatus(str, Enum):
    """Delivery states reported to the backend."""

    DELIVERED = "delivered"  # Message reached the device
    READ = "read"  # User opened the notification


@dataclass(frozen=True)
class RegistrationRecord:
    """
    Association between a user and a push token, as known to the backend.

    Attributes:
        registration_id: Opaque id issued by the backend
        user_id: Host application's user identifier
        push_token: Platform push token the backend delivers to
    """

    registration_id: str
    user_id: str
    push_token: str

    def matches(self, user_id: str, push_token: str | None = None) -> bool:
        """True if this record already covers ``user_id`` (and ``push_token`` when given)."""
        if self.user_id != user_id:
            return False
        return push_token is None or self.push_token == push_token


@dataclass(frozen=True)
class TransportParams:
    """Bootstrap parameters for the underlying push transport."""

    sender_id: str | None
    app_id: str
    api_key: str
    project_id: str | None

    @classmethod
    def from_response(cls, response: Mapping[str, Any]) -> TransportParams:
        """
        Build params from a ``/fcm-params`` response.

        Raises:
            BackendRejectedError: If the response has no ``data`` object
        """
        data = response.get("data") if isinstance(response, Mapping) else None
        if not isinstance(data, Mapping):
            raise BackendRejectedError("Invalid response format", body=response)

        sender_id = data.get("senderId")
        project_id = data.get("projectId")
        return cls(
            sender_id=str(sender_id) if sender_id is not None else None,
            app_id=str(data.get("appId") or ""),
            api_key=str(data.get("apiKey") or ""),
            project_id=str(project_id) if project_id is not None else None,
        )


@dataclass(frozen=True)
class RegistrationResult:
    """Outcome handed to caller-supplied handlers."""

    success: bool
    error: EntrigError | None = None

    @property
    def message(self) -> str | None:
        """Human-readable error text, or None on success."""
        return str(self.error) if self.error is not None else None

    @classmethod
    def ok(cls) -> RegistrationResult:
        return cls(success=True)

    @classmethod
    def failed(cls, error: EntrigError) -> RegistrationResult:
        return cls(success=False, error=error)


ResultHandler = Callable[[RegistrationResult], None]


@dataclass
class PendingRegistration:
    """A registration waiting on the user's answer to a consent prompt."""

    user_id: str
    sdk_label: str
    handler: ResultHandler | None = None


def decode_payload(raw: Any) -> dict[str, Any]:
    """
    Decode the JSON-encoded ``payload`` field of an inbound message.

    Malformed or non-object payloads are logged and treated as empty.
    """
    if raw is None or raw == "":
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning("Discarding malformed notification payload", extra={"error": str(e)})
        return {}
    if not isinstance(decoded, dict):
        logger.warning(
            "Discarding non-object notification payload",
            extra={"payload_type": type(decoded).__name__},
        )
        return {}
    return decoded


def _optional_str(value: Any) -> str | None:
    return str(value) if value is not None else None


@dataclass(frozen=True)
class NotificationEvent:
    """
    A notification as exposed to host observers.

    Attributes:
        title: Notification title (empty string when absent)
        body: Notification body text
        type: Optional host-defined notification type
        delivery_id: Backend delivery id used for delivered/read reporting
        data: Remaining payload keys, read-only, reserved keys removed
    """

    title: str
    body: str | None = None
    type: str | None = None
    delivery_id: str | None = None
    data: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    @classmethod
    def from_message_data(cls, message_data: Mapping[str, Any]) -> NotificationEvent:
        """
        Build an event from a data-only push message or tap intent extras.

        Top-level ``title``/``body`` win over the copies inside ``payload``.
        """
        payload = decode_payload(message_data.get("payload"))
        title = message_data.get("title")
        body = message_data.get("body")

        payload_title = payload.pop("title", None)
        payload_body = payload.pop("body", None)
        event_type = payload.pop("type", None)
        delivery_id = payload.pop("delivery_id", None)

        return cls(
            title=str(title if title is not None else payload_title or ""),
            body=_optional_str(body if body is not None else payload_body),
            type=_optional_str(event_type),
            delivery_id=_optional_str(delivery_id),
            data=payload,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary."""
        return {
            "title": self.title,
            "body": self.body,
            "type": self.type,
            "delivery_id": self.delivery_id,
            "data": dict(self.data),
        }
