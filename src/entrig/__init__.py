"""
Entrig Python SDK

Client-side push notification lifecycle for the Entrig service:
- Registration of a user against the device's push token, with idempotency
  checks and token rotation
- Permission-gated registration deferral
- Delivered/read status reporting with duplicate suppression
- Routing of received and opened notifications to host observers

Components:
- client: the Entrig SDK instance
- registration: backend registration client
- token_store: persisted registration record
- permissions: consent-gated registration
- delivery: dedup and delivery status reporting
- router: foreground/opened observers and the initial-notification latch
"""

from entrig.client import Entrig
from entrig.config import ConfigurationError, SdkConfig
from entrig.dispatch import Dispatcher, InlineDispatcher
from entrig.exceptions import (
    BackendRejectedError,
    EntrigError,
    NetworkError,
    NotInitializedError,
    NotRegisteredError,
    PermissionSurfaceUnavailableError,
    ValidationError,
)
from entrig.models import (
    DeliveryStatus,
    NotificationEvent,
    RegistrationRecord,
    RegistrationResult,
    TransportParams,
)
from entrig.platform import (
    LoggingPresenter,
    NoConsentRequired,
    NotificationPresenter,
    PermissionPrompt,
    PushTokenProvider,
)

__version__ = "1.0.0"

__all__ = [
    "Entrig",
    "SdkConfig",
    "ConfigurationError",
    "Dispatcher",
    "InlineDispatcher",
    "EntrigError",
    "NotInitializedError",
    "PermissionSurfaceUnavailableError",
    "NetworkError",
    "BackendRejectedError",
    "NotRegisteredError",
    "ValidationError",
    "DeliveryStatus",
    "NotificationEvent",
    "RegistrationRecord",
    "RegistrationResult",
    "TransportParams",
    "PushTokenProvider",
    "PermissionPrompt",
    "NoConsentRequired",
    "NotificationPresenter",
    "LoggingPresenter",
]
