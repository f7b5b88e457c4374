"""
Registration client for the Entrig backend.

Handles everything that ties a user to a push token on the backend:
bootstrapping transport parameters, registration (with idempotency checks
against the token store), token rotation, unregistration and delivery status
reporting.
"""

from __future__ import annotations

import logging

from entrig.exceptions import (
    BackendRejectedError,
    NotInitializedError,
    NotRegisteredError,
    ValidationError,
)
from entrig.http_client import HTTPClient
from entrig.models import DeliveryStatus, RegistrationRecord, TransportParams
from entrig.platform import PushTokenProvider
from entrig.token_store import TokenStore, mask_token

logger = logging.getLogger(__name__)


class RegistrationClient:
    """
    Client for registration operations.

    Methods raise ``EntrigError`` subclasses; the SDK facade turns them into
    results for the caller's handler.
    """

    def __init__(
        self,
        http_client: HTTPClient,
        token_store: TokenStore,
        token_provider: PushTokenProvider,
        default_sdk_label: str = "python",
    ) -> None:
        """
        Initialize Registration Client.

        Args:
            http_client: HTTP client instance
            token_store: Persisted registration record
            token_provider: Platform push token provider
            default_sdk_label: ``sdk`` value used for token rotation
        """
        self.http_client = http_client
        self.token_store = token_store
        self.token_provider = token_provider
        self.default_sdk_label = default_sdk_label
        self.transport_params: TransportParams | None = None

    @property
    def is_bootstrapped(self) -> bool:
        return self.transport_params is not None

    def bootstrap(self, app_id: str) -> TransportParams:
        """
        Fetch push transport parameters and configure the token provider.

        Args:
            app_id: Host application identifier

        Returns:
            Transport parameters issued by the backend

        Raises:
            BackendRejectedError: If the response is rejected or malformed
            NetworkError: On transport failure
        """
        response = self.http_client.post("/fcm-params", data={"appId": app_id}, retry=True)
        params = TransportParams.from_response(response)
        self.token_provider.configure(params)
        self.transport_params = params

        logger.info(
            "Push transport initialized",
            extra={"app_id": params.app_id, "project_id": params.project_id},
        )
        return params

    def register(self, user_id: str, sdk_label: str | None = None) -> RegistrationRecord:
        """
        Register ``user_id`` with the current platform push token.

        Returns immediately without a token fetch or network call when the
        stored record already belongs to ``user_id``.

        Raises:
            NotInitializedError: If bootstrap() has not succeeded
            BackendRejectedError: If the backend rejects the registration
            NetworkError: On transport failure
        """
        if not user_id:
            raise ValidationError("user_id is required")

        stored = self.token_store.load()
        if stored is not None and stored.matches(user_id):
            logger.debug("Already registered with same userId, skipping registration")
            return stored

        if not self.is_bootstrapped:
            raise NotInitializedError("Push transport not initialized. Call initialize() first.")

        token = self.token_provider.get_token()
        return self.register_with_token(user_id, token, sdk_label)

    def register_with_token(
        self,
        user_id: str,
        token: str,
        sdk_label: str | None = None,
    ) -> RegistrationRecord:
        """
        Register ``user_id`` with an explicit push token.

        The store is only written after the backend returns a registration id;
        on any failure it is left as it was.
        """
        if not user_id or not token:
            raise ValidationError("user_id and token are required")

        stored = self.token_store.load()
        if stored is not None and stored.matches(user_id, token):
            logger.debug("Already registered with same userId and token, skipping registration")
            return stored

        response = self.http_client.post(
            "/register",
            data={
                "user_id": user_id,
                "fcm_token": token,
                "sdk": sdk_label or self.default_sdk_label,
            },
        )

        registration_id = response.get("id")
        if registration_id is None or registration_id == "":
            raise BackendRejectedError("Registration response missing id", body=response)

        record = RegistrationRecord(
            registration_id=str(registration_id),
            user_id=user_id,
            push_token=token,
        )
        self.token_store.save(record)

        logger.info(
            "User registered",
            extra={
                "user_id": user_id,
                "registration_id": record.registration_id,
                "push_token": mask_token(token),
            },
        )
        return record

    def refresh_token(self, user_id: str, new_token: str) -> RegistrationRecord:
        """Re-register ``user_id`` after the platform rotated its push token."""
        return self.register_with_token(user_id, new_token, self.default_sdk_label)

    def unregister(self) -> None:
        """
        Remove the stored registration from the platform and the backend.

        The store is cleared only after the backend confirms.

        Raises:
            NotRegisteredError: If nothing is registered
            NotInitializedError: If bootstrap() has not succeeded
        """
        stored = self.token_store.load()
        if stored is None:
            raise NotRegisteredError()

        if not self.is_bootstrapped:
            raise NotInitializedError("Push transport not initialized")

        self.token_provider.delete_token()
        self.http_client.post("/unregister", data={"id": stored.registration_id})
        self.token_store.clear()

        logger.info(
            "User unregistered",
            extra={"user_id": stored.user_id, "registration_id": stored.registration_id},
        )

    def report_delivery_status(self, delivery_id: str, status: DeliveryStatus) -> None:
        """Report a delivered/read transition for ``delivery_id``."""
        self.http_client.post(
            "/delivery-status",
            data={"delivery_id": delivery_id, "status": DeliveryStatus(status).value},
        )
        logger.debug(
            "Delivery status reported",
            extra={"delivery_id": delivery_id, "status": DeliveryStatus(status).value},
        )
