"""
Entrig SDK exceptions.

Every failure surfaced to a caller's result handler is an ``EntrigError``.
"""

from __future__ import annotations

from typing import Any


class EntrigError(Exception):
    """Base exception for all Entrig SDK errors."""

    def __init__(
        self,
        message: str,
        code: int | str | None = None,
        error_details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize Entrig error.

        Args:
            message: Human-readable error message
            code: Optional error code (HTTP status or backend code)
            error_details: Additional error context
        """
        self.message = message
        self.code = code
        self.error_details = error_details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.code is not None:
            return f"[{self.code}] {self.message}"
        return self.message


class NotInitializedError(EntrigError):
    """The SDK has not been initialized (no API key or transport params)."""

    def __init__(self, message: str = "SDK not initialized. Call initialize() first.") -> None:
        super().__init__(message)


class PermissionSurfaceUnavailableError(EntrigError):
    """Consent is required but there is no surface to show the prompt on."""

    def __init__(
        self,
        message: str = (
            "A foreground surface is required to request notification permission. "
            "Pass one to register() or call it while the app is in the foreground."
        ),
    ) -> None:
        super().__init__(message)


class NetworkError(EntrigError):
    """Transport-level failure talking to the backend."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class TimeoutError(NetworkError):
    """Request to the backend timed out."""


class BackendRejectedError(EntrigError):
    """Backend answered with a non-2xx status or a malformed body."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message, code=status_code, error_details={"body": body} if body is not None else None)
        self.status_code = status_code
        self.body = body


class NotRegisteredError(EntrigError):
    """Unregistration was requested but no registration is stored."""

    def __init__(self, message: str = "No registration ID found") -> None:
        super().__init__(message)


class ValidationError(EntrigError):
    """Caller supplied invalid arguments."""
