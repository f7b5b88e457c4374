"""
Entrig SDK Configuration

An ``SdkConfig`` is built once, validated on construction and never mutated
afterwards. Hosts may build it directly or load it from ``ENTRIG_*``
environment variables with ``SdkConfig.from_env()``.

SECURITY NOTICE:
- The API key MUST come from the host's secret storage or environment
- Never commit API keys to version control
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://wlbsugnskuojugsubnjj.supabase.co/functions/v1"
DEFAULT_CHANNEL_ID = "default"
DEFAULT_CHANNEL_NAME = "General"
DEFAULT_SDK_LABEL = "python"
DEFAULT_TIMEOUT = 30
DEFAULT_MAX_RETRIES = 3

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigurationError(ValueError):
    """Raised when required configuration is missing or invalid."""
    pass


def _default_storage_path() -> str:
    return os.path.join(os.getcwd(), "data", "entrig.db")


def _env_bool(env_var: str, default: bool) -> bool:
    raw = os.getenv(env_var, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid boolean for {env_var}: {raw!r}")


def _env_int(env_var: str, default: int) -> int:
    raw = os.getenv(env_var, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"Invalid integer for {env_var}: {raw!r}")


@dataclass(frozen=True)
class SdkConfig:
    """
    Configuration for an Entrig SDK instance.

    Attributes:
        api_key: Entrig API key, sent as a bearer token on every request
        handle_permission_automatically: Request notification consent during register()
        notification_channel_id: Channel id used for displayed notifications
        notification_channel_name: Channel name shown in system settings
        show_foreground_notification: Display a platform notification while foregrounded
        app_id: Host application identifier sent when bootstrapping transport params
        base_url: Backend base URL
        sdk_label: Value of the ``sdk`` field in registration requests
        storage_path: SQLite file holding the registration record
        timeout: HTTP timeout in seconds
        max_retries: Transport-level retries of the bootstrap request on 429/5xx
    """

    api_key: str
    handle_permission_automatically: bool = True
    notification_channel_id: str = DEFAULT_CHANNEL_ID
    notification_channel_name: str = DEFAULT_CHANNEL_NAME
    show_foreground_notification: bool = True
    app_id: str = ""
    base_url: str = DEFAULT_BASE_URL
    sdk_label: str = DEFAULT_SDK_LABEL
    storage_path: str = ""
    timeout: int = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES

    def __post_init__(self) -> None:
        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError("API key cannot be empty")
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
        if self.max_retries < 0:
            raise ConfigurationError(f"max_retries cannot be negative, got {self.max_retries}")
        if not self.storage_path:
            object.__setattr__(self, "storage_path", _default_storage_path())

    @classmethod
    def from_env(cls, **overrides) -> "SdkConfig":
        """
        Build a config from ``ENTRIG_*`` environment variables.

        Keyword overrides take precedence over the environment.
        """
        values = {
            "api_key": os.getenv("ENTRIG_API_KEY", "").strip(),
            "app_id": os.getenv("ENTRIG_APP_ID", "").strip(),
            "base_url": os.getenv("ENTRIG_BASE_URL", DEFAULT_BASE_URL).strip() or DEFAULT_BASE_URL,
            "handle_permission_automatically": _env_bool("ENTRIG_HANDLE_PERMISSION", True),
            "notification_channel_id": os.getenv("ENTRIG_CHANNEL_ID", DEFAULT_CHANNEL_ID),
            "notification_channel_name": os.getenv("ENTRIG_CHANNEL_NAME", DEFAULT_CHANNEL_NAME),
            "show_foreground_notification": _env_bool("ENTRIG_SHOW_FOREGROUND", True),
            "sdk_label": os.getenv("ENTRIG_SDK_LABEL", DEFAULT_SDK_LABEL).strip() or DEFAULT_SDK_LABEL,
            "storage_path": os.getenv("ENTRIG_STORAGE_PATH", "").strip(),
            "timeout": _env_int("ENTRIG_TIMEOUT", DEFAULT_TIMEOUT),
            "max_retries": _env_int("ENTRIG_MAX_RETRIES", DEFAULT_MAX_RETRIES),
        }
        values.update(overrides)

        if not values["api_key"]:
            logger.error(
                "ENTRIG_API_KEY is not set",
                extra={"event": "config.api_key_missing"},
            )
        return cls(**values)
