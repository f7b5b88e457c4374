"""
Entrig SDK - Structured Logging Configuration

SDK modules log through ``logging.getLogger(__name__)`` with structured
``extra`` fields and install no handlers themselves. Hosts that want JSON
output call ``setup_logging``:

    from entrig.logging_config import setup_logging

    logger = setup_logging(level="DEBUG", environment="staging")

Sensitive fields (API keys, push tokens, authorization headers) are redacted
before a record is written.
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

SENSITIVE_KEYS = ("api_key", "apikey", "authorization", "fcm_token", "token", "secret", "password")
REDACTED = "REDACTED"


def _sanitize(value: Any) -> Any:
    """Redact sensitive keys in nested dictionaries."""
    if not isinstance(value, dict):
        return value
    sanitized = {}
    for key, item in value.items():
        if any(sensitive in str(key).lower() for sensitive in SENSITIVE_KEYS):
            sanitized[key] = REDACTED
        else:
            sanitized[key] = _sanitize(item)
    return sanitized


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter with service context and redaction.

    Adds timestamp, environment and service fields to all log records.
    """

    def __init__(
        self,
        fmt: str = "%(timestamp)s %(level)s %(name)s %(message)s",
        environment: Optional[str] = None,
        service_name: str = "entrig",
    ):
        super().__init__(fmt=fmt)
        self.environment = environment or "production"
        self.service_name = service_name

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        """Add context fields and redact sensitive ones."""
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        log_record["environment"] = self.environment
        log_record["service"] = self.service_name
        log_record["level"] = record.levelname.lower()

        # push_token fields are already masked by the SDK
        for key in list(log_record):
            if key == "push_token":
                continue
            if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
                log_record[key] = REDACTED
            else:
                log_record[key] = _sanitize(log_record[key])


def setup_logging(
    name: str = "entrig",
    level: str = "INFO",
    environment: str = "production",
    log_file: Optional[str] = None,
    enable_console: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Setup structured JSON logging for the SDK.

    Args:
        name: Logger name (``entrig`` covers every SDK module)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: Environment identifier (dev, staging, prod)
        log_file: Optional path to a rotating JSON log file
        enable_console: Whether to log to stderr
        max_bytes: Maximum log file size before rotation
        backup_count: Number of backup files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    formatter = CustomJsonFormatter(
        environment=environment,
        service_name=name.split(".")[0],
    )

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
