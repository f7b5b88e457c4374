"""
Persisted registration state for the Entrig SDK.

The token store keeps a single registration record (registration id, user id
and current push token) as key-value rows under a fixed namespace in SQLite,
so it survives process restarts. Writes replace or clear the whole record in
one transaction; readers never observe a partial record.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import closing, contextmanager
from pathlib import Path
from typing import Iterator

from entrig.models import RegistrationRecord

logger = logging.getLogger(__name__)

PREFS_NAMESPACE = "com.entrig.sdk.prefs"
KEY_REGISTRATION_ID = "entrig_registration_id"
KEY_USER_ID = "entrig_user_id"
KEY_FCM_TOKEN = "entrig_fcm_token"

_RECORD_KEYS = (KEY_REGISTRATION_ID, KEY_USER_ID, KEY_FCM_TOKEN)


def mask_token(token: str | None) -> str:
    """Shorten a push token for log output."""
    if not token:
        return "<none>"
    return token[:10] + "..."


class TokenStore:
    """
    Whole-record persistence of the current registration.

    Thread-safe: all access is serialized through a lock, and every write is a
    single SQLite transaction.
    """

    def __init__(self, db_path: Path | str, namespace: str = PREFS_NAMESPACE):
        """
        Initialize the token store.

        Args:
            db_path: Path to the SQLite file (parent directories are created)
            namespace: Key namespace the record lives under
        """
        self.db_path = str(db_path)
        self.namespace = namespace
        self._lock = threading.RLock()

        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        with closing(sqlite3.connect(self.db_path)) as conn:
            with conn:
                yield conn

    def _init_database(self) -> None:
        """Initialize database schema."""
        with self._lock, self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS prefs (
                    namespace TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    PRIMARY KEY (namespace, key)
                )
            """)

    def load(self) -> RegistrationRecord | None:
        """
        Read the stored record.

        Returns:
            The record, or None if absent or incomplete
        """
        with self._lock, self._connect() as conn:
            rows = conn.execute(
                "SELECT key, value FROM prefs WHERE namespace = ?",
                (self.namespace,),
            ).fetchall()

        values = dict(rows)
        if not all(values.get(key) for key in _RECORD_KEYS):
            if values:
                logger.warning(
                    "Ignoring incomplete registration record",
                    extra={"keys": sorted(values)},
                )
            return None

        return RegistrationRecord(
            registration_id=values[KEY_REGISTRATION_ID],
            user_id=values[KEY_USER_ID],
            push_token=values[KEY_FCM_TOKEN],
        )

    def save(self, record: RegistrationRecord) -> None:
        """Replace the stored record with ``record``."""
        if not (record.registration_id and record.user_id and record.push_token):
            raise ValueError("registration_id, user_id and push_token are required")

        with self._lock, self._connect() as conn:
            conn.execute("DELETE FROM prefs WHERE namespace = ?", (self.namespace,))
            conn.executemany(
                "INSERT INTO prefs (namespace, key, value) VALUES (?, ?, ?)",
                [
                    (self.namespace, KEY_REGISTRATION_ID, record.registration_id),
                    (self.namespace, KEY_USER_ID, record.user_id),
                    (self.namespace, KEY_FCM_TOKEN, record.push_token),
                ],
            )

        logger.debug(
            "Saved registration",
            extra={
                "registration_id": record.registration_id,
                "user_id": record.user_id,
                "push_token": mask_token(record.push_token),
            },
        )

    def clear(self) -> bool:
        """
        Remove the stored record.

        Returns:
            True if a record was removed, False if the store was empty
        """
        with self._lock, self._connect() as conn:
            cursor = conn.execute("DELETE FROM prefs WHERE namespace = ?", (self.namespace,))
            removed = cursor.rowcount > 0

        if removed:
            logger.debug("Cleared registration")
        return removed
