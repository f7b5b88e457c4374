"""
Tests for the persisted registration record.
"""

import sqlite3

import pytest

from entrig.models import RegistrationRecord
from entrig.token_store import (
    KEY_FCM_TOKEN,
    KEY_USER_ID,
    PREFS_NAMESPACE,
    TokenStore,
    mask_token,
)


class TestTokenStore:
    """Test whole-record save, load and clear."""

    def test_empty_store(self, token_store):
        """Test that a fresh store holds no record."""
        assert token_store.load() is None

    def test_save_and_load(self, token_store):
        """Test a round trip of a full record."""
        record = RegistrationRecord("r1", "u1", "tok")
        token_store.save(record)

        assert token_store.load() == record

    def test_save_replaces_record(self, token_store):
        """Test that a second save overwrites every field."""
        token_store.save(RegistrationRecord("r1", "u1", "tok"))
        token_store.save(RegistrationRecord("r2", "u2", "tok-2"))

        assert token_store.load() == RegistrationRecord("r2", "u2", "tok-2")

    def test_clear(self, token_store):
        """Test that clear removes all three fields."""
        token_store.save(RegistrationRecord("r1", "u1", "tok"))

        assert token_store.clear() is True
        assert token_store.load() is None
        assert token_store.clear() is False

    def test_survives_reopen(self, tmp_path):
        """Test that the record persists across store instances."""
        db_path = tmp_path / "nested" / "entrig.db"
        TokenStore(db_path).save(RegistrationRecord("r1", "u1", "tok"))

        assert TokenStore(db_path).load() == RegistrationRecord("r1", "u1", "tok")

    def test_partial_record_rejected(self, token_store):
        """Test that a record with an empty field is never written."""
        with pytest.raises(ValueError):
            token_store.save(RegistrationRecord("r1", "u1", ""))
        assert token_store.load() is None

    def test_incomplete_rows_ignored(self, tmp_path):
        """Test that leftover partial rows do not surface as a record."""
        db_path = tmp_path / "entrig.db"
        store = TokenStore(db_path)
        with sqlite3.connect(db_path) as conn:
            conn.executemany(
                "INSERT INTO prefs (namespace, key, value) VALUES (?, ?, ?)",
                [(PREFS_NAMESPACE, KEY_USER_ID, "u1"), (PREFS_NAMESPACE, KEY_FCM_TOKEN, "tok")],
            )
        conn.close()

        assert store.load() is None

    def test_namespaces_are_isolated(self, tmp_path):
        """Test that two namespaces in one file do not interfere."""
        db_path = tmp_path / "entrig.db"
        first = TokenStore(db_path, namespace="one")
        second = TokenStore(db_path, namespace="two")

        first.save(RegistrationRecord("r1", "u1", "tok"))

        assert second.load() is None
        second.clear()
        assert first.load() == RegistrationRecord("r1", "u1", "tok")


class TestMaskToken:
    """Test token masking for logs."""

    def test_mask_long_token(self):
        assert mask_token("abcdefghijklmnop") == "abcdefghij..."

    def test_mask_missing_token(self):
        assert mask_token(None) == "<none>"
