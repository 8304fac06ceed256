"""
Provider profile store for ProviderTrust.

Profiles are kept as JSON documents. apply_update writes a content diff and
any accompanying verification status change in a single transaction: either
both are committed or neither is.
"""

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from ..errors import InvalidUpdateError, PersistenceError, ProfileNotFoundError, StaleProfileError
from ..models import ProviderProfile, StatusChange, VerificationStatus

logger = logging.getLogger(__name__)

# Derived keys, recomputed on every write
_COMPUTED_KEYS = ("isPublic", "revokedReason")


class ProfileStore(ABC):
    """Narrow persistence interface consumed by the verification workflow."""

    @abstractmethod
    def create_profile(self, profile: ProviderProfile) -> ProviderProfile:
        """Insert a newly registered profile."""

    @abstractmethod
    def get_profile(self, profile_id: str) -> ProviderProfile:
        """Load one profile or raise ProfileNotFoundError."""

    @abstractmethod
    def apply_update(self, profile_id: str, diff: Mapping[str, Any],
                     status_change: Optional[StatusChange] = None,
                     expected_status: Optional[VerificationStatus] = None) -> ProviderProfile:
        """
        Atomically apply a content diff and optional status change.

        Returns:
            The profile as committed

        Raises:
            PersistenceError: If nothing was committed
        """


class SQLiteProfileStore(ProfileStore):
    """
    SQLite-backed profile store.

    Each update runs under BEGIN IMMEDIATE, so concurrent writers to the same
    database serialize and the last committed write wins.
    """

    def __init__(self, db_path: str = "data/providers.db"):
        """
        Initialize the store and create its table.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

        logger.info(f"Initialized SQLiteProfileStore at {db_path}")

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, isolation_level=None)

    def _init_database(self):
        """Initialize profile table."""
        conn = self._connect()
        try:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS providers (
                    provider_id TEXT PRIMARY KEY,
                    document TEXT NOT NULL,
                    verification_status TEXT NOT NULL,
                    updated_at TEXT
                )
            ''')
            conn.execute('''
                CREATE INDEX IF NOT EXISTS idx_providers_status
                ON providers (verification_status)
            ''')
        finally:
            conn.close()

    def _read_document(self, cursor: sqlite3.Cursor, profile_id: str) -> Dict[str, Any]:
        cursor.execute("SELECT document FROM providers WHERE provider_id = ?", [profile_id])
        row = cursor.fetchone()
        if row is None:
            raise ProfileNotFoundError(profile_id)
        return json.loads(row[0])

    def _write_document(self, cursor: sqlite3.Cursor, profile: ProviderProfile):
        document = profile.to_document()
        cursor.execute('''
            UPDATE providers SET document = ?, verification_status = ?, updated_at = ?
            WHERE provider_id = ?
        ''', [
            json.dumps(document),
            profile.verification_status.value,
            document.get("updatedAt"),
            profile.id,
        ])

    def create_profile(self, profile: ProviderProfile) -> ProviderProfile:
        """
        Insert a newly registered profile.

        Args:
            profile: Profile to store

        Returns:
            Stored profile with timestamps set
        """
        now = datetime.now(timezone.utc)
        profile = profile.model_copy(update={
            "created_at": profile.created_at or now,
            "updated_at": now,
        })
        document = profile.to_document()

        conn = self._connect()
        try:
            conn.execute('''
                INSERT INTO providers (provider_id, document, verification_status, updated_at)
                VALUES (?, ?, ?, ?)
            ''', [profile.id, json.dumps(document), profile.verification_status.value,
                  document.get("updatedAt")])
        except sqlite3.Error as e:
            logger.error(f"Failed to create provider {profile.id}: {e}")
            raise PersistenceError(f"Failed to create provider {profile.id}: {e}") from e
        finally:
            conn.close()

        logger.info(f"Created provider {profile.id} ({profile.verification_status.value})")
        return profile

    def get_profile(self, profile_id: str) -> ProviderProfile:
        """
        Load one profile.

        Args:
            profile_id: Provider id

        Returns:
            Provider profile
        """
        conn = self._connect()
        try:
            document = self._read_document(conn.cursor(), profile_id)
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to read provider {profile_id}: {e}") from e
        finally:
            conn.close()
        return ProviderProfile.model_validate(document)

    def list_profiles(self, status: Optional[VerificationStatus] = None) -> List[ProviderProfile]:
        """
        List stored profiles, optionally filtered by verification status.

        Args:
            status: Status filter

        Returns:
            Profiles ordered by id
        """
        query = "SELECT document FROM providers"
        params: List[Any] = []
        if status is not None:
            query += " WHERE verification_status = ?"
            params.append(status.value)
        query += " ORDER BY provider_id"

        conn = self._connect()
        try:
            rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to list providers: {e}") from e
        finally:
            conn.close()
        return [ProviderProfile.model_validate(json.loads(row[0])) for row in rows]

    def apply_update(self, profile_id: str, diff: Mapping[str, Any],
                     status_change: Optional[StatusChange] = None,
                     expected_status: Optional[VerificationStatus] = None) -> ProviderProfile:
        """
        Apply a content diff and optional status change in one transaction.

        Args:
            profile_id: Provider id
            diff: Mapping of field key to new value
            status_change: Status transition to write with the diff
            expected_status: Status the caller based its decision on; the
                write is refused if the stored status differs

        Returns:
            Committed profile

        Raises:
            ProfileNotFoundError: If the profile does not exist
            InvalidUpdateError: If the merged document is not a valid profile
            PersistenceError: If the write fails; nothing is committed
        """
        conn = self._connect()
        cursor = conn.cursor()
        try:
            cursor.execute("BEGIN IMMEDIATE")
            current = ProviderProfile.model_validate(self._read_document(cursor, profile_id))

            if expected_status is None and status_change is not None:
                expected_status = status_change.from_status
            if expected_status is not None and expected_status != current.verification_status:
                raise StaleProfileError(profile_id, expected_status, current.verification_status)

            document = current.to_document()
            for key in _COMPUTED_KEYS:
                document.pop(key, None)
            document.update(diff)
            if status_change is not None:
                document.update(status_change.as_fields())
            document["updatedAt"] = datetime.now(timezone.utc).isoformat()

            updated = ProviderProfile.model_validate(document)
            self._write_document(cursor, updated)
            cursor.execute("COMMIT")
        except ValidationError as e:
            conn.rollback()
            raise InvalidUpdateError([str(err["msg"]) for err in e.errors()]) from e
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.rollback()
            logger.error(f"Failed to update provider {profile_id}, nothing committed: {e}")
            raise PersistenceError(f"Failed to update provider {profile_id}: {e}") from e
        except Exception:
            if conn.in_transaction:
                conn.rollback()
            raise
        finally:
            conn.close()

        logger.info(f"Committed update to provider {profile_id}: "
                    f"{len(diff)} field(s), status={updated.verification_status.value}")
        return updated
