"""
Audit logging and admin notifications for ProviderTrust.

Records verification decisions, profile edits and revocations, and queues
notifications for the admin review team. Writes are fire-and-forget: a
failure is logged and never propagates to the operation being audited.
"""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from ..classify.labels import field_labels
from ..normalize.config import DEFAULT_CONFIG_PATH, load_trust_config

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    """Actions recorded in the audit trail."""

    PROVIDER_APPROVED = "provider_approved"
    PROVIDER_REJECTED = "provider_rejected"
    PROVIDER_EDITED = "provider_edited"
    VERIFICATION_REVOKED = "verification_revoked"
    VERIFICATION_SUBMITTED = "verification_submitted"
    DOCUMENT_SCORED = "document_scored"


def build_revocation_message(modified_fields: List[str], limit: int = 3) -> str:
    """
    Summarize revoked fields for an admin notification.

    Args:
        modified_fields: Sensitive field keys, in edit order
        limit: Maximum number of labels to spell out

    Returns:
        Message such as "Provider modified: Address, Phone and 2 others."
    """
    labels = field_labels(modified_fields)
    if len(labels) > limit:
        shown = labels[:limit - 1] if limit > 1 else labels[:1]
        fields_text = f"{', '.join(shown)} and {len(labels) - len(shown)} others"
    else:
        fields_text = ", ".join(labels)
    return f"Provider modified: {fields_text}. A new verification is required."


class AuditLogger:
    """
    SQLite-backed audit trail and admin notification queue.

    Read methods return pandas DataFrames for the admin dashboard.
    """

    def __init__(self, db_path: str = "data/audit.db", notification_field_limit: int = 3):
        """
        Initialize audit logger.

        Args:
            db_path: Path to the audit database
            notification_field_limit: Labels spelled out per notification
        """
        self.db_path = db_path
        self.notification_field_limit = notification_field_limit

        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

        logger.info("Initialized AuditLogger")

    def _init_database(self):
        """Initialize audit database with required tables."""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS audit_log (
                audit_id INTEGER PRIMARY KEY AUTOINCREMENT,
                action TEXT NOT NULL,
                target_id TEXT NOT NULL,
                target_type TEXT NOT NULL DEFAULT 'provider',
                actor TEXT,
                details TEXT,
                reason TEXT,
                timestamp TEXT NOT NULL
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS admin_notifications (
                notification_id INTEGER PRIMARY KEY AUTOINCREMENT,
                type TEXT NOT NULL,
                priority TEXT NOT NULL DEFAULT 'medium',
                title TEXT NOT NULL,
                message TEXT NOT NULL,
                provider_id TEXT,
                provider_name TEXT,
                metadata TEXT,
                is_read INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            )
        ''')

        conn.commit()
        conn.close()

        logger.info("Initialized audit database")

    def record(self, action: AuditAction, target_id: str,
               details: Optional[Dict[str, Any]] = None,
               reason: Optional[str] = None, actor: Optional[str] = None,
               target_type: str = "provider") -> Optional[int]:
        """
        Record one audit entry.

        Args:
            action: Audited action
            target_id: Id of the affected entity
            details: JSON-serializable detail payload
            reason: Free-text reason
            actor: Admin or user who triggered the action
            target_type: Kind of entity

        Returns:
            Audit entry id, or None if the entry could not be written
        """
        action_value = action.value if isinstance(action, AuditAction) else str(action)
        try:
            conn = sqlite3.connect(self.db_path)
            try:
                cursor = conn.execute('''
                    INSERT INTO audit_log (action, target_id, target_type, actor, details, reason, timestamp)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                ''', [
                    action_value,
                    target_id,
                    target_type,
                    actor,
                    json.dumps(details, default=str) if details is not None else None,
                    reason,
                    datetime.now(timezone.utc).isoformat(),
                ])
                conn.commit()
                audit_id = cursor.lastrowid
            finally:
                conn.close()
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.warning(f"Failed to record audit entry {action_value} on {target_type}/{target_id}: {e}")
            return None

        logger.info(f"Audit log created: {action_value} on {target_type}/{target_id}")
        return audit_id

    def _query(self, query: str, params: List[Any]) -> pd.DataFrame:
        conn = sqlite3.connect(self.db_path)
        try:
            df = pd.read_sql_query(query, conn, params=params)
        finally:
            conn.close()

        for column in ("details", "metadata"):
            if column in df.columns:
                df[column] = df[column].apply(lambda v: json.loads(v) if isinstance(v, str) and v else None)
        return df

    def get_logs_for_target(self, target_id: str, target_type: str = "provider") -> pd.DataFrame:
        """
        Get audit entries for one entity, newest first.

        Args:
            target_id: Entity id
            target_type: Kind of entity

        Returns:
            DataFrame with audit entries
        """
        return self._query('''
            SELECT * FROM audit_log
            WHERE target_id = ? AND target_type = ?
            ORDER BY timestamp DESC, audit_id DESC
        ''', [target_id, target_type])

    def get_logs_by_actor(self, actor: str) -> pd.DataFrame:
        """Get audit entries created by one admin, newest first."""
        return self._query('''
            SELECT * FROM audit_log WHERE actor = ?
            ORDER BY timestamp DESC, audit_id DESC
        ''', [actor])

    def get_recent_logs(self, limit: int = 50) -> pd.DataFrame:
        """
        Get the most recent audit entries.

        Args:
            limit: Maximum number of entries

        Returns:
            DataFrame with audit entries
        """
        return self._query('''
            SELECT * FROM audit_log
            ORDER BY timestamp DESC, audit_id DESC
            LIMIT ?
        ''', [limit])

    def create_notification(self, notification_type: str, title: str, message: str,
                            provider_id: Optional[str] = None,
                            provider_name: Optional[str] = None,
                            priority: str = "medium",
                            metadata: Optional[Dict[str, Any]] = None) -> Optional[int]:
        """
        Queue an admin notification.

        Returns:
            Notification id, or None if it could not be written
        """
        try:
            conn = sqlite3.connect(self.db_path)
            try:
                cursor = conn.execute('''
                    INSERT INTO admin_notifications
                    (type, priority, title, message, provider_id, provider_name, metadata, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ''', [
                    notification_type,
                    priority,
                    title,
                    message,
                    provider_id,
                    provider_name,
                    json.dumps(metadata, default=str) if metadata is not None else None,
                    datetime.now(timezone.utc).isoformat(),
                ])
                conn.commit()
                notification_id = cursor.lastrowid
            finally:
                conn.close()
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.warning(f"Failed to create admin notification {notification_type}: {e}")
            return None

        logger.info(f"Admin notification created: {notification_type} - {title}")
        return notification_id

    def notify_verification_revoked(self, provider_id: str, provider_name: str,
                                    modified_fields: List[str]) -> Optional[int]:
        """
        Notify admins that a verified provider edited sensitive fields.

        Args:
            provider_id: Provider id
            provider_name: Provider display name
            modified_fields: Sensitive field keys that caused the revocation

        Returns:
            Notification id, or None on failure
        """
        return self.create_notification(
            "verification_revoked",
            title=f"Verification revoked: {provider_name}",
            message=build_revocation_message(modified_fields, self.notification_field_limit),
            provider_id=provider_id,
            provider_name=provider_name,
            priority="high",
            metadata={
                "modifiedFields": list(modified_fields),
                "revokedAt": datetime.now(timezone.utc).isoformat(),
            },
        )

    def notify_verification_submitted(self, provider_id: str, provider_name: str) -> Optional[int]:
        """Notify admins that a provider submitted documents for review."""
        return self.create_notification(
            "verification_submitted",
            title=f"Verification request: {provider_name}",
            message="Documents were submitted and await review.",
            provider_id=provider_id,
            provider_name=provider_name,
            priority="medium",
        )

    def get_unread_notifications(self) -> pd.DataFrame:
        """Get unread admin notifications, high priority first."""
        return self._query('''
            SELECT * FROM admin_notifications
            WHERE is_read = 0
            ORDER BY CASE priority WHEN 'high' THEN 0 WHEN 'medium' THEN 1 ELSE 2 END,
                     created_at DESC
        ''', [])

    def mark_read(self, notification_id: int) -> bool:
        """
        Mark a notification as read.

        Returns:
            True if a notification was updated
        """
        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.execute(
                "UPDATE admin_notifications SET is_read = 1 WHERE notification_id = ?",
                [notification_id],
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()


def create_audit_logger(config_path: str = DEFAULT_CONFIG_PATH) -> AuditLogger:
    """
    Convenience function to create audit logger.

    Args:
        config_path: Path to configuration file

    Returns:
        Initialized audit logger
    """
    audit_config = load_trust_config(config_path).get("audit", {})
    return AuditLogger(
        db_path=audit_config.get("db_path", "data/audit.db"),
        notification_field_limit=audit_config.get("notification_field_limit", 3),
    )
