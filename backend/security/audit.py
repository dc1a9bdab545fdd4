"""
Audit logging for privileged and value-moving engine actions.
Tracks admin commands, fee distributions, NFT pool changes and streak rewards.
"""
import logging
import sqlite3
from datetime import datetime
from typing import Dict, List, Optional, Sequence
from enum import Enum

logger = logging.getLogger(__name__)


class AuditEventType(Enum):
    """Types of events to audit."""
    # Authorization
    UNAUTHORIZED_ATTEMPT = "unauthorized_attempt"

    # Admin actions
    ADMIN_ACTION = "admin_action"
    ENGINE_PAUSED = "engine_paused"
    FEES_DISTRIBUTED = "fees_distributed"
    EXCESS_FUNDS_SENT = "excess_funds_sent"

    # NFT pool
    NFT_DEPOSITED = "nft_deposited"
    NFT_WITHDRAWN = "nft_withdrawn"

    # Streak mini game
    STREAK_REWARD = "streak_reward"


ADMIN_EVENTS = (
    AuditEventType.ADMIN_ACTION,
    AuditEventType.ENGINE_PAUSED,
    AuditEventType.FEES_DISTRIBUTED,
    AuditEventType.EXCESS_FUNDS_SENT,
    AuditEventType.NFT_WITHDRAWN,
)


class AuditSeverity(Enum):
    """Severity levels for audit events."""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class AuditLogger:
    """Audit log stored next to the engine state."""

    def __init__(self, db_path: str = "coinflip.db"):
        self.db_path = db_path
        self._init_audit_table()

    def _init_audit_table(self):
        """Create the audit table and its lookup indexes."""
        conn = sqlite3.connect(self.db_path)
        try:
            with conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS audit_logs (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        event_type TEXT NOT NULL,
                        actor TEXT,
                        block_height INTEGER,
                        details TEXT,
                        severity TEXT NOT NULL,
                        timestamp TEXT NOT NULL
                    )
                """)
                for column in ("actor", "event_type", "block_height"):
                    conn.execute(f"CREATE INDEX IF NOT EXISTS idx_audit_{column} ON audit_logs({column})")
        finally:
            conn.close()

    def log(
        self,
        event_type: AuditEventType,
        severity: AuditSeverity = AuditSeverity.INFO,
        actor: Optional[str] = None,
        block_height: Optional[int] = None,
        details: Optional[str] = None,
    ):
        """Record one event and mirror it to the application log.

        A failed write is reported but never fails the command that
        triggered it; the command has already committed.

        Args:
            event_type: Type of event
            severity: Severity level
            actor: Address that sent the command
            block_height: Block the command executed in
            details: Free-form summary of the command and its result
        """
        row = (event_type.value, actor, block_height, details, severity.value, datetime.utcnow().isoformat())
        try:
            conn = sqlite3.connect(self.db_path)
            try:
                with conn:
                    conn.execute(
                        "INSERT INTO audit_logs (event_type, actor, block_height, details, severity, timestamp) "
                        "VALUES (?, ?, ?, ?, ?, ?)",
                        row,
                    )
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"[AUDIT] Failed to record {event_type.value}: {e}", exc_info=True)

        _mirror(event_type, severity, actor, details)

    def get_recent_events(
        self,
        limit: int = 100,
        severity: Optional[AuditSeverity] = None,
        event_type: Optional[AuditEventType] = None,
        actor: Optional[str] = None
    ) -> List[dict]:
        """Most recent events, newest first, optionally filtered."""
        filters = {
            "severity": severity.value if severity else None,
            "event_type": event_type.value if event_type else None,
            "actor": actor,
        }
        clauses = [f"{column} = ?" for column, value in filters.items() if value is not None]
        params = [value for value in filters.values() if value is not None]

        query = "SELECT * FROM audit_logs"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY id DESC LIMIT ?"

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            rows = conn.execute(query, params + [limit]).fetchall()
        finally:
            conn.close()

        return [dict(row) for row in rows]

    def get_summary(self, since_block: int = 0, repeat_threshold: int = 3) -> dict:
        """Summarize events recorded at or after `since_block`.

        Args:
            since_block: First block height to include
            repeat_threshold: Rejections above this count flag a sender

        Returns:
            Dict with counts per severity and event type, the admin
            commands per actor, and senders rejected more than
            `repeat_threshold` times
        """
        conn = sqlite3.connect(self.db_path)
        try:
            def grouped(column: str, event_types: Sequence[AuditEventType] = ()) -> Dict[str, int]:
                query = f"SELECT {column}, COUNT(*) FROM audit_logs WHERE block_height >= ?"
                params = [since_block]
                if event_types:
                    query += f" AND event_type IN ({', '.join('?' for _ in event_types)})"
                    params.extend(t.value for t in event_types)
                return dict(conn.execute(query + f" GROUP BY {column}", params).fetchall())

            by_severity = grouped("severity")
            by_event = grouped("event_type")
            rejected = grouped("actor", [AuditEventType.UNAUTHORIZED_ATTEMPT])
            admin_activity = grouped("actor", ADMIN_EVENTS)
        finally:
            conn.close()

        return {
            "since_block": since_block,
            "severity_counts": by_severity,
            "event_counts": by_event,
            "admin_activity": admin_activity,
            "repeat_offenders": sorted(
                (actor for actor, count in rejected.items() if count > repeat_threshold),
                key=lambda actor: -rejected[actor],
            ),
            "total_warnings": by_severity.get(AuditSeverity.WARNING.value, 0),
        }


class NullAuditLogger:
    """Audit sink for in-memory engines: mirrors to the logger, stores nothing."""

    def log(
        self,
        event_type: AuditEventType,
        severity: AuditSeverity = AuditSeverity.INFO,
        actor: Optional[str] = None,
        block_height: Optional[int] = None,
        details: Optional[str] = None,
    ):
        _mirror(event_type, severity, actor, details)


def _mirror(event_type: AuditEventType, severity: AuditSeverity, actor: Optional[str], details: Optional[str]):
    """Also log to application logger."""
    log_msg = f"[AUDIT] {event_type.value}"
    if actor:
        log_msg += f" | actor={actor}"
    if details:
        log_msg += f" | {details}"

    if severity == AuditSeverity.CRITICAL:
        logger.critical(log_msg)
    elif severity == AuditSeverity.WARNING:
        logger.warning(log_msg)
    else:
        logger.info(log_msg)
