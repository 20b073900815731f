"""
Append-only audit log of lineage events.

Rows are only ever inserted. The AUTOINCREMENT sequence column records
log-append order and breaks timestamp ties.
"""

import json
import logging
import sqlite3
from datetime import datetime
from typing import Iterable, List

from common.types import LineageAction, LineageEvent
from coordinator.database import get_db_connection

logger = logging.getLogger(__name__)

_COLUMNS = "sequence, timestamp, action, object_key, from_key, user, meta"


def _row_to_event(row: sqlite3.Row) -> LineageEvent:
    return LineageEvent(
        timestamp=datetime.fromisoformat(row["timestamp"]),
        action=LineageAction(row["action"]),
        key=row["object_key"],
        from_key=row["from_key"],
        user=row["user"],
        meta=json.loads(row["meta"]) if row["meta"] else {},
        sequence=row["sequence"],
    )


class AuditRepository:
    @staticmethod
    def append(event: LineageEvent) -> LineageEvent:
        """
        Durably append one event in its own transaction.

        Returns:
            The stored event with its log sequence number
        """
        with get_db_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO audit_events (timestamp, action, object_key, from_key, user, meta)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    event.timestamp.isoformat(),
                    event.action.value,
                    event.key,
                    event.from_key,
                    event.user,
                    json.dumps(event.meta or {}),
                )
            )
            conn.commit()
            sequence = cursor.lastrowid

        logger.info(
            f"Audit event #{sequence}: {event.action.value} key={event.key}"
            + (f" from_key={event.from_key}" if event.from_key else "")
        )
        return LineageEvent(
            timestamp=event.timestamp,
            action=event.action,
            key=event.key,
            from_key=event.from_key,
            user=event.user,
            meta=dict(event.meta or {}),
            sequence=sequence,
        )

    @staticmethod
    def read_all() -> List[LineageEvent]:
        """
        All events in log-append order.
        """
        with get_db_connection() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM audit_events ORDER BY sequence"
            ).fetchall()
        return [_row_to_event(row) for row in rows]

    @staticmethod
    def read_for_keys(keys: Iterable[str]) -> List[LineageEvent]:
        """
        Events whose key or from_key is in `keys`, in log-append order.
        """
        keys = list(keys)
        if not keys:
            return []

        placeholders = ", ".join("?" for _ in keys)
        with get_db_connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM audit_events
                WHERE object_key IN ({placeholders}) OR from_key IN ({placeholders})
                ORDER BY sequence
                """,
                (*keys, *keys)
            ).fetchall()
        return [_row_to_event(row) for row in rows]
