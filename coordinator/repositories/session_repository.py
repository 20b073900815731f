"""Upload session repository for database operations."""

import logging
import sqlite3
from datetime import datetime
from typing import Iterable, List, Optional

from common.types import SessionState, UploadSession
from coordinator.database import get_db_connection
from coordinator.utils import utc_now

logger = logging.getLogger(__name__)

_COLUMNS = (
    "session_id, object_key, content_type, declared_size, chunk_size, "
    "total_chunks, state, created_at, updated_at"
)


def _row_to_session(row: sqlite3.Row) -> UploadSession:
    return UploadSession(
        session_id=row["session_id"],
        object_key=row["object_key"],
        content_type=row["content_type"],
        declared_size=row["declared_size"],
        chunk_size=row["chunk_size"],
        total_chunks=row["total_chunks"],
        state=SessionState(row["state"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class SessionRepository:
    """
    Explicit store of upload sessions keyed by the backend-assigned id.

    State changes go through `transition`, a compare-and-set UPDATE, so two
    concurrent requests can never both move a session out of the same state.
    """

    @staticmethod
    def create_session(
        session_id: str,
        object_key: str,
        content_type: str,
        declared_size: int,
        chunk_size: int,
        total_chunks: int,
    ) -> UploadSession:
        now = utc_now()
        with get_db_connection() as conn:
            conn.execute(
                f"""
                INSERT INTO upload_sessions ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session_id,
                    object_key,
                    content_type,
                    declared_size,
                    chunk_size,
                    total_chunks,
                    SessionState.CREATED.value,
                    now.isoformat(),
                    now.isoformat(),
                )
            )
            conn.commit()

        logger.debug(f"Stored upload session [session_id={session_id}] [key={object_key}]")
        return UploadSession(
            session_id=session_id,
            object_key=object_key,
            declared_size=declared_size,
            chunk_size=chunk_size,
            total_chunks=total_chunks,
            content_type=content_type,
            state=SessionState.CREATED,
            created_at=now,
            updated_at=now,
        )

    @staticmethod
    def get_session(session_id: str) -> Optional[UploadSession]:
        with get_db_connection() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM upload_sessions WHERE session_id = ?",
                (session_id,)
            ).fetchone()

        if row is None:
            return None
        return _row_to_session(row)

    @staticmethod
    def transition(
        session_id: str,
        from_states: Iterable[SessionState],
        to_state: SessionState,
    ) -> bool:
        """
        Move a session to `to_state` if it is currently in one of `from_states`.

        Returns:
            True if this call performed the transition, False otherwise
        """
        states = [state.value for state in from_states]
        placeholders = ", ".join("?" for _ in states)

        with get_db_connection() as conn:
            cursor = conn.execute(
                f"""
                UPDATE upload_sessions
                SET state = ?, updated_at = ?
                WHERE session_id = ? AND state IN ({placeholders})
                """,
                (to_state.value, utc_now().isoformat(), session_id, *states)
            )
            conn.commit()
            changed = cursor.rowcount == 1

        if changed:
            logger.debug(f"Session {session_id} -> {to_state.value}")
        return changed

    @staticmethod
    def find_stale_sessions(older_than: datetime) -> List[UploadSession]:
        """
        Open sessions (CREATED or SIGNING) not touched since `older_than`.
        """
        with get_db_connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM upload_sessions
                WHERE state IN (?, ?) AND updated_at < ?
                ORDER BY updated_at
                """,
                (SessionState.CREATED.value, SessionState.SIGNING.value, older_than.isoformat())
            ).fetchall()

        return [_row_to_session(row) for row in rows]
