"""Integration tests for database repositories."""

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from common.types import LineageAction, LineageEvent, SessionState
from coordinator.database import get_db_connection
from coordinator.repositories.audit_repository import AuditRepository
from coordinator.repositories.session_repository import SessionRepository


def get_table_columns(db_path, table_name: str) -> set:
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()
    cursor.execute(f"PRAGMA table_info({table_name})")
    columns = {row[1] for row in cursor.fetchall()}
    conn.close()
    return columns


def make_session(session_id="upload-1", key="report.pdf"):
    return SessionRepository.create_session(
        session_id=session_id,
        object_key=key,
        content_type="application/pdf",
        declared_size=100_000_000,
        chunk_size=8 * 1024 * 1024,
        total_chunks=12,
    )


class TestSchema:
    """Validate the tables the repositories query."""

    def test_upload_sessions_columns(self, test_db):
        assert get_table_columns(test_db, "upload_sessions") == {
            "session_id", "object_key", "content_type", "declared_size", "chunk_size",
            "total_chunks", "state", "created_at", "updated_at",
        }

    def test_audit_events_columns(self, test_db):
        assert get_table_columns(test_db, "audit_events") == {
            "sequence", "timestamp", "action", "object_key", "from_key", "user", "meta",
        }


class TestSessionRepository:
    """Test SessionRepository lifecycle operations."""

    def test_create_and_get_session(self, test_db):
        created = make_session()
        loaded = SessionRepository.get_session("upload-1")

        assert loaded == created
        assert loaded.state == SessionState.CREATED
        assert loaded.total_chunks == 12

    def test_get_missing_session(self, test_db):
        assert SessionRepository.get_session("nope") is None

    def test_transition_from_allowed_state(self, test_db):
        make_session()

        assert SessionRepository.transition("upload-1", [SessionState.CREATED], SessionState.SIGNING)
        assert SessionRepository.get_session("upload-1").state == SessionState.SIGNING

    def test_transition_is_compare_and_set(self, test_db):
        make_session()
        SessionRepository.transition("upload-1", [SessionState.CREATED], SessionState.COMPLETING)

        assert not SessionRepository.transition(
            "upload-1", [SessionState.CREATED, SessionState.SIGNING], SessionState.ABORTING
        )
        assert SessionRepository.get_session("upload-1").state == SessionState.COMPLETING

    def test_transition_unknown_session(self, test_db):
        assert not SessionRepository.transition("nope", [SessionState.CREATED], SessionState.SIGNING)

    def test_find_stale_sessions_only_returns_open_sessions(self, test_db):
        make_session("open-1", "a.bin")
        make_session("open-2", "b.bin")
        make_session("done", "c.bin")
        SessionRepository.transition("open-2", [SessionState.CREATED], SessionState.SIGNING)
        SessionRepository.transition("done", [SessionState.CREATED], SessionState.COMPLETED)

        future = datetime.now(timezone.utc) + timedelta(minutes=1)
        stale = SessionRepository.find_stale_sessions(future)

        assert {s.session_id for s in stale} == {"open-1", "open-2"}

    def test_find_stale_sessions_respects_cutoff(self, test_db):
        make_session()
        past = datetime.now(timezone.utc) - timedelta(hours=1)

        assert SessionRepository.find_stale_sessions(past) == []


class TestAuditRepository:
    """Test AuditRepository append and read behavior."""

    def _event(self, action, key, from_key=None, ts=None):
        return LineageEvent(
            timestamp=ts or datetime.now(timezone.utc),
            action=action,
            key=key,
            from_key=from_key,
            user="jake",
            meta={"size": 10},
        )

    def test_append_assigns_increasing_sequence(self, test_db):
        first = AuditRepository.append(self._event(LineageAction.UPLOAD, "a.pdf"))
        second = AuditRepository.append(self._event(LineageAction.RENAME, "b.pdf", "a.pdf"))

        assert first.sequence is not None
        assert second.sequence > first.sequence

    def test_read_all_returns_events_in_append_order(self, test_db):
        ts = datetime(2025, 9, 5, 12, 0, tzinfo=timezone.utc)
        AuditRepository.append(self._event(LineageAction.UPLOAD, "a.pdf", ts=ts))
        AuditRepository.append(self._event(LineageAction.RENAME, "b.pdf", "a.pdf", ts=ts))

        events = AuditRepository.read_all()

        assert [e.action for e in events] == [LineageAction.UPLOAD, LineageAction.RENAME]
        assert events[1].from_key == "a.pdf"
        assert events[0].timestamp == ts
        assert events[0].meta == {"size": 10}
        assert events[0].user == "jake"

    def test_read_for_keys_matches_key_or_from_key(self, test_db):
        AuditRepository.append(self._event(LineageAction.UPLOAD, "a.pdf"))
        AuditRepository.append(self._event(LineageAction.RENAME, "b.pdf", "a.pdf"))
        AuditRepository.append(self._event(LineageAction.UPLOAD, "other.pdf"))

        events = AuditRepository.read_for_keys(["a.pdf"])

        assert [e.key for e in events] == ["a.pdf", "b.pdf"]
        assert AuditRepository.read_for_keys([]) == []

    def test_events_are_persisted_as_rows(self, test_db):
        AuditRepository.append(self._event(LineageAction.DELETE, "a.pdf"))

        with get_db_connection() as conn:
            row = conn.execute("SELECT action, object_key, meta FROM audit_events").fetchone()

        assert row["action"] == "delete"
        assert row["object_key"] == "a.pdf"
        assert row["meta"] == '{"size": 10}'
