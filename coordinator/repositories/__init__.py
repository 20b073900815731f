"""Repository layer for data access."""

from coordinator.repositories.session_repository import SessionRepository
from coordinator.repositories.audit_repository import AuditRepository

__all__ = [
    "SessionRepository",
    "AuditRepository",
]
