"""Shared data type definitions (sessions, receipts, catalog objects, lineage events)."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class SessionState(str, Enum):
    """
    Lifecycle states of a chunked upload session.
    """
    CREATED = "CREATED"
    SIGNING = "SIGNING"
    COMPLETING = "COMPLETING"
    COMPLETED = "COMPLETED"
    ABORTING = "ABORTING"
    ABORTED = "ABORTED"

    @property
    def is_open(self) -> bool:
        return self in (SessionState.CREATED, SessionState.SIGNING)


class LineageAction(str, Enum):
    UPLOAD = "upload"
    REPLACE = "replace"
    RENAME = "rename"
    DELETE = "delete"


@dataclass
class UploadSession:
    """
    One in-progress chunked upload.
    """
    session_id: str
    object_key: str
    declared_size: int
    chunk_size: int
    total_chunks: int
    content_type: str
    state: SessionState
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class ChunkAuthorization:
    """
    Time-boxed capability to upload exactly one chunk.
    """
    session_id: str
    chunk_number: int
    url: str
    expires_at: datetime


@dataclass(frozen=True)
class ChunkReceipt:
    """
    Proof that the backend durably stored one chunk.
    """
    chunk_number: int
    integrity_tag: str


@dataclass(frozen=True)
class ObjectHead:
    """
    Metadata returned by a HEAD request against the object store.
    """
    key: str
    size: int
    last_modified: Optional[datetime]
    content_type: Optional[str]
    content_identifier: Optional[str]
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ObjectSummary:
    key: str
    size: int
    last_modified: Optional[datetime]


@dataclass(frozen=True)
class ObjectPage:
    items: List[ObjectSummary]
    next_page_token: Optional[str]


@dataclass(frozen=True)
class CatalogObject:
    """
    Durable, addressable unit in the store.
    """
    key: str
    size: int
    last_modified: Optional[datetime]
    content_type: Optional[str]
    content_identifier: Optional[str]
    uploader: Optional[str]


@dataclass(frozen=True)
class LineageEvent:
    """
    Immutable audit record. `sequence` is the log-append position and is
    assigned by the audit store; it is None until the event is persisted.
    """
    timestamp: datetime
    action: LineageAction
    key: str
    from_key: Optional[str] = None
    user: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)
    sequence: Optional[int] = None


@dataclass(frozen=True)
class CompletedUpload:
    key: str
    content_identifier: Optional[str]
    uploader: str
    action: LineageAction


@dataclass(frozen=True)
class RenameResult:
    from_key: str
    key: str
    unchanged: bool
    last_modified: Optional[datetime] = None
