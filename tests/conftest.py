"""Shared pytest fixtures for all tests."""

import hashlib
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from common.types import ChunkReceipt, ObjectHead, ObjectPage, ObjectSummary
from coordinator.database import init_database
from coordinator.exceptions import BackendUnavailableError
from coordinator.object_store import ObjectStore
from coordinator.service_locator import set_object_store


class FakeObjectStore(ObjectStore):
    """
    In-memory S3-compatible backend.

    Clients "upload" parts with put_part; assembly checks ETags and sums part
    sizes the way a real backend would. Operation names listed in
    `failing` raise BackendUnavailableError.
    """

    def __init__(self):
        self.objects: Dict[str, dict] = {}
        self.uploads: Dict[str, dict] = {}
        self.failing = set()
        self.publish_cid_on_complete = True
        self.calls: List[str] = []
        self._next_upload = 0

    def _enter(self, operation: str, key: Optional[str] = None, session_id: Optional[str] = None):
        self.calls.append(operation)
        if operation in self.failing:
            raise BackendUnavailableError(operation, key=key, session_id=session_id, reason="injected failure")

    def add_object(self, key: str, size: int = 10, metadata: Optional[dict] = None, content_type: str = "application/pdf"):
        self.objects[key] = {
            "size": size,
            "metadata": dict(metadata or {}),
            "content_type": content_type,
            "last_modified": datetime(2025, 9, 5, 12, 0, tzinfo=timezone.utc),
        }

    def put_part(self, session_id: str, part_number: int, size: int) -> str:
        etag = '"' + hashlib.md5(f"{session_id}:{part_number}:{size}".encode()).hexdigest() + '"'
        self.uploads[session_id]["parts"][part_number] = (etag, size)
        return etag

    async def reserve_multipart_upload(self, key: str, content_type: str) -> str:
        self._enter("create_multipart_upload", key=key)
        self._next_upload += 1
        session_id = f"upload-{self._next_upload}"
        self.uploads[session_id] = {"key": key, "content_type": content_type, "parts": {}}
        return session_id

    async def authorize_chunk_upload(self, session_id: str, key: str, chunk_number: int, expires_in: int) -> str:
        self._enter("generate_presigned_url", key=key, session_id=session_id)
        return (
            f"https://s3.test/bucket/{key}?partNumber={chunk_number}"
            f"&uploadId={session_id}&X-Amz-Expires={expires_in}"
        )

    async def assemble_upload(self, session_id: str, key: str, receipts: List[ChunkReceipt], metadata: Dict[str, str]):
        self._enter("complete_multipart_upload", key=key, session_id=session_id)
        upload = self.uploads.get(session_id)
        if upload is None or upload["key"] != key:
            raise BackendUnavailableError("complete_multipart_upload", key=key, session_id=session_id, reason="NoSuchUpload")

        size = 0
        for receipt in receipts:
            etag, part_size = upload["parts"][receipt.chunk_number]
            if etag != receipt.integrity_tag:
                raise BackendUnavailableError("complete_multipart_upload", key=key, session_id=session_id, reason="InvalidPart")
            size += part_size

        cid = "bafy" + hashlib.sha256(f"{key}:{session_id}".encode()).hexdigest()[:32]
        self.add_object(key, size=size, metadata=dict(metadata, cid=cid), content_type=upload["content_type"])
        del self.uploads[session_id]
        return cid if self.publish_cid_on_complete else None

    async def abort_multipart_upload(self, session_id: str, key: str) -> bool:
        self._enter("abort_multipart_upload", key=key, session_id=session_id)
        return self.uploads.pop(session_id, None) is not None

    async def head_object(self, key: str) -> Optional[ObjectHead]:
        self._enter("head_object", key=key)
        obj = self.objects.get(key)
        if obj is None:
            return None
        return ObjectHead(
            key=key,
            size=obj["size"],
            last_modified=obj["last_modified"],
            content_type=obj["content_type"],
            content_identifier=obj["metadata"].get("cid"),
            metadata=dict(obj["metadata"]),
        )

    async def list_objects(self, prefix: str, page_token: Optional[str], max_items: int) -> ObjectPage:
        self._enter("list_objects_v2", key=prefix)
        keys = sorted(k for k in self.objects if k.startswith(prefix))
        start = int(page_token) if page_token else 0
        page = keys[start:start + max_items]
        next_token = str(start + max_items) if start + max_items < len(keys) else None
        return ObjectPage(
            items=[
                ObjectSummary(key=k, size=self.objects[k]["size"], last_modified=self.objects[k]["last_modified"])
                for k in page
            ],
            next_page_token=next_token,
        )

    async def copy_object(self, from_key: str, to_key: str) -> None:
        self._enter("copy", key=to_key)
        source = self.objects[from_key]
        self.objects[to_key] = dict(source, metadata=dict(source["metadata"]))

    async def delete_object(self, key: str) -> None:
        self._enter("delete_object", key=key)
        self.objects.pop(key, None)


@pytest.fixture
def test_db(monkeypatch):
    """
    Create a temporary test database for each test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        monkeypatch.setattr("coordinator.config.DATABASE_PATH", str(db_path))
        init_database()
        yield db_path


@pytest.fixture
def object_store():
    """
    In-memory object store, also installed as the service-wide store.
    """
    store = FakeObjectStore()
    set_object_store(store)
    yield store
    set_object_store(None)
