"""Service locator for the shared object store client."""

from typing import Optional

from coordinator.object_store import ObjectStore, S3ObjectStore

_object_store: Optional[ObjectStore] = None


def set_object_store(store: Optional[ObjectStore]):
    """Set global object store instance"""
    global _object_store
    _object_store = store


def get_object_store() -> ObjectStore:
    """Get global object store instance, creating the S3 client on first use"""
    global _object_store
    if _object_store is None:
        _object_store = S3ObjectStore()
    return _object_store
