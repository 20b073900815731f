"""Pydantic schemas for API requests and responses."""

from coordinator.schemas.uploads import (
    CreateUploadRequest,
    CreateUploadResponse,
    SignPartResponse,
    PartReceipt,
    CompleteUploadRequest,
    CompleteUploadResponse,
    AbortUploadRequest,
    AbortUploadResponse
)
from coordinator.schemas.catalog import (
    CatalogEntry,
    ListCatalogResponse,
    CatalogItemResponse,
    RenameRequest,
    RenameResponse,
    DeleteItemResponse,
    LineageEventResponse,
    HistoryResponse
)
from coordinator.schemas.common import ErrorResponse

__all__ = [
    "CreateUploadRequest",
    "CreateUploadResponse",
    "SignPartResponse",
    "PartReceipt",
    "CompleteUploadRequest",
    "CompleteUploadResponse",
    "AbortUploadRequest",
    "AbortUploadResponse",
    "CatalogEntry",
    "ListCatalogResponse",
    "CatalogItemResponse",
    "RenameRequest",
    "RenameResponse",
    "DeleteItemResponse",
    "LineageEventResponse",
    "HistoryResponse",
    "ErrorResponse"
]
