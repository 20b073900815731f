"""Pydantic schemas for catalog endpoints."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class CatalogEntry(BaseModel):
    """One object in a catalog listing."""
    key: str
    size: int
    lastModified: Optional[str] = None


class ListCatalogResponse(BaseModel):
    """Response model for a catalog page."""
    prefix: str
    items: List[CatalogEntry]
    isTruncated: bool
    nextToken: Optional[str] = None


class CatalogItemResponse(BaseModel):
    """Response model for a single catalog object."""
    key: str
    cid: Optional[str] = None
    url: Optional[str] = None
    contentType: Optional[str] = None
    size: Optional[int] = None
    lastModified: Optional[str] = None
    uploader: Optional[str] = None


class RenameRequest(BaseModel):
    """Request model for renaming an object."""
    fromKey: str
    newName: str
    user: Optional[str] = None


class RenameResponse(BaseModel):
    """Response model for a rename."""
    fromKey: str
    key: str
    unchanged: bool
    lastModified: Optional[str] = None


class DeleteItemResponse(BaseModel):
    """Response model for a delete."""
    key: str
    deleted: bool


class LineageEventResponse(BaseModel):
    """One lineage event."""
    ts: str
    action: str
    key: str
    fromKey: Optional[str] = None
    user: Optional[str] = None
    meta: Dict[str, Any] = {}


class HistoryResponse(BaseModel):
    """Response model for an object's history."""
    key: str
    events: List[LineageEventResponse]
