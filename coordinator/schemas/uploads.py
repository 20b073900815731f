"""Pydantic schemas for multipart upload endpoints."""

from typing import List, Optional

from pydantic import BaseModel


class CreateUploadRequest(BaseModel):
    """Request model for starting a multipart upload."""
    filename: Optional[str] = None
    contentType: Optional[str] = None
    fileSize: Optional[float] = None


class CreateUploadResponse(BaseModel):
    """Response model for a new upload session."""
    uploadId: str
    key: str
    partSize: int
    totalParts: int


class SignPartResponse(BaseModel):
    """Response model for a presigned part URL."""
    url: str
    partNumber: int
    expiresAt: str


class PartReceipt(BaseModel):
    """One uploaded part as reported by the client."""
    PartNumber: int
    ETag: str


class CompleteUploadRequest(BaseModel):
    """Request model for completing a multipart upload."""
    key: str
    uploadId: str
    parts: List[PartReceipt]
    uploader: Optional[str] = None


class CompleteUploadResponse(BaseModel):
    """Response model for a completed upload."""
    key: str
    cid: Optional[str] = None
    url: Optional[str] = None
    uploader: str
    action: str


class AbortUploadRequest(BaseModel):
    """Request model for aborting a multipart upload."""
    key: str
    uploadId: str


class AbortUploadResponse(BaseModel):
    """Response model for an abort."""
    aborted: bool
