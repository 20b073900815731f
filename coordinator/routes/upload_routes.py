"""Multipart upload API routes."""

from fastapi import APIRouter, Depends, Query

from common.types import ChunkReceipt
from coordinator.auth import require_upload_token
from coordinator.schemas.uploads import (
    AbortUploadRequest,
    AbortUploadResponse,
    CompleteUploadRequest,
    CompleteUploadResponse,
    CreateUploadRequest,
    CreateUploadResponse,
    SignPartResponse
)
from coordinator.service_locator import get_object_store
from coordinator.services.upload_service import UploadService
from coordinator.utils import gateway_url

router = APIRouter(
    prefix="/api/multipart",
    tags=["Multipart"],
    dependencies=[Depends(require_upload_token)]
)


def get_upload_service() -> UploadService:
    return UploadService(get_object_store())


@router.post("/create", response_model=CreateUploadResponse)
async def create_upload(
    request: CreateUploadRequest,
    upload_service: UploadService = Depends(get_upload_service)
):
    """
    Start a chunked upload.

    Parameters:
        - filename: Plain object name (no path separators)
        - contentType: MIME type, defaults to application/octet-stream
        - fileSize: Total size in bytes

    Returns:
        - uploadId: Backend session id
        - key: Object key the upload will land under
        - partSize: Bytes per part (last part may be shorter)
        - totalParts: Number of parts the client must upload

    Raises:
        - 400: Bad filename or size
        - 401: Invalid or missing token
        - 503: Object store unavailable
    """
    session = await upload_service.create_session(
        name=request.filename,
        content_type=request.contentType,
        declared_size=request.fileSize,
    )

    return CreateUploadResponse(
        uploadId=session.session_id,
        key=session.object_key,
        partSize=session.chunk_size,
        totalParts=session.total_chunks,
    )


@router.get("/sign", response_model=SignPartResponse)
async def sign_part(
    key: str = Query(...),
    uploadId: str = Query(...),
    partNumber: int = Query(...),
    upload_service: UploadService = Depends(get_upload_service)
):
    """
    Presign the URL for one part.

    Raises:
        - 400: Part number outside 1..10000
        - 404: Unknown upload session
        - 409: Session already completed or aborted
        - 503: Object store unavailable
    """
    authorization = await upload_service.sign_chunk(uploadId, key, partNumber)

    return SignPartResponse(
        url=authorization.url,
        partNumber=authorization.chunk_number,
        expiresAt=authorization.expires_at.isoformat(),
    )


@router.post("/complete", response_model=CompleteUploadResponse)
async def complete_upload(
    request: CompleteUploadRequest,
    upload_service: UploadService = Depends(get_upload_service)
):
    """
    Assemble uploaded parts into the final object.

    Returns:
        - key: Object key
        - cid: Content identifier, null until the backend publishes it
        - url: Gateway URL for the cid, null when cid is null
        - uploader: Recorded uploader
        - action: 'upload' or 'replace'

    Raises:
        - 404: Unknown upload session
        - 409: Session already completed or aborted
        - 422: Parts have gaps, duplicates or empty ETags
        - 503: Object store unavailable
    """
    receipts = [
        ChunkReceipt(chunk_number=part.PartNumber, integrity_tag=part.ETag)
        for part in request.parts
    ]

    completed = await upload_service.complete_session(
        session_id=request.uploadId,
        key=request.key,
        receipts=receipts,
        uploader=request.uploader,
    )

    return CompleteUploadResponse(
        key=completed.key,
        cid=completed.content_identifier,
        url=gateway_url(completed.content_identifier),
        uploader=completed.uploader,
        action=completed.action.value,
    )


@router.post("/abort", response_model=AbortUploadResponse)
async def abort_upload(
    request: AbortUploadRequest,
    upload_service: UploadService = Depends(get_upload_service)
):
    """
    Abort an unfinished upload and release its reserved storage.
    Repeating an abort is harmless.
    """
    aborted = await upload_service.abort_session(request.uploadId, request.key)
    return AbortUploadResponse(aborted=aborted)
