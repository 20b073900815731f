"""Catalog API routes: listing, item details, rename, delete, history."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from coordinator.auth import require_upload_token
from coordinator.schemas.catalog import (
    CatalogEntry,
    CatalogItemResponse,
    DeleteItemResponse,
    HistoryResponse,
    LineageEventResponse,
    ListCatalogResponse,
    RenameRequest,
    RenameResponse
)
from coordinator.service_locator import get_object_store
from coordinator.services.catalog_service import CatalogService
from coordinator.services.lineage_service import LineageService
from coordinator.utils import gateway_url, to_iso

router = APIRouter(prefix="/api/catalog", tags=["Catalog"])


def get_catalog_service() -> CatalogService:
    return CatalogService(get_object_store())


def get_lineage_service() -> LineageService:
    return LineageService()


@router.get("/list", response_model=ListCatalogResponse)
async def list_catalog(
    prefix: str = Query(""),
    max_items: Optional[int] = Query(None, alias="max"),
    token: Optional[str] = Query(None),
    catalog_service: CatalogService = Depends(get_catalog_service)
):
    """
    List objects under an optional prefix, one page at a time.

    Parameters:
        - prefix: Key prefix filter
        - max: Page size (default 50, capped at 100)
        - token: Continuation token from the previous page
    """
    page = await catalog_service.list_catalog(prefix, token, max_items)

    return ListCatalogResponse(
        prefix=prefix,
        items=[
            CatalogEntry(key=item.key, size=item.size, lastModified=to_iso(item.last_modified))
            for item in page.items
        ],
        isTruncated=page.next_page_token is not None,
        nextToken=page.next_page_token,
    )


@router.get("/item", response_model=CatalogItemResponse)
async def get_item(
    key: str = Query(""),
    catalog_service: CatalogService = Depends(get_catalog_service)
):
    """
    Content identifier, gateway URL and metadata for one object.

    Raises:
        - 400: Missing key
        - 404: Object not found
    """
    item = await catalog_service.get_item(key)

    return CatalogItemResponse(
        key=item.key,
        cid=item.content_identifier,
        url=gateway_url(item.content_identifier),
        contentType=item.content_type,
        size=item.size,
        lastModified=to_iso(item.last_modified),
        uploader=item.uploader,
    )


@router.post("/rename", response_model=RenameResponse, dependencies=[Depends(require_upload_token)])
async def rename_item(
    request: RenameRequest,
    catalog_service: CatalogService = Depends(get_catalog_service)
):
    """
    Rename an object. Date-shaped or random-looking prefixes are dropped,
    other prefixes are kept.

    Raises:
        - 400: Bad new name
        - 404: Source not found
        - 409: Destination already exists
        - 503: Object store unavailable
    """
    result = await catalog_service.rename(request.fromKey, request.newName, user=request.user)
    return RenameResponse(
        fromKey=result.from_key,
        key=result.key,
        unchanged=result.unchanged,
        lastModified=to_iso(result.last_modified),
    )


@router.delete("/item", response_model=DeleteItemResponse, dependencies=[Depends(require_upload_token)])
async def delete_item(
    key: str = Query(...),
    user: Optional[str] = Query(None),
    catalog_service: CatalogService = Depends(get_catalog_service)
):
    """
    Delete an object and record it in its history.
    """
    await catalog_service.delete(key, user=user)
    return DeleteItemResponse(key=key, deleted=True)


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    key: str = Query(...),
    lineage_service: LineageService = Depends(get_lineage_service)
):
    """
    Full history of an object across renames, newest first. Any current or
    former name of the object returns the same events.
    """
    events = lineage_service.history(key)

    return HistoryResponse(
        key=key,
        events=[
            LineageEventResponse(
                ts=event.timestamp.isoformat(),
                action=event.action.value,
                key=event.key,
                fromKey=event.from_key,
                user=event.user,
                meta=event.meta,
            )
            for event in events
        ],
    )
