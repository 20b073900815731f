"""Service layer for business logic."""

from coordinator.services.upload_service import UploadService
from coordinator.services.catalog_service import CatalogService
from coordinator.services.lineage_service import LineageService

__all__ = [
    "UploadService",
    "CatalogService",
    "LineageService",
]
