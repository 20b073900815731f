"""API routes package."""

from coordinator.routes.upload_routes import router as upload_router
from coordinator.routes.catalog_routes import router as catalog_router

__all__ = ["upload_router", "catalog_router"]
