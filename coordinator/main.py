"""Entry point for the upload coordinator service."""

import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from coordinator import config
from coordinator.database import get_db_connection, init_database
from coordinator.exceptions import (
    BackendUnavailableError,
    ConflictError,
    IncompleteManifestError,
    InvalidInputError,
    NotFoundError,
    VaultError
)
from coordinator.routes.catalog_routes import router as catalog_router
from coordinator.routes.upload_routes import get_upload_service
from coordinator.routes.upload_routes import router as upload_router
from coordinator.schemas import ErrorResponse
from coordinator.service_locator import get_object_store
from coordinator.session_reaper import StaleSessionReaper

logger = setup_logging('coordinator')

app = FastAPI(
    title="Vaultline Upload Coordinator",
    description="Chunked uploads to an S3-compatible content-addressed store, with rename-aware object history",
    version="1.0.0"
)

session_reaper = StaleSessionReaper(upload_service_factory=get_upload_service)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
    )

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Initialize database and start background tasks on application startup.
    """
    logger.info("Upload coordinator starting up...")

    init_database()
    logger.info("Database initialized")

    await session_reaper.start()


@app.on_event("shutdown")
async def shutdown_event():
    """
    Stop background tasks and release the object store client.
    """
    logger.info("Upload coordinator shutting down...")

    await session_reaper.stop()
    await get_object_store().close()


def _error_response(request: Request, exc: VaultError, status_code: int, log_level: str = "warning"):
    request_id = getattr(request.state, 'request_id', 'unknown')
    getattr(logger, log_level)(
        f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=str(exc), code=exc.code).model_dump()
    )


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    return _error_response(request, exc, status.HTTP_400_BAD_REQUEST)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error_response(request, exc, status.HTTP_404_NOT_FOUND)


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return _error_response(request, exc, status.HTTP_409_CONFLICT)


@app.exception_handler(IncompleteManifestError)
async def incomplete_manifest_handler(request: Request, exc: IncompleteManifestError):
    return _error_response(request, exc, status.HTTP_422_UNPROCESSABLE_ENTITY)


@app.exception_handler(BackendUnavailableError)
async def backend_unavailable_handler(request: Request, exc: BackendUnavailableError):
    return _error_response(request, exc, status.HTTP_503_SERVICE_UNAVAILABLE, log_level="error")


@app.exception_handler(VaultError)
async def vault_error_handler(request: Request, exc: VaultError):
    return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, log_level="error")


app.include_router(upload_router)
app.include_router(catalog_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return {"message": "Vaultline Upload Coordinator API", "status": "running"}


@app.get("/health")
async def health_check():
    """
    Liveness check. Returns 200 if the process is serving requests.
    """
    return {"status": "healthy", "service": "coordinator"}


@app.get("/ready")
async def ready_check():
    """
    Readiness check.
    Verifies database and object store connectivity.
    """
    try:
        with get_db_connection() as conn:
            conn.execute("SELECT 1")
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {str(e)}"

    try:
        await get_object_store().ping()
        store_status = "ok"
    except Exception as e:
        store_status = f"error: {str(e)}"

    ready = db_status == "ok" and store_status == "ok"
    status_code = status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(
        status_code=status_code,
        content={
            "ready": ready,
            "database": db_status,
            "objectStore": store_status
        }
    )


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "coordinator.main:app",
        host=config.COORDINATOR_HOST,
        port=config.COORDINATOR_PORT,
    )


if __name__ == "__main__":
    main()
