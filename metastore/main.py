"""Entry point for the metadata service."""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from common.constants import SERVICE_NAME
from common.logging_config import setup_logging
from metastore.config import METASTORE_HOST, METASTORE_PORT, Settings
from metastore.exceptions import ConflictError, NotFoundError, StorageError, ValidationError
from metastore.factory import Services, build_services
from metastore.routes import conflict_router, metadata_router, versions_router

logger = setup_logging(SERVICE_NAME)


def _error(status_code: int, detail: str, code: str, details: Optional[str] = None) -> JSONResponse:
    content = {"detail": detail, "code": code}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _request_id(request: Request) -> str:
    return getattr(request.state, 'request_id', 'unknown')


async def validation_error_handler(request: Request, exc: ValidationError):
    logger.warning(f"Validation error: {exc} [request_id={_request_id(request)}] path={request.url.path}")
    return _error(status.HTTP_400_BAD_REQUEST, str(exc), exc.code)


async def not_found_handler(request: Request, exc: NotFoundError):
    logger.warning(f"Resource not found: {exc} [request_id={_request_id(request)}] path={request.url.path}")
    return _error(status.HTTP_404_NOT_FOUND, str(exc), exc.code)


async def conflict_handler(request: Request, exc: ConflictError):
    logger.warning(f"Conflict detected: {exc} [request_id={_request_id(request)}] path={request.url.path}")
    return _error(status.HTTP_409_CONFLICT, str(exc), exc.code)


async def storage_error_handler(request: Request, exc: StorageError):
    logger.error(
        f"Storage error: {exc} [request_id={_request_id(request)}] path={request.url.path}",
        exc_info=exc
    )
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred", "INTERNAL_ERROR")


async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = ", ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    )
    logger.warning(f"Invalid arguments: {details} [request_id={_request_id(request)}]")
    return _error(status.HTTP_400_BAD_REQUEST, "Validation failed", "INVALID_ARGUMENTS", details)


def create_app(services: Optional[Services] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Pre-built service graph. When omitted, one is built from the
            environment at startup and torn down at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_services = getattr(app.state, 'services', None) is None
        if owns_services:
            logger.info("Metadata service starting up...")
            app.state.services = build_services(Settings.from_env())
        try:
            yield
        finally:
            if owns_services:
                logger.info("Metadata service shutting down...")
                app.state.services.close()

    app = FastAPI(
        title="Metastore",
        description="Versioned file metadata and conflict resolution service",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Log every HTTP request and tag the response with its request id.
        """
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        logger.info(f"Request started: {request.method} {request.url.path} [request_id={request_id}]")

        response = await call_next(request)

        duration = time.time() - start_time
        logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
        )

        response.headers["X-Request-ID"] = request_id
        return response

    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(ConflictError, conflict_handler)
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {"status": "running", "service": SERVICE_NAME}

    app.include_router(metadata_router)
    app.include_router(versions_router)
    app.include_router(conflict_router)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "metastore.main:app",
        host=METASTORE_HOST,
        port=METASTORE_PORT,
        log_level="info"
    )
