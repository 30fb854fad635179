"""Entry point for the relay server."""

import time
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from relay import service_locator
from relay.config import RELAY_HOST, RELAY_PORT, STORAGE_CONNECTION_STRING
from relay.exceptions import RelayException
from relay.routes.file_routes import router as file_router
from relay.routes.upload_routes import router as upload_router

logger = setup_logging('relay')


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Prepare the staging directory on startup and close the storage client on shutdown.
    """
    logger.info("Relay service starting up...")

    staging = service_locator.get_staging()
    staging.ensure_directory()
    logger.info(f"Staging directory: {staging.root.resolve()}")

    if not STORAGE_CONNECTION_STRING:
        logger.warning("StorageConnectionString not set - cloud relay endpoints will fail")

    yield

    logger.info("Relay service shutting down...")
    await service_locator.get_blob_relay().close()
    logger.info("Storage client closed")


app = FastAPI(
    title="ChunkRelay Server",
    description="Reassembles chunked uploads and relays them to cloud blob storage",
    version="1.0.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
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


@app.exception_handler(RelayException)
async def relay_exception_handler(request: Request, exc: RelayException):
    request_id = getattr(request.state, 'request_id', 'unknown')
    message = (
        f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}"
    )
    if exc.status_code >= 500:
        logger.error(message)
    else:
        logger.warning(message)

    content = {"detail": str(exc), "code": exc.code, "retryable": exc.retryable}
    content.update(exc.extra())
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    detail = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    )
    logger.warning(
        f"RequestValidationError: {detail} [request_id={request_id}] path={request.url.path}"
    )
    return JSONResponse(
        status_code=422,
        content={"detail": detail, "code": "INVALID_CHUNK", "retryable": False},
    )


app.include_router(file_router)
app.include_router(upload_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return {"message": "ChunkRelay API", "status": "running"}


@app.get("/health")
async def health_check():
    """
    Health check endpoint for container healthchecks.
    """
    return {"status": "healthy", "service": "relay"}


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "relay.main:app",
        host=RELAY_HOST,
        port=RELAY_PORT,
    )


if __name__ == "__main__":
    main()
