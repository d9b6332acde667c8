"""
AgriTrack Gateway

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from agritrack.api.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware
from agritrack.api.v1 import router as api_router
from agritrack.config import get_settings
from agritrack.database import close_db, init_db
from agritrack.engines.forecast.prediction_client import close_prediction_client, init_prediction_client
from agritrack.errors import GatewayError
from agritrack.kernel.storage.artifact_store import close_artifact_store, init_artifact_store
from agritrack.logging_config import configure_logging, get_logger
from agritrack.schemas.common import HealthResponse

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Creates the process-wide collaborators at startup and tears them down
    at shutdown.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    init_artifact_store()
    init_prediction_client()
    logger.info("Database, object store and prediction client initialized")

    yield

    logger.info("Shutting down...")
    await close_prediction_client()
    close_artifact_store()
    await close_db()
    logger.info("Connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    AgriTrack Gateway

    Authenticated access to the product catalogue and commodity price
    forecasts.

    - **Auth**: signup, login and logout with bearer tokens
    - **Products**: create products with an optional image, edit descriptive fields
    - **Forecast**: commodity listing and price prediction
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Last added = outermost. Unhandled exceptions are rendered by RequestIdMiddleware,
# inside CORS, so those 500s carry CORS headers too
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(request: Request, status_code: int, content: dict, headers: dict = None) -> JSONResponse:
    headers = dict(headers or {})
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        headers[REQUEST_ID_HEADER] = req_id
        content["request_id"] = req_id
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    """Render domain errors with their stable code and safe message."""
    if exc.status_code >= 500:
        logger.warning(
            "Request failed: %s",
            exc.code,
            extra={
                "path": request.url.path,
                "status": exc.status_code,
                "upstream_status": getattr(exc, "upstream_status", None),
            },
        )
    headers = {}
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers["WWW-Authenticate"] = "Bearer"
    return _error_response(request, exc.status_code, exc.to_dict(), headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Framework-raised HTTP errors (unknown route, wrong method)."""
    detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error_response(
        request,
        exc.status_code,
        {"error": detail, "code": "http_error"},
        getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        {"error": "Validation error", "code": "validation_failed", "errors": errors},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Backstop for exceptions raised outside RequestIdMiddleware."""
    logger.exception("Unhandled exception: %s", exc)
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"error": "Internal Server Error", "code": "internal_error"},
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Check application health."""
    return HealthResponse(status="ok", version=settings.version)


app.include_router(api_router)


# Main entry point for development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "agritrack.main:app",
        host="0.0.0.0",
        port=8080,
        reload=settings.debug,
    )
