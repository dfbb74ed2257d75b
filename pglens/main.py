import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pglens.core.db import ConnectionRegistry
from pglens.core.logging import get_logger, setup_logging
from pglens.core.settings import get_settings
from pglens.errors import PglensError, QueryError
from pglens.routers import api_tables

logger = get_logger(__name__)


def _serialize_validation_errors(errors: list) -> list:
    """Convert validation errors to JSON-serializable format."""
    return [
        {
            "loc": error.get("loc"),
            "msg": str(error.get("msg", "")),
            "type": error.get("type"),
        }
        for error in errors
    ]


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log and answer request validation errors (malformed query parameters)."""
    logger.warning(f"Validation error: {request.method} {request.url.path}")
    for error in exc.errors():
        logger.warning(f"  - Field: {error['loc']}, Error: {error['msg']}, Type: {error['type']}")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": _serialize_validation_errors(exc.errors())},
    )


async def pglens_exception_handler(request: Request, exc: PglensError):
    """Render domain errors as ``{"error": message}``."""
    if isinstance(exc, QueryError):
        logger.error(
            f"Query failed for {request.method} {request.url.path}: {exc.message}",
            exc_info=exc,
            extra={"component": "api", "operation": request.url.path},
        )
    else:
        logger.warning(f"{type(exc).__name__} for {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def log_requests(request: Request, call_next):
    """Log all incoming HTTP requests with timing information."""
    start_time = time.perf_counter()
    logger.info(f">>> {request.method} {request.url.path}")

    response = await call_next(request)

    duration_ms = (time.perf_counter() - start_time) * 1000
    response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

    method = request.method
    path = request.url.path
    time_str = f"{duration_ms:.2f}ms"
    if duration_ms < 100:
        logger.info(f"<<< {method} {path} - {response.status_code} [{time_str}]")
    elif duration_ms < 500:
        logger.info(f"<<< {method} {path} - {response.status_code} [{time_str}] (slow)")
    else:
        logger.warning(f"<<< {method} {path} - {response.status_code} [{time_str}] (very slow)")

    return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging()
    logger.info("Starting up...")

    if getattr(app.state, "registry", None) is None:
        app.state.registry = ConnectionRegistry.from_settings(settings)

    yield

    logger.info("Shutting down...")
    app.state.registry.dispose()


def create_app(registry: ConnectionRegistry | None = None) -> FastAPI:
    """
    Build the API application.

    Args:
        registry: Connections to serve; built from settings at startup when omitted
    """
    app = FastAPI(
        title="pglens",
        version="1.0.0",
        description="Browse PostgreSQL tables page by page",
        lifespan=lifespan,
    )
    app.state.registry = registry

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PglensError, pglens_exception_handler)
    app.middleware("http")(log_requests)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_tables.router, prefix="/api")

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": get_settings().app_name}

    return app


app = create_app()
