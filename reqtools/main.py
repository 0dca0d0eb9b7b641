# reqtools/main.py
import time

from fastapi import FastAPI, Request
from pydantic import ValidationError

from reqtools.core.logging_config import logger, setup_logging
from reqtools.core.settings import settings
from reqtools.errors import TOOLKIT_ERRORS, map_toolkit_error
from reqtools.observability.metrics import router as metrics_router
from reqtools.routers import echo, files
from reqtools.services.json_codec import error_json, write_json


async def toolkit_error_handler(request: Request, exc: Exception):
    status, body = map_toolkit_error(exc)
    return write_json(status, body)


async def validation_error_handler(request: Request, exc: ValidationError):
    # pydantic errors that read_json passes through unclassified
    return error_json(exc, status=400)


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title="reqtools",
        version="0.1.0",
        docs_url="/docs" if settings.APP_ENV == "dev" else None,
    )

    # ----------------------------------------------------
    # Logging middleware
    # ----------------------------------------------------
    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        start = time.time()
        bound_logger = logger.bind(
            request_id=request.headers.get("X-Request-ID", "unknown"),
            ip=request.client.host if request.client else "unknown",
            endpoint=str(request.url.path),
            method=request.method,
        )
        bound_logger.info("request_started")
        response = await call_next(request)
        latency_ms = round((time.time() - start) * 1000, 2)
        bound_logger.bind(status_code=response.status_code, latency_ms=latency_ms).info(
            "request_finished"
        )
        return response

    for exc_type in TOOLKIT_ERRORS:
        app.add_exception_handler(exc_type, toolkit_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)

    # ----------------------------------------------------
    # Health
    # ----------------------------------------------------
    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    app.include_router(files.router)
    app.include_router(echo.router)
    app.include_router(metrics_router)  # /metrics

    logger.info("startup", service="reqtools", env=settings.APP_ENV)
    return app


app = create_app()
