"""PassShare - one-time encrypted secret relay."""
from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from tenacity import retry, stop_after_attempt, wait_fixed

from passshare.adapters.redis.client import close_redis_client
from passshare.api.share import router as share_router
from passshare.core.rate_limiter import rate_limit_headers, reset_time_ms
from passshare.dependencies import build_backends
from passshare.errors import PassShareError, RateLimited
from passshare.logging_hardening import setup_logging_redaction
from passshare.middleware.shutdown_gate import ShutdownGateMiddleware, set_shutting_down
from passshare.observability.tracing import setup_opentelemetry
from passshare.routers import health
from passshare.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# Initialize logging redaction filters early
setup_logging_redaction()


@retry(stop=stop_after_attempt(3), wait=wait_fixed(1), reraise=True)
async def _verify_store(backends) -> None:
    await backends.secrets.ping()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    # Startup
    if getattr(app.state, "backends", None) is None:
        app.state.backends = build_backends(settings)

    if settings.is_prod:
        logger.info("Verifying store connectivity for PROD startup...")
        await _verify_store(app.state.backends)
        logger.info("Store connectivity verified.")

    set_shutting_down(app, False)

    yield

    # Shutdown
    set_shutting_down(app, True)
    logger.info("Initiating graceful shutdown...")
    if app.state.backends.redis is not None:
        await close_redis_client(app.state.backends.redis)
    logger.info("Shutdown complete.")


def _error_body(exc: Exception, message: str, settings: Settings) -> dict:
    body = {"error": message}
    if settings.diagnostics_enabled:
        # Class name only; messages may echo request data
        body["detail"] = type(exc).__name__
    return body


def create_app(settings: Optional[Settings] = None, backends=None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="PassShare",
        description="One-time, end-to-end encrypted password sharing",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEV_MODE else None,
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.backends = backends
    app.state.shutting_down = False

    app.add_middleware(ShutdownGateMiddleware)
    setup_opentelemetry(app, settings)

    @app.exception_handler(RateLimited)
    async def rate_limited_handler(request: Request, exc: RateLimited):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, "resetTime": reset_time_ms(exc.result)},
            headers=rate_limit_headers(exc.result),
        )

    @app.exception_handler(PassShareError)
    async def passshare_error_handler(request: Request, exc: PassShareError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.code}")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc, exc.message, settings),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=_error_body(exc, "Invalid request data", settings),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}")
        return JSONResponse(
            status_code=500,
            content=_error_body(exc, "Internal server error", settings),
        )

    app.include_router(share_router.router, prefix="/api", tags=["Share"])
    app.include_router(health.router, tags=["Health"])

    return app


app = create_app()
