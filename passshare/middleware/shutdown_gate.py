from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp
import logging

logger = logging.getLogger(__name__)


class ShutdownGateMiddleware(BaseHTTPMiddleware):
    """Rejects non-health traffic once the application starts shutting down.

    The flag lives on ``app.state`` so each application instance has its own.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next):
        if getattr(request.app.state, "shutting_down", False):
            # Allow health/live even during shutdown
            if request.url.path == "/health/live":
                return await call_next(request)

            return JSONResponse(
                status_code=503,
                content={"error": "Server is shutting down"},
            )

        return await call_next(request)


def set_shutting_down(app, value: bool) -> None:
    app.state.shutting_down = value
    if value:
        logger.info("Shutdown Gate enabled: Rejecting non-health traffic.")
