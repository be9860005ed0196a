# ─────────────────────────────────────────────────────────────────────────────
# Custom Exceptions + FastAPI Exception Handlers
# ─────────────────────────────────────────────────────────────────────────────


import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


# ── Exception hierarchy ──────────────────────────────────────────────────────


class WeatherProxyError(Exception):
    """Base exception for all proxy errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class MissingParameterError(WeatherProxyError):
    """Raised when a required query parameter is absent or empty."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class UpstreamFetchError(WeatherProxyError):
    """Raised when the upstream call fails or returns something unparseable.

    The message is the generic, caller-safe text. The underlying cause is
    attached via ``raise ... from`` and only ever logged.
    """

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"Failed to fetch {label} data", status_code=500)


# ── Handler registration ────────────────────────────────────────────────────


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app.

    Endpoints raise WeatherProxyError subclasses; these handlers catch them
    and return ``{"error": message}`` -- no inline try/except in endpoints.
    """

    @app.exception_handler(MissingParameterError)
    async def missing_parameter_handler(
        request: Request, exc: MissingParameterError
    ) -> JSONResponse:
        # Client mistake, not a server fault: warning without a traceback.
        logger.warning("missing_parameter", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(WeatherProxyError)
    async def proxy_error_handler(request: Request, exc: WeatherProxyError) -> JSONResponse:
        logger.error(
            "proxy_error",
            path=request.url.path,
            error=exc.message,
            error_type=type(exc).__name__,
            cause=repr(exc.__cause__) if exc.__cause__ else None,
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_error", error=str(exc), exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
