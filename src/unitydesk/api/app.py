"""FastAPI app factory.

Run with ``uvicorn --factory unitydesk.api.app:create_app`` or ``unitydesk serve``.
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from unitydesk import __version__
from unitydesk.api import routes_ai, routes_complaints, routes_officer
from unitydesk.api.rate_limit import configure_validate_image_limit, limiter
from unitydesk.api.schemas import error_response
from unitydesk.complaints.service import AppServices, build_services
from unitydesk.config import Settings
from unitydesk.errors import UnityDeskError
from unitydesk.utils.logging import configure_logging, get_logger


logger = get_logger(__name__)


async def _unitydesk_error(request: Request, exc: UnityDeskError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("api.error path=%s error=%s", request.url.path, exc)
    return error_response(exc.status_code, exc.code, str(exc))


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(400, "invalid_input", "Invalid request body")


async def _rate_limited(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("api.rate_limited path=%s", request.url.path)
    response = error_response(
        429, "rate_limited", "Too many requests. Please wait a minute and try again."
    )
    response.headers["Retry-After"] = "60"
    return response


def create_app(services: Optional[AppServices] = None) -> FastAPI:
    """Build the app. Fails at startup when the completion service is not configured."""
    if services is None:
        settings = Settings()
        configure_logging(settings.log_level)
        services = build_services(settings)

    configure_validate_image_limit(services.settings.validate_image_rate_limit)
    limiter.reset()

    app = FastAPI(title="UnityDesk", version=__version__)
    app.state.services = services
    app.state.limiter = limiter
    app.add_exception_handler(UnityDeskError, _unitydesk_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(RateLimitExceeded, _rate_limited)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(routes_ai.router)
    app.include_router(routes_complaints.router)
    app.include_router(routes_officer.router)
    return app
