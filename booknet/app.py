import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from booknet.core.config import get_settings
from booknet.core.mailer import MailDeliveryError
from booknet.routers import auth as auth_router
from booknet.routers import users as users_router
from booknet.services.auth_service import (
    AccountDisabledError,
    AccountExistsError,
    AccountLockedError,
    AuthError,
    BadCredentialsError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

# Anything not listed is a 400.
ERROR_STATUS = {
    BadCredentialsError: 401,
    AccountDisabledError: 403,
    AccountLockedError: 403,
    UserNotFoundError: 404,
    AccountExistsError: 409,
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (anti clickjacking, nosniff, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    status = ERROR_STATUS.get(type(exc), 400)
    return JSONResponse({"error": exc.code, "message": exc.message}, status_code=status)


async def mail_error_handler(request: Request, exc: MailDeliveryError) -> JSONResponse:
    return JSONResponse({"error": exc.code, "message": exc.message}, status_code=503)


def create_app() -> FastAPI:
    """Factory compatible with uvicorn/gunicorn."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Book Network API")

    allowed_cors = {settings.public_base_url}
    if settings.app_env != "prod":
        allowed_cors.update({"http://localhost:4200", "http://127.0.0.1:4200"})
    allowed_cors = {origin for origin in allowed_cors if origin}
    if allowed_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=sorted(allowed_cors),
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")

    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(MailDeliveryError, mail_error_handler)

    app.include_router(auth_router.router)
    app.include_router(users_router.router)
    logger.info("Book Network API ready (env=%s)", settings.app_env)
    return app


app = create_app()
