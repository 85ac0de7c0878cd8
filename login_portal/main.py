from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from login_portal.api.api import api_router
from login_portal.core.config import Settings, get_settings
from login_portal.core.database import Base, engine
from login_portal.core.errors import AuthError, Unauthorized, ValidationError
from login_portal.core.logging import configure_logging
from login_portal.core.middleware import RequestIDMiddleware, SecurityHeadersMiddleware
from login_portal.core.rate_limit import limiter
from login_portal.models import audit, password_reset, session, user  # noqa: F401

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.settings
    if settings.STORE_BACKEND == "sql":
        Base.metadata.create_all(bind=engine)
    logger.info("startup", environment=settings.ENVIRONMENT, store=settings.STORE_BACKEND, notifier=settings.NOTIFIER_BACKEND)
    yield
    logger.info("shutdown")


async def auth_error_handler(request: Request, exc: AuthError):
    logger.info("request_rejected", error=exc.code, reason=exc.reason, status=exc.status_code)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Report field locations and parser messages only; submitted values are never echoed.
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{loc}: {err.get('msg', 'invalid')}" if loc else err.get("msg", "invalid"))
    error = ValidationError(messages or ["Invalid request body"], reason="schema")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "http_error", "message": message, "errors": [message]},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", error=type(exc).__name__)
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "message": "Internal server error", "errors": []},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        lifespan=lifespan,
        docs_url="/docs" if settings.ENABLE_API_DOCS else None,
        redoc_url="/redoc" if settings.ENABLE_API_DOCS else None,
        openapi_url="/openapi.json" if settings.ENABLE_API_DOCS else None,
    )
    app.state.settings = settings
    app.state.limiter = limiter

    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        # Tokens travel in the Authorization header, never in cookies.
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "x-request-id"],
    )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(api_router, prefix=settings.API_V1_STR)
    return app


app = create_app()
