"""
api/main.py -- FastAPI application entry point for the ride-hailing backend.

Run with:  uvicorn asgi:app --reload
           python main.py serve

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan handles startup (stores, token codec, auth service, revocation purge
task) and shutdown (cancel purge task, close DB connections) symmetrically.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import limiter
from api.models import HealthResponse, MessageResponse, ValidationErrorItem, ValidationErrorResponse
from api.routes.captains import router as captains_router
from api.routes.users import router as users_router
from auth.errors import AuthError, BackendUnavailable, ValidationFailed
from auth.ledger import RevocationLedger
from auth.service import AuthService
from auth.store import PrincipalStore
from auth.tokens import TokenCodec
from core.config import get_settings

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("ridehail.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI, interval: int) -> None:
    """Delete revoked-and-expired ledger entries every `interval` seconds.

    A failed sweep is logged and the loop carries on with the next one.
    CancelledError from task.cancel() during shutdown propagates out of
    asyncio.sleep and unwinds the coroutine.
    """
    while True:
        await asyncio.sleep(interval)
        try:
            await app.state.auth_service.purge_revoked()
        except BackendUnavailable:
            logger.warning("Revocation purge skipped: ledger did not respond in time")
        except Exception:
            logger.exception("Revocation purge failed; retrying in %ds", interval)


def build_auth_service(settings) -> AuthService:
    """Wire the store, ledger and codec described by settings into an AuthService."""
    store = PrincipalStore(settings.database_url)
    ledger = RevocationLedger(settings.database_url, default_ttl=settings.token_expire_seconds)
    codec = TokenCodec(settings.jwt_secret, settings.token_expire_seconds)
    return AuthService(store, ledger, codec, timeout=settings.store_timeout_seconds)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create shared resources on startup and release them on shutdown.

    The purge task references app.state.auth_service, so the service is
    built first.
    """
    logger.info("Ride-hailing API starting up")
    app.state.settings = _settings
    app.state.auth_service = build_auth_service(_settings)
    logger.info("Auth initialized (token lifetime %ds)", _settings.token_expire_seconds)
    app.state.purge_task = asyncio.create_task(
        _purge_loop(app, _settings.revocation_purge_interval_seconds)
    )

    yield

    app.state.purge_task.cancel()
    app.state.auth_service.store.close()
    app.state.auth_service.ledger.close()
    logger.info("Ride-hailing API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Ride-hailing API",
    description="Rider and captain registration, login, logout and profile.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,  # the token cookie must cross origins for the web client
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(users_router, tags=["Users"])
app.include_router(captains_router, tags=["Captains"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Domain failures answer with {"message": ...}; shape-validation failures
# answer with {"errors": [...]}. Both are what the mobile clients parse.
# ---------------------------------------------------------------------------


def _validation_response(exc: ValidationFailed) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ValidationErrorResponse(errors=exc.errors).model_dump(),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    if isinstance(exc, ValidationFailed):
        return _validation_response(exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=MessageResponse(message=exc.message).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 {"errors": [...]} when the request body fails validation."""
    errors = [
        ValidationErrorItem(
            msg=err.get("msg", "Invalid value"),
            path=".".join(str(part) for part in err.get("loc", ())[1:]),
            location=str(err.get("loc", ("body",))[0]),
            type=err.get("type", "value_error"),
        )
        for err in exc.errors()
    ]
    return _validation_response(ValidationFailed(errors=errors))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After when a login rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=MessageResponse(message="Too many requests.").model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=MessageResponse(message=str(exc.detail)).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=MessageResponse(message="An unexpected error occurred.").model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version. Never rate limited."""
    return HealthResponse(version=VERSION)
