"""
api/main.py -- FastAPI application entry point for MeoMeo.

Run with:      uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers (ALLOWED_HOSTS)
  2. CORSMiddleware        -- adds CORS headers for the frontend origins (CORS_ORIGINS)
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan opens the database engine, builds the stores and the Google
identity verifier on app.state, and disposes the engine on shutdown.

Every error response uses one envelope: {"error", "message", "statusCode"}
(see api/errors.py).
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.errors import error_body
from api.limiter import limiter
from api.models import HealthResponse
from api.routes.auth import router as auth_router
from api.routes.comments import router as comments_router
from api.routes.likes import router as likes_router
from api.routes.shares import router as shares_router
from api.routes.stories import router as stories_router
from api.routes.users import router as users_router
from auth.errors import AuthError
from auth.google import GoogleIdentityVerifier
from auth.store import UserStore
from core.config import get_settings
from core.database import create_db_engine
from social.store import SocialStore

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("meomeo.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create shared resources on startup and release them on shutdown.

    Both stores share one engine so foreign keys and the connection pool
    span users and social tables alike.
    """
    logger.info("MeoMeo API starting up")
    engine = create_db_engine(_settings.database_url)
    app.state.engine = engine
    app.state.user_store = UserStore(engine)
    app.state.social_store = SocialStore(engine)
    app.state.identity_verifier = GoogleIdentityVerifier.from_settings(_settings)
    if not _settings.google_client_id:
        logger.warning("GOOGLE_CLIENT_ID not set -- Google sign-in will reject every token")
    logger.info("Database initialized")

    yield

    engine.dispose()
    logger.info("MeoMeo API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="MeoMeo API",
    description="Micro-posting with stories, likes, comments, shares and a daily engagement leaderboard.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

# add_middleware() prepends, so the last call is the outermost layer.
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


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
#
# Routes are mounted at the root: the frontend calls /login, /stories, etc.
# ---------------------------------------------------------------------------

app.include_router(auth_router, tags=["Auth"])
app.include_router(stories_router, tags=["Stories"])
app.include_router(likes_router, tags=["Likes"])
app.include_router(comments_router, tags=["Comments"])
app.include_router(shares_router, tags=["Shares"])
app.include_router(users_router, tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render domain auth failures with the status and name they carry."""
    response = JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.message, exc.error),
    )
    if exc.status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(status_code=429, content=error_body(429, "Too many requests. Please try again later."))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report the first validation problem as a 400 BadRequest.

    Custom validator messages arrive prefixed with "Value error, "; the prefix
    is dropped so the client sees the message as written.
    """
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        detail = str(first.get("msg", "")).removeprefix("Value error, ")
        field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
        message = f"{field}: {detail}" if field and first.get("type") != "value_error" else detail
    return JSONResponse(status_code=400, content=error_body(400, message))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Pass through envelopes built by api_error(); wrap anything else.

    Registered for Starlette's base class so router-level 404 and 405
    responses get the envelope too.
    """
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = error_body(exc.status_code, str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body(500, "Internal server error"))


# ---------------------------------------------------------------------------
# Health endpoint
#
# No rate limit: load balancers and monitors must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness plus a database round-trip check."""
    database = "ok"
    try:
        with request.app.state.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Health check database probe failed: %s", exc)
        database = "unavailable"
    status = "healthy" if database == "ok" else "degraded"
    return HealthResponse(status=status, version=VERSION, components={"app": "ok", "database": database})
