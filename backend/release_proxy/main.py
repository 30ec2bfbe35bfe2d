"""
FastAPI application factory.

Run with:
    uvicorn release_proxy.main:create_app --factory

Lifespan:
  • On startup: connect the durable store (if configured), verify it,
    purge expired rate-limit records, open the shared GitHub HTTP client.
  • On shutdown: close the HTTP client, dispose the engine.

Every response carries Access-Control-Allow-Origin: *. OPTIONS requests
are answered before routing, so preflights never touch auth or the store.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.exceptions import HTTPException as StarletteHTTPException

from release_proxy.core.config import Settings
from release_proxy.core.database import build_engine
from release_proxy.core.errors import ProxyError, RateLimited
from release_proxy.routers.releases import router as releases_router
from release_proxy.schemas.releases import ErrorOut
from release_proxy.services.github_client import GitHubClient
from release_proxy.services.kv_store import KeyValueStore, SqlKeyValueStore
from release_proxy.services.rate_limiter import RECORD_TTL_SECONDS, RateLimiter

logger = logging.getLogger(__name__)

ALLOW_ORIGIN = {"Access-Control-Allow-Origin": "*"}

PREFLIGHT_HEADERS = {
    **ALLOW_ORIGIN,
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, X-Password",
    "Access-Control-Max-Age": "86400",
}


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


async def _open_sql_store(engine: AsyncEngine) -> SqlKeyValueStore:
    """Wrap the engine in a store, verify it and drop expired records."""
    store = SqlKeyValueStore(engine)

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Durable store connection verified ✓")
    except Exception:
        logger.warning(
            "Could not reach the durable store on startup. "
            "Rate limiting will fail open until it is available."
        )
        return store

    try:
        await store.purge_expired()
    except Exception:
        logger.exception("Startup purge of expired rate-limit records failed (non-fatal)")

    return store


def create_app(
    settings: Settings | None = None,
    *,
    store: KeyValueStore | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """
    Build the proxy application.

    store and http_client may be injected (tests); otherwise they are
    created from settings during lifespan and closed on shutdown.
    """
    if settings is None:
        settings = Settings()  # type: ignore[call-arg]
    _configure_logging(settings)

    # ── Lifespan ────────────────────────────────────────────
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Startup / shutdown lifecycle."""
        engine = None
        kv_store = store

        if kv_store is None and settings.DATABASE_URL:
            engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
            kv_store = await _open_sql_store(engine)

        if kv_store is None:
            logger.warning(
                "Rate limiting disabled: DATABASE_URL not configured. "
                "Consider configuring a durable store for brute-force protection."
            )

        client = http_client or httpx.AsyncClient(timeout=settings.UPSTREAM_TIMEOUT_SECONDS)

        app.state.rate_limiter = RateLimiter(
            kv_store,
            max_attempts=settings.RATE_LIMIT_MAX_ATTEMPTS,
            block_seconds=settings.RATE_LIMIT_BLOCK_SECONDS,
            # Records must outlive the block they encode
            record_ttl_seconds=max(RECORD_TTL_SECONDS, settings.RATE_LIMIT_BLOCK_SECONDS),
        )
        app.state.github = GitHubClient(
            client,
            repo=settings.REPO_NAME,
            token=settings.GITHUB_TOKEN,
            api_url=settings.GITHUB_API_URL,
        )
        logger.info("Proxy ready for %s ✓", settings.REPO_NAME)

        yield  # ← application runs here

        if http_client is None:
            await client.aclose()
        if engine is not None:
            await engine.dispose()
            logger.info("Database engine disposed ✓")

    # ── App ─────────────────────────────────────────────────
    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        description=(
            "Password-gated proxy for private GitHub release assets. "
            "The GitHub token never leaves the server."
        ),
        lifespan=lifespan,
    )
    app.state.settings = settings

    # ── CORS ────────────────────────────────────────────────
    @app.middleware("http")
    async def cors(request: Request, call_next):  # type: ignore[no-untyped-def]
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=PREFLIGHT_HEADERS)
        response = await call_next(request)
        response.headers.update(ALLOW_ORIGIN)
        return response

    # ── Errors ──────────────────────────────────────────────
    @app.exception_handler(ProxyError)
    async def proxy_error_handler(_request: Request, exc: ProxyError) -> JSONResponse:
        headers = dict(ALLOW_ORIGIN)
        body = ErrorOut(error=exc.message)
        if isinstance(exc, RateLimited):
            body = ErrorOut(error=exc.message, retryAfter=exc.retry_after)
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(
            status_code=exc.status_code,
            content=body.model_dump(by_alias=True, exclude_none=True),
            headers=headers,
        )

    # Framework-raised errors (405 etc.) keep the {"error": ...} shape
    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        _request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        headers = {**(exc.headers or {}), **ALLOW_ORIGIN}
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorOut(error=str(exc.detail)).model_dump(exclude_none=True),
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(_request: Request, _exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error while serving request")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal error"},
            headers=ALLOW_ORIGIN,
        )

    # Mount routers
    app.include_router(releases_router)

    return app
