from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

import gigvora.models  # noqa: F401
from gigvora.core.config import settings
from gigvora.core.errors import (
    DomainError,
    domain_exception_handler,
    global_exception_handler,
    http_exception_handler,
    request_validation_handler,
)
from gigvora.core.sentry import init_sentry
from gigvora.middleware.security import RequestBodySizeLimitMiddleware, SecurityHeadersMiddleware
from gigvora.modules.agency_projects.router import router as agency_projects_router
from gigvora.modules.compliance_locker.router import router as compliance_router
from gigvora.modules.disputes.router import router as disputes_router
from gigvora.modules.presence.router import router as presence_router
from gigvora.modules.wallet.router import router as wallet_router
from gigvora.modules.workspace_templates.router import router as workspace_templates_router

# ── Sentry: initialised before the FastAPI app is created ─────────────────────
init_sentry(settings.SENTRY_DSN, settings.SENTRY_ENVIRONMENT, settings.APP_VERSION)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    logger.info("Starting Gigvora API", env=settings.APP_ENV)
    yield
    logger.info("Shutting down Gigvora API")
    from gigvora.core.database import engine

    await engine.dispose()


_is_prod = settings.APP_ENV == "production"

app = FastAPI(
    title="Gigvora API",
    description="Freelance marketplace backend: wallets, disputes, agency projects, presence and compliance.",
    version=settings.APP_VERSION,
    docs_url=None if _is_prod else "/docs",
    redoc_url=None if _is_prod else "/redoc",
    openapi_url=None if _is_prod else "/openapi.json",
    lifespan=lifespan,
)

app.add_exception_handler(DomainError, domain_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
)
# Security middleware (added last = outermost = first to see requests, last to touch responses)
app.add_middleware(
    RequestBodySizeLimitMiddleware,  # type: ignore[arg-type]
    max_bytes=settings.MAX_REQUEST_BODY_BYTES,
)
app.add_middleware(
    SecurityHeadersMiddleware,  # type: ignore[arg-type]
    is_production=_is_prod,
)


# ── X-API-Version response header ────────────────────────────────────────────


@app.middleware("http")
async def add_version_header(request: Request, call_next) -> Response:
    response = await call_next(request)
    response.headers["X-API-Version"] = "v1"
    return response


# ── Health check (root-level, not under /v1) ─────────────────────────────────


@app.get("/health")
async def health_check() -> dict:
    """Deep health check: probes PostgreSQL and Redis."""
    checks: dict[str, dict] = {}

    try:
        from sqlalchemy import text

        from gigvora.core.database import async_session_factory

        async with async_session_factory() as db:
            await db.execute(text("SELECT 1"))
        checks["postgresql"] = {"status": "healthy"}
    except Exception as exc:
        checks["postgresql"] = {"status": "unhealthy", "error": str(exc)}

    try:
        from redis.asyncio import from_url as redis_from_url

        r = redis_from_url(settings.REDIS_URL, socket_connect_timeout=2)
        await r.ping()
        await r.aclose()
        checks["redis"] = {"status": "healthy"}
    except Exception as exc:
        checks["redis"] = {"status": "unhealthy", "error": str(exc)}

    overall = (
        "healthy"
        if all(c["status"] == "healthy" for c in checks.values())
        else "degraded"
    )
    return {"status": overall, "service": "gigvora-api", "checks": checks}


# ── /v1 versioned router ──────────────────────────────────────────────────────

api_v1 = APIRouter(prefix="/v1")

api_v1.include_router(wallet_router)
api_v1.include_router(disputes_router, prefix="/users")
api_v1.include_router(disputes_router, prefix="/freelancer")
api_v1.include_router(agency_projects_router)
api_v1.include_router(presence_router)
api_v1.include_router(workspace_templates_router)
api_v1.include_router(compliance_router)

app.include_router(api_v1)
