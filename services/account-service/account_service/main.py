"""FastAPI application wiring for the account service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .api.routes import router as v1_router
from .config import get_settings
from .domain.errors import InfrastructureError
from .domain.service import AccountLifecycleService
from .metrics import record_unavailable
from .repository import PostgresAccountStore, PostgresHobbyCatalog
from .security.passwords import Argon2PasswordHasher

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise the Postgres pool and inject collaborators into the lifecycle service."""
    pool = ConnectionPool(
        settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        open=False,
    )
    pool.open()
    try:
        store = PostgresAccountStore(pool)
        if settings.auto_create_schema:
            store.create_schema()
            logger.info("account schema ensured")
        app.state.pool = pool
        app.state.account_service = AccountLifecycleService(
            store=store,
            hobbies=PostgresHobbyCatalog(pool),
            hasher=Argon2PasswordHasher.from_settings(settings),
        )
        yield
    finally:
        pool.close()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)


@app.exception_handler(InfrastructureError)
async def infrastructure_error_handler(request: Request, exc: InfrastructureError) -> JSONResponse:
    """Report collaborator failures as a retryable 503 without leaking details."""
    logger.error("infrastructure failure on %s %s: %s", request.method, request.url.path, exc)
    record_unavailable(getattr(request.scope.get("endpoint"), "__name__", "unknown"))
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "service unavailable"},
    )


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


@app.get("/metrics", tags=["health"])
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(v1_router)


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    import uvicorn

    uvicorn.run(app, host=settings.http_host, port=settings.http_port, log_level=settings.log_level.lower())
