"""CarrierGate API — FastAPI application factory."""


import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from carriergate.core.config import settings
from carriergate.core.exceptions import register_exception_handlers
from carriergate.db.base import engine
from carriergate.middleware.request_log import RequestLogMiddleware
from carriergate.routers.v1.carrier import router as carrier_router
from carriergate.routers.v1.doc_requests import router as doc_requests_router
from carriergate.routers.v1.maintenance import router as maintenance_router
from carriergate.routers.v1.uploads import router as uploads_router
from carriergate.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def _configure_logging() -> None:
    level = logging.DEBUG if settings.app_env == "development" else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    for noisy in ("sqlalchemy.engine", "aiosqlite", "httpcore", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("%s %s starting (env=%s)", settings.app_name, VERSION, settings.app_env)
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    _configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.app_env == "development" else None,
        redoc_url="/redoc" if settings.app_env == "development" else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLogMiddleware)

    register_exception_handlers(app)

    # Trusted server (X-Server-Key when configured)
    app.include_router(doc_requests_router, prefix="/api/v1")
    app.include_router(uploads_router, prefix="/api/v1")
    app.include_router(maintenance_router, prefix="/api/v1")
    # Token holder
    app.include_router(carrier_router, prefix="/api/v1")

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health():
        return HealthResponse(app=settings.app_name, env=settings.app_env, version=VERSION)

    return app


app = create_app()
