from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import httpx
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter
from loguru import logger
from prometheus_client import make_asgi_app

from pipelinemap import __version__
from pipelinemap.build_service.db.engine import create_engine, create_session_factory
from pipelinemap.build_service.db.transaction import TransactionCoordinator
from pipelinemap.build_service.log import setup_logging
from pipelinemap.build_service.metrics import RequestMetricsMiddleware, start_metrics_server
from pipelinemap.build_service.remote import EnvironmentServiceClient, WITSpaceService
from pipelinemap.build_service.settings import get_settings
from pipelinemap.build_service.workflow import PipelineEnvMapWorkflow

START_TIME = datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level, json_format=settings.log_json)

    logger.info("Build service starting (host={}, port={})", settings.host, settings.port)
    logger.info(
        "Version {} (commit={}, build_time={}, start_time={})",
        __version__,
        settings.commit,
        settings.build_time,
        START_TIME,
    )
    logger.info(
        "Remote services: wit={} env={} (timeout={}s)", settings.wit_url, settings.env_url, settings.remote_timeout
    )

    # -- Initialise state fields (always present, possibly None) ----------------
    _app.state.db_engine = None
    _app.state.workflow = None
    _app.state.metrics_server = None

    # -- Metrics listener (/metrics is always mounted on the API port too) -----
    if settings.metrics_port is not None and settings.metrics_port != settings.port:
        _app.state.metrics_server = start_metrics_server(settings.host, settings.metrics_port)
        logger.info("Metrics: serving on {}:{}", settings.host, settings.metrics_port)

    # -- Remote clients --------------------------------------------------------
    timeout = httpx.Timeout(settings.remote_timeout)
    wit_http = httpx.AsyncClient(base_url=settings.wit_url, timeout=timeout)
    env_http = httpx.AsyncClient(base_url=settings.env_url, timeout=timeout)

    # -- Database + workflow ---------------------------------------------------
    if settings.database_url:
        engine = create_engine(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            connect_args={"connect_timeout": settings.db_connect_timeout},
        )
        _app.state.db_engine = engine
        coordinator = TransactionCoordinator(
            create_session_factory(engine),
            settings.tx_isolation_level,
            timeout=settings.tx_timeout,
        )
        _app.state.workflow = PipelineEnvMapWorkflow(
            coordinator,
            spaces=WITSpaceService(wit_http),
            environments=EnvironmentServiceClient(env_http),
        )
        logger.info(
            "PostgreSQL: connected (isolation={}, pool={}+{}, tx_timeout={}s)",
            coordinator.isolation_level,
            settings.db_pool_size,
            settings.db_max_overflow,
            settings.tx_timeout,
        )
    else:
        logger.warning("F8_DATABASE_URL not set -- pipeline environment maps disabled")

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("Build service shutting down")

    await wit_http.aclose()
    await env_http.aclose()
    logger.info("Remote clients: closed")

    # Dispose DB engine (closes all pooled connections).
    if _app.state.db_engine is not None:
        await _app.state.db_engine.dispose()
        logger.info("PostgreSQL: disposed")

    if _app.state.metrics_server is not None:
        _app.state.metrics_server.shutdown()
        logger.info("Metrics: listener stopped")


app = FastAPI(title="Pipeline Environment Map Service", version=__version__, lifespan=lifespan)
app.add_middleware(RequestMetricsMiddleware)


@app.exception_handler(RequestValidationError)
async def _bad_request(_request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed input (wrong types, unparsable UUIDs) is a bad parameter, like empty input."""
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": jsonable_encoder(exc.errors())})


# ---------------------------------------------------------------------------
# API router -- all backend endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health")
async def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "ok",
        "version": __version__,
        "commit": settings.commit,
        "buildTime": settings.build_time,
        "startTime": START_TIME,
    }


from pipelinemap.build_service.routers.pipeline_env_maps import router as pipeline_env_maps_router  # noqa: E402

api.include_router(pipeline_env_maps_router)

app.include_router(api)

# Prometheus scrape endpoint
app.mount("/metrics", make_asgi_app())
