from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crewfit.api.assignments import router as assignments_router
from crewfit.api.catalog import router as catalog_router
from crewfit.api.dependencies import get_services
from crewfit.api.health import router as health_router
from crewfit.api.links import router as links_router
from crewfit.api.metrics_endpoint import router as metrics_router
from crewfit.api.portal import router as portal_router
from crewfit.core.config import SETTINGS
from crewfit.core.logging import setup_logging
from crewfit.db.redis import lifespan_redis
from crewfit.middleware.metrics import MetricsMiddleware
from crewfit.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_redis():
        yield
        # Open portals flush their pending autosave before Redis closes.
        services = app.dependency_overrides.get(get_services, get_services)()
        services.portal.close_all()


app = FastAPI(
    title="crewfit",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[SETTINGS.portal_base_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last added runs first: RequestContext -> Metrics -> CORS -> route.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(catalog_router)
app.include_router(links_router)
app.include_router(assignments_router)
app.include_router(portal_router)

logger.info(
    "crewfit started  env=%s log_level=%s port=%d redis=%s docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.redis_url else "off",
    "on" if SETTINGS.is_dev else "off",
)
