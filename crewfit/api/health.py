"""Health and readiness endpoints.

  /health (liveness): the process answers; the body reports dependency
  status so a dashboard can show "alive but degraded".

  /ready (readiness): 200 when the instance can serve portal traffic.
  Redis is optional (sessions fall back to memory), so an unconfigured
  Redis is ready; a configured but unreachable one is not, because
  autosave would fail for every respondent routed here.
"""

from __future__ import annotations

import logging
from typing import Annotated

import redis
from fastapi import APIRouter, Depends, Response, status

from crewfit.api.dependencies import Services, get_services
from crewfit.db.redis import redis_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _redis_status() -> str:
    if redis_client is None:
        return "not_configured"
    try:
        redis_client.ping()
    except redis.RedisError:
        logger.warning("Redis ping failed")
        return "degraded"
    return "ok"


@router.get("/health")
def health(services: Annotated[Services, Depends(get_services)]) -> dict:
    """Liveness probe with per-dependency status.

    Returns 200 even when degraded; the ``status`` field carries the
    actual health.
    """
    checks = {"redis": _redis_status()}
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {
        "status": overall,
        "checks": checks,
        "catalog": {
            "tests": len(services.catalog.list_tests()),
            "assessments": len(services.catalog.list_assessments()),
        },
    }


@router.get("/ready")
def ready() -> Response:
    if _redis_status() == "degraded":
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
