"""Liveness, readiness and component health for the API process."""

from typing import Dict

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ...config import settings
from ...db import check_database_health, get_database_info
from ..dependencies import Storage

router = APIRouter()


class ComponentHealth(BaseModel):
    status: str
    detail: Dict[str, object] = {}


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str
    components: Dict[str, ComponentHealth]


class ReadinessResponse(BaseModel):
    status: str
    ready: bool
    checks: Dict[str, bool]


def _label(ok: bool) -> str:
    return "healthy" if ok else "unhealthy"


@router.get("/health", response_model=HealthResponse)
def health_check(storage: Storage):
    """Database and Spaces status; ``degraded`` when either is down."""
    db_info = get_database_info()
    components = {
        "database": ComponentHealth(
            status=_label(check_database_health()),
            detail={"backend": db_info.get("backend", "unknown"), "pool_size": db_info.get("pool_size", 0)},
        ),
        "storage": ComponentHealth(
            status=_label(storage.health_check()),
            detail={"endpoint": settings.spaces.endpoint, "bucket": settings.spaces.bucket},
        ),
    }

    all_up = all(c.status == "healthy" for c in components.values())
    return HealthResponse(
        status="healthy" if all_up else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        components=components,
    )


@router.get("/health/live")
def liveness_probe():
    return {"status": "alive"}


@router.get("/health/ready", response_model=ReadinessResponse)
def readiness_probe(storage: Storage, response: Response):
    """200 once the database and Spaces both answer, 503 otherwise."""
    checks = {
        "database": check_database_health(),
        "storage": storage.health_check(),
    }
    ready = all(checks.values())
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(status="ready" if ready else "not_ready", ready=ready, checks=checks)
