from __future__ import annotations

import asyncio
import logging
import time

from fastapi import APIRouter
from pydantic import BaseModel

from app.dependencies import get_docker_gateway
from app.services.connections import get_connection_manager


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/health", tags=["health"])


class ComponentStatus(BaseModel):
    status: str  # "ok", "degraded", "error"
    message: str
    latency_ms: float | None = None


class HealthResponse(BaseModel):
    status: str  # "ok", "degraded"
    docker: ComponentStatus
    active_streams: int = 0


async def check_docker_health() -> ComponentStatus:
    """Check the Docker daemon answers a ping."""
    try:
        gateway = get_docker_gateway()
        start = time.time()
        version = await asyncio.to_thread(gateway.ping)
        latency = (time.time() - start) * 1000
        return ComponentStatus(
            status="ok",
            message=f"Docker {version} available",
            latency_ms=round(latency, 2),
        )
    except Exception as e:
        logger.error(f"Docker health check failed: {e}")
        return ComponentStatus(status="error", message=f"Docker check failed: {str(e)}")


@router.get("", response_model=HealthResponse)
async def get_health():
    """Report API status and Docker daemon reachability."""
    docker_status = await check_docker_health()
    overall = "ok" if docker_status.status == "ok" else "degraded"
    return HealthResponse(
        status=overall,
        docker=docker_status,
        active_streams=get_connection_manager().count,
    )
