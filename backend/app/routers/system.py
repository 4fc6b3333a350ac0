from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from app.dependencies import get_summary_service
from app.schemas.metrics import FleetSummary


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/system", tags=["system"])


@router.get("/summary", response_model=FleetSummary)
async def system_summary():
    """Host-level counts plus live CPU and memory across running containers."""
    service = get_summary_service()
    try:
        return await service.get_summary()
    except Exception as exc:
        logger.error("System summary failed: %s", exc)
        raise HTTPException(status_code=500, detail="failed to get system summary") from exc
