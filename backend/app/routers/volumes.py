from __future__ import annotations

from fastapi import APIRouter

from app.dependencies import get_container_service
from app.schemas.container import VolumeRecord


router = APIRouter(prefix="/api/volumes", tags=["volumes"])


@router.get("", response_model=list[VolumeRecord])
async def list_volumes():
    service = get_container_service()
    return await service.list_volumes()
