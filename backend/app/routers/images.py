from __future__ import annotations

from fastapi import APIRouter

from app.dependencies import get_container_service
from app.schemas.container import ImageRecord


router = APIRouter(prefix="/api/images", tags=["images"])


@router.get("", response_model=list[ImageRecord])
async def list_images():
    service = get_container_service()
    return await service.list_images()
