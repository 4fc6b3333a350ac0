from __future__ import annotations

from fastapi import APIRouter, HTTPException, Path, Query

from app.dependencies import get_container_service
from app.schemas.container import ContainerActionRequest, ContainerActionResponse, ContainerRecord
from app.validators import ValidationError


router = APIRouter(prefix="/api/containers", tags=["containers"])


@router.get("", response_model=list[ContainerRecord])
async def list_containers(all: bool = Query(False, description="Include stopped containers")):
    service = get_container_service()
    return await service.list_containers(all)


@router.post("/{container_id}/action", response_model=ContainerActionResponse)
async def container_action(
    body: ContainerActionRequest,
    container_id: str = Path(..., description="Docker container id or name"),
):
    """Run start|stop|restart|pause|unpause on a container."""
    service = get_container_service()
    try:
        await service.execute_action(container_id, body.action)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ContainerActionResponse(ok=True)
