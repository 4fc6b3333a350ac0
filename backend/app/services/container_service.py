from __future__ import annotations

import asyncio
import logging

from app.schemas.container import ContainerRecord, ImageRecord, VolumeRecord
from app.services.docker_gateway import DockerGateway
from app.validators import validate_action, validate_container_id


logger = logging.getLogger(__name__)


class ContainerService:
    """Listing and lifecycle control on top of the Docker gateway."""

    def __init__(self, gateway: DockerGateway):
        self.gateway = gateway

    async def list_containers(self, all: bool = False) -> list[ContainerRecord]:
        try:
            containers = await asyncio.to_thread(self.gateway.list_containers, all)
        except Exception as e:
            logger.error("List containers failed: %s", e)
            raise
        logger.debug("List containers ok: count=%d", len(containers))
        return containers

    async def list_images(self) -> list[ImageRecord]:
        try:
            images = await asyncio.to_thread(self.gateway.list_images)
        except Exception as e:
            logger.error("List images failed: %s", e)
            raise
        logger.debug("List images ok: count=%d", len(images))
        return images

    async def list_volumes(self) -> list[VolumeRecord]:
        try:
            volumes = await asyncio.to_thread(self.gateway.list_volumes)
        except Exception as e:
            logger.error("List volumes failed: %s", e)
            raise
        logger.debug("List volumes ok: count=%d", len(volumes))
        return volumes

    async def execute_action(self, container_id: str, action: str) -> None:
        """Run a lifecycle action. Raises ValidationError on bad input."""
        container_id = validate_container_id(container_id)
        action = validate_action(action)

        try:
            await asyncio.to_thread(self.gateway.execute_action, container_id, action)
        except Exception as e:
            logger.error("Container action %s on %s failed: %s", action, container_id, e)
            raise
        logger.info("Container action %s on %s ok", action, container_id)
