from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from app.schemas.container import ContainerRecord
from app.schemas.metrics import (
    ContainerMemoryEntry,
    ContainerMetricsEntry,
    DerivedMetrics,
    FleetSummary,
)
from app.services.docker_gateway import DockerGateway
from app.services.metrics_service import memory_percentage, round_half_up
from app.services.stats_stream import StatsStreamer


logger = logging.getLogger(__name__)

RUNNING_STATE = "running"
TOP_CONTAINERS_BY_MEMORY = 10


@dataclass
class SnapshotResult:
    container: ContainerRecord
    metrics: DerivedMetrics | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.metrics is not None


class SummaryService:
    """Builds the host summary from listings and a concurrent stats fan-out."""

    def __init__(
        self,
        gateway: DockerGateway,
        streamer: StatsStreamer,
        top_n: int = TOP_CONTAINERS_BY_MEMORY,
    ):
        self.gateway = gateway
        self.streamer = streamer
        self.top_n = top_n

    async def get_summary(self) -> FleetSummary:
        containers, images, volumes, mem_total = await asyncio.gather(
            asyncio.to_thread(self.gateway.list_containers, True),
            asyncio.to_thread(self.gateway.list_images),
            asyncio.to_thread(self.gateway.list_volumes),
            asyncio.to_thread(self.gateway.get_host_memory_total),
            return_exceptions=True,
        )
        # listings are required, surface the first failure unchanged
        for result in (containers, images, volumes):
            if isinstance(result, BaseException):
                raise result

        if isinstance(mem_total, BaseException):
            logger.warning("Could not get host memory total, using sum of containers: %s", mem_total)
            mem_total = 0

        running = [c for c in containers if c.state == RUNNING_STATE]
        summary = FleetSummary(
            containers_total=len(containers),
            containers_running=len(running),
            containers_stopped=len(containers) - len(running),
            memory_limit_bytes=mem_total,
            images_count=len(images),
            volumes_count=len(volumes),
        )

        if not running:
            return summary

        results = await asyncio.gather(*(self._snapshot(c) for c in running))
        collected = [r for r in results if r.ok]

        summary.cpu_percent_total = sum(r.metrics.cpu_percentage for r in collected)
        summary.memory_usage_bytes = sum(r.metrics.memory_usage for r in collected)
        if mem_total == 0:
            summary.memory_limit_bytes = summary.memory_usage_bytes

        summary.container_metrics = [
            ContainerMetricsEntry(
                id=r.container.id,
                name=r.container.display_name,
                cpu_percentage=r.metrics.cpu_percentage,
                memory_usage=r.metrics.memory_usage,
                memory_limit=r.metrics.memory_limit,
                memory_percent=r.metrics.memory_percent,
            )
            for r in collected
        ]

        ranked = sorted(collected, key=lambda r: r.metrics.memory_usage, reverse=True)
        summary.top_containers_by_memory = [
            ContainerMemoryEntry(
                id=r.container.id,
                name=r.container.display_name,
                memory_usage=r.metrics.memory_usage,
                memory_percent=round_half_up(
                    memory_percentage(r.metrics.memory_usage, summary.memory_limit_bytes)
                ),
            )
            for r in ranked[: self.top_n]
        ]

        return summary

    async def _snapshot(self, container: ContainerRecord) -> SnapshotResult:
        try:
            metrics = await self.streamer.snapshot(container.id)
        except Exception as e:
            logger.debug("Stats snapshot failed for %s: %s", container.id, e)
            return SnapshotResult(container, error=e)
        if metrics is None:
            logger.debug("Stats snapshot for %s returned no data", container.id)
        return SnapshotResult(container, metrics=metrics)
