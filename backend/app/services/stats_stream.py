from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass
from typing import Awaitable, Callable

from app.schemas.metrics import DerivedMetrics
from app.services.docker_gateway import DockerGateway, UsageFeed
from app.services.metrics_service import derive_metrics


logger = logging.getLogger(__name__)

MetricsSink = Callable[[DerivedMetrics], Awaitable[None]]

_END_OF_STREAM = object()


@dataclass
class _FeedFailure:
    error: Exception


class StatsStreamer:
    """Live per-container metrics, streamed or as a single snapshot."""

    def __init__(self, gateway: DockerGateway, queue_size: int = 8):
        self.gateway = gateway
        self.queue_size = queue_size

    async def snapshot(self, container_id: str) -> DerivedMetrics | None:
        """Read one stats document and derive metrics from it."""
        raw = await asyncio.to_thread(self.gateway.get_one_shot_usage_sample, container_id)
        if raw is None:
            return None
        return derive_metrics(raw)

    async def stream_one(self, container_id: str, sink: MetricsSink) -> None:
        """Deliver derived metrics for one container to ``sink`` until the feed ends.

        Returns normally on end of stream. Feed open/decode errors and sink
        errors are re-raised as is; cancelling the calling task raises
        ``asyncio.CancelledError``. The feed is closed on every path.
        """
        feed = await asyncio.to_thread(self.gateway.open_usage_feed, container_id)
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        reader = asyncio.create_task(self._read_feed(feed, queue))

        try:
            while True:
                item = await queue.get()
                if item is _END_OF_STREAM:
                    logger.debug("Stats stream for %s ended", container_id)
                    return
                if isinstance(item, _FeedFailure):
                    logger.warning("Stats stream for %s failed: %s", container_id, item.error)
                    raise item.error
                try:
                    await sink(item)
                except Exception as e:
                    logger.debug("Stats sink for %s failed (client gone?): %s", container_id, e)
                    raise
        except asyncio.CancelledError:
            logger.debug("Stats stream for %s cancelled", container_id)
            raise
        finally:
            reader.cancel()
            feed.close()
            with suppress(asyncio.CancelledError):
                await reader

    async def _read_feed(self, feed: UsageFeed, queue: asyncio.Queue) -> None:
        """Decode samples into the bounded queue; a full queue pauses reading."""
        try:
            while True:
                raw = await asyncio.to_thread(feed.next_sample)
                if raw is None:
                    break
                await queue.put(derive_metrics(raw))
        except Exception as e:
            await queue.put(_FeedFailure(e))
            return
        await queue.put(_END_OF_STREAM)
