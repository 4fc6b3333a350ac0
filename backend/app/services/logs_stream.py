from __future__ import annotations

import asyncio
import codecs
import logging
from typing import Awaitable, Callable

from app.services.docker_gateway import DockerGateway


logger = logging.getLogger(__name__)

LogSink = Callable[[str], Awaitable[None]]


class LogsStreamer:
    """Follows a container's stdout/stderr and forwards it chunk by chunk."""

    def __init__(self, gateway: DockerGateway, tail: str = "all"):
        self.gateway = gateway
        self.tail = tail

    async def stream_logs(self, container_id: str, sink: LogSink) -> None:
        feed = await asyncio.to_thread(self.gateway.open_log_feed, container_id, self.tail)
        # one decoder per stream, characters can be split across chunks
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while True:
                chunk = await asyncio.to_thread(feed.next_chunk)
                if chunk is None:
                    break
                text = decoder.decode(chunk)
                if text:
                    await sink(text)

            tail = decoder.decode(b"", final=True)
            if tail:
                await sink(tail)
            logger.debug("Log stream for %s ended", container_id)
        finally:
            feed.close()
