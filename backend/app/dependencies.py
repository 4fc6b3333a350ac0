from functools import lru_cache

from app.config import get_settings
from app.services.container_service import ContainerService
from app.services.docker_gateway import DockerGateway
from app.services.logs_stream import LogsStreamer
from app.services.stats_stream import StatsStreamer
from app.services.summary import SummaryService


@lru_cache
def get_docker_gateway() -> DockerGateway:
    return DockerGateway(get_settings())


@lru_cache
def get_container_service() -> ContainerService:
    return ContainerService(get_docker_gateway())


@lru_cache
def get_stats_streamer() -> StatsStreamer:
    return StatsStreamer(get_docker_gateway(), queue_size=get_settings().stats_queue_size)


@lru_cache
def get_summary_service() -> SummaryService:
    return SummaryService(
        get_docker_gateway(),
        get_stats_streamer(),
        top_n=get_settings().top_containers_limit,
    )


@lru_cache
def get_logs_streamer() -> LogsStreamer:
    return LogsStreamer(get_docker_gateway(), tail=get_settings().logs_tail)
