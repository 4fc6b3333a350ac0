from __future__ import annotations

import logging
import os
import threading
from typing import Any, Iterator

import docker
from docker.errors import DockerException

from app.config import Settings
from app.schemas.container import (
    ContainerAction,
    ContainerRecord,
    ImageRecord,
    Mount,
    PortBinding,
    VolumeRecord,
)
from app.schemas.metrics import RawUsageSample


logger = logging.getLogger(__name__)

DEFAULT_DOCKER_HOST = "unix:///var/run/docker.sock"


class UsageFeed:
    """Continuous stats feed for one container.

    ``next_sample`` blocks on the runtime and is meant to run in a worker
    thread; ``close`` may be called from another thread while a read is in
    flight, in which case the stream is released as soon as that read returns.
    """

    def __init__(self, container_id: str, documents: Iterator[dict[str, Any]]):
        self.container_id = container_id
        self._documents = documents
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def next_sample(self) -> RawUsageSample | None:
        """Return the next sample, or None at end of stream."""
        if self._closed:
            return None
        try:
            payload = next(self._documents)
        except StopIteration:
            return None
        if self._closed:
            self._release()
            return None
        return parse_stats(payload)

    def close(self) -> None:
        self._closed = True
        self._release()

    def _release(self) -> None:
        close = getattr(self._documents, "close", None)
        if close is None:
            return
        with self._lock:
            try:
                close()
            except ValueError:
                # generator is mid-read in a worker thread; next_sample releases it
                logger.debug("Stats feed for %s still reading, deferring close", self.container_id)

    def __enter__(self) -> UsageFeed:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class LogFeed:
    """Follow-mode log stream for one container."""

    def __init__(self, container_id: str, stream: Any):
        self.container_id = container_id
        self._stream = stream
        self._chunks = iter(stream)
        self._closed = False

    def next_chunk(self) -> bytes | None:
        if self._closed:
            return None
        try:
            return next(self._chunks)
        except StopIteration:
            return None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        close = getattr(self._stream, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> LogFeed:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class DockerGateway:
    """Thread-safe access to the Docker Engine API through one shared client."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client: docker.DockerClient | None = None
        self._lock = threading.RLock()

    def _ensure_client(self) -> docker.DockerClient:
        with self._lock:
            if self._client:
                return self._client

            host = resolve_docker_host(self.settings.docker_host or os.environ.get("DOCKER_HOST", ""))
            try:
                client = docker.DockerClient(base_url=host, timeout=self.settings.docker_timeout)
            except DockerException as e:
                logger.error("Docker client creation failed for %s: %s", host, e)
                raise

            logger.info("Docker client created for %s", host)
            self._client = client
            return client

    @property
    def api(self) -> docker.APIClient:
        return self._ensure_client().api

    def close(self) -> None:
        with self._lock:
            if self._client:
                try:
                    self._client.close()
                finally:
                    self._client = None

    def ping(self) -> str:
        """Return the daemon version, raising if the daemon is unreachable."""
        self.api.ping()
        return self.api.version().get("Version", "unknown")

    # Listing -----------------------------------------------------------

    def list_containers(self, all: bool = False) -> list[ContainerRecord]:
        try:
            raw = self.api.containers(all=all)
        except DockerException as e:
            logger.error("Container list failed: %s", e)
            raise
        containers = [parse_container(payload) for payload in raw]
        logger.debug("Containers listed: count=%d all=%s", len(containers), all)
        return containers

    def list_images(self) -> list[ImageRecord]:
        try:
            raw = self.api.images()
        except DockerException as e:
            logger.error("Image list failed: %s", e)
            raise
        images = [parse_image(payload) for payload in raw]
        logger.debug("Images listed: count=%d", len(images))
        return images

    def list_volumes(self) -> list[VolumeRecord]:
        try:
            raw = self.api.volumes()
        except DockerException as e:
            logger.error("Volume list failed: %s", e)
            raise
        volumes = [parse_volume(payload) for payload in (raw or {}).get("Volumes") or []]
        logger.debug("Volumes listed: count=%d", len(volumes))
        return volumes

    def get_host_memory_total(self) -> int:
        info = self.api.info()
        return int(info.get("MemTotal") or 0)

    # Stats -------------------------------------------------------------

    def open_usage_feed(self, container_id: str) -> UsageFeed:
        documents = self.api.stats(container_id, stream=True, decode=True)
        return UsageFeed(container_id, documents)

    def get_one_shot_usage_sample(self, container_id: str) -> RawUsageSample | None:
        """One stats read, or None when the daemon has no data (container not running)."""
        payload = self.api.stats(container_id, stream=False)
        if not payload or not payload.get("memory_stats"):
            logger.debug("No stats data for %s", container_id)
            return None
        return parse_stats(payload)

    # Control -----------------------------------------------------------

    def execute_action(self, container_id: str, action: str) -> None:
        timeout = self.settings.action_stop_timeout
        if action == ContainerAction.START:
            self.api.start(container_id)
        elif action == ContainerAction.STOP:
            self.api.stop(container_id, timeout=timeout)
        elif action == ContainerAction.RESTART:
            self.api.restart(container_id, timeout=timeout)
        elif action == ContainerAction.PAUSE:
            self.api.pause(container_id)
        elif action == ContainerAction.UNPAUSE:
            self.api.unpause(container_id)
        else:
            raise ValueError(f"Unsupported action: {action}")

    # Logs --------------------------------------------------------------

    def open_log_feed(self, container_id: str, tail: str = "all") -> LogFeed:
        stream = self.api.logs(
            container_id,
            stdout=True,
            stderr=True,
            stream=True,
            follow=True,
            timestamps=False,
            tail=int(tail) if tail.isdigit() else "all",
        )
        return LogFeed(container_id, stream)


def resolve_docker_host(host: str) -> str:
    """Default to the local socket and make relative unix socket paths absolute."""
    if not host:
        return DEFAULT_DOCKER_HOST
    if host.startswith("unix://"):
        path = host[len("unix://"):]
        if path and not path.startswith("/"):
            return "unix://" + os.path.abspath(path)
    return host


# Payload parsing -------------------------------------------------------


def parse_stats(payload: dict[str, Any]) -> RawUsageSample:
    cpu_stats = payload.get("cpu_stats") or {}
    precpu_stats = payload.get("precpu_stats") or {}
    memory_stats = payload.get("memory_stats") or {}

    return RawUsageSample(
        container_cpu_total=(cpu_stats.get("cpu_usage") or {}).get("total_usage") or 0,
        container_cpu_total_prev=(precpu_stats.get("cpu_usage") or {}).get("total_usage") or 0,
        system_cpu_total=cpu_stats.get("system_cpu_usage") or 0,
        system_cpu_total_prev=precpu_stats.get("system_cpu_usage") or 0,
        online_cpus=cpu_stats.get("online_cpus") or 0,
        memory_usage=memory_stats.get("usage") or 0,
        memory_limit=memory_stats.get("limit") or 0,
        timestamp=payload.get("read"),
    )


def parse_container(payload: dict[str, Any]) -> ContainerRecord:
    ports = [
        PortBinding(
            private_port=port.get("PrivatePort") or 0,
            public_port=port.get("PublicPort") or 0,
            type=port.get("Type") or "tcp",
            ip=port.get("IP") or "",
        )
        for port in payload.get("Ports") or []
    ]
    mounts = [
        Mount(
            type=mount.get("Type") or "",
            source=mount.get("Source") or "",
            target=mount.get("Destination") or "",
        )
        for mount in payload.get("Mounts") or []
    ]
    network_mode = (payload.get("HostConfig") or {}).get("NetworkMode") or None

    return ContainerRecord(
        id=payload.get("Id", ""),
        names=payload.get("Names") or [],
        image=payload.get("Image") or "",
        image_id=payload.get("ImageID") or "",
        status=payload.get("Status") or "",
        state=payload.get("State") or "",
        created_at=payload.get("Created"),
        labels=payload.get("Labels") or {},
        ports=ports,
        mounts=mounts,
        network_mode=network_mode,
    )


def parse_image(payload: dict[str, Any]) -> ImageRecord:
    return ImageRecord(
        id=payload.get("Id", ""),
        repo_tags=payload.get("RepoTags") or [],
        repo_digests=payload.get("RepoDigests") or [],
        created_at=payload.get("Created"),
        size=payload.get("Size") or 0,
        shared_size=payload.get("SharedSize") or 0,
        virtual_size=payload.get("VirtualSize") or 0,
        labels=payload.get("Labels") or {},
        parent_id=payload.get("ParentId") or "",
    )


def parse_volume(payload: dict[str, Any]) -> VolumeRecord:
    return VolumeRecord(
        name=payload.get("Name", ""),
        driver=payload.get("Driver") or "",
        mountpoint=payload.get("Mountpoint") or "",
        labels=payload.get("Labels") or {},
        scope=payload.get("Scope") or "",
        created_at=payload.get("CreatedAt") or "",
    )
