"""HTTP and WebSocket surface tests."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from docker.errors import APIError, DockerException, NotFound
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.main import app
from app.schemas.container import ContainerRecord, ImageRecord, VolumeRecord
from app.schemas.metrics import DerivedMetrics, FleetSummary
from app.services.container_service import ContainerService
from app.validators import INVALID_ACTION_MESSAGE


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def gateway() -> MagicMock:
    return MagicMock()


@pytest.fixture
def container_service(gateway):
    service = ContainerService(gateway)
    with patch('app.routers.containers.get_container_service', return_value=service), \
            patch('app.routers.images.get_container_service', return_value=service), \
            patch('app.routers.volumes.get_container_service', return_value=service):
        yield service


class TestContainerRoutes:
    def test_list_containers(self, client, gateway, container_service):
        gateway.list_containers.return_value = [
            ContainerRecord(id="abc", names=["/web"], state="running"),
        ]

        response = client.get("/api/containers")

        assert response.status_code == 200
        assert response.json()[0]["id"] == "abc"
        assert response.json()[0]["names"] == ["/web"]
        gateway.list_containers.assert_called_once_with(False)

    def test_list_all_containers(self, client, gateway, container_service):
        gateway.list_containers.return_value = []

        response = client.get("/api/containers", params={"all": "true"})

        assert response.status_code == 200
        gateway.list_containers.assert_called_once_with(True)

    def test_action_ok(self, client, gateway, container_service):
        response = client.post("/api/containers/web/action", json={"action": "restart"})

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        gateway.execute_action.assert_called_once_with("web", "restart")

    def test_invalid_action_is_400(self, client, gateway, container_service):
        response = client.post("/api/containers/web/action", json={"action": "explode"})

        assert response.status_code == 400
        assert response.json()["detail"] == INVALID_ACTION_MESSAGE
        gateway.execute_action.assert_not_called()

    def test_missing_action_body_is_rejected(self, client, gateway, container_service):
        response = client.post("/api/containers/web/action", json={})

        assert response.status_code == 422
        gateway.execute_action.assert_not_called()

    def test_unknown_container_is_404(self, client, gateway, container_service):
        gateway.execute_action.side_effect = NotFound("No such container: ghost")

        response = client.post("/api/containers/ghost/action", json={"action": "stop"})

        assert response.status_code == 404
        assert response.json()["error_type"] == "docker_not_found"

    def test_conflict_is_400(self, client, gateway, container_service):
        gateway.execute_action.side_effect = APIError(
            "Conflict",
            response=MagicMock(status_code=409),
            explanation="Container abc is already paused",
        )

        response = client.post("/api/containers/abc/action", json={"action": "pause"})

        assert response.status_code == 400
        body = response.json()
        assert body["error_type"] == "docker_api_error"
        assert body["error"] == "Container abc is already paused"

    def test_daemon_failure_is_500(self, client, gateway, container_service):
        gateway.list_containers.side_effect = DockerException("Error while fetching server API version")

        response = client.get("/api/containers")

        assert response.status_code == 500
        assert response.json()["error_type"] == "docker_error"


class TestListingRoutes:
    def test_list_images(self, client, gateway, container_service):
        gateway.list_images.return_value = [ImageRecord(id="sha256:1", repo_tags=["redis:7"])]

        response = client.get("/api/images")

        assert response.status_code == 200
        assert response.json()[0]["repo_tags"] == ["redis:7"]

    def test_list_volumes(self, client, gateway, container_service):
        gateway.list_volumes.return_value = [VolumeRecord(name="data", driver="local")]

        response = client.get("/api/volumes")

        assert response.status_code == 200
        assert response.json() == [
            {
                "name": "data",
                "driver": "local",
                "mountpoint": "",
                "labels": {},
                "scope": "",
                "created_at": "",
            }
        ]


class TestSystemSummaryRoute:
    def test_summary(self, client):
        service = MagicMock()
        service.get_summary = AsyncMock(return_value=FleetSummary(containers_total=2, containers_running=1))

        with patch('app.routers.system.get_summary_service', return_value=service):
            response = client.get("/api/system/summary")

        assert response.status_code == 200
        assert response.json()["containers_total"] == 2
        assert response.json()["top_containers_by_memory"] == []

    def test_summary_failure_is_500(self, client):
        service = MagicMock()
        service.get_summary = AsyncMock(side_effect=DockerException("daemon unreachable"))

        with patch('app.routers.system.get_summary_service', return_value=service):
            response = client.get("/api/system/summary")

        assert response.status_code == 500
        assert response.json()["detail"] == "failed to get system summary"


class TestPing:
    def test_ping(self, client):
        response = client.get("/api/ping")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class FakeStatsStreamer:
    def __init__(self, samples: list[DerivedMetrics]):
        self.samples = samples
        self.container_ids: list[str] = []

    async def stream_one(self, container_id, sink):
        self.container_ids.append(container_id)
        for metrics in self.samples:
            await sink(metrics)


class FakeLogsStreamer:
    def __init__(self, chunks: list[str], error: Exception | None = None):
        self.chunks = chunks
        self.error = error

    async def stream_logs(self, container_id, sink):
        for chunk in self.chunks:
            await sink(chunk)
        if self.error:
            raise self.error


class TestWebSockets:
    def test_stats_frames(self, client):
        streamer = FakeStatsStreamer([
            DerivedMetrics(cpu_percentage=1.5, memory_usage=100, memory_limit=2048, memory_percent=4.88),
            DerivedMetrics(cpu_percentage=0.0, memory_usage=0, memory_limit=0),
        ])

        with patch('app.routers.ws.get_stats_streamer', return_value=streamer):
            with client.websocket_connect("/api/stats/web") as websocket:
                first = websocket.receive_json()
                second = websocket.receive_json()

        assert first["cpu_percentage"] == 1.5
        assert first["memory_percent"] == 4.88
        assert "memory_percent" not in second
        assert streamer.container_ids == ["web"]

    def test_stats_rejects_invalid_id(self, client):
        streamer = FakeStatsStreamer([])

        with patch('app.routers.ws.get_stats_streamer', return_value=streamer):
            with pytest.raises(WebSocketDisconnect) as exc_info:
                with client.websocket_connect("/api/stats/-bad"):
                    pass

        assert exc_info.value.code == 1008
        assert streamer.container_ids == []

    def test_logs_frames_then_error(self, client):
        streamer = FakeLogsStreamer(["booting\n"], error=RuntimeError("log stream broke"))

        with patch('app.routers.ws.get_logs_streamer', return_value=streamer):
            with client.websocket_connect("/api/logs/web") as websocket:
                assert websocket.receive_text() == "booting\n"
                assert websocket.receive_json() == {"error": "log stream broke"}
