from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    field_validator,
    model_serializer,
)

from app.schemas.container import unset_time_to_none


class OmitZeroMemoryPercent(BaseModel):
    """Drops ``memory_percent`` from serialized output when it is zero."""

    @model_serializer(mode="wrap")
    def _drop_zero_memory_percent(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        if not data.get("memory_percent"):
            data.pop("memory_percent", None)
        return data


class RawUsageSample(BaseModel):
    """One stats document from the runtime, current and previous counters."""

    model_config = ConfigDict(frozen=True)

    container_cpu_total: int = 0
    container_cpu_total_prev: int = 0
    system_cpu_total: int = 0
    system_cpu_total_prev: int = 0
    online_cpus: int = 0
    memory_usage: int = 0
    memory_limit: int = 0
    timestamp: datetime | None = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _unset_timestamp(cls, value: Any) -> Any:
        return unset_time_to_none(value)


class DerivedMetrics(OmitZeroMemoryPercent):
    model_config = ConfigDict(frozen=True)

    cpu_percentage: float = 0.0
    memory_usage: int = 0
    memory_limit: int = 0
    memory_percent: float = 0.0
    timestamp: datetime | None = None


class ContainerMemoryEntry(OmitZeroMemoryPercent):
    id: str
    name: str
    memory_usage: int = 0
    memory_percent: float = 0.0


class ContainerMetricsEntry(OmitZeroMemoryPercent):
    id: str
    name: str
    cpu_percentage: float = 0.0
    memory_usage: int = 0
    memory_limit: int = 0
    memory_percent: float = 0.0


class FleetSummary(BaseModel):
    containers_total: int = 0
    containers_running: int = 0
    containers_stopped: int = 0
    cpu_percent_total: float = 0.0
    memory_usage_bytes: int = 0
    memory_limit_bytes: int = 0
    images_count: int = 0
    volumes_count: int = 0
    top_containers_by_memory: list[ContainerMemoryEntry] = Field(default_factory=list)
    container_metrics: list[ContainerMetricsEntry] = Field(default_factory=list)
