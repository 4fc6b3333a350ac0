from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


SHORT_ID_LENGTH = 12
ZERO_TIME_PREFIX = "0001-01-01"


def unset_time_to_none(value: Any) -> Any:
    """Docker reports unset times as "", 0 or the zero time; pydantic parses the rest."""
    if value in (None, "", 0):
        return None
    if isinstance(value, str) and value.startswith(ZERO_TIME_PREFIX):
        return None
    return value


class ContainerAction(str, Enum):
    START = "start"
    STOP = "stop"
    RESTART = "restart"
    PAUSE = "pause"
    UNPAUSE = "unpause"


class PortBinding(BaseModel):
    private_port: int = 0
    public_port: int = 0
    type: str = "tcp"
    ip: str = ""


class Mount(BaseModel):
    type: str = ""
    source: str = ""
    target: str = ""


class ContainerRecord(BaseModel):
    id: str
    names: list[str] = Field(default_factory=list)
    image: str = ""
    image_id: str = ""
    status: str = ""
    state: str = ""
    created_at: datetime | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    ports: list[PortBinding] = Field(default_factory=list)
    mounts: list[Mount] = Field(default_factory=list)
    network_mode: str | None = None

    @field_validator("created_at", mode="before")
    @classmethod
    def _unset_created_at(cls, value: Any) -> Any:
        return unset_time_to_none(value)

    @property
    def display_name(self) -> str:
        """First declared name without the leading slash, else the short id."""
        if self.names and self.names[0]:
            return self.names[0].removeprefix("/")
        return self.id[:SHORT_ID_LENGTH]


class ImageRecord(BaseModel):
    id: str
    repo_tags: list[str] = Field(default_factory=list)
    repo_digests: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    size: int = 0
    shared_size: int = 0
    virtual_size: int = 0
    labels: dict[str, str] = Field(default_factory=dict)
    parent_id: str = ""

    @field_validator("created_at", mode="before")
    @classmethod
    def _unset_created_at(cls, value: Any) -> Any:
        return unset_time_to_none(value)


class VolumeRecord(BaseModel):
    name: str
    driver: str = ""
    mountpoint: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    scope: str = ""
    created_at: str = ""


class ContainerActionRequest(BaseModel):
    action: str


class ContainerActionResponse(BaseModel):
    ok: bool = True
