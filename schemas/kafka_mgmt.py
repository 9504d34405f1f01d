"""Pydantic models for the Kafka management API (``/api/kafkas_mgmt/v1``)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

KAFKA_STATUS_ACCEPTED = "accepted"
KAFKA_STATUS_PREPARING = "preparing"
KAFKA_STATUS_PROVISIONING = "provisioning"
KAFKA_STATUS_READY = "ready"
KAFKA_STATUS_FAILED = "failed"
KAFKA_STATUS_DEPROVISION = "deprovision"
KAFKA_STATUS_DELETING = "deleting"


class KafkaRequestPayload(BaseModel):
    """Body of ``POST /kafkas``."""

    model_config = ConfigDict(extra="forbid")

    name: str
    cloud_provider: Optional[str] = None
    region: Optional[str] = None
    multi_az: Optional[bool] = None
    plan: Optional[str] = None
    reauthentication_enabled: Optional[bool] = None


class KafkaUpdateRequest(BaseModel):
    """Body of ``PATCH /kafkas/{id}``."""

    model_config = ConfigDict(extra="forbid")

    owner: Optional[str] = None
    reauthentication_enabled: Optional[bool] = None


class KafkaRequest(BaseModel):
    """A Kafka instance as returned by the management API."""

    model_config = ConfigDict(extra="allow")

    id: str
    kind: Optional[str] = None
    href: Optional[str] = None
    name: str
    status: Optional[str] = None
    owner: Optional[str] = None
    cloud_provider: Optional[str] = None
    region: Optional[str] = None
    multi_az: Optional[bool] = None
    bootstrap_server_host: Optional[str] = None
    failed_reason: Optional[str] = None
    version: Optional[str] = None
    instance_type: Optional[str] = None
    reauthentication_enabled: Optional[bool] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self.status == KAFKA_STATUS_READY

    @property
    def is_failed(self) -> bool:
        return self.status == KAFKA_STATUS_FAILED


class KafkaRequestList(BaseModel):
    model_config = ConfigDict(extra="allow")

    kind: Optional[str] = None
    page: int = 1
    size: int = 0
    total: int = 0
    items: List[KafkaRequest] = Field(default_factory=list)


class InstantQuery(BaseModel):
    model_config = ConfigDict(extra="allow")

    metric: Dict[str, str] = Field(default_factory=dict)
    timestamp: Optional[int] = None
    value: Optional[float] = None


class MetricsInstantQueryList(BaseModel):
    model_config = ConfigDict(extra="allow")

    kind: Optional[str] = None
    id: Optional[str] = None
    items: List[InstantQuery] = Field(default_factory=list)

    def values_for(self, name: str) -> List[Any]:
        return [
            item.value for item in self.items if item.metric.get("__name__") == name
        ]


__all__ = [
    "InstantQuery",
    "KafkaRequest",
    "KafkaRequestList",
    "KafkaRequestPayload",
    "KafkaUpdateRequest",
    "MetricsInstantQueryList",
]
