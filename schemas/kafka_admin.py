"""Pydantic models for the per-instance Kafka admin REST API (``/rest``)."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ConfigEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    key: str
    value: Optional[str] = None


class TopicSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    num_partitions: int = Field(default=1, alias="numPartitions")
    config: List[ConfigEntry] = Field(default_factory=list)


class CreateTopicPayload(BaseModel):
    """Body of ``POST /rest/topics``."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str
    settings: TopicSettings = Field(default_factory=TopicSettings)

    @classmethod
    def simple(cls, name: str, partitions: int = 1) -> "CreateTopicPayload":
        return cls(name=name, settings=TopicSettings(num_partitions=partitions))


class Partition(BaseModel):
    model_config = ConfigDict(extra="allow")

    partition: int = 0


class Topic(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str
    is_internal: Optional[bool] = Field(default=None, alias="isInternal")
    partitions: List[Partition] = Field(default_factory=list)
    config: List[ConfigEntry] = Field(default_factory=list)


class TopicList(BaseModel):
    model_config = ConfigDict(extra="allow")

    items: List[Topic] = Field(default_factory=list)
    total: Optional[int] = None
    page: Optional[int] = None
    size: Optional[int] = None

    def names(self) -> List[str]:
        return [topic.name for topic in self.items]


class Consumer(BaseModel):
    model_config = ConfigDict(extra="allow")

    topic: Optional[str] = None
    partition: Optional[int] = None
    offset: Optional[int] = None
    lag: Optional[int] = None


class ConsumerGroup(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    group_id: str = Field(alias="groupId")
    state: Optional[str] = None
    consumers: List[Consumer] = Field(default_factory=list)


class ConsumerGroupList(BaseModel):
    model_config = ConfigDict(extra="allow")

    items: List[ConsumerGroup] = Field(default_factory=list)
    total: Optional[int] = None


__all__ = [
    "ConfigEntry",
    "Consumer",
    "ConsumerGroup",
    "ConsumerGroupList",
    "CreateTopicPayload",
    "Partition",
    "Topic",
    "TopicList",
    "TopicSettings",
]
