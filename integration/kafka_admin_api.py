"""Client for the REST admin API exposed by each Kafka instance."""

from __future__ import annotations

import logging
from typing import Any, List
from urllib.parse import quote

from schemas.kafka_admin import (
    ConsumerGroup,
    ConsumerGroupList,
    CreateTopicPayload,
    Topic,
    TopicList,
)

from integration.base_api import BaseApi

logger = logging.getLogger(__name__)


class KafkaAdminApi(BaseApi):
    """Topic and consumer-group operations on a provisioned instance."""

    TOPICS_PATH: str = "/rest/topics"
    GROUPS_PATH: str = "/rest/groups"

    async def create_topic(self, payload: CreateTopicPayload) -> Topic:
        logger.info("Create topic %s", payload.name)
        response = await self._request(
            "POST",
            self.TOPICS_PATH,
            json=payload.model_dump(by_alias=True, exclude_none=True),
            expected=201,
            description=f"create topic {payload.name}",
        )
        return self._model(response, Topic)

    async def get_all_topics(self) -> TopicList:
        response = await self._request(
            "GET", self.TOPICS_PATH, description="list topics"
        )
        return self._model(response, TopicList)

    async def get_topic_by_name(self, name: str) -> Topic:
        response = await self._request(
            "GET",
            f"{self.TOPICS_PATH}/{quote(name, safe='')}",
            description=f"get topic {name}",
        )
        return self._model(response, Topic)

    async def delete_topic_by_name(self, name: str) -> str:
        logger.info("Delete topic %s", name)
        response = await self._request(
            "DELETE",
            f"{self.TOPICS_PATH}/{quote(name, safe='')}",
            expected=(200, 204),
            description=f"delete topic {name}",
        )
        return response.text

    async def get_all_groups(self) -> List[ConsumerGroup]:
        response = await self._request(
            "GET", self.GROUPS_PATH, description="list consumer groups"
        )
        payload: Any = self._json(response)
        # Older admin API versions answer with a bare array.
        if isinstance(payload, list):
            return [self._model(response, ConsumerGroup, item) for item in payload]
        return self._model(response, ConsumerGroupList, payload).items

    async def get_group_by_name(self, name: str) -> ConsumerGroup:
        response = await self._request(
            "GET",
            f"{self.GROUPS_PATH}/{quote(name, safe='')}",
            description=f"get consumer group {name}",
        )
        return self._model(response, ConsumerGroup)

    async def delete_group_by_name(self, name: str) -> str:
        logger.info("Delete consumer group %s", name)
        response = await self._request(
            "DELETE",
            f"{self.GROUPS_PATH}/{quote(name, safe='')}",
            expected=(200, 204),
            description=f"delete consumer group {name}",
        )
        return response.text
