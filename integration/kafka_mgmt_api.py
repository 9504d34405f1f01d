"""Client for the managed Kafka control plane (``/api/kafkas_mgmt/v1``)."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from schemas.kafka_mgmt import (
    KafkaRequest,
    KafkaRequestList,
    KafkaRequestPayload,
    KafkaUpdateRequest,
    MetricsInstantQueryList,
)

from integration.base_api import BaseApi

logger = logging.getLogger(__name__)


class KafkaMgmtApi(BaseApi):
    """CRUD and metrics operations on Kafka instances."""

    BASE_PATH: str = "/api/kafkas_mgmt/v1"

    def _path(self, *parts: str) -> str:
        return "/".join([self.BASE_PATH, "kafkas", *parts])

    async def get_kafka_by_id(self, kafka_id: str) -> KafkaRequest:
        response = await self._request(
            "GET", self._path(kafka_id), description=f"get kafka {kafka_id}"
        )
        return self._model(response, KafkaRequest)

    async def get_kafkas(
        self,
        page: Optional[str] = None,
        size: Optional[str] = None,
        order_by: Optional[str] = None,
        search: Optional[str] = None,
    ) -> KafkaRequestList:
        params = self._compact(
            {"page": page, "size": size, "orderBy": order_by, "search": search}
        )
        response = await self._request(
            "GET", self._path(), params=params, description="list kafkas"
        )
        return self._model(response, KafkaRequestList)

    async def create_kafka(
        self, payload: KafkaRequestPayload, *, async_: bool = True
    ) -> KafkaRequest:
        """Request a new Kafka instance.

        Creation is not idempotent: a retried request after a lost response can
        provision a second instance with the same name. Callers that need
        create-once semantics use :func:`integration.mgmt_utils.apply_kafka`.
        """

        logger.info("Create kafka instance %s", payload.name)
        response = await self._request(
            "POST",
            self._path(),
            params={"async": str(async_).lower()},
            json=payload.model_dump(exclude_none=True),
            expected=(200, 201, 202),
            description=f"create kafka {payload.name}",
        )
        return self._model(response, KafkaRequest)

    async def delete_kafka_by_id(self, kafka_id: str, *, async_: bool = True) -> None:
        logger.info("Delete kafka instance %s", kafka_id)
        await self._request(
            "DELETE",
            self._path(kafka_id),
            params={"async": str(async_).lower()},
            expected=(200, 202, 204),
            description=f"delete kafka {kafka_id}",
        )

    async def update_kafka(
        self, kafka_id: str, payload: KafkaUpdateRequest
    ) -> KafkaRequest:
        response = await self._request(
            "PATCH",
            self._path(kafka_id),
            json=payload.model_dump(exclude_none=True),
            description=f"update kafka {kafka_id}",
        )
        return self._model(response, KafkaRequest)

    async def get_metrics_by_instant_query(
        self, kafka_id: str, filters: Sequence[str] = ()
    ) -> MetricsInstantQueryList:
        params: dict[str, Any] = {}
        if filters:
            params["filters"] = list(filters)
        response = await self._request(
            "GET",
            self._path(kafka_id, "metrics", "query"),
            params=params,
            description=f"query metrics of kafka {kafka_id}",
        )
        return self._model(response, MetricsInstantQueryList)

    async def federate_metrics(self, kafka_id: str) -> str:
        response = await self._request(
            "GET",
            self._path(kafka_id, "metrics", "federate"),
            description=f"federate metrics of kafka {kafka_id}",
        )
        return response.text

    async def list_kafka_names(self) -> List[str]:
        kafkas = await self.get_kafkas()
        return [kafka.name for kafka in kafkas.items]
