"""Client for service-account management."""

from __future__ import annotations

import logging

from schemas.service_accounts import (
    ServiceAccount,
    ServiceAccountList,
    ServiceAccountRequest,
)

from integration.base_api import BaseApi

logger = logging.getLogger(__name__)


class SecurityMgmtApi(BaseApi):
    BASE_PATH: str = "/api/kafkas_mgmt/v1/service_accounts"

    async def create_service_account(
        self, payload: ServiceAccountRequest
    ) -> ServiceAccount:
        logger.info("Create service account %s", payload.name)
        response = await self._request(
            "POST",
            self.BASE_PATH,
            json=payload.model_dump(exclude_none=True),
            expected=(200, 201, 202),
            description=f"create service account {payload.name}",
        )
        return self._model(response, ServiceAccount)

    async def get_service_accounts(self) -> ServiceAccountList:
        response = await self._request(
            "GET", self.BASE_PATH, description="list service accounts"
        )
        return self._model(response, ServiceAccountList)

    async def get_service_account_by_id(self, account_id: str) -> ServiceAccount:
        response = await self._request(
            "GET",
            f"{self.BASE_PATH}/{account_id}",
            description=f"get service account {account_id}",
        )
        return self._model(response, ServiceAccount)

    async def delete_service_account_by_id(self, account_id: str) -> None:
        logger.info("Delete service account %s", account_id)
        await self._request(
            "DELETE",
            f"{self.BASE_PATH}/{account_id}",
            expected=(200, 204),
            description=f"delete service account {account_id}",
        )

    async def reset_credentials(self, account_id: str) -> ServiceAccount:
        response = await self._request(
            "POST",
            f"{self.BASE_PATH}/{account_id}/reset_credentials",
            expected=(200, 202),
            description=f"reset credentials of service account {account_id}",
        )
        return self._model(response, ServiceAccount)
