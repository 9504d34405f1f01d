"""Higher-level helpers composed from the management API clients."""

from __future__ import annotations

import logging
from typing import Optional

from integration.kafka_admin_api import KafkaAdminApi
from integration.kafka_mgmt_api import KafkaMgmtApi
from integration.security_mgmt_api import SecurityMgmtApi
from schemas.kafka_admin import CreateTopicPayload, Topic
from schemas.kafka_mgmt import KafkaRequest, KafkaRequestPayload
from schemas.service_accounts import ServiceAccount, ServiceAccountRequest
from utils.api_errors import ApiError, ApiUnknownError, WaitTimeoutError, is_not_found
from utils.polling import wait_until

logger = logging.getLogger(__name__)

DEFAULT_KAFKA_READY_TIMEOUT = 15 * 60
DEFAULT_KAFKA_DELETE_TIMEOUT = 10 * 60
DEFAULT_POLL_INTERVAL = 10.0
DEFAULT_BOOTSTRAP_PORT = 443

_DELETED = "deleted"


async def get_kafka_by_name(api: KafkaMgmtApi, name: str) -> Optional[KafkaRequest]:
    kafkas = await api.get_kafkas(search=f"name = {name}")
    for kafka in kafkas.items:
        if kafka.name == name:
            return kafka
    return None


async def get_service_account_by_name(
    api: SecurityMgmtApi, name: str
) -> Optional[ServiceAccount]:
    accounts = await api.get_service_accounts()
    for account in accounts.items:
        if account.name == name:
            return account
    return None


async def wait_until_kafka_is_ready(
    api: KafkaMgmtApi,
    kafka_id: str,
    *,
    timeout: float = DEFAULT_KAFKA_READY_TIMEOUT,
    interval: float = DEFAULT_POLL_INTERVAL,
) -> KafkaRequest:
    """Poll the instance until its status is ``ready``.

    A ``failed`` instance never becomes ready, so it aborts the wait at once.
    """

    async def fetch() -> KafkaRequest:
        kafka = await api.get_kafka_by_id(kafka_id)
        if kafka.is_failed:
            raise ApiUnknownError(
                f"Kafka instance {kafka_id} failed: {kafka.failed_reason or 'no reason given'}"
            )
        logger.info("Kafka instance %s status: %s", kafka_id, kafka.status)
        return kafka

    return await wait_until(
        fetch,
        lambda kafka: kafka.is_ready,
        timeout=timeout,
        interval=interval,
        description=f"kafka instance {kafka_id} to be ready",
    )


async def wait_until_kafka_is_deleted(
    api: KafkaMgmtApi,
    kafka_id: str,
    *,
    timeout: float = DEFAULT_KAFKA_DELETE_TIMEOUT,
    interval: float = DEFAULT_POLL_INTERVAL,
) -> None:
    async def fetch() -> str:
        try:
            kafka = await api.get_kafka_by_id(kafka_id)
        except ApiError as exc:
            if is_not_found(exc):
                return _DELETED
            raise
        return kafka.status or "unknown"

    await wait_until(
        fetch,
        lambda status: status == _DELETED,
        timeout=timeout,
        interval=interval,
        description=f"kafka instance {kafka_id} to be deleted",
    )


async def apply_kafka(api: KafkaMgmtApi, payload: KafkaRequestPayload) -> KafkaRequest:
    """Return the instance named ``payload.name``, creating it if missing."""

    existing = await get_kafka_by_name(api, payload.name)
    if existing is not None:
        logger.info("Kafka instance %s already exists (%s)", existing.name, existing.id)
        return existing
    return await api.create_kafka(payload, async_=True)


async def apply_service_account(
    api: SecurityMgmtApi, payload: ServiceAccountRequest
) -> ServiceAccount:
    """Return a service account with fresh credentials, creating it if missing.

    Secrets are only visible on creation, so an existing account gets its
    credentials reset.
    """

    existing = await get_service_account_by_name(api, payload.name)
    if existing is not None:
        logger.info("Service account %s already exists; resetting credentials", existing.name)
        return await api.reset_credentials(existing.id)
    return await api.create_service_account(payload)


async def apply_topic(api: KafkaAdminApi, payload: CreateTopicPayload) -> Topic:
    try:
        return await api.get_topic_by_name(payload.name)
    except ApiError as exc:
        if not is_not_found(exc):
            raise
    return await api.create_topic(payload)


async def delete_kafka_by_name_if_exists(
    api: KafkaMgmtApi, name: str, *, wait: bool = False, timeout: float = DEFAULT_KAFKA_DELETE_TIMEOUT
) -> bool:
    """Best-effort removal of the instance called ``name``.

    Returns ``True`` when a delete request was issued. Failures are logged and
    swallowed; the deletion is not re-verified unless ``wait`` is set.
    """

    try:
        kafka = await get_kafka_by_name(api, name)
        if kafka is None:
            logger.info("Kafka instance %s not found; nothing to clean up", name)
            return False
        logger.info("Clean up kafka instance %s (%s)", name, kafka.id)
        await api.delete_kafka_by_id(kafka.id, async_=True)
        if wait:
            try:
                await wait_until_kafka_is_deleted(api, kafka.id, timeout=timeout)
            except WaitTimeoutError as exc:
                logger.warning("Kafka instance %s is still being deleted: %s", name, exc)
        return True
    except ApiError as exc:
        logger.warning("Failed to clean up kafka instance %s: %s", name, exc.full_message())
        return False


async def delete_service_account_by_name_if_exists(
    api: SecurityMgmtApi, name: str
) -> bool:
    try:
        account = await get_service_account_by_name(api, name)
        if account is None:
            logger.info("Service account %s not found; nothing to clean up", name)
            return False
        logger.info("Clean up service account %s (%s)", name, account.id)
        await api.delete_service_account_by_id(account.id)
        return True
    except ApiError as exc:
        logger.warning("Failed to clean up service account %s: %s", name, exc.full_message())
        return False


async def delete_topic_if_exists(api: KafkaAdminApi, name: str) -> bool:
    try:
        await api.delete_topic_by_name(name)
        return True
    except ApiError as exc:
        if is_not_found(exc):
            logger.info("Topic %s not found; nothing to clean up", name)
        else:
            logger.warning("Failed to clean up topic %s: %s", name, exc.full_message())
        return False


def bootstrap_server(kafka: KafkaRequest, default_port: int = DEFAULT_BOOTSTRAP_PORT) -> str:
    host = kafka.bootstrap_server_host
    if not host:
        raise ApiUnknownError(f"Kafka instance {kafka.id} has no bootstrap host yet")
    if ":" in host:
        return host
    return f"{host}:{default_port}"


def admin_api_url(kafka: KafkaRequest) -> str:
    """Derive the instance admin API URL from its bootstrap host."""

    host = bootstrap_server(kafka).split(":", 1)[0]
    return f"https://admin-server-{host}"
