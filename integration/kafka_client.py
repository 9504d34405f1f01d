"""Produce/consume helpers for provisioned Kafka instances.

Instances accept SASL/PLAIN over TLS, authenticating with a service account's
client id and secret.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer
from aiokafka.helpers import create_ssl_context

from utils.api_errors import WaitTimeoutError
from utils.logging_setup import mask_secret

logger = logging.getLogger(__name__)

DEFAULT_SASL_MECHANISM = "PLAIN"
DEFAULT_SECURITY_PROTOCOL = "SASL_SSL"


@dataclass(frozen=True)
class KafkaConnection:
    """Connection details for one Kafka instance and one principal."""

    bootstrap_servers: str
    client_id: str
    client_secret: str
    security_protocol: str = DEFAULT_SECURITY_PROTOCOL
    sasl_mechanism: str = DEFAULT_SASL_MECHANISM

    def __repr__(self) -> str:
        return (
            f"KafkaConnection(bootstrap_servers={self.bootstrap_servers!r}, "
            f"client_id={self.client_id!r}, client_secret={mask_secret(self.client_secret)!r})"
        )

    def _common_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "bootstrap_servers": self.bootstrap_servers,
            "security_protocol": self.security_protocol,
        }
        if self.security_protocol in ("SSL", "SASL_SSL"):
            kwargs["ssl_context"] = create_ssl_context()
        if self.security_protocol in ("SASL_PLAINTEXT", "SASL_SSL"):
            kwargs["sasl_mechanism"] = self.sasl_mechanism
            kwargs["sasl_plain_username"] = self.client_id
            kwargs["sasl_plain_password"] = self.client_secret
        return kwargs

    def producer_kwargs(self) -> Dict[str, Any]:
        return {**self._common_kwargs(), "acks": "all"}

    def consumer_kwargs(self, group_id: Optional[str] = None) -> Dict[str, Any]:
        return {
            **self._common_kwargs(),
            "group_id": group_id or f"e2e-consumer-{uuid.uuid4().hex[:8]}",
            "auto_offset_reset": "earliest",
            "enable_auto_commit": True,
        }


def create_producer(connection: KafkaConnection) -> AIOKafkaProducer:
    logger.info("Initialize kafka producer for %r", connection)
    return AIOKafkaProducer(**connection.producer_kwargs())


def create_consumer(
    connection: KafkaConnection, topic: str, group_id: Optional[str] = None
) -> AIOKafkaConsumer:
    logger.info("Initialize kafka consumer on topic %s for %r", topic, connection)
    return AIOKafkaConsumer(topic, **connection.consumer_kwargs(group_id))


async def produce_messages(
    producer: AIOKafkaProducer, topic: str, messages: Sequence[str]
) -> None:
    for message in messages:
        await producer.send_and_wait(topic, message.encode("utf-8"))
    logger.info("Sent %d message(s) to topic %s", len(messages), topic)


async def consume_messages(
    consumer: AIOKafkaConsumer, expected: int, *, timeout: float
) -> List[str]:
    """Collect ``expected`` decoded record values or raise on timeout."""

    if expected <= 0:
        return []

    received: List[str] = []

    async def collect() -> None:
        async for record in consumer:
            value = record.value.decode("utf-8") if record.value is not None else ""
            logger.debug(
                "Received record",
                extra={"topic": record.topic, "partition": record.partition, "offset": record.offset},
            )
            received.append(value)
            if len(received) >= expected:
                return

    try:
        await asyncio.wait_for(collect(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise WaitTimeoutError(
            f"Received {len(received)} of {expected} message(s) within {timeout:.1f}s",
            last_status=list(received),
            timeout=timeout,
        ) from exc
    return received


async def produce_and_consume(
    connection: KafkaConnection,
    topic: str,
    messages: Sequence[str],
    *,
    timeout: float = 60.0,
    group_id: Optional[str] = None,
) -> List[str]:
    """Subscribe, send ``messages`` and return what the consumer received."""

    consumer = create_consumer(connection, topic, group_id)
    producer = create_producer(connection)
    await consumer.start()
    try:
        await producer.start()
        try:
            await produce_messages(producer, topic, messages)
        finally:
            await producer.stop()
        return await consume_messages(consumer, len(messages), timeout=timeout)
    finally:
        await consumer.stop()
