"""Unit tests for the aiokafka produce/consume helpers."""

from __future__ import annotations

import asyncio
import ssl
from types import SimpleNamespace

import pytest

from integration import kafka_client
from integration.kafka_client import KafkaConnection, consume_messages, produce_messages
from utils.api_errors import WaitTimeoutError

CONNECTION = KafkaConnection(
    bootstrap_servers="mk-e2e-ci.kafka.test:443",
    client_id="srvc-acct-1",
    client_secret="supersecret",
)


def _record(value: bytes, offset: int = 0):
    return SimpleNamespace(value=value, topic="test-topic", partition=0, offset=offset)


class FakeConsumer:
    def __init__(self, records, hang: bool = False):
        self._records = list(records)
        self._hang = hang

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for record in self._records:
            yield record
        if self._hang:
            await asyncio.sleep(3600)


class FakeProducer:
    def __init__(self):
        self.sent = []

    async def send_and_wait(self, topic, value):
        self.sent.append((topic, value))


def test_sasl_ssl_kwargs_use_service_account_credentials():
    kwargs = CONNECTION.producer_kwargs()

    assert kwargs["bootstrap_servers"] == "mk-e2e-ci.kafka.test:443"
    assert kwargs["security_protocol"] == "SASL_SSL"
    assert kwargs["sasl_mechanism"] == "PLAIN"
    assert kwargs["sasl_plain_username"] == "srvc-acct-1"
    assert kwargs["sasl_plain_password"] == "supersecret"
    assert isinstance(kwargs["ssl_context"], ssl.SSLContext)
    assert kwargs["acks"] == "all"


def test_consumer_kwargs_read_from_earliest_with_unique_group():
    first = CONNECTION.consumer_kwargs()
    second = CONNECTION.consumer_kwargs()

    assert first["auto_offset_reset"] == "earliest"
    assert first["group_id"] != second["group_id"]
    assert CONNECTION.consumer_kwargs("fixed")["group_id"] == "fixed"


def test_plaintext_connection_has_no_sasl_settings():
    kwargs = KafkaConnection("localhost:9092", "", "", security_protocol="PLAINTEXT").producer_kwargs()

    assert "ssl_context" not in kwargs
    assert "sasl_mechanism" not in kwargs


def test_repr_masks_client_secret():
    text = repr(CONNECTION)

    assert "supersecret" not in text
    assert "cret" in text


@pytest.mark.asyncio
async def test_produce_messages_encodes_utf8():
    producer = FakeProducer()

    await produce_messages(producer, "test-topic", ["hello world", "grüße"])

    assert producer.sent == [
        ("test-topic", b"hello world"),
        ("test-topic", "grüße".encode("utf-8")),
    ]


@pytest.mark.asyncio
async def test_consume_messages_stops_at_expected_count():
    consumer = FakeConsumer([_record(b"hello world", 0), _record(b"again", 1), _record(b"extra", 2)])

    received = await consume_messages(consumer, 2, timeout=1.0)

    assert received == ["hello world", "again"]


@pytest.mark.asyncio
async def test_consume_messages_times_out_with_partial_result():
    consumer = FakeConsumer([_record(b"hello world")], hang=True)

    with pytest.raises(WaitTimeoutError) as excinfo:
        await consume_messages(consumer, 2, timeout=0.05)

    assert excinfo.value.last_status == ["hello world"]


@pytest.mark.asyncio
async def test_consume_messages_expecting_nothing_returns_at_once():
    consumer = FakeConsumer([], hang=True)

    assert await consume_messages(consumer, 0, timeout=0.05) == []


@pytest.mark.asyncio
async def test_produce_and_consume_wires_clients(monkeypatch):
    events = []
    producer = FakeProducer()

    class Lifecycle:
        def __init__(self, name, inner):
            self.name = name
            self.inner = inner

        async def start(self):
            events.append(f"{self.name}.start")

        async def stop(self):
            events.append(f"{self.name}.stop")

        def __getattr__(self, item):
            return getattr(self.inner, item)

        def __aiter__(self):
            return self.inner.__aiter__()

    consumer = Lifecycle("consumer", FakeConsumer([_record(b"hello world")]))
    monkeypatch.setattr(kafka_client, "create_consumer", lambda connection, topic, group_id=None: consumer)
    monkeypatch.setattr(kafka_client, "create_producer", lambda connection: Lifecycle("producer", producer))

    received = await kafka_client.produce_and_consume(CONNECTION, "test-topic", ["hello world"], timeout=1.0)

    assert received == ["hello world"]
    assert producer.sent == [("test-topic", b"hello world")]
    assert events == ["consumer.start", "producer.start", "producer.stop", "consumer.stop"]
