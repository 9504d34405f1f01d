"""Unit tests for the per-instance admin API client."""

from __future__ import annotations

import json

import httpx
import pytest

from integration.kafka_admin_api import KafkaAdminApi
from schemas.kafka_admin import CreateTopicPayload
from utils.api_errors import ApiUnknownError

pytestmark = pytest.mark.asyncio


def _api(mock_http, handler, fake_sleep, fast_policy) -> KafkaAdminApi:
    return KafkaAdminApi(
        "https://admin-server-kafka.test",
        token="sa-token",
        policy=fast_policy,
        http=mock_http(handler, base_url="https://admin-server-kafka.test"),
        sleep=fake_sleep,
    )


async def test_create_topic_posts_camel_case_settings(mock_http, fake_sleep, fast_policy):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(201, json={"name": "test-topic", "isInternal": False, "partitions": [{"partition": 0}]})

    api = _api(mock_http, handler, fake_sleep, fast_policy)

    topic = await api.create_topic(CreateTopicPayload.simple("test-topic", partitions=3))

    assert seen[0].url.path == "/rest/topics"
    assert json.loads(seen[0].content) == {
        "name": "test-topic",
        "settings": {"numPartitions": 3, "config": []},
    }
    assert topic.name == "test-topic"
    assert topic.is_internal is False

    await api.aclose()


async def test_create_topic_requires_201(mock_http, fake_sleep, fast_policy):
    api = _api(mock_http, lambda request: httpx.Response(200, json={"name": "t"}), fake_sleep, fast_policy)

    with pytest.raises(ApiUnknownError) as excinfo:
        await api.create_topic(CreateTopicPayload.simple("t"))

    assert excinfo.value.status_code == 200

    await api.aclose()


async def test_topic_queries_and_delete(mock_http, fake_sleep, fast_policy):
    seen = []

    def handler(request):
        seen.append((request.method, request.url.raw_path.decode()))
        if request.method == "DELETE":
            return httpx.Response(200, text="Topic deleted")
        if request.url.path == "/rest/topics":
            return httpx.Response(200, json={"items": [{"name": "a"}, {"name": "b"}], "total": 2})
        return httpx.Response(200, json={"name": "a/b"})

    api = _api(mock_http, handler, fake_sleep, fast_policy)

    topics = await api.get_all_topics()
    topic = await api.get_topic_by_name("a/b")
    deleted = await api.delete_topic_by_name("a/b")

    assert topics.names() == ["a", "b"]
    assert topic.name == "a/b"
    assert deleted == "Topic deleted"
    assert seen[1] == ("GET", "/rest/topics/a%2Fb")
    assert seen[2] == ("DELETE", "/rest/topics/a%2Fb")

    await api.aclose()


@pytest.mark.parametrize(
    "payload",
    [
        [{"groupId": "g1", "state": "STABLE"}],
        {"items": [{"groupId": "g1", "state": "STABLE"}], "total": 1},
    ],
)
async def test_get_all_groups_accepts_both_response_shapes(
    mock_http, fake_sleep, fast_policy, payload
):
    api = _api(mock_http, lambda request: httpx.Response(200, json=payload), fake_sleep, fast_policy)

    groups = await api.get_all_groups()

    assert [g.group_id for g in groups] == ["g1"]

    await api.aclose()


async def test_group_lookup_and_delete(mock_http, fake_sleep, fast_policy):
    def handler(request):
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(
            200,
            json={"groupId": "g1", "consumers": [{"topic": "t", "partition": 0, "lag": 0}]},
        )

    api = _api(mock_http, handler, fake_sleep, fast_policy)

    group = await api.get_group_by_name("g1")
    deleted = await api.delete_group_by_name("g1")

    assert group.consumers[0].topic == "t"
    assert deleted == ""

    await api.aclose()
