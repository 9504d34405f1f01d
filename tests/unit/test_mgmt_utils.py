"""Unit tests for the management helper functions."""

from __future__ import annotations

import httpx
import pytest

from integration import mgmt_utils
from integration.security_mgmt_api import SecurityMgmtApi
from schemas.kafka_admin import CreateTopicPayload, Topic
from schemas.kafka_mgmt import KafkaRequest, KafkaRequestList, KafkaRequestPayload
from schemas.service_accounts import ServiceAccount, ServiceAccountList, ServiceAccountRequest
from utils.api_errors import ApiTransientError, ApiUnknownError, WaitTimeoutError

pytestmark = pytest.mark.asyncio


def _not_found() -> ApiUnknownError:
    request = httpx.Request("GET", "https://api.test/x")
    response = httpx.Response(404, request=request)
    return ApiUnknownError(
        "not found", httpx.HTTPStatusError("404", request=request, response=response)
    )


def _kafka(status="ready", **kwargs) -> KafkaRequest:
    data = {"id": "k1", "name": "mk-e2e-ci", "status": status, "bootstrap_server_host": "kafka.test"}
    data.update(kwargs)
    return KafkaRequest(**data)


class FakeKafkaApi:
    def __init__(self, listing=(), statuses=()):
        self.listing = list(listing)
        self.statuses = list(statuses)
        self.created = []
        self.deleted = []
        self.searches = []

    async def get_kafkas(self, page=None, size=None, order_by=None, search=None):
        self.searches.append(search)
        return KafkaRequestList(items=self.listing, total=len(self.listing))

    async def get_kafka_by_id(self, kafka_id):
        outcome = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def create_kafka(self, payload, *, async_=True):
        self.created.append(payload)
        return _kafka(status="accepted", name=payload.name)

    async def delete_kafka_by_id(self, kafka_id, *, async_=True):
        self.deleted.append(kafka_id)


class FakeSecurityApi:
    def __init__(self, accounts=(), fail_delete=None):
        self.accounts = list(accounts)
        self.fail_delete = fail_delete
        self.calls = []

    async def get_service_accounts(self):
        return ServiceAccountList(items=self.accounts)

    async def create_service_account(self, payload):
        self.calls.append(("create", payload.name))
        return ServiceAccount(id="new", name=payload.name, client_secret="s1")

    async def reset_credentials(self, account_id):
        self.calls.append(("reset", account_id))
        return ServiceAccount(id=account_id, name="mk-e2e-sa-ci", client_secret="s2")

    async def delete_service_account_by_id(self, account_id):
        if self.fail_delete is not None:
            raise self.fail_delete
        self.calls.append(("delete", account_id))


class FakeAdminApi:
    def __init__(self, existing=(), delete_error=None):
        self.existing = set(existing)
        self.delete_error = delete_error
        self.created = []

    async def get_topic_by_name(self, name):
        if name not in self.existing:
            raise _not_found()
        return Topic(name=name)

    async def create_topic(self, payload):
        self.created.append(payload.name)
        return Topic(name=payload.name)

    async def delete_topic_by_name(self, name):
        if self.delete_error is not None:
            raise self.delete_error
        return "deleted"


async def test_get_kafka_by_name_searches_and_matches_exactly():
    api = FakeKafkaApi(listing=[_kafka(name="mk-e2e-ci-other", id="k0"), _kafka()])

    kafka = await mgmt_utils.get_kafka_by_name(api, "mk-e2e-ci")

    assert kafka.id == "k1"
    assert api.searches == ["name = mk-e2e-ci"]
    assert await mgmt_utils.get_kafka_by_name(FakeKafkaApi(), "missing") is None


async def test_wait_until_kafka_is_ready_polls_through_provisioning():
    api = FakeKafkaApi(
        statuses=[
            _kafka(status="provisioning"),
            ApiTransientError("gateway"),
            _kafka(status="provisioning"),
            _kafka(status="ready"),
        ]
    )

    kafka = await mgmt_utils.wait_until_kafka_is_ready(api, "k1", timeout=30, interval=0)

    assert kafka.is_ready


async def test_failed_kafka_aborts_the_wait():
    api = FakeKafkaApi(statuses=[_kafka(status="failed", failed_reason="quota exceeded")])

    with pytest.raises(ApiUnknownError, match="quota exceeded"):
        await mgmt_utils.wait_until_kafka_is_ready(api, "k1", timeout=30, interval=0)


async def test_ready_wait_times_out_with_last_kafka():
    api = FakeKafkaApi(statuses=[_kafka(status="provisioning")])

    with pytest.raises(WaitTimeoutError) as excinfo:
        await mgmt_utils.wait_until_kafka_is_ready(api, "k1", timeout=0, interval=0)

    assert excinfo.value.last_status.status == "provisioning"


async def test_wait_until_kafka_is_deleted_treats_404_as_gone():
    api = FakeKafkaApi(statuses=[_kafka(status="deprovision"), _kafka(status="deleting"), _not_found()])

    await mgmt_utils.wait_until_kafka_is_deleted(api, "k1", timeout=30, interval=0)


async def test_apply_kafka_reuses_existing_instance():
    existing = FakeKafkaApi(listing=[_kafka()])
    empty = FakeKafkaApi()
    payload = KafkaRequestPayload(name="mk-e2e-ci")

    assert (await mgmt_utils.apply_kafka(existing, payload)).id == "k1"
    assert existing.created == []

    created = await mgmt_utils.apply_kafka(empty, payload)
    assert created.status == "accepted"
    assert [p.name for p in empty.created] == ["mk-e2e-ci"]


async def test_apply_service_account_resets_existing_credentials():
    api = FakeSecurityApi(accounts=[ServiceAccount(id="sa1", name="mk-e2e-sa-ci")])

    account = await mgmt_utils.apply_service_account(api, ServiceAccountRequest(name="mk-e2e-sa-ci"))

    assert account.client_secret == "s2"
    assert api.calls == [("reset", "sa1")]


async def test_apply_service_account_creates_missing_account():
    api = FakeSecurityApi()

    account = await mgmt_utils.apply_service_account(api, ServiceAccountRequest(name="mk-e2e-sa-ci"))

    assert account.client_secret == "s1"
    assert api.calls == [("create", "mk-e2e-sa-ci")]


async def test_apply_topic_creates_only_missing_topics():
    api = FakeAdminApi(existing={"present"})

    await mgmt_utils.apply_topic(api, CreateTopicPayload.simple("present"))
    await mgmt_utils.apply_topic(api, CreateTopicPayload.simple("absent"))

    assert api.created == ["absent"]


async def test_delete_kafka_by_name_if_exists():
    api = FakeKafkaApi(listing=[_kafka()], statuses=[_not_found()])

    assert await mgmt_utils.delete_kafka_by_name_if_exists(api, "mk-e2e-ci", wait=True, timeout=5)
    assert api.deleted == ["k1"]
    assert not await mgmt_utils.delete_kafka_by_name_if_exists(FakeKafkaApi(), "mk-e2e-ci")


async def test_delete_kafka_keeps_going_when_deletion_outlasts_the_wait(caplog):
    api = FakeKafkaApi(listing=[_kafka()], statuses=[_kafka(status="deleting")])

    with caplog.at_level("WARNING"):
        deleted = await mgmt_utils.delete_kafka_by_name_if_exists(
            api, "mk-e2e-ci", wait=True, timeout=0
        )

    assert deleted is True
    assert api.deleted == ["k1"]
    assert any("still being deleted" in r.message for r in caplog.records)


async def test_delete_service_account_failures_are_logged_not_raised(caplog):
    api = FakeSecurityApi(
        accounts=[ServiceAccount(id="sa1", name="mk-e2e-sa-ci")],
        fail_delete=ApiTransientError("still failing"),
    )

    with caplog.at_level("WARNING"):
        deleted = await mgmt_utils.delete_service_account_by_name_if_exists(api, "mk-e2e-sa-ci")

    assert deleted is False
    assert any("Failed to clean up service account" in r.message for r in caplog.records)


async def test_delete_topic_if_exists():
    assert await mgmt_utils.delete_topic_if_exists(FakeAdminApi(), "t") is True
    assert await mgmt_utils.delete_topic_if_exists(FakeAdminApi(delete_error=_not_found()), "t") is False


async def test_bootstrap_server_and_admin_url():
    kafka = _kafka(bootstrap_server_host="mk-e2e-ci.kafka.test")

    assert mgmt_utils.bootstrap_server(kafka) == "mk-e2e-ci.kafka.test:443"
    assert mgmt_utils.bootstrap_server(_kafka(bootstrap_server_host="h:9096")) == "h:9096"
    assert mgmt_utils.admin_api_url(kafka) == "https://admin-server-mk-e2e-ci.kafka.test"

    with pytest.raises(ApiUnknownError):
        mgmt_utils.bootstrap_server(_kafka(bootstrap_server_host=None))


async def test_unexpected_listing_shape_does_not_break_cleanup(
    mock_http, fake_sleep, fast_policy, caplog
):
    def handler(request):
        return httpx.Response(200, json={"items": [{"name": "mk-e2e-sa-ci"}]})

    api = SecurityMgmtApi(
        "https://api.test", token="t0", policy=fast_policy, http=mock_http(handler), sleep=fake_sleep
    )

    with caplog.at_level("WARNING"):
        deleted = await mgmt_utils.delete_service_account_by_name_if_exists(api, "mk-e2e-sa-ci")

    assert deleted is False
    assert any("Failed to clean up service account" in r.message for r in caplog.records)

    await api.aclose()
