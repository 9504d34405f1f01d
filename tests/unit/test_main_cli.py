"""Tests for the command line entry point."""

from __future__ import annotations

import pytest

import main
from config.config import Settings
from utils.api_errors import ApiUnauthorizedError, WaitTimeoutError
from utils.env_validation import missing_settings


@pytest.fixture
def cfg(monkeypatch):
    for key in ("SSO_USERNAME", "SSO_USER", "SSO_PASSWORD", "SSO_PASS"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("KAFKA_POSTFIX_NAME", "ci")
    return Settings()


def test_check_env_reports_missing_credentials(cfg, caplog):
    with caplog.at_level("ERROR"):
        assert main.main(["check-env"], cfg=cfg) == 1

    assert missing_settings(cfg) == ["SSO_USERNAME", "SSO_PASSWORD"]
    assert any("SSO_USERNAME" in r.message for r in caplog.records)


def test_check_env_passes_with_credentials(cfg):
    cfg.sso_username = "alice"
    cfg.sso_password = "secret"

    assert main.main(["check-env"], cfg=cfg) == 0


def test_cleanup_refuses_to_run_without_credentials(cfg, monkeypatch):
    called = []

    async def fake_cleanup(settings, *, wait=False):
        called.append(settings)
        return True

    monkeypatch.setattr(main, "cleanup", fake_cleanup)

    assert main.main(["cleanup"], cfg=cfg) == 1
    assert called == []


def test_cleanup_runs_with_wait_flag(cfg, monkeypatch):
    cfg.sso_username = "alice"
    cfg.sso_password = "secret"
    calls = []

    async def fake_cleanup(settings, *, wait=False):
        calls.append((settings.kafka_instance_name, wait))
        return True

    monkeypatch.setattr(main, "cleanup", fake_cleanup)

    assert main.main(["cleanup", "--wait"], cfg=cfg) == 0
    assert calls == [("mk-e2e-ci", True)]


def test_cleanup_api_failures_exit_non_zero(cfg, monkeypatch, caplog):
    cfg.sso_username = "alice"
    cfg.sso_password = "wrong"

    async def fake_cleanup(settings, *, wait=False):
        raise ApiUnauthorizedError("SSO login of alice failed")

    monkeypatch.setattr(main, "cleanup", fake_cleanup)

    with caplog.at_level("ERROR"):
        assert main.main(["cleanup"], cfg=cfg) == 1

    assert any("Cleanup failed" in r.message for r in caplog.records)


def test_cleanup_wait_timeout_exits_non_zero(cfg, monkeypatch, caplog):
    cfg.sso_username = "alice"
    cfg.sso_password = "secret"

    async def fake_cleanup(settings, *, wait=False):
        raise WaitTimeoutError("timed out", last_status="deleting", timeout=1.0)

    monkeypatch.setattr(main, "cleanup", fake_cleanup)

    with caplog.at_level("ERROR"):
        assert main.main(["cleanup", "--wait"], cfg=cfg) == 1

    assert any("timed out" in r.message for r in caplog.records)


def test_unknown_command_exits():
    with pytest.raises(SystemExit):
        main.main(["deploy"])
