"""
config/config.py

Purpose
-------
Centralized settings for the managed Kafka end-to-end harness.
- Normalizes environment variable names across legacy and canonical variants.
- Provides typed defaults for the SSO, management API, retry and cluster layers.

Notes for Maintainers
---------------------
- A local ``.env`` file is honoured unless ``SETTINGS_SKIP_DOTENV=1``.
- Resource names carry ``KAFKA_POSTFIX_NAME`` so concurrent CI runs do not
  collide on shared cloud resources.

Examples
--------
# Bash:
export SERVICE_API_URI=https://api.stage.openshift.com
export SSO_USERNAME=e2e-user SSO_PASSWORD=...
export KAFKA_POSTFIX_NAME=$(whoami)
"""

from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from utils.retry import (
    DEFAULT_MAX_ATTEMPTS,
    INITIAL_BACKOFF_SECONDS,
    BACKOFF_MULTIPLIER,
    MAX_BACKOFF_SECONDS,
    RetryPolicy,
)

if os.getenv("SETTINGS_SKIP_DOTENV") != "1":
    load_dotenv()


# -----------------------------
# Helper functions
# -----------------------------
def _coalesce_env(*names: str, default: Optional[str] = None) -> Optional[str]:
    """Return the first non-empty environment variable from *names*."""
    for name in names:
        val = os.getenv(name)
        if val is not None and str(val).strip() != "":
            return val
    return default


def _parse_bool(value: Optional[str], *, default: bool) -> bool:
    if value is None:
        return default
    v = str(value).strip().lower()
    return v in {"1", "true", "yes", "y", "on"}


def _parse_int(value: Optional[str], *, default: int) -> int:
    if value is None or str(value).strip() == "":
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def _parse_float(value: Optional[str], *, default: float) -> float:
    if value is None or str(value).strip() == "":
        return default
    try:
        return float(str(value).strip())
    except ValueError:
        return default


# -----------------------------
# Main Settings
# -----------------------------
class Settings(BaseSettings):
    # --- Management API ---
    service_api_uri: str = Field(
        default_factory=lambda: _coalesce_env("SERVICE_API_URI")
        or "https://api.stage.openshift.com"
    )
    request_timeout: float = Field(
        default_factory=lambda: _parse_float(
            _coalesce_env("API_REQUEST_TIMEOUT"), default=30.0
        )
    )

    # --- SSO (Keycloak) ---
    sso_keycloak_uri: str = Field(
        default_factory=lambda: _coalesce_env(
            "SSO_REDHAT_KEYCLOAK_URI", "SSO_KEYCLOAK_URI"
        )
        or "https://sso.redhat.com"
    )
    sso_realm: str = Field(
        default_factory=lambda: _coalesce_env("SSO_REDHAT_REALM", "SSO_REALM")
        or "redhat-external"
    )
    sso_client_id: str = Field(
        default_factory=lambda: _coalesce_env("SSO_REDHAT_CLIENT_ID", "SSO_CLIENT_ID")
        or "cloud-services"
    )
    sso_redirect_uri: str = Field(
        default_factory=lambda: _coalesce_env(
            "SSO_REDHAT_REDIRECT_URI", "SSO_REDIRECT_URI"
        )
        or "https://cloud.redhat.com"
    )
    sso_username: Optional[str] = Field(
        default_factory=lambda: _coalesce_env("SSO_USERNAME", "SSO_USER")
    )
    sso_password: Optional[str] = Field(
        default_factory=lambda: _coalesce_env("SSO_PASSWORD", "SSO_PASS")
    )
    token_leeway_seconds: int = Field(
        default_factory=lambda: _parse_int(
            _coalesce_env("SSO_TOKEN_LEEWAY_SECONDS"), default=30
        )
    )

    # --- Kafka instance defaults ---
    kafka_postfix_name: str = Field(
        default_factory=lambda: _coalesce_env("KAFKA_POSTFIX_NAME")
        or os.getenv("USER", "ci")
    )
    kafka_cloud_provider: str = Field(
        default_factory=lambda: _coalesce_env("KAFKA_CLOUD_PROVIDER") or "aws"
    )
    kafka_region: str = Field(
        default_factory=lambda: _coalesce_env("KAFKA_REGION") or "us-east-1"
    )
    kafka_multi_az: bool = Field(
        default_factory=lambda: _parse_bool(
            _coalesce_env("KAFKA_MULTI_AZ"), default=True
        )
    )
    kafka_ready_timeout: float = Field(
        default_factory=lambda: _parse_float(
            _coalesce_env("KAFKA_READY_TIMEOUT_SECONDS"), default=900.0
        )
    )
    kafka_delete_timeout: float = Field(
        default_factory=lambda: _parse_float(
            _coalesce_env("KAFKA_DELETE_TIMEOUT_SECONDS"), default=600.0
        )
    )
    kafka_poll_interval: float = Field(
        default_factory=lambda: _parse_float(
            _coalesce_env("KAFKA_POLL_INTERVAL_SECONDS"), default=10.0
        )
    )
    kafka_message_timeout: float = Field(
        default_factory=lambda: _parse_float(
            _coalesce_env("KAFKA_MESSAGE_TIMEOUT_SECONDS"), default=60.0
        )
    )

    # --- Retry policy ---
    api_max_attempts: int = Field(
        default_factory=lambda: _parse_int(
            _coalesce_env("API_MAX_ATTEMPTS"), default=DEFAULT_MAX_ATTEMPTS
        )
    )
    api_base_delay: float = Field(
        default_factory=lambda: _parse_float(
            _coalesce_env("API_BASE_DELAY_SECONDS"), default=INITIAL_BACKOFF_SECONDS
        )
    )
    api_backoff_multiplier: float = Field(
        default_factory=lambda: _parse_float(
            _coalesce_env("API_BACKOFF_MULTIPLIER"), default=BACKOFF_MULTIPLIER
        )
    )
    api_max_delay: float = Field(
        default_factory=lambda: _parse_float(
            _coalesce_env("API_MAX_DELAY_SECONDS"), default=MAX_BACKOFF_SECONDS
        )
    )

    # --- Kubernetes / OpenShift fixtures ---
    kubeconfig: Optional[str] = Field(
        default_factory=lambda: _coalesce_env("KUBECONFIG")
    )
    test_cluster: Optional[str] = Field(
        default_factory=lambda: _coalesce_env("TEST_CLUSTER")
    )
    skip_teardown: bool = Field(
        default_factory=lambda: _parse_bool(
            _coalesce_env("SKIP_TEARDOWN"), default=False
        )
    )

    # --- Logging ---
    log_level: str = Field(
        default_factory=lambda: (_coalesce_env("LOG_LEVEL") or "INFO").upper()
    )

    class Config:
        case_sensitive = False

    @model_validator(mode="after")
    def _normalise(self) -> "Settings":
        self.service_api_uri = self.service_api_uri.rstrip("/")
        self.sso_keycloak_uri = self.sso_keycloak_uri.rstrip("/")
        self.api_max_attempts = max(1, self.api_max_attempts)
        self.log_level = self.log_level.upper()
        return self

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------
    @property
    def kafka_instance_name(self) -> str:
        return f"mk-e2e-{self.kafka_postfix_name}"

    @property
    def service_account_name(self) -> str:
        return f"mk-e2e-sa-{self.kafka_postfix_name}"

    @property
    def has_sso_credentials(self) -> bool:
        return bool(self.sso_username and self.sso_password)

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.api_max_attempts,
            base_delay=self.api_base_delay,
            multiplier=self.api_backoff_multiplier,
            max_delay=self.api_max_delay,
        )


# Singleton settings instance
settings = Settings()
