import logging
from typing import List

from config.config import Settings

LOG = logging.getLogger(__name__)


def missing_settings(settings: Settings) -> List[str]:
    """Return the environment variables a full harness run still needs."""

    missing: List[str] = []
    if not settings.service_api_uri:
        missing.append("SERVICE_API_URI")
    if not settings.sso_keycloak_uri:
        missing.append("SSO_REDHAT_KEYCLOAK_URI")
    if not settings.sso_username:
        missing.append("SSO_USERNAME")
    if not settings.sso_password:
        missing.append("SSO_PASSWORD")
    return missing


def validate_environment(settings: Settings, strict: bool = True) -> bool:
    missing = missing_settings(settings)
    try:
        settings.retry_policy()
    except ValueError as exc:
        LOG.error("Invalid retry configuration: %s", exc)
        return False
    if missing:
        LOG.error("Missing required environment variables: %s", ", ".join(missing))
        if strict:
            return False
    else:
        LOG.info("Environment validation passed.")
    return True
